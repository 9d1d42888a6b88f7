"""Client Runtime — builds the MarketplaceClient from settings and owns its lifetime.

Invariants:
    - Exactly one MarketplaceClient per process, created on startup via lifespan
    - No signer_rpc_url configured → client built without a signing agent
      (reads work; connect() raises NoAgentError)

Design Decisions:
    - Singleton market_client initialized on startup: FastAPI lifespan manages lifecycle
      (ADR: no global import side effects)
    - Separate JSON-RPC clients for ledger and wallet: they are different endpoints
"""

import logging

from marketplace.config import Settings
from marketplace.infrastructure.ledger_gateway import JsonRpcLedgerGateway
from marketplace.infrastructure.rpc_client import JsonRpcClient
from marketplace.infrastructure.signing_agent import JsonRpcSigningAgent
from marketplace.services.marketplace_client import MarketplaceClient

logger = logging.getLogger(__name__)


class ClientRuntime:
    """MarketplaceClient plus the transport resources it was built on."""

    def __init__(self, settings: Settings):
        self.ledger_rpc = JsonRpcClient(
            settings.ledger_rpc_url, settings.rpc_timeout_seconds,
        )
        self.agent: JsonRpcSigningAgent | None = None
        self.wallet_rpc: JsonRpcClient | None = None
        if settings.signer_rpc_url:
            self.wallet_rpc = JsonRpcClient(
                settings.signer_rpc_url, settings.rpc_timeout_seconds,
            )
            self.agent = JsonRpcSigningAgent(
                self.wallet_rpc, settings.account_poll_interval_ms,
            )
        gateway = JsonRpcLedgerGateway(
            self.ledger_rpc,
            settings.contract_address,
            settings.receipt_poll_interval_ms,
        )
        self.client = MarketplaceClient(
            gateway,
            self.agent,
            max_concurrent_reads=settings.max_concurrent_reads,
            confirmation_timeout=settings.confirmation_timeout,
        )

    async def health_check(self) -> bool:
        return await self.ledger_rpc.health_check()

    async def aclose(self) -> None:
        await self.client.aclose()
        if self.agent is not None:
            await self.agent.aclose()
        if self.wallet_rpc is not None:
            await self.wallet_rpc.aclose()
        await self.ledger_rpc.aclose()


# Singleton (initialized on startup)
runtime: ClientRuntime | None = None


def init_runtime(settings: Settings) -> ClientRuntime:
    global runtime
    runtime = ClientRuntime(settings)
    logger.info(
        "Marketplace runtime initialized",
        extra={"path": settings.ledger_rpc_url},
    )
    return runtime


async def shutdown_runtime() -> None:
    global runtime
    if runtime is not None:
        await runtime.aclose()
        runtime = None


def get_client() -> MarketplaceClient:
    """FastAPI dependency for the marketplace client."""
    if runtime is None:
        raise RuntimeError("Marketplace client not initialized")
    return runtime.client
