"""Wallet Signing Agent — JSON-RPC bridge to an external wallet that holds the keys.

Invariants:
    - Keys never enter this process: signing happens inside the wallet (eth_sendTransaction)
    - Unreachable wallet endpoint on authorization → NoAgentError
    - User rejection (4001/4100) on authorization → AuthorizationDeniedError,
      on a transaction → SignatureDeclinedError
    - Execution revert reported at submission → TransactionRevertedError
    - Account changes delivered to subscribers in registration order, once per change
    - A change is only marked seen after every subscriber handled it; a handler
      failure makes the next poll deliver the same change again

Design Decisions:
    - Account changes detected by polling eth_accounts: HTTP offers no push channel
      (ADR: the wallet's accountsChanged event, observed from the server side)
    - Poll loop starts with the first subscriber and stops with the last
    - Poll errors are logged and the loop keeps going: a flaky wallet must not
      kill identity tracking
"""

import asyncio
import logging

from marketplace.core.domain_types import Identity, TxHash
from marketplace.core.errors import (
    AuthorizationDeniedError, ErrorContext, LedgerRpcError, NoAgentError,
    SignatureDeclinedError, TransactionRevertedError,
)
from marketplace.core.ledger_protocols import IdentityHandler
from marketplace.core.subscriptions import HandlerRegistry, Subscription
from marketplace.core.validation import is_valid_identity, normalize_identity
from marketplace.infrastructure.contract_abi import decode_revert_reason
from marketplace.infrastructure.rpc_client import JsonRpcClient, JsonRpcError

logger = logging.getLogger(__name__)


class JsonRpcSigner:
    """Signer binding for one identity; the wallet signs and broadcasts."""

    def __init__(self, rpc: JsonRpcClient, identity: Identity):
        self._rpc = rpc
        self._identity = identity

    @property
    def identity(self) -> Identity:
        return self._identity

    async def send_transaction(self, tx: dict) -> TxHash:
        ctx = ErrorContext(identity=self._identity)
        try:
            tx_hash = await self._rpc.call("eth_sendTransaction", [tx], context=ctx)
        except JsonRpcError as e:
            if e.is_user_rejection:
                raise SignatureDeclinedError(ctx)
            if e.is_revert:
                raise TransactionRevertedError(
                    decode_revert_reason(e.data) or e.rpc_message, context=ctx,
                )
            raise
        return TxHash(tx_hash)


class JsonRpcSigningAgent:
    """SigningAgent implementation over a wallet JSON-RPC endpoint."""

    def __init__(self, rpc: JsonRpcClient, account_poll_interval_ms: int = 1000):
        self.rpc = rpc
        self._poll_interval = account_poll_interval_ms / 1000
        self._handlers = HandlerRegistry()
        self._last_seen: Identity | None = None
        self._poll_task: asyncio.Task | None = None

    async def request_authorization(self) -> list[Identity]:
        try:
            accounts = await self.rpc.call("eth_requestAccounts")
        except JsonRpcError as e:
            if e.is_user_rejection:
                raise AuthorizationDeniedError()
            raise
        except LedgerRpcError as e:
            raise NoAgentError(f"Signing agent unreachable: {e.message}")
        identities = _identities(accounts)
        if not identities:
            raise AuthorizationDeniedError()
        self._last_seen = identities[0]
        return identities

    async def current_signer(self) -> JsonRpcSigner | None:
        identities = _identities(await self.rpc.call("eth_accounts"))
        if not identities:
            return None
        return JsonRpcSigner(self.rpc, identities[0])

    def subscribe(self, handler: IdentityHandler) -> Subscription:
        subscription = self._handlers.register(handler)
        self._ensure_polling()
        return Subscription(lambda: self._release(subscription))

    async def poll_once(self) -> None:
        """Compare the wallet's active account with the last seen one; notify on change."""
        identities = _identities(await self.rpc.call("eth_accounts"))
        current = identities[0] if identities else None
        if current == self._last_seen:
            return
        logger.info(
            "Wallet account changed",
            extra={"identity": current},
        )
        for handler in self._handlers.snapshot():
            await handler(current)
        # Recorded only once every handler took the change; a failed
        # handler sees it again on the next poll
        self._last_seen = current

    async def aclose(self) -> None:
        await self._stop_polling()

    # ─── Internals ──────────────────────────────────────────────

    def _ensure_polling(self) -> None:
        if self._poll_task is None or self._poll_task.done():
            self._poll_task = asyncio.get_running_loop().create_task(
                self._poll_loop(), name="wallet-account-poll",
            )

    def _release(self, subscription: Subscription) -> None:
        subscription.unsubscribe()
        if not self._handlers and self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None

    async def _stop_polling(self) -> None:
        task, self._poll_task = self._poll_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self._poll_interval)
            try:
                await self.poll_once()
            except LedgerRpcError as e:
                logger.warning(f"Account poll failed: {e.message}")


def _identities(accounts) -> list[Identity]:
    if not isinstance(accounts, list):
        return []
    return [normalize_identity(a) for a in accounts if is_valid_identity(a)]
