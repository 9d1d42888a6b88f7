"""Marketplace Client — the surface the presentation layer consumes.

Invariants:
    - connect() = authorize + full refresh; the cache is never shown for an
      identity it was not computed for
    - Every identity change triggers exactly one resync (catalog + holdings for
      the new identity) BEFORE listeners hear about it
    - A failed resync is reported to listeners (event.error), never hidden;
      the cache keeps its last successfully refreshed values

Design Decisions:
    - Facade over the three collaborators: presentation code never wires them itself
    - identity_changes() as an async iterator over a per-listener queue: SSE routes
      consume it directly; leaving the iterator unsubscribes
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass

from marketplace.core.domain_types import Identity
from marketplace.core.errors import MarketplaceError
from marketplace.core.ledger_protocols import LedgerGateway, SigningAgent
from marketplace.core.models import Item, MarketSession, OperationReceipt
from marketplace.core.subscriptions import HandlerRegistry, Subscription
from marketplace.services.catalog_cache import CatalogCache
from marketplace.services.session_manager import SessionManager
from marketplace.services.transaction_coordinator import TransactionCoordinator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IdentityEvent:
    """Identity-change notification delivered after the resync attempt."""
    identity: Identity | None
    generation: int
    error: MarketplaceError | None = None

    @property
    def synced(self) -> bool:
        return self.error is None


IdentityListener = Callable[[IdentityEvent], Awaitable[None]]


class MarketplaceClient:
    """Session + cache + coordinator, wired for one contract and one wallet."""

    def __init__(
        self,
        gateway: LedgerGateway,
        agent: SigningAgent | None,
        max_concurrent_reads: int = 8,
        confirmation_timeout: float | None = 120.0,
    ):
        self.sessions = SessionManager(agent)
        self.cache = CatalogCache(gateway, max_concurrent_reads)
        self.coordinator = TransactionCoordinator(
            gateway, self.cache, self.sessions, confirmation_timeout,
        )
        self._listeners = HandlerRegistry()
        self._session_subscription = self.sessions.subscribe(self._on_session_changed)

    # ─── State ──────────────────────────────────────────────────

    @property
    def session(self) -> MarketSession:
        return self.sessions.session

    @property
    def identity(self) -> Identity | None:
        return self.sessions.identity

    @property
    def catalog(self) -> tuple[Item, ...]:
        return self.cache.catalog

    @property
    def owned(self) -> tuple[Item, ...]:
        """Holdings, only while they belong to the active identity."""
        if self.cache.owned_identity != self.identity:
            return ()
        return self.cache.owned

    # ─── Lifecycle ──────────────────────────────────────────────

    async def connect(self) -> MarketSession:
        session = await self.sessions.connect()
        await self.coordinator.resync()
        return session

    async def refresh(self) -> None:
        await self.coordinator.resync()

    async def aclose(self) -> None:
        self._session_subscription.unsubscribe()
        await self.sessions.disconnect()

    # ─── Operations ─────────────────────────────────────────────

    async def list_item(self, name: str, price: str) -> OperationReceipt:
        return await self.coordinator.list_item(name, price)

    async def purchase(self, item_id: int, price: str) -> OperationReceipt:
        return await self.coordinator.purchase(item_id, price)

    async def transfer(self, item_id: int, to: str) -> OperationReceipt:
        return await self.coordinator.transfer(item_id, to)

    # ─── Identity notifications ─────────────────────────────────

    def subscribe(self, listener: IdentityListener) -> Subscription:
        return self._listeners.register(listener)

    async def identity_changes(self) -> AsyncIterator[IdentityEvent]:
        """Yield IdentityEvents until the consumer stops iterating."""
        queue: asyncio.Queue[IdentityEvent] = asyncio.Queue()

        async def enqueue(event: IdentityEvent) -> None:
            queue.put_nowait(event)

        with self.subscribe(enqueue):
            while True:
                yield await queue.get()

    async def _on_session_changed(self, session: MarketSession) -> None:
        error = None
        try:
            await self.coordinator.resync()
        except MarketplaceError as e:
            logger.error(
                f"Resync after identity change failed: {e.message}",
                extra={"identity": session.identity, "error_code": e.code},
            )
            error = e
        event = IdentityEvent(session.identity, session.generation, error)
        for listener in self._listeners.snapshot():
            await listener(event)
