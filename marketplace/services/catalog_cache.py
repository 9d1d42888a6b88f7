"""Catalog Cache — in-memory projection of the catalog and the active identity's holdings.

Invariants:
    - catalog holds exactly itemCount items, ids 1..itemCount ascending, as of the
      newest applied refresh; itemCount == 0 fetches nothing
    - owned holds only items whose owner equals owned_identity, in ledger order
    - Both projections are replaced wholesale; a failed refresh changes nothing
    - Each refresh is tagged at issuance; a result older than the last applied
      one is discarded on arrival (last-writer-wins by sequence)

Design Decisions:
    - Concurrent item fetches bounded by a semaphore; asyncio.gather keeps
      results in request order regardless of completion order
    - Items whose owner changed between getItemsByOwner and items(id) are
      dropped from owned: the ledger moved on mid-refresh and the next
      refresh will reflect it
"""

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass

from marketplace.core.domain_types import Identity, ItemId
from marketplace.core.ledger_protocols import LedgerGateway
from marketplace.core.models import Item
from marketplace.core.versioned_snapshot import VersionedSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OwnedView:
    """Holdings snapshot tagged with the identity it was computed for."""
    identity: Identity | None = None
    items: tuple[Item, ...] = ()


class CatalogCache:
    """Sequence-numbered, wholesale-replaced cache of ledger items."""

    def __init__(self, gateway: LedgerGateway, max_concurrent_reads: int = 8):
        self._gateway = gateway
        self._reads = asyncio.Semaphore(max(1, max_concurrent_reads))
        self._catalog: VersionedSnapshot[tuple[Item, ...]] = VersionedSnapshot(())
        self._owned: VersionedSnapshot[OwnedView] = VersionedSnapshot(OwnedView())

    @property
    def catalog(self) -> tuple[Item, ...]:
        return self._catalog.value

    @property
    def owned(self) -> tuple[Item, ...]:
        return self._owned.value.items

    @property
    def owned_identity(self) -> Identity | None:
        return self._owned.value.identity

    async def refresh_catalog(self) -> bool:
        """Rebuild the catalog from the ledger. Returns False if superseded."""
        seq = self._catalog.issue()
        count = await self._gateway.get_item_count()
        items = await self._fetch_items(ItemId(i) for i in range(1, count + 1))
        applied = self._catalog.apply(seq, items)
        self._log_outcome("catalog", seq, applied, len(items))
        return applied

    async def refresh_owned(self, identity: Identity | None) -> bool:
        """Rebuild holdings for identity (empty for None). Returns False if superseded."""
        seq = self._owned.issue()
        items: tuple[Item, ...] = ()
        if identity is not None:
            identity = Identity(identity.lower())
            ids = await self._gateway.get_owned_item_ids(identity)
            fetched = await self._fetch_items(ids)
            items = tuple(item for item in fetched if item.owner == identity)
            if len(items) != len(fetched):
                logger.debug(
                    "Dropped items that changed owner mid-refresh",
                    extra={"identity": identity, "count": len(fetched) - len(items)},
                )
        applied = self._owned.apply(seq, OwnedView(identity, items))
        self._log_outcome("owned", seq, applied, len(items), identity)
        return applied

    async def refresh_all(self, identity: Identity | None) -> None:
        await asyncio.gather(
            self.refresh_catalog(), self.refresh_owned(identity),
        )

    async def _fetch_items(self, ids: Iterable[ItemId]) -> tuple[Item, ...]:
        async def fetch(item_id: ItemId) -> Item:
            async with self._reads:
                return await self._gateway.get_item(item_id)

        return tuple(await asyncio.gather(*(fetch(i) for i in ids)))

    def _log_outcome(
        self, projection: str, seq: int, applied: bool, count: int,
        identity: Identity | None = None,
    ) -> None:
        if applied:
            logger.info(
                f"Applied {projection} refresh",
                extra={"seq": seq, "count": count, "identity": identity},
            )
        else:
            logger.debug(
                f"Discarded stale {projection} refresh",
                extra={"seq": seq, "identity": identity},
            )
