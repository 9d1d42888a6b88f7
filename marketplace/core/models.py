"""Domain Models — immutable snapshots of ledger records and session values.

Invariants:
    - Item is a point-in-time copy; staleness is resolved only by explicit refresh
    - Item.owner is lowercase (same normalization as Identity)
    - MarketSession is replaced wholesale on identity change, never mutated
    - OperationReceipt.phase is REFRESHED for every receipt handed to callers

Design Decisions:
    - frozen dataclasses: pure, hashable, safe to share across concurrent readers
    - Session carries the signer binding alongside the identity so a mutating
      call can never pair one identity with another identity's signer
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from marketplace.core.domain_types import (
    Identity, ItemId, OperationKind, TransactionPhase, TxHash, Wei,
)

if TYPE_CHECKING:
    from marketplace.core.ledger_protocols import Signer


@dataclass(frozen=True)
class Item:
    """Ledger item record as of the refresh that fetched it."""
    id: ItemId
    name: str
    price: Wei
    owner: Identity
    sold: bool

    def is_owned_by(self, identity: str | None) -> bool:
        return identity is not None and self.owner == identity.lower()

    def is_purchasable_by(self, identity: str | None) -> bool:
        """Unsold and not already held by the identity."""
        return not self.sold and not self.is_owned_by(identity)


@dataclass(frozen=True)
class MarketSession:
    """Active identity plus the signer binding derived for it."""
    identity: Identity | None = None
    signer: Signer | None = field(default=None, compare=False)
    generation: int = 0

    @property
    def is_connected(self) -> bool:
        return self.identity is not None and self.signer is not None


@dataclass(frozen=True)
class OperationReceipt:
    """Outcome of a confirmed and re-synchronized mutating operation."""
    kind: OperationKind
    tx_hash: TxHash
    identity: Identity | None
    phase: TransactionPhase = TransactionPhase.REFRESHED
    item_id: ItemId | None = None
    block_number: int | None = None


@dataclass(frozen=True)
class TransactionReceipt:
    """Inclusion result observed for a submitted transaction."""
    tx_hash: TxHash
    succeeded: bool
    block_number: int | None = None
