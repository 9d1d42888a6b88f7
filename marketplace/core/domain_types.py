"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - Identity is always a lowercase 0x-prefixed 20-byte hex address
    - ItemId is 1-based (ledger-assigned, contiguous at creation)
    - Wei is a non-negative integer in the ledger's smallest unit
    - All valid states encoded as Enums — no raw string matching

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders (API + log extras)
"""

from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

Identity = NewType("Identity", str)
ItemId = NewType("ItemId", int)
TxHash = NewType("TxHash", str)


# ─── Value Types ─────────────────────────────────────────────────

Wei = NewType("Wei", int)   # 0 ≤ wei < 2**256

MAX_UINT256 = 2**256 - 1


# ─── Enums ───────────────────────────────────────────────────────

class OperationKind(str, Enum):
    """State-mutating operations driven through the transaction coordinator."""
    LIST = "list"
    PURCHASE = "purchase"
    TRANSFER = "transfer"

    @property
    def refreshes_owned(self) -> bool:
        """Purchase and transfer change holdings; listing only grows the catalog."""
        return self in (OperationKind.PURCHASE, OperationKind.TRANSFER)


class TransactionPhase(str, Enum):
    """Per-operation lifecycle. REFRESHED and every failure phase are terminal.

    UNSYNCED: the transaction is on the ledger but the catalog refresh after it
    failed, so the cache may still show the pre-transaction state.
    """
    IDLE = "idle"
    VALIDATING = "validating"
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    REFRESHED = "refreshed"
    UNSYNCED = "unsynced"
    FAILED = "failed"
    REVERTED = "reverted"
    TIMED_OUT = "timed_out"

    @property
    def is_terminal(self) -> bool:
        return self in (
            TransactionPhase.REFRESHED,
            TransactionPhase.UNSYNCED,
            TransactionPhase.FAILED,
            TransactionPhase.REVERTED,
            TransactionPhase.TIMED_OUT,
        )


# Legal transitions; anything else is a programming error.
PHASE_TRANSITIONS: dict[TransactionPhase, frozenset[TransactionPhase]] = {
    TransactionPhase.IDLE: frozenset({TransactionPhase.VALIDATING}),
    # Revert here means the ledger rejected the call during submission
    TransactionPhase.VALIDATING: frozenset({
        TransactionPhase.SUBMITTED,
        TransactionPhase.FAILED,
        TransactionPhase.REVERTED,
    }),
    TransactionPhase.SUBMITTED: frozenset({
        TransactionPhase.CONFIRMED,
        TransactionPhase.REVERTED,
        TransactionPhase.TIMED_OUT,
        TransactionPhase.FAILED,
    }),
    TransactionPhase.CONFIRMED: frozenset({
        TransactionPhase.REFRESHED,
        TransactionPhase.UNSYNCED,
    }),
    TransactionPhase.REFRESHED: frozenset(),
    TransactionPhase.UNSYNCED: frozenset(),
    TransactionPhase.FAILED: frozenset(),
    TransactionPhase.REVERTED: frozenset(),
    TransactionPhase.TIMED_OUT: frozenset(),
}
