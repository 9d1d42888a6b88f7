"""Operation State — per-operation lifecycle tracker for the submit/confirm/refresh protocol.

Invariants:
    - Starts in IDLE; only transitions listed in PHASE_TRANSITIONS are allowed
    - Terminal phases (REFRESHED, FAILED, REVERTED, TIMED_OUT) accept no further transitions
    - history records every phase visited, in order

Design Decisions:
    - Dataclass with computed properties: pure, deterministic, testable without mocks
    - Illegal transition raises RuntimeError: it is a coordinator bug, not a user error
"""

from dataclasses import dataclass, field

from marketplace.core.domain_types import (
    ItemId, OperationKind, PHASE_TRANSITIONS, TransactionPhase, TxHash,
)


@dataclass
class OperationState:
    """Lifecycle of one list/purchase/transfer call — pure dataclass, no IO."""

    kind: OperationKind
    item_id: ItemId | None = None
    phase: TransactionPhase = TransactionPhase.IDLE
    tx_hash: TxHash | None = None
    history: list[TransactionPhase] = field(
        default_factory=lambda: [TransactionPhase.IDLE],
    )

    @property
    def is_terminal(self) -> bool:
        return self.phase.is_terminal

    @property
    def succeeded(self) -> bool:
        return self.phase == TransactionPhase.REFRESHED

    def advance(self, phase: TransactionPhase) -> None:
        if phase not in PHASE_TRANSITIONS[self.phase]:
            raise RuntimeError(
                f"Illegal {self.kind.value} transition: "
                f"{self.phase.value} -> {phase.value}",
            )
        self.phase = phase
        self.history.append(phase)
