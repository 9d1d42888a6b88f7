"""Versioned Snapshot — last-writer-wins slot for wholesale cache replacement.

Invariants:
    - issue() hands out strictly increasing sequence numbers
    - apply() accepts a result only if its sequence is newer than the last applied one
    - The held value is replaced as a whole; readers see old or new, never a mix

Design Decisions:
    - Sequence tagging over cancellation: in-flight refreshes run to completion,
      stale results are dropped on arrival (completion order is irrelevant)
    - Plain class, no locks: single event loop, no await between check and swap
"""

from typing import Generic, TypeVar

T = TypeVar("T")


class VersionedSnapshot(Generic[T]):
    """Holds one immutable value plus the sequence that produced it."""

    def __init__(self, initial: T):
        self._value = initial
        self._issued = 0
        self._applied = 0

    @property
    def value(self) -> T:
        return self._value

    @property
    def applied_seq(self) -> int:
        return self._applied

    @property
    def issued_seq(self) -> int:
        return self._issued

    def issue(self) -> int:
        """Reserve the next sequence number for a refresh about to start."""
        self._issued += 1
        return self._issued

    def apply(self, seq: int, value: T) -> bool:
        """Swap in value if seq is newer than the applied one. Returns True if applied."""
        if seq <= self._applied:
            return False
        self._applied = seq
        self._value = value
        return True
