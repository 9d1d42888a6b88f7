"""Versioned Snapshot — tests for sequence-tagged last-writer-wins replacement.

Tests cover:
    - Monotonic sequence issuance
    - Newer results replace, older results are discarded (any completion order)
    - Value untouched when a result is discarded
"""

import itertools

import pytest

from marketplace.core.versioned_snapshot import VersionedSnapshot


def test_starts_with_initial_value_and_no_applied_sequence():
    slot = VersionedSnapshot(())
    assert slot.value == ()
    assert slot.applied_seq == 0
    assert slot.issued_seq == 0


def test_issue_is_strictly_increasing():
    slot = VersionedSnapshot(None)
    assert [slot.issue() for _ in range(4)] == [1, 2, 3, 4]


def test_in_order_completion_applies_each_result():
    slot = VersionedSnapshot("init")
    s1, s2 = slot.issue(), slot.issue()
    assert slot.apply(s1, "first")
    assert slot.apply(s2, "second")
    assert slot.value == "second"


def test_stale_result_arriving_late_is_discarded():
    slot = VersionedSnapshot("init")
    s1, s2 = slot.issue(), slot.issue()
    assert slot.apply(s2, "newer")
    assert not slot.apply(s1, "older")
    assert slot.value == "newer"
    assert slot.applied_seq == s2


def test_same_sequence_cannot_apply_twice():
    slot = VersionedSnapshot(0)
    s = slot.issue()
    assert slot.apply(s, 1)
    assert not slot.apply(s, 2)
    assert slot.value == 1


@pytest.mark.parametrize("order", list(itertools.permutations([1, 2, 3, 4])))
def test_highest_sequence_wins_for_every_completion_order(order):
    slot = VersionedSnapshot("init")
    for _ in range(4):
        slot.issue()
    for seq in order:
        slot.apply(seq, f"result-{seq}")
    assert slot.value == "result-4"
