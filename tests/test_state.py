"""Tests for per-mint state and outcome records."""

import pytest

from benchy.state import ItemState, Outcome, RemoteStatus


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("PENDING", RemoteStatus.PENDING),
        ("CREATED", RemoteStatus.CREATED),
        ("failed", RemoteStatus.FAILED),
        ("QUEUED", RemoteStatus.PENDING),
        (None, RemoteStatus.PENDING),
        (RemoteStatus.FAILED, RemoteStatus.FAILED),
    ],
)
def test_parse_remote_status(raw, expected):
    assert RemoteStatus.parse(raw) is expected


def test_only_pending_is_not_terminal():
    assert not RemoteStatus.PENDING.is_terminal
    assert RemoteStatus.CREATED.is_terminal
    assert RemoteStatus.FAILED.is_terminal


def test_pending_window_starts_at_submission():
    item = ItemState(item_id="mint-1", start_time=12.0)

    assert item.last_pending_time == 12.0
    assert item.pending_for(20.0) == 8.0


def test_mark_retried_resets_window_and_counts():
    item = ItemState(item_id="mint-1", start_time=0.0)

    item.mark_retried(30.0)
    item.mark_retried(45.0)

    assert item.retry_count == 2
    assert item.last_pending_time == 45.0
    assert item.pending_for(50.0) == 5.0


def test_outcome_elapsed_is_measured_from_start():
    item = ItemState(item_id="mint-1", start_time=10.0, retry_count=1)

    outcome = item.outcome(25.5, success=True)

    assert outcome == Outcome("mint-1", 15.5, 1, True, "", True)


def test_as_row_rounds_elapsed():
    outcome = Outcome("mint-1", 1.23456, 0, False, "timeout")

    assert outcome.as_row() == {
        "item_id": "mint-1",
        "elapsed_seconds": 1.235,
        "retry_count": 0,
        "success": False,
        "reason": "timeout",
        "terminal": True,
    }
