from datetime import date, datetime, timedelta, timezone

import pytest

from ballotboard.models.election_model import ElectionStatus
from ballotboard.status import (
    STATUS_BADGES,
    badge_for,
    count_by_status,
    effective_status,
    parse_timestamp,
    resolve_status,
)

T = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)
ONE = timedelta(seconds=1)


@pytest.mark.parametrize(
    "start,end,expected",
    [
        (T - ONE, T + ONE, "active"),
        (T - timedelta(days=3), T - ONE, "completed"),
        (T + ONE, T + timedelta(days=3), "upcoming"),
    ],
)
def test_dates_decide_status(start, end, expected):
    assert resolve_status("cancelled", start, end, T) == expected


def test_window_boundaries_are_active():
    assert resolve_status("upcoming", T, T + ONE, T) == "active"
    assert resolve_status("upcoming", T - ONE, T, T) == "active"


@pytest.mark.parametrize(
    "start,end",
    [(None, None), (T, None), (None, T), ("", T), ("not a date", T), (T, 42)],
)
def test_missing_or_invalid_dates_keep_stored_status(start, end):
    assert resolve_status("cancelled", start, end, T) == "cancelled"


def test_strings_and_dates_are_accepted():
    assert resolve_status("upcoming", "2026-03-14T00:00:00Z", "2026-03-16", T) == "active"
    assert resolve_status("active", date(2026, 1, 1), date(2026, 2, 1), T) == "completed"


def test_naive_datetimes_are_utc():
    naive_start = datetime(2026, 3, 15, 12, 30)
    assert resolve_status("active", naive_start, naive_start + timedelta(hours=1), T) == "upcoming"


def test_offset_timestamps_are_normalised():
    # 13:00+02:00 is 11:00 UTC, an hour before T
    assert parse_timestamp("2026-03-15T13:00:00+02:00") == T - timedelta(hours=1)


def test_now_defaults_to_current_time():
    far_past = datetime(2000, 1, 1, tzinfo=timezone.utc)
    assert resolve_status("active", far_past, far_past + ONE) == "completed"


def test_effective_status_reads_document_fields():
    doc = {"status": "upcoming", "startDate": T - ONE, "endDate": T + ONE}
    assert effective_status(doc, T) == "active"
    assert doc["status"] == "upcoming"


def test_count_by_status_uses_effective_values():
    elections = [
        {"status": "upcoming", "startDate": T - ONE, "endDate": T + ONE},
        {"status": "active", "startDate": T - 2 * ONE, "endDate": T - ONE},
        {"status": "cancelled"},
        {"status": "active"},
    ]
    assert count_by_status(elections, T) == {
        "total": 4,
        "upcoming": 0,
        "active": 2,
        "completed": 1,
        "cancelled": 1,
    }


def test_every_status_has_a_badge():
    assert set(STATUS_BADGES) == set(ElectionStatus)


def test_unknown_status_gets_upcoming_badge():
    assert badge_for("ongoing") == STATUS_BADGES[ElectionStatus.UPCOMING]
    assert badge_for(None) == STATUS_BADGES[ElectionStatus.UPCOMING]
    assert badge_for("completed").label == "Completed"
