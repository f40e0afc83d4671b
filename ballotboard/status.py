"""
Effective election status.

An election's stored ``status`` is what an administrator last saved. Its
*effective* status is derived from the start/end window whenever both dates
are present, and is what every route reports. The derived value is never
written back to the store.
"""
import logging
from datetime import date, datetime, time, timezone
from typing import Any, Dict, Iterable, NamedTuple, Optional, Union

from ballotboard.models.election_model import ElectionStatus

logger = logging.getLogger(__name__)

DateLike = Union[datetime, date, str, None]


class StatusBadge(NamedTuple):
    label: str
    color: str
    icon: str


STATUS_BADGES: Dict[ElectionStatus, StatusBadge] = {
    ElectionStatus.UPCOMING: StatusBadge("Upcoming", "warning", "clock"),
    ElectionStatus.ACTIVE: StatusBadge("Active", "success", "play-circle"),
    ElectionStatus.COMPLETED: StatusBadge("Completed", "secondary", "check-circle"),
    ElectionStatus.CANCELLED: StatusBadge("Cancelled", "danger", "x-circle"),
}


def parse_timestamp(value: DateLike) -> Optional[datetime]:
    """
    Coerce a stored date value into an aware UTC datetime.
    Returns None for missing or unparseable values.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime.combine(value, time.min)
    elif isinstance(value, str):
        s = value.strip()
        # fromisoformat() only learned the "Z" suffix in 3.11
        if s.endswith(("Z", "z")):
            s = s[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(s)
        except ValueError:
            return None
    else:
        return None

    # MongoDB hands back naive datetimes that are already UTC
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def resolve_status(
    stored_status: Optional[str],
    start_date: DateLike,
    end_date: DateLike,
    now: Optional[datetime] = None,
) -> Optional[str]:
    start = parse_timestamp(start_date)
    end = parse_timestamp(end_date)
    if start is None or end is None:
        return stored_status

    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    if now < start:
        return ElectionStatus.UPCOMING.value
    if now <= end:
        return ElectionStatus.ACTIVE.value
    return ElectionStatus.COMPLETED.value


def effective_status(election: Dict[str, Any], now: Optional[datetime] = None) -> Optional[str]:
    stored = election.get("status")
    resolved = resolve_status(stored, election.get("startDate"), election.get("endDate"), now)
    if resolved != stored:
        logger.debug(
            f"Status mismatch for {election.get('title') or election.get('name')}: "
            f"stored {stored!r}, dates suggest {resolved!r}"
        )
    return resolved


def count_by_status(elections: Iterable[Dict[str, Any]], now: Optional[datetime] = None) -> Dict[str, int]:
    counts = {"total": 0}
    counts.update({s.value: 0 for s in ElectionStatus})
    for election in elections:
        counts["total"] += 1
        status = effective_status(election, now)
        if status in counts:
            counts[status] += 1
    return counts


def badge_for(status: Optional[str]) -> StatusBadge:
    try:
        return STATUS_BADGES[ElectionStatus(status)]
    except ValueError:
        return STATUS_BADGES[ElectionStatus.UPCOMING]
