"""Race data snapshot.

Built once per data refresh. The clock is read here and nowhere else,
so previous/next race can't flip between two renders of the same
rotation.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from config import RACE_WEEKEND_DAYS

logger = logging.getLogger(__name__)


def parse_date(value: str) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if not value or not isinstance(value, str):
        return None
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug("Unparseable date: %r", value)
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _meeting_start(meeting: Dict) -> Optional[datetime]:
    return parse_date(meeting.get("date_start", ""))


def sort_meetings(meetings: List[Dict]) -> List[Dict]:
    """Chronological order; meetings without a usable date go last."""
    far_future = datetime.max.replace(tzinfo=timezone.utc)
    return sorted(meetings, key=lambda m: _meeting_start(m) or far_future)


def find_previous_race(meetings: List[Dict], now: datetime) -> Optional[Dict]:
    """Latest meeting whose weekend (start + 2 days) has finished."""
    for meeting in reversed(sort_meetings(meetings)):
        start = _meeting_start(meeting)
        if start is None:
            continue
        if start + timedelta(days=RACE_WEEKEND_DAYS) < now:
            return meeting
    return None


def find_next_race(meetings: List[Dict], now: datetime) -> Optional[Dict]:
    """Earliest meeting that hasn't started yet."""
    for meeting in sort_meetings(meetings):
        start = _meeting_start(meeting)
        if start is not None and start > now:
            return meeting
    return None


def find_next_race_index(meetings: List[Dict], now: datetime) -> int:
    """Index of the next race in an already-sorted list, or -1."""
    for idx, meeting in enumerate(meetings):
        start = _meeting_start(meeting)
        if start is not None and start > now:
            return idx
    return -1


def is_sprint_weekend(meeting_name: str, sprint_weekends: List[str]) -> bool:
    """Match e.g. "Miami Grand Prix" against "Miami GP"."""
    name = (meeting_name or "").lower()
    for sprint in sprint_weekends:
        key = sprint.lower().replace(" gp", "").strip()
        if key and key in name:
            return True
    return False


@dataclass
class RaceSnapshot:
    meetings: List[Dict[str, Any]] = field(default_factory=list)
    driver_standings: List[Dict[str, Any]] = field(default_factory=list)
    constructor_standings: List[Dict[str, Any]] = field(default_factory=list)
    previous_race: Optional[Dict[str, Any]] = None
    next_race: Optional[Dict[str, Any]] = None
    next_race_index: int = -1
    taken_at: Optional[datetime] = None


def build_snapshot(payload: Dict[str, Any], now: Optional[datetime] = None) -> RaceSnapshot:
    """Turn a data-source payload into a RaceSnapshot."""
    if now is None:
        now = datetime.now(timezone.utc)
    meetings = sort_meetings(list(payload.get("meetings") or []))
    return RaceSnapshot(
        meetings=meetings,
        driver_standings=list(payload.get("driver_standings") or []),
        constructor_standings=list(payload.get("constructor_standings") or []),
        previous_race=find_previous_race(meetings, now),
        next_race=find_next_race(meetings, now),
        next_race_index=find_next_race_index(meetings, now),
        taken_at=now,
    )
