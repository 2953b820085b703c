"""In-memory registry of open real-time connections.

Operational visibility only: how many kiosks are watching, the busiest
moment since start, and how long the process has been up. Nothing is
persisted; a restart starts the counts over.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Hashable

from config import APP_ID

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(dt: datetime) -> str:
    return dt.isoformat().replace("+00:00", "Z")


def format_uptime(seconds: int) -> str:
    """e.g. 93784 -> "1d 2h 3m"; anything under a minute is "< 1m"."""
    days, rem = divmod(int(seconds), 86400)
    hours, rem = divmod(rem, 3600)
    minutes = rem // 60
    parts = []
    if days:
        parts.append(f"{days}d")
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    return " ".join(parts) if parts else "< 1m"


@dataclass
class ConnectionRecord:
    connected_at: datetime
    last_heartbeat_at: datetime


class ConnectionTracker:
    """Counts concurrently open channels and remembers the peak."""

    def __init__(self, clock: Callable[[], datetime] = _utcnow):
        self._clock = clock
        self._lock = threading.Lock()
        self._connections: Dict[Hashable, ConnectionRecord] = {}
        self.started_at = clock()
        self.peak_count = 0
        self.peak_time = self.started_at

    def add(self, channel: Hashable):
        now = self._clock()
        with self._lock:
            self._connections[channel] = ConnectionRecord(now, now)
            count = len(self._connections)
            if count > self.peak_count:
                self.peak_count = count
                self.peak_time = now
        logger.info("Connection added. Active: %d", count)

    def remove(self, channel: Hashable):
        with self._lock:
            if self._connections.pop(channel, None) is None:
                return
            count = len(self._connections)
        logger.info("Connection removed. Active: %d", count)

    def record_heartbeat(self, channel: Hashable):
        with self._lock:
            record = self._connections.get(channel)
            if record is not None:
                record.last_heartbeat_at = self._clock()

    def get(self, channel: Hashable):
        with self._lock:
            return self._connections.get(channel)

    @property
    def count(self) -> int:
        with self._lock:
            return len(self._connections)

    def stats(self) -> Dict[str, Any]:
        now = self._clock()
        uptime = max(0, int((now - self.started_at).total_seconds()))
        with self._lock:
            current = len(self._connections)
            peak, peak_time = self.peak_count, self.peak_time
        return {
            "app": APP_ID,
            "status": "operational",
            "connections": {
                "current": current,
                "peak": peak,
                "peakTime": _iso(peak_time),
            },
            "uptime": {
                "seconds": uptime,
                "formatted": format_uptime(uptime),
            },
            "startedAt": _iso(self.started_at),
            "lastUpdated": _iso(now),
        }
