"""Data source abstraction for the kiosk.

A DataSource fetches data (race calendar, standings, ...) in a
background thread and publishes it to the event bus. The display
doesn't care where data comes from -- it just subscribes to topics.

Closing a source abandons whatever fetch is in flight: the thread may
still finish the HTTP call, but its result is dropped instead of being
published after shutdown.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class DataSource(ABC):
    """Base class for all data providers.

    Subclasses implement fetch() which runs in a background thread.
    Data is published to the bus under self.topic.
    """

    def __init__(self, source_id: str, bus, config: Dict):
        self.source_id = source_id
        self.bus = bus
        self.config = config
        self.topic = config.get("topic", source_id)
        self.interval = float(config.get("interval", 60.0))  # seconds
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self):
        """Start the background polling thread."""
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, daemon=True, name=f"src-{self.source_id}"
        )
        self._thread.start()
        logger.info("DataSource %s started (%.1fs interval)", self.source_id, self.interval)

    def stop(self):
        """Signal the background thread to stop."""
        self._stop.set()

    @property
    def cancelled(self) -> bool:
        return self._stop.is_set()

    def poll_once(self) -> bool:
        """Fetch and publish one payload. Returns True if published."""
        try:
            data = self.fetch()
        except Exception as exc:
            logger.error("DataSource %s fetch error: %s", self.source_id, exc)
            return False
        if data is None:
            return False
        if self.cancelled:
            logger.debug("DataSource %s closed mid-fetch, result dropped", self.source_id)
            return False
        self.bus.publish(self.topic, data)
        return True

    def _run(self):
        """Poll loop -- fetch, publish, wait (wakes early on stop)."""
        while not self._stop.is_set():
            self.poll_once()
            self._stop.wait(self.interval)

    @abstractmethod
    def fetch(self) -> Optional[Dict[str, Any]]:
        """Fetch data. Runs in background thread.

        Returns:
            Payload dict, or None to skip this cycle.
        """
        ...

    def close(self):
        """Release resources. Override if needed."""
        self.stop()
