"""Rotation timer for the kiosk display.

Advances an index through the view catalog on a fixed period, wrapping
around like the page manager's next/prev buttons. The timer runs in a
background thread; the index itself is protected by a lock so data
refreshes and web requests can resize the rotation at any time.
"""

import logging
import threading
from typing import Callable, Optional

from core.models import RotationState

logger = logging.getLogger(__name__)


class RotationTimer:
    """Round-robin index over `total_views` pages."""

    def __init__(self, interval_ms: int, on_tick: Optional[Callable[[RotationState], None]] = None):
        self.interval_ms = interval_ms
        self._on_tick = on_tick
        self._lock = threading.Lock()
        self._current = 0
        self._total = 1
        self._control = threading.RLock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def current_index(self) -> int:
        with self._lock:
            return self._current

    @property
    def total_views(self) -> int:
        with self._lock:
            return self._total

    def state(self) -> RotationState:
        with self._lock:
            return RotationState(self._current, self._total)

    def set_total_views(self, total: int) -> RotationState:
        """Resize the rotation. An index that no longer fits goes to 0."""
        with self._lock:
            self._total = max(1, total)
            if self._current >= self._total:
                logger.debug("Rotation index %d out of range (%d views), reset",
                             self._current, self._total)
                self._current = 0
            return RotationState(self._current, self._total)

    def tick(self) -> RotationState:
        """Advance one page (wraps around)."""
        with self._lock:
            if self._current >= self._total:
                self._current = 0
            else:
                self._current = (self._current + 1) % self._total
            state = RotationState(self._current, self._total)
        if self._on_tick:
            try:
                self._on_tick(state)
            except Exception as exc:
                logger.error("Rotation tick handler error: %s", exc)
        return state

    # ------------------------------------------------------------------
    # Thread control
    # ------------------------------------------------------------------

    def start(self):
        """Start the background timer thread."""
        with self._control:
            if self._thread and self._thread.is_alive():
                return
            stop = threading.Event()
            self._stop = stop
            self._thread = threading.Thread(
                target=self._run, args=(stop, self.interval_ms / 1000.0),
                daemon=True, name="rotation",
            )
            self._thread.start()
        logger.info("Rotation started (%.1fs interval)", self.interval_ms / 1000.0)

    def stop(self):
        """Signal the timer thread to stop."""
        with self._control:
            self._stop.set()
            thread = self._thread
            self._thread = None
        if thread and thread is not threading.current_thread():
            thread.join(timeout=1.0)

    def restart(self, interval_ms: int):
        """Re-read the period: stop the old timer and start a fresh one."""
        with self._control:
            was_running = self._thread is not None and self._thread.is_alive()
            self.stop()
            self.interval_ms = interval_ms
            if was_running:
                self.start()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self, stop: threading.Event, period: float):
        # Each thread owns its own stop event, so a restart can't leave
        # two timers ticking.
        while not stop.wait(period):
            self.tick()
