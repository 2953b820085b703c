"""Thread-safe event bus with SSE fan-out.

Data sources publish from background threads; the display controller
subscribes; the browser follows along through sse_stream(). The latest
payload per topic is kept so a fresh client can render immediately.
"""

import logging
import threading
from queue import Queue, Empty, Full
from typing import Any, Callable, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)


class WebEventBus:
    """Event bus for the Flask kiosk. No GUI dependency."""

    def __init__(self):
        self._latest: Dict[str, Any] = {}
        self._lock = threading.Lock()
        self._sse_clients: List[Queue] = []
        self._subscribers: Dict[str, List[Callable]] = {}

    def publish(self, topic: str, payload: Any):
        """Push data from any thread. Thread-safe."""
        with self._lock:
            self._latest[topic] = payload
            clients = list(self._sse_clients)
            callbacks = list(self._subscribers.get(topic, []))

        # Notify SSE clients (non-blocking); a full queue is a stalled client
        dead = []
        for q in clients:
            try:
                q.put_nowait((topic, payload))
            except Full:
                dead.append(q)
        if dead:
            with self._lock:
                self._sse_clients = [q for q in self._sse_clients if q not in dead]
            logger.info("Dropped %d stalled stream client(s)", len(dead))

        # Direct subscribers (called from publisher thread)
        for cb in callbacks:
            try:
                cb(payload)
            except Exception as exc:
                logger.error("WebEventBus callback error [%s]: %s", topic, exc)

    def subscribe(self, topic: str, callback: Callable):
        """Register a callback for a topic."""
        with self._lock:
            self._subscribers.setdefault(topic, []).append(callback)

    def unsubscribe(self, topic: str, callback: Callable):
        """Remove a callback."""
        with self._lock:
            if topic in self._subscribers:
                self._subscribers[topic] = [
                    cb for cb in self._subscribers[topic] if cb != callback
                ]

    def get_latest(self, topic: Optional[str] = None) -> Any:
        """Get latest payload for a topic, or all topics."""
        with self._lock:
            if topic:
                return self._latest.get(topic)
            return dict(self._latest)

    def sse_stream(self, topics: Optional[Iterable[str]] = None, keepalive: float = 30.0):
        """Generator for SSE clients. Yields (topic, payload) tuples.

        Yields ("keepalive", None) after `keepalive` seconds of silence.

        Usage in Flask:
            def stream():
                for topic, payload in bus.sse_stream(["display.view"]):
                    yield f"event: {topic}\\ndata: {json.dumps(payload)}\\n\\n"
        """
        wanted = set(topics) if topics else None
        q = Queue(maxsize=100)
        with self._lock:
            self._sse_clients.append(q)
        try:
            while True:
                try:
                    topic, payload = q.get(timeout=keepalive)
                except Empty:
                    yield "keepalive", None
                    continue
                if wanted is None or topic in wanted:
                    yield topic, payload
        finally:
            with self._lock:
                if q in self._sse_clients:
                    self._sse_clients.remove(q)
