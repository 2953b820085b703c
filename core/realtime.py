"""Real-time channel between kiosks and the server.

The channel carries no race data. It exists so the server can count
who is watching: the server greets each kiosk, answers application
pings, and sends transport pings every 30 s to find dead peers. The
kiosk side keeps the channel open, reconnecting with capped
exponential backoff (1s, 2s, 4s ... 30s) and immediately when the
display comes back to the foreground.

Both ends run their own asyncio loop in a daemon thread, next to the
Flask request threads.
"""

import asyncio
import json
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

import websockets

from config import (
    HEARTBEAT_INTERVAL,
    HEARTBEAT_TIMEOUT,
    RECONNECT_BASE_DELAY,
    RECONNECT_MAX_DELAY,
)
from core.tracker import ConnectionTracker

logger = logging.getLogger(__name__)

WELCOME_MESSAGE = "Welcome to F1 Dashboard"


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def reconnect_delay(attempts: int, base: float = RECONNECT_BASE_DELAY,
                    cap: float = RECONNECT_MAX_DELAY) -> float:
    """Seconds to wait before reconnect attempt number `attempts`."""
    if attempts <= 0:
        return 0.0
    return min(base * (2 ** (attempts - 1)), cap)


class RealtimeServer:
    """websockets server that feeds the ConnectionTracker."""

    def __init__(self, tracker: ConnectionTracker, host: str = "0.0.0.0", port: int = 5001,
                 heartbeat_interval: float = HEARTBEAT_INTERVAL,
                 heartbeat_timeout: float = HEARTBEAT_TIMEOUT):
        self.tracker = tracker
        self.host = host
        self.port = port
        self.heartbeat_interval = heartbeat_interval
        self.heartbeat_timeout = heartbeat_timeout
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._thread: Optional[threading.Thread] = None
        self._ready = threading.Event()

    # ------------------------------------------------------------------
    # Connection handling
    # ------------------------------------------------------------------

    async def handler(self, websocket):
        """Serve one kiosk connection until it closes."""
        self.tracker.add(websocket)
        logger.info("New connection from %s", getattr(websocket, "remote_address", "?"))
        heartbeat = asyncio.ensure_future(self._heartbeat(websocket))
        try:
            await websocket.send(json.dumps({
                "type": "connected",
                "message": WELCOME_MESSAGE,
                "timestamp": _timestamp(),
            }))
            async for message in websocket:
                await self.handle_message(websocket, message)
        except websockets.exceptions.ConnectionClosed:
            pass
        finally:
            heartbeat.cancel()
            self.tracker.remove(websocket)
            logger.info("Connection closed from %s", getattr(websocket, "remote_address", "?"))

    async def handle_message(self, websocket, message):
        """Answer application pings; anything else is ignored."""
        try:
            data = json.loads(message)
        except (TypeError, ValueError):
            logger.debug("Ignoring non-JSON message")
            return
        if not isinstance(data, dict):
            return
        if data.get("type") == "ping":
            self.tracker.record_heartbeat(websocket)
            await websocket.send(json.dumps({"type": "pong", "timestamp": _timestamp()}))

    async def _heartbeat(self, websocket):
        """Transport-level ping every interval; close peers that don't answer."""
        while True:
            await asyncio.sleep(self.heartbeat_interval)
            try:
                pong_waiter = await websocket.ping()
                await asyncio.wait_for(pong_waiter, self.heartbeat_timeout)
            except asyncio.TimeoutError:
                logger.info("No pong within %.0fs, closing connection", self.heartbeat_timeout)
                await websocket.close()
                return
            except websockets.exceptions.ConnectionClosed:
                return
            self.tracker.record_heartbeat(websocket)

    # ------------------------------------------------------------------
    # Thread control
    # ------------------------------------------------------------------

    def start(self, timeout: float = 5.0) -> bool:
        """Start serving in a background thread. Returns True once listening."""
        if self._thread and self._thread.is_alive():
            return True
        self._ready.clear()
        self._thread = threading.Thread(target=self._thread_main, daemon=True, name="realtime-server")
        self._thread.start()
        return self._ready.wait(timeout)

    def stop(self):
        if self._loop and self._stop_event:
            self._loop.call_soon_threadsafe(self._stop_event.set)
        if self._thread:
            self._thread.join(timeout=5.0)
            self._thread = None

    def _thread_main(self):
        try:
            asyncio.run(self._serve())
        except Exception as exc:
            logger.error("Realtime server stopped: %s", exc)

    async def _serve(self):
        self._loop = asyncio.get_running_loop()
        self._stop_event = asyncio.Event()
        # Keep-alive is ours (_heartbeat) so pongs reach the tracker
        async with websockets.serve(self.handler, self.host, self.port, ping_interval=None):
            logger.info("Realtime channel on ws://%s:%d", self.host, self.port)
            self._ready.set()
            await self._stop_event.wait()


class RealtimeClient:
    """Keeps one channel to the server open, reconnecting with backoff."""

    def __init__(self, url: str, on_message: Optional[Callable[[Dict[str, Any]], None]] = None):
        self.url = url
        self.on_message = on_message
        self.connected = False
        self.attempts = 0
        self._closing = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._wake: Optional[asyncio.Event] = None
        self._ws = None
        self._thread: Optional[threading.Thread] = None

    def start(self):
        if self._thread and self._thread.is_alive():
            return
        self._closing = False
        self._thread = threading.Thread(target=self._thread_main, daemon=True, name="realtime-client")
        self._thread.start()

    def notify_visible(self) -> bool:
        """Display is in the foreground again: skip any pending backoff."""
        if self.connected or not self._loop or not self._wake:
            return False
        logger.info("Display visible, reconnecting now")
        self._loop.call_soon_threadsafe(self._wake.set)
        return True

    def close(self):
        self._closing = True
        if self._loop and not self._loop.is_closed():
            try:
                self._loop.call_soon_threadsafe(self._shutdown)
            except RuntimeError:
                # loop already finished
                pass
        if self._thread:
            self._thread.join(timeout=5.0)
            self._thread = None

    def _shutdown(self):
        if self._wake:
            self._wake.set()
        if self._ws is not None:
            asyncio.ensure_future(self._ws.close())

    def _dispatch(self, message):
        try:
            data = json.loads(message)
        except (TypeError, ValueError):
            return
        logger.debug("Realtime message: %s", data)
        if self.on_message and isinstance(data, dict):
            try:
                self.on_message(data)
            except Exception as exc:
                logger.error("Realtime message handler error: %s", exc)

    def _thread_main(self):
        try:
            asyncio.run(self._run())
        except Exception as exc:
            logger.error("Realtime client stopped: %s", exc)

    async def _run(self):
        self._loop = asyncio.get_running_loop()
        self._wake = asyncio.Event()
        while not self._closing:
            self._wake.clear()
            try:
                logger.info("Connecting to %s", self.url)
                async with websockets.connect(self.url) as ws:
                    self._ws = ws
                    self.connected = True
                    self.attempts = 0
                    logger.info("Realtime channel connected")
                    async for message in ws:
                        self._dispatch(message)
            except (OSError, asyncio.TimeoutError, websockets.exceptions.WebSocketException) as exc:
                logger.debug("Realtime channel error: %s", exc)
            finally:
                self._ws = None
                self.connected = False

            if self._closing:
                break
            self.attempts += 1
            delay = reconnect_delay(self.attempts)
            logger.info("Realtime channel down, reconnecting in %.0fs", delay)
            try:
                await asyncio.wait_for(self._wake.wait(), delay)
            except asyncio.TimeoutError:
                pass
