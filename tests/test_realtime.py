"""
Real-time channel tests with an in-memory websocket double.

Run with: pytest tests/test_realtime.py -v
"""
import asyncio
import json

import pytest

from core.realtime import RealtimeClient, RealtimeServer, reconnect_delay
from core.tracker import ConnectionTracker


class FakeWebSocket:
    """Replays `incoming` then closes; records everything sent."""

    remote_address = ("10.0.0.7", 51234)

    def __init__(self, incoming=()):
        self.incoming = list(incoming)
        self.sent = []

    async def send(self, message):
        self.sent.append(json.loads(message))

    def __aiter__(self):
        return self._messages()

    async def _messages(self):
        for message in self.incoming:
            yield message


@pytest.fixture
def tracker():
    return ConnectionTracker()


@pytest.fixture
def server(tracker):
    return RealtimeServer(tracker, heartbeat_interval=3600)


# ============================================
# Test: reconnect backoff
# ============================================

class TestReconnectDelay:

    def test_doubles_then_caps(self):
        assert [reconnect_delay(n) for n in range(1, 8)] == [1, 2, 4, 8, 16, 30, 30]

    def test_no_wait_before_first_attempt(self):
        assert reconnect_delay(0) == 0.0


# ============================================
# Test: server handler
# ============================================

class TestServer:

    def test_ping_answered_with_pong(self, server, tracker):
        ws = FakeWebSocket()
        tracker.add(ws)

        asyncio.run(server.handle_message(ws, json.dumps({"type": "ping"})))

        assert ws.sent[0]["type"] == "pong"
        assert ws.sent[0]["timestamp"].endswith("Z")

    def test_other_messages_ignored(self, server):
        ws = FakeWebSocket()
        asyncio.run(server.handle_message(ws, "not json"))
        asyncio.run(server.handle_message(ws, json.dumps(["ping"])))
        asyncio.run(server.handle_message(ws, json.dumps({"type": "hello"})))
        assert ws.sent == []

    def test_connection_lifecycle(self, server, tracker):
        ws = FakeWebSocket([json.dumps({"type": "ping"})])

        asyncio.run(server.handler(ws))

        assert ws.sent[0] == {
            "type": "connected",
            "message": "Welcome to F1 Dashboard",
            "timestamp": ws.sent[0]["timestamp"],
        }
        assert ws.sent[1]["type"] == "pong"
        assert tracker.count == 0
        assert tracker.stats()["connections"]["peak"] == 1


# ============================================
# Test: client
# ============================================

class TestClient:

    def test_dispatch_parses_json(self):
        received = []
        client = RealtimeClient("ws://localhost:5001/ws", on_message=received.append)

        client._dispatch(json.dumps({"type": "connected"}))
        client._dispatch("garbage")

        assert received == [{"type": "connected"}]

    def test_handler_error_is_contained(self):
        def broken(data):
            raise RuntimeError("boom")

        client = RealtimeClient("ws://localhost:5001/ws", on_message=broken)
        client._dispatch(json.dumps({"type": "pong"}))

    def test_notify_visible_before_start_is_noop(self):
        client = RealtimeClient("ws://localhost:5001/ws")
        assert client.notify_visible() is False
