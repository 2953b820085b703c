#!/usr/bin/env python3
"""F1 Kiosk -- rotating race dashboard server.

Runs the display (data source, rotation, preferences) and the small
server around it in one process:

  - /api/config, /api/admin/config   capability document (admin: dev only)
  - /api/stats, /api/health          operational endpoints
  - /api/preferences                 this kiosk's preferences
  - /api/view, /api/view/stream      current page (JSON / SSE)
  - ws://host:5001/ws                viewer-count channel

Usage:
    python3 web_app.py                          # serve + display
    python3 web_app.py --port 8080 --ws-port 8081
    python3 web_app.py --upstream http://server:5000   # kiosk of a remote server
    DASHBOARD_ENV=production python3 web_app.py        # no admin routes
"""

__version__ = "1.2.0"

import argparse
import json
import logging
import os
from datetime import datetime, timezone
from typing import Dict, List, Optional
from urllib.parse import urlparse

from flask import Flask, Response, jsonify, request
from flask_cors import CORS

import config
from core.capabilities import CapabilityStore, fetch_capabilities, load_dashboard_config
from core.config_context import ConfigContext
from core.display import DATA_TOPIC, VIEW_TOPIC, DisplayController
from core.models import CapabilityError, CapabilityDocument
from core.preferences import PreferenceStore
from core.realtime import RealtimeClient, RealtimeServer
from core.reconcile import (
    move_card,
    set_favorite_driver,
    set_favorite_team,
    set_interval,
    toggle_card,
)
from core.registry import SOURCE_REGISTRY
from core.tracker import ConnectionTracker
from core.web_event_bus import WebEventBus

# Import packages to trigger @register_card / @register_source decorators
import cards  # noqa: F401
import sources  # noqa: F401

logger = logging.getLogger(__name__)

DEFAULT_SOURCES = [{"id": DATA_TOPIC, "type": "openf1"}]


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def is_production(flag: bool = False) -> bool:
    return flag or os.environ.get("DASHBOARD_ENV", "").lower() == "production"


def create_app(context: ConfigContext, controller: DisplayController,
               tracker: ConnectionTracker, bus: WebEventBus,
               capability_store: Optional[CapabilityStore] = None,
               realtime_client: Optional[RealtimeClient] = None,
               production: bool = False) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    CORS(app)

    # ─── Routes: operational ───

    @app.route("/api/stats")
    def stats():
        return jsonify(tracker.stats())

    @app.route("/api/health")
    def health():
        return jsonify({"status": "ok", "timestamp": _timestamp()})

    # ─── Routes: capability document ───

    def _read_capabilities():
        if capability_store is None:
            return jsonify(context.capabilities.to_dict())
        try:
            return jsonify(capability_store.load().to_dict())
        except Exception as exc:
            logger.error("Error reading capabilities: %s", exc)
            return jsonify({"error": "Failed to load config"}), 500

    @app.route("/api/config")
    def capabilities():
        return _read_capabilities()

    if not production and capability_store is not None:
        @app.route("/api/admin/config", methods=["GET"])
        def admin_get_config():
            return _read_capabilities()

        @app.route("/api/admin/config", methods=["POST"])
        def admin_set_config():
            """Replace the capability document and reconcile the display."""
            try:
                caps = CapabilityDocument.from_dict(request.get_json(silent=True))
            except CapabilityError as exc:
                return jsonify({"error": str(exc)}), 400
            try:
                capability_store.save(caps)
            except (OSError, ValueError) as exc:
                logger.error("Error writing capabilities: %s", exc)
                return jsonify({"error": "Failed to save config"}), 500
            context.reload_capabilities(caps)
            logger.info("Admin config updated")
            return jsonify({"success": True})

    # ─── Routes: preferences ───

    def _preferences_body():
        caps, prefs = context.snapshot()
        return {
            "preferences": prefs.to_dict(),
            "capabilities": caps.to_dict(),
            "warning": context.capability_error,
        }

    @app.route("/api/preferences", methods=["GET"])
    def get_preferences():
        return jsonify(_preferences_body())

    @app.route("/api/preferences", methods=["POST"])
    def update_preferences():
        """Apply one settings-menu action.

        Body: {"action": "toggle", "card": "drivers"}
              {"action": "move", "card": "drivers", "direction": "up"}
              {"action": "interval", "interval": 15000}
              {"action": "favoriteDriver", "driverNumber": 44}
              {"action": "favoriteTeam", "team": "Ferrari"}
              {"action": "reset"}
        """
        if not context.capabilities.feature("showPreferenceMenu"):
            return jsonify({"error": "preference menu disabled"}), 403

        data = request.get_json(silent=True) or {}
        action = data.get("action")
        try:
            if action == "toggle":
                context.update(toggle_card, _required(data, "card"))
            elif action == "move":
                context.update(move_card, _required(data, "card"), _required(data, "direction"))
            elif action == "interval":
                context.update(set_interval, int(_required(data, "interval")))
            elif action == "favoriteDriver":
                number = data.get("driverNumber")
                context.update(set_favorite_driver, int(number) if number is not None else None)
            elif action == "favoriteTeam":
                context.update(set_favorite_team, data.get("team"))
            elif action == "reset":
                context.reset()
            else:
                return jsonify({"error": f"unknown action: {action!r}"}), 400
        except (KeyError, TypeError, ValueError, OverflowError) as exc:
            return jsonify({"error": str(exc)}), 400
        return jsonify(_preferences_body())

    # ─── Routes: display ───

    @app.route("/api/view")
    def current_view():
        return jsonify(controller.current_view())

    @app.route("/api/view/stream")
    def view_stream():
        """SSE endpoint streaming the page on screen."""
        def generate():
            yield f"event: view\ndata: {json.dumps(controller.current_view())}\n\n"
            for topic, payload in bus.sse_stream([VIEW_TOPIC]):
                if topic == "keepalive":
                    yield ": keepalive\n\n"
                    continue
                try:
                    yield f"event: view\ndata: {json.dumps(payload)}\n\n"
                except (TypeError, ValueError) as exc:
                    logger.debug("SSE serialize error: %s", exc)

        return Response(
            generate(),
            mimetype="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "X-Accel-Buffering": "no",
                "Connection": "keep-alive",
            },
        )

    @app.route("/api/display/visible", methods=["POST"])
    def display_visible():
        """Browser reports the page is visible again (visibilitychange)."""
        woke = realtime_client.notify_visible() if realtime_client else False
        return jsonify({"reconnecting": woke})

    return app


def _required(data: Dict, key: str):
    if data.get(key) is None:
        raise KeyError(f"{key} required")
    return data[key]


def load_sources(source_configs: List[Dict], bus) -> List:
    """Instantiate and start data sources from dashboard.yaml entries."""
    started = []
    for src_cfg in source_configs:
        src_type = src_cfg.get("type")
        src_id = src_cfg.get("id")

        cls = SOURCE_REGISTRY.get(src_type)
        if cls is None:
            logger.warning("Unknown source type: %s (for %s)", src_type, src_id)
            continue
        try:
            source = cls(src_id, bus, dict(src_cfg))
            source.start()
            started.append(source)
            logger.info("Started source: %s (%s)", src_id, src_type)
        except Exception as exc:
            logger.error("Failed to start source %s: %s", src_id, exc)
    return started


def realtime_url(upstream: Optional[str], ws_port: int) -> str:
    """Where the kiosk's realtime channel should connect."""
    if upstream:
        parsed = urlparse(upstream)
        scheme = "wss" if parsed.scheme == "https" else "ws"
        return f"{scheme}://{parsed.hostname}:{ws_port}{config.WS_PATH}"
    return f"ws://127.0.0.1:{ws_port}{config.WS_PATH}"


def main():
    parser = argparse.ArgumentParser(description="F1 Kiosk Dashboard")
    parser.add_argument("--port", type=int, default=5000, help="Web server port")
    parser.add_argument("--host", default="0.0.0.0", help="Bind address")
    parser.add_argument("--ws-port", type=int, default=config.WS_PORT, help="Realtime channel port")
    parser.add_argument("--config", default=config.DASHBOARD_CONFIG, help="Config file path")
    parser.add_argument("--preferences", default=config.PREFERENCES_FILE,
                        help="Local preference file")
    parser.add_argument("--upstream", default=None,
                        help="Remote server base URL for capabilities and the realtime channel")
    parser.add_argument("--production", action="store_true", help="Disable admin routes")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s  %(levelname)-7s  %(name)s  %(message)s",
        datefmt="%H:%M:%S",
    )
    logger.info("F1 Kiosk v%s starting", __version__)

    try:
        dashboard = load_dashboard_config(args.config)
    except (OSError, ValueError) as exc:
        logger.error("Unreadable %s, using built-in settings: %s", args.config, exc)
        dashboard = {}
    production = is_production(args.production)

    bus = WebEventBus()
    tracker = ConnectionTracker()

    if args.upstream:
        capability_store = None
        loader = lambda: fetch_capabilities(args.upstream)  # noqa: E731
    else:
        capability_store = CapabilityStore(args.config)
        loader = capability_store.load

    context = ConfigContext(PreferenceStore(args.preferences), loader, bus=bus)
    context.load()
    if context.capability_error:
        logger.warning("Running with built-in capabilities: %s", context.capability_error)

    controller = DisplayController(
        bus, context,
        sprint_weekends=dashboard.get("sprint_weekends", config.SPRINT_WEEKENDS),
    )

    realtime_server = None
    if not args.upstream:
        realtime_server = RealtimeServer(tracker, args.host, args.ws_port)
        if not realtime_server.start():
            logger.warning("Realtime channel did not start on port %d", args.ws_port)
    realtime_client = RealtimeClient(realtime_url(args.upstream, args.ws_port))
    realtime_client.start()

    active_sources = load_sources(dashboard.get("sources") or DEFAULT_SOURCES, bus)
    controller.start()

    app = create_app(context, controller, tracker, bus,
                     capability_store=capability_store,
                     realtime_client=realtime_client,
                     production=production)
    logger.info("Dashboard at http://%s:%d%s", args.host, args.port,
                " (production)" if production else "")

    try:
        app.run(host=args.host, port=args.port, threaded=True, debug=False)
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    finally:
        controller.close()
        for src in active_sources:
            src.close()
        realtime_client.close()
        if realtime_server:
            realtime_server.stop()
        logger.info("Shutdown complete")


if __name__ == "__main__":
    main()
