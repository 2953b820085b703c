"""Core framework for the F1 kiosk.

Architecture:
    DataSource        -- fetches race data in a background thread, publishes to the bus
    WebEventBus       -- thread-safe message bus with SSE fan-out
    ConfigContext     -- capability + preference documents, reconciled and persisted
    BaseCard          -- page count and page content for one card type
    Registry          -- registers card types + data source types
    ViewCatalog       -- ordered (card, page) list the display rotates through
    RotationTimer     -- advances through the catalog on the user's interval
    DisplayController -- wires the above together
    ConnectionTracker -- counts kiosks on the realtime channel
"""

from core.web_event_bus import WebEventBus
from core.data_source import DataSource
from core.base_card import BaseCard
from core.registry import CARD_REGISTRY, SOURCE_REGISTRY, register_card, register_source
from core.catalog import ViewCatalog
from core.rotation import RotationTimer
from core.config_context import ConfigContext
from core.display import DisplayController
from core.tracker import ConnectionTracker

__all__ = [
    "WebEventBus",
    "DataSource",
    "BaseCard",
    "CARD_REGISTRY",
    "SOURCE_REGISTRY",
    "register_card",
    "register_source",
    "ViewCatalog",
    "RotationTimer",
    "ConfigContext",
    "DisplayController",
    "ConnectionTracker",
]
