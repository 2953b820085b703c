"""Display controller -- decides which page the kiosk shows.

Ties the pieces together:

    data source --f1.data--> snapshot --page counts--> catalog --> rotation
    config context ---------------------------------^            |
                                                   display.view <-+

The catalog is only rebuilt when the data or the configuration
actually changes, so a refresh that brings identical page counts
doesn't disturb the rotation. Data, config and tick events arrive on
different threads and are serialized by one lock.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from core.catalog import ViewCatalog
from core.config_context import ConfigContext
from core.models import CapabilityDocument, PreferenceDocument, RotationState
from core.registry import create_cards
from core.rotation import RotationTimer
from core.snapshot import RaceSnapshot, build_snapshot

logger = logging.getLogger(__name__)

DATA_TOPIC = "f1.data"
VIEW_TOPIC = "display.view"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DisplayController:
    """Builds the view catalog and drives the rotation."""

    def __init__(self, bus, context: ConfigContext, cards: Optional[Dict] = None,
                 data_topic: str = DATA_TOPIC, sprint_weekends=None,
                 clock: Callable[[], datetime] = _utcnow):
        self.bus = bus
        self.context = context
        self.cards = cards if cards is not None else create_cards(sprint_weekends)
        self.catalog = ViewCatalog()
        self.snapshot: Optional[RaceSnapshot] = None
        self.data_topic = data_topic
        self._clock = clock
        self._lock = threading.RLock()
        self._closed = False

        _, prefs = context.snapshot()
        self._restart_lock = threading.Lock()
        self.rotation = RotationTimer(prefs.interval, on_tick=self._on_tick)

        bus.subscribe(data_topic, self.on_data)
        context.subscribe(self.on_config)
        self._refresh()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self):
        """Pick up any data already on the bus and start rotating."""
        latest = self.bus.get_latest(self.data_topic)
        if latest is not None:
            self.on_data(latest)
        self.rotation.start()
        self.publish_view()

    def close(self):
        """Stop rotating and ignore anything that arrives later."""
        with self._lock:
            self._closed = True
        self.rotation.stop()
        self.bus.unsubscribe(self.data_topic, self.on_data)
        self.context.unsubscribe(self.on_config)

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def on_data(self, payload: Any):
        """New race data: snapshot it (reads the clock once) and rebuild."""
        if not isinstance(payload, dict):
            return
        with self._lock:
            if self._closed:
                return
            self.snapshot = build_snapshot(payload, self._clock())
            changed = self._refresh()
        if changed:
            self.publish_view()

    def on_config(self, caps: CapabilityDocument, prefs: PreferenceDocument):
        """Preferences or capabilities changed (already reconciled)."""
        with self._lock:
            if self._closed:
                return
            self._refresh()
        self._sync_interval()
        self.publish_view()

    def _sync_interval(self):
        # Listener calls can arrive out of order; apply the context's
        # current interval, not the one passed to on_config.
        with self._restart_lock:
            interval = self.context.preferences.interval
            if interval != self.rotation.interval_ms:
                logger.info("Rotation interval now %.1fs", interval / 1000.0)
                self.rotation.restart(interval)

    def _on_tick(self, state: RotationState):
        logger.debug("Rotation tick -> %d/%d", state.current_index + 1, state.total_views)
        self.publish_view()

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def page_counts(self) -> Dict[str, int]:
        caps, prefs = self.context.snapshot()
        if self.snapshot is None:
            return {card_type: 0 for card_type in self.cards}
        return {
            card_type: card.safe_page_count(self.snapshot, caps, prefs)
            for card_type, card in self.cards.items()
        }

    def _refresh(self) -> bool:
        """Rebuild the catalog if an input changed. Caller holds the lock."""
        _, prefs = self.context.snapshot()
        changed = self.catalog.rebuild(prefs.card_order, prefs.selected_cards, self.page_counts())
        if changed:
            self.rotation.set_total_views(len(self.catalog))
        return changed

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def current_view(self) -> Dict[str, Any]:
        """Descriptor of the page on screen right now."""
        with self._lock:
            caps, prefs = self.context.snapshot()
            state = self.rotation.state()
            item = self.catalog.get(state.current_index)
            if item is None:
                return {
                    "placeholder": "loading" if self.snapshot is None else "no_cards",
                    "index": 0,
                    "total": state.total_views,
                }
            card = self.cards[item.card_type]
            try:
                data = card.render(self.snapshot, item.page_index, caps, prefs)
            except Exception as exc:
                logger.error("Card %s render error: %s", item.card_type, exc)
                data = {}
            return {
                "card": item.card_type,
                "label": card.get_display_name(caps),
                "page": item.page_index,
                "index": state.current_index,
                "total": state.total_views,
                "data": data,
            }

    def publish_view(self):
        if self._closed:
            return
        self.bus.publish(VIEW_TOPIC, self.current_view())
