"""Configuration context for the running display.

Owns the capability/preference pair and its lifecycle:

    load -> reconcile -> serve -> update -> persist

One instance is built at startup and handed to whoever needs it
(display controller, web routes). Listeners are called after every
accepted change, always with reconciled preferences.
"""

import logging
import threading
from typing import Callable, List, Optional, Tuple

from core.models import CapabilityDocument, PreferenceDocument
from core.preferences import PreferenceStore
from core.reconcile import default_preferences, reconcile

logger = logging.getLogger(__name__)

CONFIG_TOPIC = "config.changed"

Listener = Callable[[CapabilityDocument, PreferenceDocument], None]


class ConfigContext:
    """Capability + preference state with persistence and change hooks."""

    def __init__(self, store: PreferenceStore,
                 capability_loader: Callable[[], CapabilityDocument],
                 bus=None):
        self._store = store
        self._loader = capability_loader
        self._bus = bus
        self._lock = threading.RLock()
        self._listeners: List[Listener] = []
        self._caps = CapabilityDocument.defaults()
        self._prefs = default_preferences(self._caps)
        self.capability_error: Optional[str] = None

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def capabilities(self) -> CapabilityDocument:
        with self._lock:
            return self._caps

    @property
    def preferences(self) -> PreferenceDocument:
        with self._lock:
            return self._prefs

    def snapshot(self) -> Tuple[CapabilityDocument, PreferenceDocument]:
        with self._lock:
            return self._caps, self._prefs

    def subscribe(self, callback: Listener):
        self._listeners.append(callback)

    def unsubscribe(self, callback: Listener):
        self._listeners = [cb for cb in self._listeners if cb != callback]

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def load(self):
        """Initial load: capabilities, then stored preferences."""
        with self._lock:
            self._caps = self._fetch_capabilities()
            stored = self._store.load()
            if stored is None:
                self._prefs = default_preferences(self._caps)
                self._store.save(self._prefs)
            else:
                self._prefs = reconcile(stored, self._caps)
                if self._prefs != stored:
                    logger.info("Stored preferences corrected for current capabilities")
                    self._store.save(self._prefs)
        self._notify()

    def reload_capabilities(self, caps: Optional[CapabilityDocument] = None):
        """Swap in new capabilities and reconcile before anyone sees them."""
        with self._lock:
            self._caps = caps if caps is not None else self._fetch_capabilities()
            if caps is not None:
                self.capability_error = None
            reconciled = reconcile(self._prefs, self._caps)
            if reconciled != self._prefs:
                self._prefs = reconciled
                self._store.save(self._prefs)
        self._notify()

    def update(self, mutation: Callable[..., PreferenceDocument], *args) -> PreferenceDocument:
        """Apply a pure edit from core.reconcile, persist, notify.

        Usage:
            ctx.update(toggle_card, "drivers")
            ctx.update(set_interval, 15000)
        """
        with self._lock:
            caps = self._caps
            mutation_args = args + (caps,)
            updated = mutation(self._prefs, *mutation_args)
            changed = updated != self._prefs
            self._prefs = updated
            if changed:
                self._store.save(updated)
        if changed:
            self._notify()
        return updated

    def reset(self) -> PreferenceDocument:
        with self._lock:
            self._prefs = default_preferences(self._caps)
            self._store.save(self._prefs)
            prefs = self._prefs
        self._notify()
        return prefs

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _fetch_capabilities(self) -> CapabilityDocument:
        try:
            caps = self._loader()
            self.capability_error = None
            return caps
        except Exception as exc:
            logger.warning("Capability load failed, using built-in defaults: %s", exc)
            self.capability_error = str(exc) or exc.__class__.__name__
            return CapabilityDocument.defaults()

    def _notify(self):
        caps, prefs = self.snapshot()
        for cb in list(self._listeners):
            try:
                cb(caps, prefs)
            except Exception as exc:
                logger.error("Config listener error: %s", exc)
        if self._bus is not None:
            self._bus.publish(CONFIG_TOPIC, {
                "capabilities": caps.to_dict(),
                "preferences": prefs.to_dict(),
            })
