"""
Pytest configuration and fixtures for F1 Kiosk tests.
"""
import os
import sys
from datetime import datetime, timezone

# Add project root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

import cards  # noqa: F401  (registers card types)
from core.models import CapabilityDocument, PreferenceDocument
from core.preferences import PreferenceStore
from core.config_context import ConfigContext
from core.web_event_bus import WebEventBus


NOW = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)


def make_caps(enabled=None, page_sizes=None, interval=(5000, 60000, 10000), **features):
    """Capability document with only `enabled` cards switched on."""
    doc = CapabilityDocument.defaults().to_dict()
    if enabled is not None:
        for card in doc["availableCards"]:
            card["enabled"] = card["id"] in enabled
    if page_sizes:
        doc["itemsPerPage"].update(page_sizes)
    lo, hi, default = interval
    doc["intervalRange"] = {"min": lo, "max": hi, "default": default}
    doc["features"].update(features)
    return CapabilityDocument.from_dict(doc)


def meeting(date_start, name="Bahrain Grand Prix", key=1):
    return {"meeting_key": key, "meeting_name": name, "date_start": date_start}


def race_payload(n_meetings=0, n_drivers=0, n_teams=0):
    return {
        "meetings": [
            meeting(f"2024-{1 + i // 28:02d}-{1 + i % 28:02d}T12:00:00+00:00", f"Round {i + 1}", i + 1)
            for i in range(n_meetings)
        ],
        "driver_standings": [
            {"driver_number": i + 1, "position_current": i + 1, "team_name": "Team %d" % (i // 2)}
            for i in range(n_drivers)
        ],
        "constructor_standings": [
            {"team_name": "Team %d" % i, "position_current": i + 1}
            for i in range(n_teams)
        ],
    }


@pytest.fixture
def caps():
    return CapabilityDocument.defaults()


@pytest.fixture
def pref_store(tmp_path):
    return PreferenceStore(str(tmp_path / "preferences.json"))


@pytest.fixture
def bus():
    return WebEventBus()


@pytest.fixture
def context(pref_store, bus):
    ctx = ConfigContext(pref_store, CapabilityDocument.defaults, bus=bus)
    ctx.load()
    return ctx
