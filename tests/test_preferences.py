"""
Preference persistence and configuration context tests.

Tests to verify:
1. Stored preferences survive a round trip through disk
2. Missing/corrupt files fall back to defaults
3. Capability loader failures never block startup
4. Listeners only ever see reconciled preferences

Run with: pytest tests/test_preferences.py -v
"""
import json

import pytest
import yaml

from core.capabilities import CapabilityStore, fetch_capabilities, load_dashboard_config
from core.config_context import CONFIG_TOPIC, ConfigContext
from core.models import CapabilityDocument, CapabilityError, PreferenceDocument
from core.preferences import PreferenceStore
from core.reconcile import default_preferences, set_interval, toggle_card

from conftest import make_caps


# ============================================
# Test: PreferenceStore
# ============================================

class TestPreferenceStore:

    def test_missing_file_is_none(self, pref_store):
        assert pref_store.load() is None

    def test_save_then_load(self, pref_store):
        pref = PreferenceDocument(["drivers"], ["drivers", "schedule"], 15000, 44, "Mercedes")
        assert pref_store.save(pref) is True
        assert pref_store.load() == pref

    def test_wire_format_is_camel_case(self, pref_store):
        pref_store.save(PreferenceDocument(["drivers"], ["drivers"], 15000))
        with open(pref_store.path, encoding="utf-8") as f:
            raw = json.load(f)
        assert set(raw) == {"selectedCards", "cardOrder", "interval",
                            "favoriteDriverNumber", "favoriteTeam"}

    def test_corrupt_file_is_none(self, pref_store):
        with open(pref_store.path, "w", encoding="utf-8") as f:
            f.write("{not json")
        assert pref_store.load() is None

    def test_non_mapping_is_none(self, pref_store):
        with open(pref_store.path, "w", encoding="utf-8") as f:
            json.dump([1, 2, 3], f)
        assert pref_store.load() is None

    def test_infinite_interval_coerced(self, pref_store):
        with open(pref_store.path, "w", encoding="utf-8") as f:
            f.write('{"selectedCards": ["drivers"], "cardOrder": ["drivers"], "interval": 1e999}')

        pref = pref_store.load()

        assert pref.selected_cards == ["drivers"]
        assert pref.interval == 0

    def test_non_decimal_driver_number_dropped(self, pref_store):
        with open(pref_store.path, "w", encoding="utf-8") as f:
            json.dump({"selectedCards": ["drivers"], "interval": 15000,
                       "favoriteDriverNumber": "\u00b2"}, f)

        pref = pref_store.load()

        assert pref.favorite_driver is None
        assert pref.interval == 15000
        assert PreferenceDocument.from_dict({"favoriteDriverNumber": "44"}).favorite_driver == 44

    def test_save_failure_reported_not_raised(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("file, not a directory")
        store = PreferenceStore(str(blocker / "preferences.json"))
        assert store.save(PreferenceDocument(["schedule"], ["schedule"], 10000)) is False


# ============================================
# Test: CapabilityStore
# ============================================

class TestCapabilityStore:

    def test_missing_section_gives_defaults(self, tmp_path):
        path = tmp_path / "dashboard.yaml"
        path.write_text("sources: []\n")
        assert CapabilityStore(str(path)).load() == CapabilityDocument.defaults()

    def test_save_keeps_other_sections(self, tmp_path):
        path = tmp_path / "dashboard.yaml"
        path.write_text("sprint_weekends:\n  - Miami GP\n")
        store = CapabilityStore(str(path))

        store.save(make_caps(enabled=["schedule"]))

        data = yaml.safe_load(path.read_text())
        assert data["sprint_weekends"] == ["Miami GP"]
        assert store.load().enabled_cards() == ["schedule"]

    def test_failed_write_leaves_no_temp_file(self, tmp_path, monkeypatch):
        path = tmp_path / "dashboard.yaml"
        path.write_text("sprint_weekends: []\n")
        store = CapabilityStore(str(path))

        def broken_dump(*args, **kwargs):
            raise yaml.YAMLError("disk full")

        monkeypatch.setattr(yaml, "safe_dump", broken_dump)

        with pytest.raises(yaml.YAMLError):
            store.save(make_caps())
        assert not (tmp_path / "dashboard.yaml.tmp").exists()
        assert path.read_text() == "sprint_weekends: []\n"

    def test_invalid_section_raises(self, tmp_path):
        path = tmp_path / "dashboard.yaml"
        path.write_text("capabilities:\n  intervalRange: {min: 9000, max: 1000}\n")
        with pytest.raises(CapabilityError):
            CapabilityStore(str(path)).load()

    def test_non_mapping_file_raises(self, tmp_path):
        path = tmp_path / "dashboard.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ValueError):
            load_dashboard_config(str(path))

    def test_missing_file_is_empty(self, tmp_path):
        assert load_dashboard_config(str(tmp_path / "nope.yaml")) == {}


class TestFetchCapabilities:

    class FakeResponse:
        def __init__(self, payload):
            self._payload = payload

        def raise_for_status(self):
            pass

        def json(self):
            return self._payload

    class FakeSession:
        def __init__(self, payload):
            self.payload = payload
            self.urls = []

        def get(self, url, timeout=None):
            self.urls.append(url)
            return TestFetchCapabilities.FakeResponse(self.payload)

    def test_fetches_config_endpoint(self):
        session = self.FakeSession(make_caps(enabled=["drivers"]).to_dict())
        caps = fetch_capabilities("http://kiosk-server:5000/", session=session)
        assert session.urls == ["http://kiosk-server:5000/api/config"]
        assert caps.enabled_cards() == ["drivers"]


# ============================================
# Test: ConfigContext
# ============================================

class TestConfigContext:

    def test_first_start_writes_defaults(self, pref_store):
        ctx = ConfigContext(pref_store, CapabilityDocument.defaults)
        ctx.load()
        assert pref_store.load() == default_preferences(CapabilityDocument.defaults())

    def test_corrupt_file_rewritten_with_defaults(self, pref_store):
        with open(pref_store.path, "w", encoding="utf-8") as f:
            f.write("garbage")
        ctx = ConfigContext(pref_store, CapabilityDocument.defaults)
        ctx.load()
        assert pref_store.load() == ctx.preferences

    def test_stored_preferences_reconciled_on_load(self, pref_store):
        pref_store.save(PreferenceDocument(["drivers", "schedule"], ["drivers", "schedule"], 2000))
        ctx = ConfigContext(pref_store, lambda: make_caps(enabled=["schedule", "constructors"]))

        ctx.load()

        assert ctx.preferences.selected_cards == ["schedule"]
        assert ctx.preferences.interval == 5000
        assert pref_store.load() == ctx.preferences

    def test_infinite_stored_interval_is_not_fatal(self, pref_store):
        with open(pref_store.path, "w", encoding="utf-8") as f:
            f.write('{"selectedCards": ["schedule"], "cardOrder": ["schedule"], "interval": Infinity}')
        ctx = ConfigContext(pref_store, CapabilityDocument.defaults)

        ctx.load()

        assert ctx.preferences.interval == 5000
        assert ctx.preferences.selected_cards == ["schedule"]

    def test_loader_failure_uses_defaults(self, pref_store):
        def broken():
            raise ConnectionError("server unreachable")

        ctx = ConfigContext(pref_store, broken)
        ctx.load()

        assert ctx.capabilities == CapabilityDocument.defaults()
        assert ctx.capability_error == "server unreachable"

    def test_reload_reconciles_before_listeners(self, context):
        seen = []
        context.subscribe(lambda caps, prefs: seen.append((caps, prefs)))

        context.reload_capabilities(make_caps(enabled=["schedule"]))

        caps, prefs = seen[-1]
        assert prefs.selected_cards == ["schedule"]
        assert set(prefs.card_order) == {"schedule"}

    def test_update_persists_and_notifies(self, context, pref_store):
        seen = []
        context.subscribe(lambda caps, prefs: seen.append(prefs))

        updated = context.update(set_interval, 20000)

        assert updated.interval == 20000
        assert pref_store.load().interval == 20000
        assert seen == [updated]

    def test_noop_update_does_not_notify(self, context):
        seen = []
        context.subscribe(lambda caps, prefs: seen.append(prefs))
        context.update(toggle_card, "bogus")
        assert seen == []

    def test_listener_error_does_not_block_others(self, context):
        seen = []

        def broken(caps, prefs):
            raise RuntimeError("boom")

        context.subscribe(broken)
        context.subscribe(lambda caps, prefs: seen.append(prefs))
        context.update(set_interval, 30000)

        assert len(seen) == 1

    def test_changes_published_on_bus(self, context, bus):
        context.update(set_interval, 25000)
        latest = bus.get_latest(CONFIG_TOPIC)
        assert latest["preferences"]["interval"] == 25000

    def test_save_failure_keeps_memory_copy(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("x")
        ctx = ConfigContext(PreferenceStore(str(blocker / "p.json")), CapabilityDocument.defaults)
        ctx.load()

        assert ctx.update(set_interval, 12000).interval == 12000
        assert ctx.preferences.interval == 12000

    def test_reset(self, context):
        context.update(set_interval, 30000)
        assert context.reset() == default_preferences(context.capabilities)
