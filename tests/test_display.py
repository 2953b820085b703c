"""
Display controller tests: data + config in, current view out.

Ticks are driven by hand; only the interval tests start the rotation
thread, with periods long enough that it never fires.

Run with: pytest tests/test_display.py -v
"""
import threading
from dataclasses import replace

import pytest

from core.display import DATA_TOPIC, VIEW_TOPIC, DisplayController
from core.reconcile import set_interval, toggle_card

from conftest import NOW, make_caps, race_payload


@pytest.fixture
def controller(bus, context):
    ctrl = DisplayController(bus, context, clock=lambda: NOW)
    yield ctrl
    ctrl.close()


@pytest.fixture
def payload():
    # 23 meetings (all before NOW), 22 drivers, 10 teams
    return race_payload(23, 22, 10)


class TestCatalog:

    def test_page_counts_from_snapshot(self, controller, payload):
        controller.on_data(payload)

        counts = controller.page_counts()

        assert counts["schedule"] == 3
        assert counts["drivers"] == 2
        assert counts["constructors"] == 1
        assert counts["previousRace"] == 1
        assert counts["nextRace"] == 0
        assert counts["driverCard"] == 1
        assert counts["teamCard"] == 1
        assert controller.rotation.total_views == 9

    def test_catalog_follows_card_order(self, controller, payload):
        controller.on_data(payload)
        cards = [item.card_type for item in controller.catalog.items]
        assert cards[:5] == ["schedule", "schedule", "schedule", "drivers", "drivers"]

    def test_data_arrives_via_bus(self, controller, bus, payload):
        bus.publish(DATA_TOPIC, payload)
        assert controller.snapshot is not None
        assert bus.get_latest(VIEW_TOPIC)["card"] == "schedule"


class TestCurrentView:

    def test_loading_placeholder_before_data(self, controller):
        assert controller.current_view() == {"placeholder": "loading", "index": 0, "total": 1}

    def test_no_cards_placeholder(self, controller, context, payload):
        context.reload_capabilities(make_caps(enabled=["nextRace"]))
        controller.on_data(payload)

        view = controller.current_view()

        assert view["placeholder"] == "no_cards"

    def test_first_page_descriptor(self, controller, context, payload):
        controller.on_data(payload)

        view = controller.current_view()

        assert view["card"] == "schedule"
        assert view["label"] == context.capabilities.label_for("schedule")
        assert (view["page"], view["index"], view["total"]) == (0, 0, 9)
        assert len(view["data"]["items"]) == 10

    def test_tick_publishes_next_page(self, controller, bus, payload):
        controller.on_data(payload)
        controller.rotation.tick()

        view = bus.get_latest(VIEW_TOPIC)

        assert (view["card"], view["page"], view["index"]) == ("schedule", 1, 1)


class TestChanges:

    def test_identical_refresh_keeps_position(self, controller, payload):
        controller.on_data(payload)
        controller.rotation.tick()
        controller.rotation.tick()

        controller.on_data(race_payload(23, 22, 10))

        assert controller.rotation.current_index == 2

    def test_deselect_shrinks_rotation(self, controller, context, payload):
        controller.on_data(payload)
        for _ in range(8):
            controller.rotation.tick()

        context.update(toggle_card, "drivers")

        assert controller.rotation.total_views == 7
        assert controller.rotation.current_index == 0

    def test_interval_change_reaches_timer(self, controller, context):
        context.update(set_interval, 20000)
        assert controller.rotation.interval_ms == 20000

    def test_closed_controller_ignores_data(self, controller, payload):
        controller.close()
        controller.on_data(payload)
        assert controller.snapshot is None

    def test_non_mapping_payload_ignored(self, controller):
        controller.on_data(["not", "a", "dict"])
        assert controller.snapshot is None


class TestIntervalUpdates:

    def test_concurrent_updates_end_on_latest_interval(self, controller, context):
        controller.start()
        barrier = threading.Barrier(8)

        def update(interval):
            barrier.wait()
            context.update(set_interval, interval)

        workers = [threading.Thread(target=update, args=(20000 + i * 1000,)) for i in range(8)]
        for w in workers:
            w.start()
        for w in workers:
            w.join()

        assert controller.rotation.interval_ms == context.preferences.interval
        assert controller.rotation.running

    def test_stale_listener_call_uses_current_interval(self, controller, context, caps):
        context.update(set_interval, 30000)
        stale = replace(context.preferences, interval=15000)

        controller.on_config(caps, stale)

        assert controller.rotation.interval_ms == 30000
