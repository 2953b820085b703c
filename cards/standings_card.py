"""Paginated list cards: race schedule, driver and constructor standings.

Each page shows `itemsPerPage` rows from the capability document. An
empty collection (e.g. no standings before the first race) has no
pages, which drops the card from the rotation until data arrives.
"""

from typing import Any, Dict, List

from core.base_card import BaseCard
from core.catalog import page_count
from core.registry import register_card


class PaginatedCard(BaseCard):
    """Slices one snapshot collection into fixed-size pages."""

    def items(self, snapshot) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def page_count(self, snapshot, caps, prefs) -> int:
        return page_count(len(self.items(snapshot)), caps.page_size(self.card_type))

    def render(self, snapshot, page_index, caps, prefs) -> Dict[str, Any]:
        rows = self.items(snapshot)
        size = caps.page_size(self.card_type)
        start = page_index * size
        return {
            "start_index": start,
            "page": page_index,
            "pages": page_count(len(rows), size),
            "items": rows[start:start + size],
        }


@register_card("schedule")
class ScheduleCard(PaginatedCard):
    """Season calendar with the upcoming round highlighted."""

    def items(self, snapshot):
        return snapshot.meetings

    def render(self, snapshot, page_index, caps, prefs):
        page = super().render(snapshot, page_index, caps, prefs)
        page["next_race_index"] = snapshot.next_race_index
        return page


@register_card("drivers")
class DriverStandingsCard(PaginatedCard):

    def items(self, snapshot):
        return snapshot.driver_standings


@register_card("constructors")
class ConstructorStandingsCard(PaginatedCard):

    def items(self, snapshot):
        return snapshot.constructor_standings
