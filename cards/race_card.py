"""Race detail cards -- the last completed round and the next one.

Which meeting counts as previous/next is decided when the snapshot is
built, not here. Sprint weekends come from the configured name list.
"""

from typing import Any, Dict, Optional

from core.base_card import BaseCard
from core.registry import register_card
from core.snapshot import is_sprint_weekend


class RaceCard(BaseCard):
    """Single-page card showing one meeting."""

    is_previous = False

    def meeting(self, snapshot) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def page_count(self, snapshot, caps, prefs) -> int:
        return 1 if self.meeting(snapshot) else 0

    def render(self, snapshot, page_index, caps, prefs) -> Dict[str, Any]:
        meeting = self.meeting(snapshot)
        if meeting is None:
            return {"meeting": None}
        return {
            "meeting": meeting,
            "is_sprint": is_sprint_weekend(meeting.get("meeting_name", ""), self.sprint_weekends),
            "is_previous": self.is_previous,
        }


@register_card("previousRace")
class PreviousRaceCard(RaceCard):
    is_previous = True

    def meeting(self, snapshot):
        return snapshot.previous_race


@register_card("nextRace")
class NextRaceCard(RaceCard):

    def meeting(self, snapshot):
        return snapshot.next_race
