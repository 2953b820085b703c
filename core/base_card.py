"""Base card for the kiosk rotation.

A card knows two things about its slice of the race data: how many
pages it needs right now, and what one of those pages contains. The
browser does the drawing; render() only builds the JSON it draws from.

page_count() runs on every data or config change; render() runs on
every rotation tick, so keep it to slicing and lookups.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from core.models import CapabilityDocument, PreferenceDocument
from core.snapshot import RaceSnapshot

logger = logging.getLogger(__name__)


class BaseCard(ABC):
    """Abstract card. Subclasses define paging and page content."""

    card_type = ""  # set by @register_card

    def __init__(self, sprint_weekends: Optional[List[str]] = None):
        self.sprint_weekends = list(sprint_weekends or [])

    @abstractmethod
    def page_count(self, snapshot: RaceSnapshot, caps: CapabilityDocument,
                   prefs: PreferenceDocument) -> int:
        """Pages this card contributes; 0 removes it from the rotation."""
        ...

    @abstractmethod
    def render(self, snapshot: RaceSnapshot, page_index: int,
               caps: CapabilityDocument, prefs: PreferenceDocument) -> Dict[str, Any]:
        """Page descriptor for the presentation layer."""
        ...

    def safe_page_count(self, snapshot, caps, prefs) -> int:
        """page_count() that treats a failing card as empty."""
        try:
            return max(0, int(self.page_count(snapshot, caps, prefs)))
        except Exception as exc:
            logger.error("Card %s page count error: %s", self.card_type, exc)
            return 0

    def get_display_name(self, caps: CapabilityDocument) -> str:
        return caps.label_for(self.card_type)
