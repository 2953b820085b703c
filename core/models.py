"""Configuration documents and derived view types.

Two documents drive the display:

    CapabilityDocument -- what the operator allows (served by the server)
    PreferenceDocument -- what this kiosk shows (stored locally)

Both round-trip through the camelCase wire format the browser uses, so
to_dict()/from_dict() are the only place that format is spelled out.
"""

import copy
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from config import DEFAULT_CAPABILITIES

logger = logging.getLogger(__name__)


class CardType(str, Enum):
    SCHEDULE = "schedule"
    DRIVERS = "drivers"
    CONSTRUCTORS = "constructors"
    PREVIOUS_RACE = "previousRace"
    NEXT_RACE = "nextRace"
    DRIVER_CARD = "driverCard"
    TEAM_CARD = "teamCard"


CARD_IDS = [c.value for c in CardType]
PAGINATED_CARDS = (CardType.SCHEDULE.value, CardType.DRIVERS.value, CardType.CONSTRUCTORS.value)
FEATURE_FLAGS = ("allowReordering", "allowIntervalChange", "showPreferenceMenu")


class CapabilityError(ValueError):
    """A capability document that can't be used as-is."""


@dataclass
class CardOption:
    card_type: str
    label: str
    enabled: bool = True


@dataclass
class IntervalRange:
    min: int
    max: int
    default: int

    def clamp(self, value: int) -> int:
        return max(self.min, min(self.max, value))


@dataclass
class CapabilityDocument:
    cards: List[CardOption]
    interval_range: IntervalRange
    page_sizes: Dict[str, int]
    features: Dict[str, bool]

    def enabled_cards(self) -> List[str]:
        """Enabled card ids in declared order."""
        return [c.card_type for c in self.cards if c.enabled]

    def label_for(self, card_type: str) -> str:
        for c in self.cards:
            if c.card_type == card_type:
                return c.label
        return card_type

    def page_size(self, card_type: str) -> int:
        return max(1, self.page_sizes.get(card_type, 1))

    def feature(self, name: str) -> bool:
        return bool(self.features.get(name, False))

    @classmethod
    def from_dict(cls, data: Any) -> "CapabilityDocument":
        """Parse and validate a wire-format document.

        Missing sections fall back to the built-in defaults. Anything
        present but malformed raises CapabilityError.
        """
        if not isinstance(data, dict):
            raise CapabilityError("capability document must be a mapping")
        defaults = DEFAULT_CAPABILITIES

        raw_cards = data.get("availableCards", defaults["availableCards"])
        if not isinstance(raw_cards, list) or not raw_cards:
            raise CapabilityError("availableCards must be a non-empty list")
        cards = []
        seen = set()
        for entry in raw_cards:
            if not isinstance(entry, dict):
                raise CapabilityError(f"invalid card entry: {entry!r}")
            card_id = entry.get("id")
            if card_id not in CARD_IDS:
                raise CapabilityError(f"unknown card id: {card_id!r}")
            if card_id in seen:
                raise CapabilityError(f"duplicate card id: {card_id}")
            seen.add(card_id)
            cards.append(CardOption(
                card_type=card_id,
                label=str(entry.get("label") or card_id),
                enabled=bool(entry.get("enabled", True)),
            ))

        raw_range = data.get("intervalRange", defaults["intervalRange"])
        if not isinstance(raw_range, dict):
            raise CapabilityError("intervalRange must be a mapping")
        try:
            lo = int(raw_range.get("min", defaults["intervalRange"]["min"]))
            hi = int(raw_range.get("max", defaults["intervalRange"]["max"]))
            default = int(raw_range.get("default", defaults["intervalRange"]["default"]))
        except (TypeError, ValueError) as exc:
            raise CapabilityError(f"intervalRange values must be integers: {exc}")
        if lo <= 0:
            raise CapabilityError("intervalRange.min must be positive")
        if lo > hi:
            raise CapabilityError(f"intervalRange.min ({lo}) > max ({hi})")
        interval_range = IntervalRange(lo, hi, 0)
        interval_range.default = interval_range.clamp(default)

        raw_sizes = data.get("itemsPerPage", defaults["itemsPerPage"])
        if not isinstance(raw_sizes, dict):
            raise CapabilityError("itemsPerPage must be a mapping")
        page_sizes = {}
        for card_id in PAGINATED_CARDS:
            try:
                size = int(raw_sizes.get(card_id, defaults["itemsPerPage"][card_id]))
            except (TypeError, ValueError):
                raise CapabilityError(f"itemsPerPage.{card_id} must be an integer")
            if size < 1:
                raise CapabilityError(f"itemsPerPage.{card_id} must be >= 1")
            page_sizes[card_id] = size

        raw_features = data.get("features", defaults["features"])
        if not isinstance(raw_features, dict):
            raise CapabilityError("features must be a mapping")
        # Older documents call the menu flag showUserConfigMenu
        if "showPreferenceMenu" not in raw_features and "showUserConfigMenu" in raw_features:
            raw_features = dict(raw_features, showPreferenceMenu=raw_features["showUserConfigMenu"])
        features = {
            name: bool(raw_features.get(name, defaults["features"][name]))
            for name in FEATURE_FLAGS
        }

        return cls(cards, interval_range, page_sizes, features)

    @classmethod
    def defaults(cls) -> "CapabilityDocument":
        return cls.from_dict(copy.deepcopy(DEFAULT_CAPABILITIES))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "availableCards": [
                {"id": c.card_type, "label": c.label, "enabled": c.enabled}
                for c in self.cards
            ],
            "intervalRange": {
                "min": self.interval_range.min,
                "max": self.interval_range.max,
                "default": self.interval_range.default,
            },
            "itemsPerPage": dict(self.page_sizes),
            "features": dict(self.features),
        }


@dataclass
class PreferenceDocument:
    selected_cards: List[str] = field(default_factory=list)
    card_order: List[str] = field(default_factory=list)
    interval: int = 0
    favorite_driver: Optional[int] = None
    favorite_team: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "PreferenceDocument":
        """Lenient parse of a stored document.

        Only a non-mapping is rejected; bad fields are coerced so the
        reconciler can clean them up.
        """
        if not isinstance(data, dict):
            raise ValueError("preference document must be a mapping")

        def card_list(value):
            if not isinstance(value, list):
                return []
            return [v for v in value if isinstance(v, str)]

        try:
            interval = int(data.get("interval") or 0)
        except (TypeError, ValueError, OverflowError):
            interval = 0

        driver = data.get("favoriteDriverNumber")
        if isinstance(driver, bool) or not isinstance(driver, (int, str)):
            driver = None
        elif isinstance(driver, str):
            driver = int(driver) if driver.isdecimal() else None

        team = data.get("favoriteTeam")
        if not isinstance(team, str) or not team:
            team = None

        return cls(
            selected_cards=card_list(data.get("selectedCards")),
            card_order=card_list(data.get("cardOrder")),
            interval=interval,
            favorite_driver=driver,
            favorite_team=team,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "selectedCards": list(self.selected_cards),
            "cardOrder": list(self.card_order),
            "interval": self.interval,
            "favoriteDriverNumber": self.favorite_driver,
            "favoriteTeam": self.favorite_team,
        }


@dataclass(frozen=True)
class ViewItem:
    """One page of one card, ready to display."""
    card_type: str
    page_index: int


@dataclass(frozen=True)
class RotationState:
    current_index: int
    total_views: int
