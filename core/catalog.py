"""View catalog -- the ordered list of pages the display rotates through.

    order (user) --filter by selection--> cards --expand pages--> ViewItems

Cards with zero pages (no data yet, off-season standings, no upcoming
race) simply drop out of the rotation.
"""

import logging
import math
from typing import Dict, Iterable, List, Sequence, Tuple

from core.models import ViewItem

logger = logging.getLogger(__name__)


def page_count(item_count: int, page_size: int) -> int:
    """ceil(n / size); an empty collection has no pages."""
    if item_count <= 0:
        return 0
    return math.ceil(item_count / max(1, page_size))


def build_catalog(card_order: Sequence[str], selected_cards: Iterable[str],
                  page_counts: Dict[str, int]) -> List[ViewItem]:
    """Expand the selected cards, in user order, into ViewItems."""
    selected = set(selected_cards)
    items: List[ViewItem] = []
    seen = set()
    for card_type in card_order:
        if card_type not in selected or card_type in seen:
            continue
        seen.add(card_type)
        for page in range(max(0, page_counts.get(card_type, 0))):
            items.append(ViewItem(card_type, page))
    return items


def total_views(catalog: Sequence[ViewItem]) -> int:
    return max(1, len(catalog))


class ViewCatalog:
    """Caches the built catalog and rebuilds only when an input changes."""

    def __init__(self):
        self._key: Tuple = ()
        self._items: List[ViewItem] = []

    @property
    def items(self) -> List[ViewItem]:
        return list(self._items)

    @property
    def total_views(self) -> int:
        return total_views(self._items)

    def __len__(self):
        return len(self._items)

    def get(self, index: int):
        """ViewItem at index, or None when out of range / empty."""
        if 0 <= index < len(self._items):
            return self._items[index]
        return None

    def rebuild(self, card_order: Sequence[str], selected_cards: Iterable[str],
                page_counts: Dict[str, int]) -> bool:
        """Rebuild if inputs differ from last time. Returns True if rebuilt."""
        key = (
            tuple(card_order),
            frozenset(selected_cards),
            tuple(sorted(page_counts.items())),
        )
        if key == self._key:
            return False
        self._key = key
        self._items = build_catalog(card_order, key[1], page_counts)
        logger.debug("Catalog rebuilt: %d views", len(self._items))
        return True
