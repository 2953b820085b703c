"""Preference reconciliation and user edits.

Everything here is a pure function of (preferences, capabilities):
no file access, no logging of state. ConfigContext layers persistence
on top. Every edit returns a reconciled document so the result is
always valid for the current capabilities.
"""

from dataclasses import replace
from typing import Iterable, List, Optional

from core.models import CapabilityDocument, PreferenceDocument


def _unique(items: Iterable[str]) -> List[str]:
    seen = set()
    out = []
    for item in items:
        if item not in seen:
            seen.add(item)
            out.append(item)
    return out


def default_preferences(caps: CapabilityDocument) -> PreferenceDocument:
    """Fresh-install preferences: every enabled card, default interval."""
    enabled = caps.enabled_cards()
    return PreferenceDocument(
        selected_cards=list(enabled),
        card_order=list(enabled),
        interval=caps.interval_range.default,
    )


def reconcile(pref: PreferenceDocument, caps: CapabilityDocument) -> PreferenceDocument:
    """Bring stored preferences in line with the current capabilities.

    - selection keeps only enabled cards; if nothing survives, every
      enabled card is selected (never an empty rotation by accident)
    - order keeps only enabled cards, then appends newly enabled ones
      in declared order
    - interval is clamped into the allowed range
    - favourites pass through; they're checked against standings when
      the card renders
    """
    enabled = caps.enabled_cards()
    enabled_set = set(enabled)

    selected = [c for c in _unique(pref.selected_cards) if c in enabled_set]
    if not selected:
        selected = list(enabled)

    order = [c for c in _unique(pref.card_order) if c in enabled_set]
    order.extend(c for c in enabled if c not in order)

    return PreferenceDocument(
        selected_cards=selected,
        card_order=order,
        interval=caps.interval_range.clamp(pref.interval),
        favorite_driver=pref.favorite_driver,
        favorite_team=pref.favorite_team,
    )


def toggle_card(pref: PreferenceDocument, card_type: str,
                caps: CapabilityDocument) -> PreferenceDocument:
    """Select or deselect a card. The last selected card stays selected."""
    if card_type not in caps.enabled_cards():
        return reconcile(pref, caps)
    if card_type in pref.selected_cards:
        if len(pref.selected_cards) <= 1:
            return reconcile(pref, caps)
        selected = [c for c in pref.selected_cards if c != card_type]
    else:
        selected = pref.selected_cards + [card_type]
    return reconcile(replace(pref, selected_cards=selected), caps)


def move_card(pref: PreferenceDocument, card_type: str, direction: str,
              caps: CapabilityDocument) -> PreferenceDocument:
    """Swap a card with its neighbour in the rotation order."""
    current = reconcile(pref, caps)
    if not caps.feature("allowReordering"):
        return current
    order = list(current.card_order)
    if card_type not in order:
        return current
    idx = order.index(card_type)
    if direction == "up":
        target = idx - 1
    elif direction == "down":
        target = idx + 1
    else:
        raise ValueError(f"direction must be 'up' or 'down', not {direction!r}")
    if target < 0 or target >= len(order):
        return current
    order[idx], order[target] = order[target], order[idx]
    return replace(current, card_order=order)


def set_interval(pref: PreferenceDocument, interval: int,
                 caps: CapabilityDocument) -> PreferenceDocument:
    if not caps.feature("allowIntervalChange"):
        return reconcile(pref, caps)
    return reconcile(replace(pref, interval=int(interval)), caps)


def set_favorite_driver(pref: PreferenceDocument, driver_number: Optional[int],
                        caps: CapabilityDocument) -> PreferenceDocument:
    number = int(driver_number) if driver_number is not None else None
    return reconcile(replace(pref, favorite_driver=number), caps)


def set_favorite_team(pref: PreferenceDocument, team_name: Optional[str],
                      caps: CapabilityDocument) -> PreferenceDocument:
    return reconcile(replace(pref, favorite_team=team_name or None), caps)
