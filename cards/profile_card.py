"""Profile cards -- the user's favourite driver and team.

Favourites are checked against the current standings at render time:
a favourite who isn't in the standings (retired, typo, off-season)
falls back to the championship leader rather than an empty card.
Static biography data comes from config.DRIVER_PROFILES/TEAM_PROFILES.
"""

from typing import Any, Dict, List, Optional

from config import DEFAULT_TEAM_COLOR, DRIVER_PROFILES, TEAM_COLORS, TEAM_PROFILES
from core.base_card import BaseCard
from core.registry import register_card


def _leader(standings: List[Dict]) -> Optional[Dict]:
    if not standings:
        return None
    return min(standings, key=lambda s: s.get("position_current") or 999)


def find_driver(standings: List[Dict], driver_number: Optional[int]) -> Optional[Dict]:
    """Favourite driver's standing, else the leader's."""
    if driver_number is not None:
        for standing in standings:
            if standing.get("driver_number") == driver_number:
                return standing
    return _leader(standings)


def find_team(standings: List[Dict], team_name: Optional[str]) -> Optional[Dict]:
    """Favourite team's standing, else the leader's."""
    if team_name:
        wanted = team_name.lower()
        for standing in standings:
            if (standing.get("team_name") or "").lower() == wanted:
                return standing
    return _leader(standings)


@register_card("driverCard")
class DriverProfileCard(BaseCard):
    """Favourite driver: standing, team colour, static profile."""

    def page_count(self, snapshot, caps, prefs) -> int:
        return 1 if find_driver(snapshot.driver_standings, prefs.favorite_driver) else 0

    def render(self, snapshot, page_index, caps, prefs) -> Dict[str, Any]:
        standing = find_driver(snapshot.driver_standings, prefs.favorite_driver)
        if standing is None:
            return {"driver": None}
        number = standing.get("driver_number")
        colour = standing.get("team_colour")
        if colour and not colour.startswith("#"):
            colour = "#" + colour
        return {
            "driver": standing,
            "is_favorite": number == prefs.favorite_driver,
            "team_color": colour or TEAM_COLORS.get(standing.get("team_name"), DEFAULT_TEAM_COLOR),
            "profile": DRIVER_PROFILES.get(number),
        }


@register_card("teamCard")
class TeamProfileCard(BaseCard):
    """Favourite team: standing, drivers, static profile."""

    def page_count(self, snapshot, caps, prefs) -> int:
        return 1 if find_team(snapshot.constructor_standings, prefs.favorite_team) else 0

    def render(self, snapshot, page_index, caps, prefs) -> Dict[str, Any]:
        standing = find_team(snapshot.constructor_standings, prefs.favorite_team)
        if standing is None:
            return {"team": None}
        name = standing.get("team_name")
        drivers = [d for d in snapshot.driver_standings if d.get("team_name") == name]
        return {
            "team": standing,
            "is_favorite": bool(prefs.favorite_team) and (name or "").lower() == prefs.favorite_team.lower(),
            "drivers": drivers,
            "profile": TEAM_PROFILES.get(name),
        }
