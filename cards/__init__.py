"""Card implementations for the kiosk rotation.

Importing this package registers all built-in card types.
"""

from cards.standings_card import ScheduleCard, DriverStandingsCard, ConstructorStandingsCard
from cards.race_card import PreviousRaceCard, NextRaceCard
from cards.profile_card import DriverProfileCard, TeamProfileCard

__all__ = [
    "ScheduleCard", "DriverStandingsCard", "ConstructorStandingsCard",
    "PreviousRaceCard", "NextRaceCard", "DriverProfileCard", "TeamProfileCard",
]
