"""Card and DataSource registries for the kiosk.

Card classes register under their CardType id; source classes under a
type name used in dashboard.yaml. The display looks cards up here when
it builds the rotation, and web_app instantiates sources from config.

Usage:
    @register_card("schedule")
    class ScheduleCard(BaseCard):
        ...

    @register_source("openf1")
    class OpenF1Source(DataSource):
        ...
"""

import logging

logger = logging.getLogger(__name__)

CARD_REGISTRY = {}
SOURCE_REGISTRY = {}


def register_card(card_type):
    """Decorator to register a card class for a CardType id."""
    def decorator(cls):
        CARD_REGISTRY[card_type] = cls
        cls.card_type = card_type
        logger.debug("Registered card type: %s -> %s", card_type, cls.__name__)
        return cls
    return decorator


def register_source(name):
    """Decorator to register a data source class by type name."""
    def decorator(cls):
        SOURCE_REGISTRY[name] = cls
        logger.debug("Registered source type: %s -> %s", name, cls.__name__)
        return cls
    return decorator


def create_cards(sprint_weekends=None):
    """Instantiate one of every registered card, keyed by card type."""
    return {
        card_type: cls(sprint_weekends=sprint_weekends)
        for card_type, cls in CARD_REGISTRY.items()
    }
