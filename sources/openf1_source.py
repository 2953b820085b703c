"""Race calendar and championship standings from the OpenF1 API.

Publishes one payload per refresh:
    {"meetings": [...], "driver_standings": [...], "constructor_standings": [...]}

The calendar is required -- if it can't be fetched the cycle is skipped
and the bus keeps the previous payload. Standings are optional: between
seasons the championship endpoints return errors, so they degrade to
empty lists and the standings cards drop out of the rotation.

The API is rate limited, so calls go out one at a time with a short
pause between them, and each call retries with exponential backoff.

Config example (in dashboard.yaml):
    sources:
      - id: "f1.data"
        type: "openf1"
        interval: 1800
        year: 2026          # optional, defaults to the current year
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, TypeVar

import requests

from config import (
    DEFAULT_TEAM_COLOR,
    DATA_REFRESH_INTERVAL,
    FETCH_RETRIES,
    OPENF1_BASE_URL,
    REQUEST_TIMEOUT,
    RETRY_BASE_DELAY,
    TEAM_COLORS,
    THROTTLE_DELAY,
)
from core.data_source import DataSource
from core.registry import register_source

logger = logging.getLogger(__name__)

T = TypeVar("T")


def fetch_with_retry(fn: Callable[[], T], retries: int = FETCH_RETRIES,
                     delay: float = RETRY_BASE_DELAY,
                     sleep: Callable[[float], None] = time.sleep) -> T:
    """Call fn, retrying with delay * 2**attempt between failures."""
    for attempt in range(retries):
        try:
            return fn()
        except Exception as exc:
            if attempt == retries - 1:
                raise
            wait = delay * (2 ** attempt)
            logger.debug("Attempt %d failed (%s), retrying in %.1fs", attempt + 1, exc, wait)
            sleep(wait)
    raise RuntimeError("fetch_with_retry called with retries < 1")


def unique_drivers(drivers: List[Dict]) -> Dict[int, Dict]:
    """One entry per driver number, preferring entries with a headshot."""
    by_number: Dict[int, Dict] = {}
    for driver in drivers:
        number = driver.get("driver_number")
        if number not in by_number or driver.get("headshot_url"):
            by_number[number] = driver
    return by_number


def merge_driver_standings(standings: List[Dict], drivers: List[Dict]) -> List[Dict]:
    details = unique_drivers(drivers)
    merged = [{**s, **details.get(s.get("driver_number"), {})} for s in standings]
    return sorted(merged, key=lambda s: s.get("position_current") or 999)


def colour_constructor_standings(standings: List[Dict]) -> List[Dict]:
    coloured = [
        {**s, "team_colour": s.get("team_colour") or TEAM_COLORS.get(s.get("team_name"), DEFAULT_TEAM_COLOR)}
        for s in standings
    ]
    return sorted(coloured, key=lambda s: s.get("position_current") or 999)


@register_source("openf1")
class OpenF1Source(DataSource):
    """Polls OpenF1 for the calendar and both championships."""

    def __init__(self, source_id: str, bus, config: Dict,
                 session: Optional[requests.Session] = None,
                 sleep: Callable[[float], None] = time.sleep):
        config.setdefault("interval", DATA_REFRESH_INTERVAL)
        super().__init__(source_id, bus, config)
        self.base_url = config.get("base_url", OPENF1_BASE_URL).rstrip("/")
        self.year = config.get("year")
        self.throttle = float(config.get("throttle", THROTTLE_DELAY))
        self._timeout = config.get("timeout", REQUEST_TIMEOUT)
        self._session = session or requests.Session()
        self._session.headers.setdefault("User-Agent", "F1Kiosk/1.0")
        self._sleep = sleep

    def _get(self, path: str, **params) -> List[Dict[str, Any]]:
        resp = self._session.get(f"{self.base_url}/{path}", params=params, timeout=self._timeout)
        resp.raise_for_status()
        data = resp.json()
        if not isinstance(data, list):
            raise ValueError(f"{path}: expected a list, got {type(data).__name__}")
        return data

    def _retry(self, fn):
        return fetch_with_retry(fn, sleep=self._sleep)

    def fetch(self) -> Optional[Dict[str, Any]]:
        year = self.year or datetime.now(timezone.utc).year

        try:
            meetings = self._retry(lambda: self._get("meetings", year=year))
        except (requests.RequestException, ValueError) as exc:
            logger.warning("OpenF1Source %s: calendar unavailable: %s", self.source_id, exc)
            return None

        driver_standings: List[Dict] = []
        constructor_standings: List[Dict] = []
        try:
            self._sleep(self.throttle)
            raw_drivers = self._retry(lambda: self._get("championship_drivers", session_key="latest"))
            self._sleep(self.throttle)
            raw_teams = self._retry(lambda: self._get("championship_teams", session_key="latest"))
            self._sleep(self.throttle)
            drivers = self._retry(lambda: self._get("drivers", session_key="latest"))

            driver_standings = merge_driver_standings(raw_drivers, drivers)
            constructor_standings = colour_constructor_standings(raw_teams)
        except (requests.RequestException, ValueError) as exc:
            logger.warning("OpenF1Source %s: standings unavailable (off-season?): %s",
                           self.source_id, exc)

        logger.info("OpenF1Source %s: %d meetings, %d drivers, %d teams",
                    self.source_id, len(meetings), len(driver_standings), len(constructor_standings))
        return {
            "meetings": meetings,
            "driver_standings": driver_standings,
            "constructor_standings": constructor_standings,
        }

    def close(self):
        super().close()
        self._session.close()
