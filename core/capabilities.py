"""Capability document storage and retrieval.

Server side, the document lives under the `capabilities` key of
dashboard.yaml next to the source definitions. A kiosk pointed at a
remote server fetches it over HTTP instead.

Config example (dashboard.yaml):
    capabilities:
      availableCards:
        - {id: schedule, label: Race Schedule, enabled: true}
        - {id: drivers, label: Driver Standings, enabled: true}
      intervalRange: {min: 5000, max: 60000, default: 10000}
      itemsPerPage: {schedule: 10, drivers: 11, constructors: 11}
      features:
        allowReordering: true
        allowIntervalChange: true
        showPreferenceMenu: true
"""

import logging
import os
import threading
from typing import Any, Dict

import requests
import yaml

from config import REQUEST_TIMEOUT
from core.models import CapabilityDocument

logger = logging.getLogger(__name__)


def load_dashboard_config(path: str) -> Dict[str, Any]:
    """Load dashboard.yaml. Missing file -> empty dict."""
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        logger.warning("Config file not found: %s", path)
        return {}
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return data


class CapabilityStore:
    """Reads/replaces the `capabilities` section of dashboard.yaml."""

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()

    def load(self) -> CapabilityDocument:
        """Return the stored document. Raises on unreadable/invalid data.

        A file without a `capabilities` section yields the built-in
        defaults.
        """
        with self._lock:
            config = load_dashboard_config(self.path)
        raw = config.get("capabilities")
        if raw is None:
            return CapabilityDocument.defaults()
        return CapabilityDocument.from_dict(raw)

    def save(self, caps: CapabilityDocument):
        """Replace the stored document, keeping the rest of the file."""
        with self._lock:
            config = load_dashboard_config(self.path)
            config["capabilities"] = caps.to_dict()
            tmp_path = self.path + ".tmp"
            try:
                with open(tmp_path, "w", encoding="utf-8") as f:
                    yaml.safe_dump(config, f, sort_keys=False, allow_unicode=True)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        logger.info("Capabilities updated in %s", self.path)


def fetch_capabilities(base_url: str, timeout: float = REQUEST_TIMEOUT,
                       session=None) -> CapabilityDocument:
    """GET {base_url}/api/config. Raises on transport or validation errors."""
    http = session or requests
    url = base_url.rstrip("/") + "/api/config"
    resp = http.get(url, timeout=timeout)
    resp.raise_for_status()
    return CapabilityDocument.from_dict(resp.json())
