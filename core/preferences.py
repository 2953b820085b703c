"""Local preference persistence.

One JSON file per kiosk. A missing or unreadable file is the same as
"no preferences yet" -- the caller regenerates defaults. Write failures
are logged and reported, never raised: the in-memory copy keeps the
display going.
"""

import json
import logging
import os
import tempfile
from typing import Optional

from core.models import PreferenceDocument

logger = logging.getLogger(__name__)


class PreferenceStore:
    """Reads and writes the kiosk's PreferenceDocument."""

    def __init__(self, path: str):
        self.path = path

    def load(self) -> Optional[PreferenceDocument]:
        """Return the stored document, or None if absent or corrupt."""
        try:
            with open(self.path, encoding="utf-8") as f:
                raw = json.load(f)
            return PreferenceDocument.from_dict(raw)
        except FileNotFoundError:
            logger.info("No stored preferences at %s", self.path)
            return None
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable preferences %s: %s", self.path, exc)
            return None

    def save(self, pref: PreferenceDocument) -> bool:
        """Write atomically. Returns False (and logs) on failure."""
        directory = os.path.dirname(os.path.abspath(self.path))
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".prefs-", suffix=".json")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(pref.to_dict(), f, indent=2)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
            return True
        except OSError as exc:
            logger.error("Failed to save preferences to %s: %s", self.path, exc)
            return False
