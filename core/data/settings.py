"""Key-value settings store -- a flat JSON file of string values.

Holds UI preferences and small app state (theme, layout order, notes)
that live outside the table store. Implements the KeyValueStore protocol.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class SettingsStore:
    def __init__(self, path: Path) -> None:
        self._path = path
        self._values: dict[str, str] = self._load()

    def _load(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text())
        except (OSError, json.JSONDecodeError):
            logger.exception("Failed to read settings from %s", self._path)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring settings file %s: not a JSON object", self._path)
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _flush(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(self._values, indent=2, sort_keys=True))

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value
        self._flush()

    def remove(self, key: str) -> bool:
        """Delete a key. Returns True if it existed."""
        if key not in self._values:
            return False
        del self._values[key]
        self._flush()
        return True

    def keys(self) -> list[str]:
        return sorted(self._values)
