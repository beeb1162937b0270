"""Flat key/value settings persisted as a single JSON document.

Every component receives the same `Prefs` instance instead of reaching for a
global. The file is read once, lazily, and rewritten in full on each change.
"""

import json
import os
import tempfile
from typing import Dict, Optional

from .exceptions import SettingsCorrupt


PREFS_FILE_NAME = "SteamDepotUploaderPrefs.json"
KEY_PREFIX = "SteamDepotUploader_"


def default_prefs_path(project_root: str) -> str:
    """Return the settings file location for a project root."""
    return os.path.join(project_root, "ProjectSettings", PREFS_FILE_NAME)


class Prefs:
    """JSON backed string-to-string settings store."""

    def __init__(self, path: str) -> None:
        self.path: str = path
        self._preferences: Optional[Dict[str, str]] = None

    @property
    def preferences(self) -> Dict[str, str]:
        if self._preferences is None:
            self._preferences = self._load()
        return self._preferences

    def _load(self) -> Dict[str, str]:
        """Read the settings file.

        Returns:
            The stored map, or an empty map if the file does not exist

        Raises:
            SettingsCorrupt: If the file is not a JSON object of strings
        """
        if not os.path.exists(self.path):
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise SettingsCorrupt(self.path, str(e)) from e

        if not isinstance(data, dict):
            raise SettingsCorrupt(self.path, "top level value is not an object")
        for key, value in data.items():
            if not isinstance(value, str):
                raise SettingsCorrupt(self.path, f"value for '{key}' is not a string")
        return data

    def _save(self) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)

        # Write next to the target then swap it in
        fd, tmp_path = tempfile.mkstemp(prefix=".prefs-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self.preferences, f, indent=4, sort_keys=True)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def reload(self) -> None:
        """Drop the in-memory copy so the next access re-reads the file."""
        self._preferences = None

    def has_key(self, key: str) -> bool:
        return key in self.preferences

    def get(self, key: str, default: str = "") -> str:
        return self.preferences.get(key, default)

    def set(self, key: str, value: str) -> None:
        self.preferences[key] = "" if value is None else str(value)
        self._save()

    def get_int(self, key: str, default: int = 0) -> int:
        try:
            return int(self.preferences[key])
        except (KeyError, ValueError):
            return default

    def set_int(self, key: str, value: int) -> None:
        self.set(key, str(int(value)))

    def get_float(self, key: str, default: float = 0.0) -> float:
        try:
            return float(self.preferences[key])
        except (KeyError, ValueError):
            return default

    def set_float(self, key: str, value: float) -> None:
        self.set(key, repr(float(value)))

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self.preferences.get(key, "").strip().lower()
        if value == "true":
            return True
        if value == "false":
            return False
        return default

    def set_bool(self, key: str, value: bool) -> None:
        self.set(key, "true" if value else "false")

    def delete_key(self, key: str) -> None:
        self.preferences.pop(key, None)
        self._save()

    def delete_all(self) -> None:
        self.preferences.clear()
        self._save()
