"""In-memory per-user settings snapshot, updated by the settings push endpoint."""
import logging
from dataclasses import replace
from typing import Any, Dict, Mapping

from hudify.config import DEFAULT_PLAYER
from hudify.models.settings import UserSettings

logger = logging.getLogger(__name__)

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError(f"not a boolean: {value!r}")


class SettingsStore:
    def __init__(self, defaults: UserSettings = UserSettings()) -> None:
        self._defaults = defaults
        self._settings: Dict[str, UserSettings] = {}

    def get(self, user_id: str) -> UserSettings:
        return self._settings.get(user_id, self._defaults)

    def update(self, user_id: str, values: Mapping[str, Any]) -> UserSettings:
        """Apply known keys; an empty preferred_player clears it back to the default."""
        changes: Dict[str, Any] = {}
        for key, value in values.items():
            if key == "preferred_player":
                changes[key] = str(value or "").strip().lower() or DEFAULT_PLAYER
            elif key in ("voice_commands_enabled", "heads_up_display_enabled"):
                try:
                    changes[key] = _as_bool(value)
                except ValueError:
                    logger.warning("Ignoring setting %s=%r for %s", key, value, user_id)
            else:
                logger.debug("Unknown setting %s for %s", key, user_id)
        updated = replace(self.get(user_id), **changes)
        self._settings[user_id] = updated
        logger.info("Settings for %s: %s", user_id, updated)
        return updated
