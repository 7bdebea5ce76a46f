"""
Per-user settings snapshot.
"""

import pytest

from hudify.config import DEFAULT_PLAYER
from hudify.core.settings_store import SettingsStore
from hudify.models.settings import UserSettings


def test_defaults():
    assert SettingsStore().get("u") == UserSettings()


@pytest.mark.parametrize(
    "value, expected",
    [(True, True), (False, False), ("true", True), ("Off", False), ("1", True), (0, False), ("", False)],
)
def test_boolean_coercion(value, expected):
    settings = SettingsStore().update("u", {"voice_commands_enabled": value})
    assert settings.voice_commands_enabled is expected


def test_unparsable_boolean_is_ignored():
    store = SettingsStore()
    store.update("u", {"heads_up_display_enabled": False})
    assert store.update("u", {"heads_up_display_enabled": "maybe"}).heads_up_display_enabled is False


def test_empty_player_falls_back_to_default():
    store = SettingsStore()
    store.update("u", {"preferred_player": "Custom"})
    assert store.update("u", {"preferred_player": ""}).preferred_player == DEFAULT_PLAYER


def test_updates_merge_and_stay_per_user():
    store = SettingsStore()
    store.update("a", {"voice_commands_enabled": False})
    store.update("a", {"heads_up_display_enabled": False, "unknown_key": 1})

    assert store.get("a") == UserSettings(voice_commands_enabled=False, heads_up_display_enabled=False)
    assert store.get("b") == UserSettings()
