"""Data models for sessions, credentials, playback and settings."""
from hudify.models.credentials import Credentials, TokenGrant
from hudify.models.lookup import SongMatch
from hudify.models.playback import DeviceDescriptor, PlaybackSnapshot, PlayerCommand
from hudify.models.session import (
    DeviceSelectionContext,
    IdleContext,
    ListeningContext,
    Mode,
    Trigger,
    UserSessionState,
)
from hudify.models.settings import UserSettings

__all__ = [
    "Credentials",
    "DeviceDescriptor",
    "DeviceSelectionContext",
    "IdleContext",
    "ListeningContext",
    "Mode",
    "PlaybackSnapshot",
    "PlayerCommand",
    "SongMatch",
    "TokenGrant",
    "Trigger",
    "UserSessionState",
    "UserSettings",
]
