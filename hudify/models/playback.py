"""Playback state, devices and commands."""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class PlayerCommand(str, Enum):
    """Direct playback commands, in recognition priority order."""
    CURRENT = "current"
    NEXT = "next"
    BACK = "back"
    PLAY = "play"
    PAUSE = "pause"


@dataclass(frozen=True)
class PlaybackSnapshot:
    """Read-only view of what the player is doing right now."""
    is_playing: bool
    track_name: Optional[str] = None
    artists: Optional[str] = None
    album_name: Optional[str] = None


@dataclass(frozen=True)
class DeviceDescriptor:
    """A playback device as listed by the provider (never persisted)."""
    id: str
    name: str
    type: str

    def label(self) -> str:
        return f"{self.name} ({self.type})"
