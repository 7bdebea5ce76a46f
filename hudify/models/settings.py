"""User settings pushed by the session host."""
from dataclasses import dataclass

from hudify.config import DEFAULT_PLAYER


@dataclass(frozen=True)
class UserSettings:
    """Settings snapshot applied to a session."""
    preferred_player: str = DEFAULT_PLAYER
    voice_commands_enabled: bool = True
    heads_up_display_enabled: bool = True
