"""Per-user interaction state: modes, mode contexts and the session record."""
import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Optional, Protocol, Tuple, Union

from hudify.config import MESSAGE_DURATION_MS
from hudify.models.playback import DeviceDescriptor, PlayerCommand
from hudify.models.settings import UserSettings


class Mode(str, Enum):
    """How the next recognized event is interpreted."""
    IDLE = "idle"
    LISTENING_FOR_TRACK_ID = "listening_for_track_id"
    AWAITING_DEVICE_SELECTION = "awaiting_device_selection"


class Trigger(str, Enum):
    """Utterances that change mode instead of issuing a playback command."""
    IDENTIFY_TRACK = "identify_track"
    LIST_DEVICES = "list_devices"


class DisplaySink(Protocol):
    """Fire-and-forget text output on the wearable."""

    def show_message(self, text: str, duration_ms: Optional[int] = None) -> None:
        ...


@dataclass(frozen=True)
class IdleContext:
    mode: ClassVar[Mode] = Mode.IDLE


@dataclass(frozen=True)
class ListeningContext:
    mode: ClassVar[Mode] = Mode.LISTENING_FOR_TRACK_ID


@dataclass(frozen=True)
class DeviceSelectionContext:
    """Devices shown to the user (at most the first few) and the command to retry."""
    mode: ClassVar[Mode] = Mode.AWAITING_DEVICE_SELECTION

    candidates: Tuple[DeviceDescriptor, ...]
    pending_command: Optional[PlayerCommand] = None


ModeContext = Union[IdleContext, ListeningContext, DeviceSelectionContext]


@dataclass
class UserSessionState:
    """One per connected user. Settings survive every mode transition."""
    user_id: str
    display: DisplaySink
    settings: UserSettings = field(default_factory=UserSettings)
    context: ModeContext = field(default_factory=IdleContext)
    generation: int = 0
    timeout_handle: Optional[asyncio.TimerHandle] = None

    @property
    def mode(self) -> Mode:
        return self.context.mode

    @property
    def pending_command(self) -> Optional[PlayerCommand]:
        if isinstance(self.context, DeviceSelectionContext):
            return self.context.pending_command
        return None

    @property
    def preferred_player(self) -> str:
        return self.settings.preferred_player

    def show(self, text: str, duration_ms: Optional[int] = MESSAGE_DURATION_MS) -> None:
        self.display.show_message(text, duration_ms=duration_ms)
