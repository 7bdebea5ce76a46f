"""Map a final transcript to a trigger or a playback command via phrase tables."""
from typing import Optional, Sequence, Tuple, Union

from hudify.models.playback import PlayerCommand
from hudify.models.session import Trigger

# Checked before playback commands
TRIGGER_PHRASES: Sequence[Tuple[Trigger, Sequence[str]]] = (
    (Trigger.IDENTIFY_TRACK, (
        "what song is this",
        "identify song",
        "identify this song",
        "name that song",
        "shazam",
    )),
    (Trigger.LIST_DEVICES, (
        "list devices",
        "show devices",
        "switch device",
        "change device",
        "select device",
    )),
)

# Trailing periods match how the transcriber punctuates one-word utterances
COMMAND_PHRASES: Sequence[Tuple[PlayerCommand, Sequence[str]]] = (
    (PlayerCommand.CURRENT, ("current.", "what's playing", "now playing", "current song")),
    (PlayerCommand.NEXT, ("next.", "next song", "skip song")),
    (PlayerCommand.BACK, ("back.", "previous.", "previous song", "rewind.")),
    (PlayerCommand.PLAY, ("play.", "play music", "play song")),
    (PlayerCommand.PAUSE, ("pause.", "pause music", "pause song")),
)

Recognized = Union[PlayerCommand, Trigger]


def _first_match(text: str, table) -> Optional[Recognized]:
    for symbol, phrases in table:
        if any(phrase in text for phrase in phrases):
            return symbol
    return None


def recognize(text: str) -> Optional[Recognized]:
    """Return the first trigger, else the first command, whose phrase occurs in text."""
    if not text or not text.strip():
        return None
    lowered = text.lower()
    return _first_match(lowered, TRIGGER_PHRASES) or _first_match(lowered, COMMAND_PHRASES)
