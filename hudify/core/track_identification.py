"""Identify a song from what the user says while the session is listening."""
import logging
from typing import Awaitable, Optional, Protocol

from hudify.config import LISTENING_PROMPT_MS, MODE_TIMEOUT_SEC
from hudify.core.errors import LookupNotFoundError
from hudify.core.session_registry import SessionRegistry
from hudify.models.lookup import SongMatch
from hudify.models.session import ListeningContext, UserSessionState

logger = logging.getLogger(__name__)

LISTENING_MESSAGE = "Listening... say some lyrics or the name of the song."
TIMEOUT_MESSAGE = "Song identification cancelled, no speech detected."
NO_SPEECH_MESSAGE = "Could not identify song (no speech)."
ERROR_MESSAGE = "Error identifying song. Please try again."

SNIPPET_LENGTH = 30


class SongLookup(Protocol):
    def find_track(self, text: str) -> Awaitable[Optional[SongMatch]]: ...


def snippet(text: str, length: int = SNIPPET_LENGTH) -> str:
    """First length characters, with '...' only when something was cut."""
    return text if len(text) <= length else text[:length] + "..."


class TrackIdentificationFlow:
    def __init__(
        self,
        registry: SessionRegistry,
        lookup: SongLookup,
        timeout_sec: float = MODE_TIMEOUT_SEC,
        prompt_ms: int = LISTENING_PROMPT_MS,
    ) -> None:
        self._registry = registry
        self._lookup = lookup
        self._timeout_sec = timeout_sec
        self._prompt_ms = prompt_ms

    def enter(self, session: UserSessionState) -> None:
        """Prompt the user and listen for the next transcript until the timeout."""
        session.show(LISTENING_MESSAGE, duration_ms=self._prompt_ms)
        self._registry.update(session, ListeningContext())
        self._registry.schedule_timeout(session, self._timeout_sec, TIMEOUT_MESSAGE)

    async def resolve(self, session: UserSessionState, transcript: str) -> None:
        # Back to idle before the lookup so a second transcript cannot start another one
        self._registry.reset(session)
        text = (transcript or "").strip()
        if not text:
            session.show(NO_SPEECH_MESSAGE)
            return

        short = snippet(text)
        session.show(f"Searching for: '{short}'")
        try:
            match = await self._lookup.find_track(text)
        except LookupNotFoundError:
            match = None
        except Exception:
            logger.exception("Song lookup failed for %s", session.user_id)
            session.show(ERROR_MESSAGE)
            return

        if match is None:
            session.show(f"Could not identify song for '{short}'")
            return
        logger.info("Identified %r by %r for %s", match.track_name, match.artist, session.user_id)
        session.show(f"Song: {match.track_name}\nArtist: {match.artist}")
