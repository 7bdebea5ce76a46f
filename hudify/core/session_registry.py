"""Per-user session states and their mode timeout timers."""
import asyncio
import logging
from typing import Dict, Iterator, Optional

from hudify.models.session import (
    DisplaySink,
    IdleContext,
    ModeContext,
    UserSessionState,
)
from hudify.models.settings import UserSettings

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Owns the one UserSessionState per connected user.

    Every transition bumps the state's generation. A timeout captures the
    generation it was scheduled under and does nothing if the state has moved
    on, so a timer racing a real transition never resets fresh state.
    """

    def __init__(self) -> None:
        self._sessions: Dict[str, UserSessionState] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._sessions

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._sessions))

    def create(
        self,
        user_id: str,
        display: DisplaySink,
        settings: Optional[UserSettings] = None,
    ) -> UserSessionState:
        """Start a session; a previous session for the same user is torn down first."""
        if user_id in self._sessions:
            logger.info("Replacing existing session for %s", user_id)
            self.destroy(user_id)
        state = UserSessionState(
            user_id=user_id,
            display=display,
            settings=settings or UserSettings(),
        )
        self._sessions[user_id] = state
        return state

    def get(self, user_id: str) -> Optional[UserSessionState]:
        return self._sessions.get(user_id)

    def destroy(self, user_id: str) -> bool:
        state = self._sessions.pop(user_id, None)
        if state is None:
            return False
        self.cancel_timeout(state)
        # Outstanding calls holding this state must see it as stale
        state.generation += 1
        return True

    def update(self, state: UserSessionState, context: ModeContext) -> int:
        """Move state to the mode described by context; returns the new generation."""
        self.cancel_timeout(state)
        state.context = context
        state.generation += 1
        logger.debug("%s -> %s (gen %d)", state.user_id, state.mode.value, state.generation)
        return state.generation

    def reset(self, state: UserSessionState) -> int:
        return self.update(state, IdleContext())

    def is_current(self, state: UserSessionState, generation: int) -> bool:
        """True if state is still registered and has not transitioned since generation."""
        return self._sessions.get(state.user_id) is state and state.generation == generation

    def schedule_timeout(
        self,
        state: UserSessionState,
        delay_sec: float,
        message: str,
    ) -> None:
        """Reset state to idle and show message after delay_sec unless it transitions first."""
        self.cancel_timeout(state)
        generation, mode = state.generation, state.mode
        loop = asyncio.get_running_loop()
        state.timeout_handle = loop.call_later(
            delay_sec, self._on_timeout, state, generation, mode, message
        )

    def cancel_timeout(self, state: UserSessionState) -> None:
        if state.timeout_handle is not None:
            state.timeout_handle.cancel()
            state.timeout_handle = None

    def _on_timeout(self, state, generation, mode, message) -> None:
        if not self.is_current(state, generation) or state.mode is not mode:
            logger.debug("Stale %s timeout for %s ignored", mode.value, state.user_id)
            return
        state.timeout_handle = None
        self.reset(state)
        logger.info("%s timed out for %s", mode.value, state.user_id)
        state.show(message)
