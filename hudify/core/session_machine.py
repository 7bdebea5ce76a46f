"""Per-user interaction state machine: routes transcripts and gestures by mode."""
import logging
from typing import Callable, Optional
from urllib.parse import quote

from hudify.config import LISTENING_PROMPT_MS, MODE_TIMEOUT_SEC, SETTLE_DELAY_SEC, WEB_URL
from hudify.core.credential_vault import CredentialVault
from hudify.core.device_selection import DeviceSelectionFlow
from hudify.core.playback_orchestrator import PlaybackOrchestrator
from hudify.core.players import PlayerFactory, create_player
from hudify.core.recognizer import Recognized, recognize
from hudify.core.session_registry import SessionRegistry
from hudify.core.settings_store import SettingsStore
from hudify.core.track_identification import SongLookup, TrackIdentificationFlow
from hudify.models.playback import PlayerCommand
from hudify.models.session import DisplaySink, Mode, Trigger, UserSessionState
from hudify.models.settings import UserSettings

logger = logging.getLogger(__name__)

LOGIN_PROMPT = "Please visit the following URL on your phone or computer to connect your Spotify account:"


def login_url(user_id: str) -> str:
    return f"{WEB_URL}/login/{quote(user_id, safe='')}"


class SessionModeMachine:
    """Top-level dispatcher for one process.

    Idle: transcripts go through the recognizer (triggers first, then
    playback commands); head "up" shows what is playing.
    ListeningForTrackId / AwaitingDeviceSelection: the next final transcript
    is the answer and goes to the owning flow.
    """

    def __init__(
        self,
        registry: SessionRegistry,
        vault: CredentialVault,
        settings_store: SettingsStore,
        orchestrator: PlaybackOrchestrator,
        device_flow: DeviceSelectionFlow,
        track_flow: TrackIdentificationFlow,
        recognizer: Callable[[str], Optional[Recognized]] = recognize,
    ) -> None:
        self.registry = registry
        self._vault = vault
        self._settings_store = settings_store
        self._orchestrator = orchestrator
        self._device_flow = device_flow
        self._track_flow = track_flow
        self._recognize = recognizer
        orchestrator.on_no_active_device = self._select_device_for

    @classmethod
    def build(
        cls,
        vault: CredentialVault,
        lookup: SongLookup,
        settings_store: Optional[SettingsStore] = None,
        player_factory: PlayerFactory = create_player,
        timeout_sec: float = MODE_TIMEOUT_SEC,
        settle_delay_sec: float = SETTLE_DELAY_SEC,
        listening_prompt_ms: int = LISTENING_PROMPT_MS,
        retain_selection_on_invalid: bool = True,
    ) -> "SessionModeMachine":
        """Wire the registry and flows around one vault."""
        registry = SessionRegistry()
        orchestrator = PlaybackOrchestrator(vault, player_factory, settle_delay_sec)
        device_flow = DeviceSelectionFlow(
            registry,
            vault,
            orchestrator,
            player_factory,
            timeout_sec=timeout_sec,
            settle_delay_sec=settle_delay_sec,
            retain_on_invalid=retain_selection_on_invalid,
        )
        track_flow = TrackIdentificationFlow(
            registry, lookup, timeout_sec=timeout_sec, prompt_ms=listening_prompt_ms
        )
        return cls(
            registry,
            vault,
            settings_store or SettingsStore(),
            orchestrator,
            device_flow,
            track_flow,
        )

    # Session lifecycle

    async def start_session(self, user_id: str, display: DisplaySink) -> UserSessionState:
        session = self.registry.create(user_id, display, self._settings_store.get(user_id))
        logger.info("Session started for %s", user_id)
        if self._vault.has_token(user_id):
            await self._orchestrator.display_current(session)
        else:
            session.show(f"{LOGIN_PROMPT}\n\n{login_url(user_id)}", duration_ms=None)
        return session

    def end_session(self, user_id: str, display: Optional[DisplaySink] = None) -> bool:
        """Tear down user_id's state; with display given, only if it still owns the session."""
        session = self.registry.get(user_id)
        if session is None or (display is not None and session.display is not display):
            return False
        self.registry.destroy(user_id)
        logger.info("Session ended for %s", user_id)
        return True

    def apply_settings(self, user_id: str, settings: UserSettings) -> None:
        session = self.registry.get(user_id)
        if session is not None:
            session.settings = settings

    async def notify_linked(self, user_id: str) -> None:
        """Account just linked: show the live session what is playing."""
        session = self.registry.get(user_id)
        if session is not None:
            await self._orchestrator.display_current(session)

    # Events

    async def handle_transcript(self, user_id: str, text: str, is_final: bool = True) -> None:
        if not is_final:
            return
        session = self.registry.get(user_id)
        if session is None:
            logger.debug("Transcript for unknown session %s", user_id)
            return
        if not session.settings.voice_commands_enabled:
            return

        if session.mode is Mode.LISTENING_FOR_TRACK_ID:
            await self._track_flow.resolve(session, text)
            return
        if session.mode is Mode.AWAITING_DEVICE_SELECTION:
            await self._device_flow.handle_selection(session, text)
            return

        symbol = self._recognize(text)
        if symbol is None:
            return
        logger.info("%s: %r -> %s", user_id, text, symbol.value)
        if symbol is Trigger.IDENTIFY_TRACK:
            self._track_flow.enter(session)
        elif symbol is Trigger.LIST_DEVICES:
            await self._device_flow.list(session)
        else:
            await self._orchestrator.execute(session, symbol)

    async def handle_head_position(self, user_id: str, position: str) -> None:
        session = self.registry.get(user_id)
        if session is None or not session.settings.heads_up_display_enabled:
            return
        if (position or "").lower() == "up" and session.mode is Mode.IDLE:
            await self._orchestrator.execute(session, PlayerCommand.CURRENT)

    def handle_error(self, user_id: str, message: str) -> None:
        logger.error("Session host error for %s: %s", user_id, message)
        session = self.registry.get(user_id)
        if session is not None:
            session.show(f"Error: {message}", duration_ms=None)

    async def _select_device_for(self, session: UserSessionState, command: PlayerCommand) -> None:
        await self._device_flow.list(session, pending_command=command)
