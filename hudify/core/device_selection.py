"""List playback devices and let the user pick one by number."""
import asyncio
import logging
from typing import Optional, Sequence

from hudify.config import MAX_LISTED_DEVICES, MODE_TIMEOUT_SEC, SETTLE_DELAY_SEC
from hudify.core.credential_vault import CredentialVault
from hudify.core.errors import InvalidSelectionError, ProviderError
from hudify.core.playback_orchestrator import GENERIC_ERROR_MESSAGE, PlaybackOrchestrator
from hudify.core.players import Player, PlayerFactory, authorized_player, create_player
from hudify.core.session_registry import SessionRegistry
from hudify.models.playback import DeviceDescriptor, PlayerCommand
from hudify.models.session import DeviceSelectionContext, UserSessionState

logger = logging.getLogger(__name__)

NO_DEVICES_MESSAGE = "No Spotify devices found. Open Spotify on a device and try again."
SELECT_PROMPT = "Say the number of the device to use:"
SELECTION_TIMEOUT_MESSAGE = "Device selection timed out."
INVALID_SELECTION_MESSAGE = "Invalid selection."

# The transcriber hears "two" as "to" / "too" often enough to accept them
_SELECTION_WORDS = {
    "one": 1, "1": 1,
    "two": 2, "2": 2, "to": 2, "too": 2,
    "three": 3, "3": 3,
}


def parse_selection(text: str) -> Optional[int]:
    """1-based device number spoken in text, or None if there is no number."""
    cleaned = (text or "").strip().lower().strip(".!?,")
    if cleaned in _SELECTION_WORDS:
        return _SELECTION_WORDS[cleaned]
    try:
        return int(cleaned, 10)
    except ValueError:
        return None


def format_device_list(devices: Sequence[DeviceDescriptor], limit: int = MAX_LISTED_DEVICES) -> str:
    shown = devices[:limit]
    lines = [f"{i}: {d.label()}" for i, d in enumerate(shown, start=1)]
    if len(devices) > len(shown):
        lines.append(f"... ({len(devices) - len(shown)} more)")
    return "\n".join(lines)


def _choose(text: str, candidates: Sequence[DeviceDescriptor]) -> DeviceDescriptor:
    number = parse_selection(text)
    if number is None:
        raise InvalidSelectionError(INVALID_SELECTION_MESSAGE)
    if not 1 <= number <= len(candidates):
        raise InvalidSelectionError(
            f"Invalid selection. Say a number from 1 to {len(candidates)}."
        )
    return candidates[number - 1]


class DeviceSelectionFlow:
    """Device listing policy: none -> hint, one -> use it, several -> ask.

    With retain_on_invalid (the default) an unparsable or out-of-range answer
    leaves the selection open until its timeout; otherwise any answer ends it.
    """

    def __init__(
        self,
        registry: SessionRegistry,
        vault: CredentialVault,
        orchestrator: PlaybackOrchestrator,
        player_factory: PlayerFactory = create_player,
        timeout_sec: float = MODE_TIMEOUT_SEC,
        settle_delay_sec: float = SETTLE_DELAY_SEC,
        max_listed: int = MAX_LISTED_DEVICES,
        retain_on_invalid: bool = True,
    ) -> None:
        self._registry = registry
        self._vault = vault
        self._orchestrator = orchestrator
        self._player_factory = player_factory
        self._timeout_sec = timeout_sec
        self._settle_delay_sec = settle_delay_sec
        self._max_listed = max_listed
        self._retain_on_invalid = retain_on_invalid

    async def list(
        self,
        session: UserSessionState,
        pending_command: Optional[PlayerCommand] = None,
    ) -> None:
        generation = session.generation
        player = await authorized_player(session, self._vault, self._player_factory)
        if player is None:
            return
        try:
            devices = await player.list_devices()
        except ProviderError as e:
            logger.warning("Listing devices failed for %s: %s", session.user_id, e)
            session.show(f"Spotify error: {e.message}" if e.message else GENERIC_ERROR_MESSAGE)
            return
        except Exception:
            logger.exception("Listing devices failed for %s", session.user_id)
            session.show(GENERIC_ERROR_MESSAGE)
            return

        if not self._registry.is_current(session, generation):
            logger.info("Session %s moved on while listing devices; dropping result", session.user_id)
            return

        logger.info("%d device(s) available for %s", len(devices), session.user_id)
        if not devices:
            session.show(NO_DEVICES_MESSAGE)
            return
        if len(devices) == 1:
            await self._activate(session, player, devices[0], pending_command)
            return

        shown = tuple(devices[: self._max_listed])
        session.show(
            f"{SELECT_PROMPT}\n{format_device_list(devices, self._max_listed)}",
            duration_ms=int(self._timeout_sec * 1000),
        )
        self._registry.update(session, DeviceSelectionContext(shown, pending_command))
        self._registry.schedule_timeout(session, self._timeout_sec, SELECTION_TIMEOUT_MESSAGE)

    async def handle_selection(self, session: UserSessionState, transcript: str) -> None:
        context = session.context
        if not isinstance(context, DeviceSelectionContext):
            logger.warning("Selection for %s outside device selection (%s)", session.user_id, session.mode.value)
            return
        if not self._retain_on_invalid:
            self._registry.reset(session)
        try:
            device = _choose(transcript, context.candidates)
        except InvalidSelectionError as e:
            logger.info("Invalid device selection %r from %s", transcript, session.user_id)
            session.show(str(e))
            return
        self._registry.reset(session)

        player = await authorized_player(session, self._vault, self._player_factory)
        if player is None:
            return
        await self._activate(session, player, device, context.pending_command, show_current=True)

    async def _activate(
        self,
        session: UserSessionState,
        player: Player,
        device: DeviceDescriptor,
        pending_command: Optional[PlayerCommand],
        show_current: bool = False,
    ) -> None:
        try:
            await player.transfer_playback([device.id])
        except ProviderError as e:
            logger.warning("Transfer to %s failed for %s: %s", device.name, session.user_id, e)
            session.show(f"Spotify error: {e.message}" if e.message else GENERIC_ERROR_MESSAGE)
            return
        except Exception:
            logger.exception("Transfer to %s failed for %s", device.name, session.user_id)
            session.show(GENERIC_ERROR_MESSAGE)
            return

        logger.info("Playback for %s moved to %s", session.user_id, device.name)
        session.show(f"Switched playback to {device.name}.")
        if pending_command is None and not show_current:
            return
        await asyncio.sleep(self._settle_delay_sec)
        if pending_command is not None:
            await self._orchestrator.execute(session, pending_command, recover_no_device=False)
        else:
            await self._orchestrator.display_current(session)
