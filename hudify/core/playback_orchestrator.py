"""Run playback commands against the user's player and show the result."""
import asyncio
import logging
from typing import Awaitable, Callable, Optional

from hudify.config import SETTLE_DELAY_SEC
from hudify.core.credential_vault import CredentialVault
from hudify.core.errors import NoActiveDeviceError, ProviderError
from hudify.core.players import Player, PlayerFactory, authorized_player, create_player
from hudify.models.playback import PlaybackSnapshot, PlayerCommand
from hudify.models.session import UserSessionState

logger = logging.getLogger(__name__)

NOTHING_PLAYING_MESSAGE = "No track currently playing on Spotify"
NO_DEVICE_MESSAGE = "No active Spotify device. Open Spotify on a device and try again."
PROVIDER_RETRY_MESSAGE = "Spotify could not complete the request. Please try again."
GENERIC_ERROR_MESSAGE = "Error connecting to Spotify. Please try again."
TRACK_INFO_ERROR_MESSAGE = "Error getting track information"

NoDeviceHandler = Callable[[UserSessionState, PlayerCommand], Awaitable[None]]


def render_snapshot(snapshot: PlaybackSnapshot) -> str:
    if not snapshot.track_name:
        return NOTHING_PLAYING_MESSAGE
    return (
        f"{'Now Playing' if snapshot.is_playing else 'Paused'}\n\n"
        f"Song: {snapshot.track_name}\n"
        f"Artist: {snapshot.artists}\n"
        f"Album: {snapshot.album_name}"
    )


async def _run_command(player: Player, command: PlayerCommand) -> None:
    if command is PlayerCommand.NEXT:
        await player.next()
    elif command is PlayerCommand.BACK:
        await player.previous()
    elif command is PlayerCommand.PLAY:
        await player.play()
    elif command is PlayerCommand.PAUSE:
        await player.pause()


class PlaybackOrchestrator:
    """Executes CURRENT / NEXT / BACK / PLAY / PAUSE for a session.

    A "no active device" failure is not shown as an error: the command is
    handed to on_no_active_device (device selection), which retries it once
    a device is chosen. Everything else becomes one message on the display.
    """

    def __init__(
        self,
        vault: CredentialVault,
        player_factory: PlayerFactory = create_player,
        settle_delay_sec: float = SETTLE_DELAY_SEC,
    ) -> None:
        self._vault = vault
        self._player_factory = player_factory
        self._settle_delay_sec = settle_delay_sec
        self.on_no_active_device: Optional[NoDeviceHandler] = None

    async def execute(
        self,
        session: UserSessionState,
        command: PlayerCommand,
        recover_no_device: bool = True,
    ) -> None:
        """Run command; recover_no_device=False is used for the one retry after selection."""
        player = await authorized_player(session, self._vault, self._player_factory)
        if player is None:
            return
        try:
            if command is PlayerCommand.CURRENT:
                await asyncio.sleep(self._settle_delay_sec)
            else:
                await _run_command(player, command)
            session.show(render_snapshot(await player.current_state()))
        except NoActiveDeviceError:
            if recover_no_device and self.on_no_active_device is not None:
                logger.info("No active device for %s, starting device selection", session.user_id)
                await self.on_no_active_device(session, command)
                return
            session.show(NO_DEVICE_MESSAGE)
        except ProviderError as e:
            logger.warning("Spotify %s failed for %s: %s", command.value, session.user_id, e)
            session.show(f"Spotify error: {e.message}" if e.message else PROVIDER_RETRY_MESSAGE)
        except Exception:
            logger.exception("Playback %s failed for %s", command.value, session.user_id)
            session.show(GENERIC_ERROR_MESSAGE)

    async def display_current(self, session: UserSessionState) -> None:
        """Show what is playing now, without a settle delay."""
        player = await authorized_player(session, self._vault, self._player_factory)
        if player is None:
            return
        try:
            snapshot = await player.current_state()
        except Exception:
            logger.exception("Reading playback state failed for %s", session.user_id)
            session.show(TRACK_INFO_ERROR_MESSAGE)
            return
        session.show(render_snapshot(snapshot))
