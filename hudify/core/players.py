"""Player capability interface, backend selection and the authorize-then-open helper."""
import logging
from typing import Callable, Dict, List, Optional, Protocol

from hudify.config import DEFAULT_PLAYER
from hudify.core.credential_vault import CredentialVault
from hudify.core.errors import DecryptionError, ReauthenticationRequiredError, UnauthenticatedError
from hudify.core.spotify_client import SpotifyPlayer
from hudify.models.playback import DeviceDescriptor, PlaybackSnapshot
from hudify.models.session import UserSessionState

logger = logging.getLogger(__name__)

NOT_LINKED_MESSAGE = "Please connect your Spotify account first."
RECONNECT_MESSAGE = "Error refreshing Spotify connection. Please reconnect your account."


class Player(Protocol):
    """What the flows need from a playback backend."""

    async def play(self) -> None: ...

    async def pause(self) -> None: ...

    async def next(self) -> None: ...

    async def previous(self) -> None: ...

    async def current_state(self) -> PlaybackSnapshot: ...

    async def list_devices(self) -> List[DeviceDescriptor]: ...

    async def transfer_playback(self, device_ids: List[str]) -> None: ...


# (preferred player name, access token) -> Player
PlayerFactory = Callable[[str, str], Player]

BACKENDS: Dict[str, Callable[[str], Player]] = {
    "spotify": SpotifyPlayer,
}


def create_player(name: str, access_token: str) -> Player:
    """Build the backend named by the user's preferred_player setting."""
    backend = BACKENDS.get((name or "").lower())
    if backend is None:
        logger.warning("Unknown player %r, falling back to %s", name, DEFAULT_PLAYER)
        backend = BACKENDS[DEFAULT_PLAYER]
    return backend(access_token)


async def authorized_player(
    session: UserSessionState,
    vault: CredentialVault,
    player_factory: PlayerFactory = create_player,
) -> Optional[Player]:
    """Return a player for the session's user, or None after telling them why not."""
    try:
        access_token = await vault.access_token(session.user_id)
    except UnauthenticatedError:
        session.show(NOT_LINKED_MESSAGE)
        return None
    except (ReauthenticationRequiredError, DecryptionError) as e:
        logger.warning("Cannot use stored token for %s: %s", session.user_id, type(e).__name__)
        session.show(RECONNECT_MESSAGE)
        return None
    return player_factory(session.preferred_player, access_token)
