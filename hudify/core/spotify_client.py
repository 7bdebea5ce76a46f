"""Spotify API client via Spotipy; per-user access tokens come from the credential vault."""
import logging
from typing import List, Optional

from fastapi.concurrency import run_in_threadpool
from spotipy import Spotify
from spotipy.cache_handler import MemoryCacheHandler
from spotipy.exceptions import SpotifyException
from spotipy.oauth2 import SpotifyOAuth

from hudify.config import (
    HTTP_TIMEOUT_SEC,
    SPOTIFY_CLIENT_ID,
    SPOTIFY_CLIENT_SECRET,
    SPOTIFY_REDIRECT_URI,
    SPOTIFY_SCOPES,
)
from hudify.core.errors import NoActiveDeviceError, ProviderError
from hudify.models.credentials import TokenGrant
from hudify.models.playback import DeviceDescriptor, PlaybackSnapshot

logger = logging.getLogger(__name__)


def is_configured() -> bool:
    return bool(SPOTIFY_CLIENT_ID and SPOTIFY_CLIENT_SECRET)


def _oauth(cache: Optional[MemoryCacheHandler] = None) -> SpotifyOAuth:
    # Tokens live in the vault, never in spotipy's cache
    return SpotifyOAuth(
        client_id=SPOTIFY_CLIENT_ID,
        client_secret=SPOTIFY_CLIENT_SECRET,
        redirect_uri=SPOTIFY_REDIRECT_URI,
        scope=SPOTIFY_SCOPES,
        cache_handler=cache or MemoryCacheHandler(),
        open_browser=False,
    )


def _grant_from_token_info(token_info: dict) -> TokenGrant:
    return TokenGrant(
        access_token=token_info["access_token"],
        expires_in_seconds=int(token_info.get("expires_in") or 3600),
        refresh_token=token_info.get("refresh_token"),
    )


def get_authorize_url(user_id: str) -> Optional[str]:
    """Return the Spotify authorize URL carrying user_id as OAuth state, or None if not configured."""
    if not is_configured():
        return None
    return _oauth().get_authorize_url(state=user_id)


def exchange_code(code: str) -> TokenGrant:
    """Exchange an OAuth authorization code for tokens."""
    cache = MemoryCacheHandler()
    _oauth(cache).get_access_token(code=code, check_cache=False)
    token_info = cache.get_cached_token()
    if not token_info:
        raise ProviderError("Spotify returned no token")
    return _grant_from_token_info(token_info)


def refresh_access_token(refresh_token: str) -> TokenGrant:
    token_info = _oauth().refresh_access_token(refresh_token)
    return _grant_from_token_info(token_info)


async def refresh_access_token_async(refresh_token: str) -> TokenGrant:
    """Vault refresher: run the blocking refresh in the threadpool."""
    return await run_in_threadpool(refresh_access_token, refresh_token)


def _provider_message(e: SpotifyException) -> Optional[str]:
    """Spotipy prefixes the message with the request URL; keep Spotify's own text."""
    msg = (e.msg or "").strip()
    if ":\n" in msg:
        msg = msg.split(":\n", 1)[1].strip()
    return msg or None


def _translate(e: SpotifyException) -> ProviderError:
    message = _provider_message(e)
    reason = getattr(e, "reason", None)
    if reason == "NO_ACTIVE_DEVICE" or (
        e.http_status == 404 and "no active device" in (message or "").lower()
    ):
        return NoActiveDeviceError(message, status=e.http_status)
    return ProviderError(message, status=e.http_status)


def _map_playback(pb: Optional[dict]) -> PlaybackSnapshot:
    """Map Spotify current_playback() response to a snapshot."""
    item = (pb or {}).get("item")
    if not item:
        return PlaybackSnapshot(is_playing=False)
    album = item.get("album") or {}
    artists = item.get("artists") or []
    return PlaybackSnapshot(
        is_playing=bool(pb.get("is_playing", False)),
        track_name=item.get("name") or None,
        artists=", ".join(a.get("name", "") for a in artists),
        album_name=album.get("name", ""),
    )


class SpotifyPlayer:
    """Player capability backed by the Spotify Web API for one access token."""

    name = "spotify"

    def __init__(self, access_token: str) -> None:
        self._sp = Spotify(auth=access_token, requests_timeout=HTTP_TIMEOUT_SEC)

    async def _call(self, fn, *args, **kwargs):
        try:
            return await run_in_threadpool(fn, *args, **kwargs)
        except SpotifyException as e:
            logger.debug("Spotify %s failed: %s %s", fn.__name__, e.http_status, e.msg)
            raise _translate(e) from e

    async def play(self) -> None:
        await self._call(self._sp.start_playback)

    async def pause(self) -> None:
        await self._call(self._sp.pause_playback)

    async def next(self) -> None:
        await self._call(self._sp.next_track)

    async def previous(self) -> None:
        await self._call(self._sp.previous_track)

    async def current_state(self) -> PlaybackSnapshot:
        return _map_playback(await self._call(self._sp.current_playback))

    async def list_devices(self) -> List[DeviceDescriptor]:
        data = await self._call(self._sp.devices)
        return [
            DeviceDescriptor(
                id=d.get("id") or "",
                name=d.get("name") or "Unknown device",
                type=d.get("type") or "Unknown",
            )
            for d in (data or {}).get("devices") or []
            if d.get("id")
        ]

    async def transfer_playback(self, device_ids: List[str]) -> None:
        # Spotify only accepts a single target device; play/pause state carries over
        if not device_ids:
            raise ProviderError("No device to transfer playback to")
        await self._call(self._sp.transfer_playback, device_ids[0], force_play=False)
