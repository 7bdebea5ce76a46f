"""Spotify OAuth: per-user login redirect, callback and unlink."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse, RedirectResponse

from hudify.api.state import AppState, get_state
from hudify.core.spotify_client import exchange_code, get_authorize_url
from hudify.models.credentials import Credentials

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/login/{user_id}")
def login(user_id: str):
    """Redirect to Spotify's consent page; user_id comes back as OAuth state."""
    auth_url = get_authorize_url(user_id)
    if auth_url is None:
        raise HTTPException(status_code=503, detail="Spotify is not configured on this server.")
    return RedirectResponse(url=auth_url)


@router.get("/callback")
async def spotify_callback(
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    app_state: AppState = Depends(get_state),
):
    """Exchange code for tokens, store them encrypted, then show the live session what is playing."""
    if error or not code or not state:
        logger.warning("OAuth callback without code/state (error=%s)", error)
        return HTMLResponse(
            "<body><p>Missing authorization code. Try logging in again from your glasses.</p></body>",
            status_code=400,
        )
    user_id = state
    try:
        grant = await run_in_threadpool(exchange_code, code)
    except Exception as e:
        logger.error("Authentication failed for %s: %s", user_id, e)
        return HTMLResponse(
            "<body><p>Authentication failed. Please try again.</p></body>",
            status_code=500,
        )
    vault = app_state.vault
    vault.set(
        user_id,
        Credentials(
            access_token=grant.access_token,
            refresh_token=grant.refresh_token or "",
            expires_at=vault.now_ms() + grant.expires_in_seconds * 1000,
        ),
    )
    logger.info("Spotify linked for %s", user_id)
    await app_state.machine.notify_linked(user_id)
    return HTMLResponse(
        "<body><p>Authentication successful! You can close this window and return to your glasses.</p></body>"
    )


@router.post("/logout/{user_id}")
def logout(user_id: str, app_state: AppState = Depends(get_state)):
    """Forget the user's stored Spotify tokens."""
    return {"ok": True, "removed": app_state.vault.remove(user_id)}
