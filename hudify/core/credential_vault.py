"""Encrypted per-user OAuth credentials with refresh-before-use (JSON file)."""
import json
import logging
import os
import tempfile
import threading
import time
from pathlib import Path
from typing import Awaitable, Callable, Dict, Optional

from hudify.config import TOKEN_REFRESH_MARGIN_MS
from hudify.core.crypto import TokenCipher
from hudify.core.errors import (
    DecryptionError,
    MalformedCredentialError,
    PersistenceError,
    ReauthenticationRequiredError,
    UnauthenticatedError,
)
from hudify.models.credentials import Credentials, TokenGrant

logger = logging.getLogger(__name__)

Refresher = Callable[[str], Awaitable[TokenGrant]]


def _parse_entry(user_id: str, raw: object) -> Credentials:
    """Validate one stored entry; tokens stay encrypted."""
    if not isinstance(raw, dict):
        raise MalformedCredentialError(f"entry for {user_id} is not an object")
    access, refresh = raw.get("accessToken"), raw.get("refreshToken")
    if not isinstance(access, str) or not isinstance(refresh, str):
        raise MalformedCredentialError(f"entry for {user_id} is missing token fields")
    expires_at = raw.get("expiresAt", 0)
    if isinstance(expires_at, bool) or not isinstance(expires_at, (int, float)):
        raise MalformedCredentialError(f"entry for {user_id} has a bad expiresAt")
    return Credentials(access_token=access, refresh_token=refresh, expires_at=int(expires_at))


class CredentialVault:
    """User id -> credentials, encrypted in memory and on disk.

    Every mutation rewrites the whole document (temp file + atomic rename,
    one writer at a time). A failed write is logged and the in-memory value
    is kept.
    """

    def __init__(
        self,
        path: Path,
        cipher: TokenCipher,
        refresher: Optional[Refresher] = None,
        clock: Callable[[], float] = time.time,
        refresh_margin_ms: int = TOKEN_REFRESH_MARGIN_MS,
    ) -> None:
        self._path = Path(path)
        self._cipher = cipher
        self._refresher = refresher
        self._clock = clock
        self._refresh_margin_ms = refresh_margin_ms
        self._entries: Dict[str, Credentials] = {}
        self._write_lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def load(self) -> None:
        """Load entries from disk, skipping any that are malformed or undecryptable."""
        if not self._path.exists():
            logger.info("No saved credentials file at %s", self._path)
            self._entries = {}
            return
        try:
            content = self._path.read_text(encoding="utf-8")
        except OSError as e:
            logger.error("Could not read credentials file %s: %s", self._path, e)
            self._entries = {}
            return
        if not content.strip():
            logger.info("Credentials file is empty")
            self._entries = {}
            return
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            logger.error("Credentials file is not valid JSON: %s", e)
            self._entries = {}
            return
        if not isinstance(data, dict):
            logger.error("Credentials file does not hold an object; ignoring it")
            self._entries = {}
            return

        loaded: Dict[str, Credentials] = {}
        for user_id, raw in data.items():
            try:
                entry = _parse_entry(user_id, raw)
                # Decrypt once so a bad key or tampered entry is dropped now, not on first use
                self._cipher.decrypt(entry.access_token)
                self._cipher.decrypt(entry.refresh_token)
            except MalformedCredentialError as e:
                logger.warning("Skipping stored credentials: %s", e)
                continue
            except DecryptionError as e:
                logger.warning("Skipping credentials for %s, decryption failed: %s", user_id, e)
                continue
            loaded[user_id] = entry
        self._entries = loaded
        logger.info("Loaded credentials for %d user(s)", len(loaded))

    def get(self, user_id: str) -> Optional[Credentials]:
        """Return plaintext credentials for user_id, or None."""
        stored = self._entries.get(user_id)
        if stored is None:
            return None
        return Credentials(
            access_token=self._cipher.decrypt(stored.access_token),
            refresh_token=self._cipher.decrypt(stored.refresh_token),
            expires_at=stored.expires_at,
        )

    def set(self, user_id: str, credentials: Credentials) -> None:
        self._entries[user_id] = Credentials(
            access_token=self._cipher.encrypt(credentials.access_token),
            refresh_token=self._cipher.encrypt(credentials.refresh_token),
            expires_at=credentials.expires_at,
        )
        self._persist()

    def remove(self, user_id: str) -> bool:
        """Forget user_id's credentials. Returns True if there were any."""
        if self._entries.pop(user_id, None) is None:
            return False
        self._persist()
        logger.info("Removed credentials for %s", user_id)
        return True

    def has_token(self, user_id: str) -> bool:
        return user_id in self._entries

    def now_ms(self) -> int:
        return int(self._clock() * 1000)

    async def refresh_if_needed(self, user_id: str) -> bool:
        """Refresh the access token when it expires within the margin.

        Returns True if the stored credentials are usable afterwards. On a
        failed refresh the stale entry is left in place and False is returned.
        """
        stored = self._entries.get(user_id)
        try:
            credentials = self.get(user_id)
        except DecryptionError as e:
            logger.error("Stored token for %s is unreadable: %s", user_id, e)
            return False
        if credentials is None:
            return False
        if self.now_ms() <= credentials.expires_at - self._refresh_margin_ms:
            return True
        if self._refresher is None:
            logger.warning("Token for %s expired and no refresher is configured", user_id)
            return False
        try:
            grant = await self._refresher(credentials.refresh_token)
        except Exception as e:
            logger.warning("Token refresh failed for %s: %s", user_id, e)
            return False
        current = self._entries.get(user_id)
        if current is None:
            logger.info("Credentials for %s were removed during refresh; discarding new token", user_id)
            return False
        if current is not stored:
            # Relinked while the refresh was in flight; the newer entry wins
            return True
        self.set(
            user_id,
            Credentials(
                access_token=grant.access_token,
                refresh_token=grant.refresh_token or credentials.refresh_token,
                expires_at=self.now_ms() + grant.expires_in_seconds * 1000,
            ),
        )
        logger.info("Refreshed access token for %s", user_id)
        return True

    async def access_token(self, user_id: str) -> str:
        """Usable access token for user_id, refreshed first if it is about to expire.

        Raises UnauthenticatedError when nothing is stored and
        ReauthenticationRequiredError when the refresh fails.
        """
        if not self.has_token(user_id):
            raise UnauthenticatedError(user_id)
        refreshed = await self.refresh_if_needed(user_id)
        credentials = self.get(user_id)
        if credentials is None:
            # Removed while the refresh was in flight
            raise UnauthenticatedError(user_id)
        if not refreshed:
            raise ReauthenticationRequiredError(user_id)
        return credentials.access_token

    def _persist(self) -> None:
        try:
            self._write_document()
        except PersistenceError as e:
            logger.error("Credentials not saved: %s", e)

    def _write_document(self) -> None:
        data = {
            user_id: {
                "accessToken": c.access_token,
                "refreshToken": c.refresh_token,
                "expiresAt": c.expires_at,
            }
            for user_id, c in self._entries.items()
        }
        with self._write_lock:
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp = tempfile.mkstemp(dir=self._path.parent, prefix=".tokens-", suffix=".tmp")
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as f:
                        json.dump(data, f, indent=2)
                    os.replace(tmp, self._path)
                except BaseException:
                    if os.path.exists(tmp):
                        os.unlink(tmp)
                    raise
            except OSError as e:
                raise PersistenceError(str(e)) from e
        logger.debug("Credentials saved (%d users)", len(data))
