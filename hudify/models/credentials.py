"""OAuth credentials for the playback provider."""
from dataclasses import dataclass
from typing import Optional


@dataclass
class Credentials:
    """Plaintext tokens; expires_at is epoch milliseconds."""
    access_token: str
    refresh_token: str
    expires_at: int


@dataclass(frozen=True)
class TokenGrant:
    """Result of a code exchange or token refresh."""
    access_token: str
    expires_in_seconds: int
    refresh_token: Optional[str] = None
