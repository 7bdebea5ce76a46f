"""Error taxonomy for provider calls, credentials and selection handling."""
from typing import Optional


class HudifyError(Exception):
    """Base class for errors raised by hudify services."""


class UnauthenticatedError(HudifyError):
    """No stored credentials for the user."""


class ReauthenticationRequiredError(HudifyError):
    """Token refresh failed; the user has to link the account again."""


class ProviderError(HudifyError):
    """Playback provider rejected a request."""

    def __init__(self, message: Optional[str] = None, status: Optional[int] = None) -> None:
        super().__init__(message or "provider error")
        self.message = message
        self.status = status


class NoActiveDeviceError(ProviderError):
    """Provider has no device to act on."""


class InvalidKeyError(HudifyError):
    """Encryption key is missing or not 32 bytes."""


class DecryptionError(HudifyError):
    """Stored ciphertext is malformed or fails authentication."""


class MalformedCredentialError(HudifyError):
    """Stored credential entry has the wrong shape."""


class PersistenceError(HudifyError):
    """Credential file could not be written."""


class InvalidSelectionError(HudifyError):
    """Spoken device selection has no number or is out of range."""


class LookupNotFoundError(HudifyError):
    """Song lookup returned no match."""
