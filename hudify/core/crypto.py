"""AES-256-GCM token encryption; serialized as ivHex:authTagHex:cipherHex."""
import base64
import binascii
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from hudify.core.errors import DecryptionError, InvalidKeyError

KEY_LENGTH = 32
IV_LENGTH = 16
TAG_LENGTH = 16


class TokenCipher:
    """Encrypts and decrypts token strings with a fixed 256-bit key.

    The key is given base64-encoded and must decode to exactly 32 bytes;
    anything else raises InvalidKeyError so tokens are never written with
    a weak or missing key.
    """

    def __init__(self, key_b64: str) -> None:
        if not key_b64:
            raise InvalidKeyError("TOKEN_ENCRYPTION_KEY is not set")
        try:
            key = base64.b64decode(key_b64, validate=True)
        except (binascii.Error, ValueError) as e:
            raise InvalidKeyError("TOKEN_ENCRYPTION_KEY is not valid base64") from e
        if len(key) != KEY_LENGTH:
            raise InvalidKeyError(
                f"TOKEN_ENCRYPTION_KEY must decode to {KEY_LENGTH} bytes, got {len(key)}"
            )
        self._aead = AESGCM(key)

    def encrypt(self, text: str) -> str:
        iv = os.urandom(IV_LENGTH)
        sealed = self._aead.encrypt(iv, text.encode("utf-8"), None)
        cipher, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
        return f"{iv.hex()}:{tag.hex()}:{cipher.hex()}"

    def decrypt(self, payload: str) -> str:
        parts = payload.split(":")
        if len(parts) != 3:
            raise DecryptionError("encrypted value must have 3 ':'-separated parts")
        try:
            iv, tag, cipher = (bytes.fromhex(p) for p in parts)
        except ValueError as e:
            raise DecryptionError("encrypted value is not hex") from e
        if len(iv) != IV_LENGTH or len(tag) != TAG_LENGTH:
            raise DecryptionError("bad IV or auth tag length")
        try:
            plain = self._aead.decrypt(iv, cipher + tag, None)
        except InvalidTag as e:
            raise DecryptionError("authentication failed") from e
        try:
            return plain.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecryptionError("decrypted value is not UTF-8") from e
