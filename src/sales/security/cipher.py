"""Field-level encryption for PII stored on orders.

Each value is encrypted independently with AES-256-GCM under a fresh random
nonce, so two encryptions of the same plaintext never produce the same token.
Tokens are rendered as ``<nonce hex>:<ciphertext hex>``; the ciphertext part
ends with the 16-byte authentication tag, so a flipped byte anywhere in the
token fails decryption instead of yielding altered plaintext.

Decryption is best-effort: a token that cannot be decrypted (malformed,
corrupted, or written under another key) is handed back untouched and the
failure is logged. Rotating the key therefore turns every previously stored
token into such a failure; re-encrypting old data is an operational task.
"""

import hashlib
import os
from dataclasses import dataclass

import structlog
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

logger = structlog.get_logger(__name__)

KEY_SIZE = 32
IV_SIZE = 12
TAG_SIZE = 16
TOKEN_SEPARATOR = ":"


@dataclass(frozen=True)
class Revealed:
    """Outcome of decrypting one stored token."""

    value: str | None
    failed: bool = False


class FieldCipher:
    """Symmetric cipher for individual string fields."""

    def __init__(self, key: bytes) -> None:
        if len(key) != KEY_SIZE:
            raise ValueError(f"Field cipher key must be {KEY_SIZE} bytes")
        self._key = key

    def __repr__(self) -> str:
        return "FieldCipher(key=<redacted>)"

    @classmethod
    def from_secret(cls, secret: str) -> "FieldCipher":
        """Build a cipher from configuration.

        A 64-character hex string is used as the raw key; any other secret is
        treated as a passphrase and stretched to 32 bytes with SHA-256.
        """
        if not secret:
            raise ValueError("Field cipher secret must not be empty")
        if len(secret) == KEY_SIZE * 2:
            try:
                return cls(bytes.fromhex(secret))
            except ValueError:
                pass
        return cls(hashlib.sha256(secret.encode("utf-8")).digest())

    def encrypt(self, plaintext: str | None) -> str | None:
        """Encrypt a field value. Empty values are returned unchanged."""
        if not plaintext:
            return plaintext

        iv = os.urandom(IV_SIZE)
        ciphertext = AESGCM(self._key).encrypt(iv, plaintext.encode("utf-8"), None)
        return f"{iv.hex()}{TOKEN_SEPARATOR}{ciphertext.hex()}"

    def reveal(self, token: str | None) -> Revealed:
        """Decrypt a token, reporting whether decryption actually succeeded."""
        if not token:
            return Revealed(value=token)

        iv_hex, separator, body_hex = token.partition(TOKEN_SEPARATOR)
        if not separator or not iv_hex or not body_hex:
            return self._failure(token, "MalformedToken")

        try:
            iv = bytes.fromhex(iv_hex)
            body = bytes.fromhex(body_hex)
        except ValueError:
            return self._failure(token, "MalformedToken")
        if len(iv) != IV_SIZE or len(body) <= TAG_SIZE:
            return self._failure(token, "MalformedToken")

        try:
            data = AESGCM(self._key).decrypt(iv, body, None)
            return Revealed(value=data.decode("utf-8"))
        except InvalidTag:
            # Wrong key or altered bytes
            return self._failure(token, "InvalidTag")
        except UnicodeDecodeError as exc:
            return self._failure(token, type(exc).__name__)

    def decrypt(self, token: str | None) -> str | None:
        """Decrypt a token, falling back to the token itself on failure."""
        return self.reveal(token).value

    def _failure(self, token: str, reason: str) -> Revealed:
        logger.warning("field_decryption_failed", reason=reason, token_length=len(token))
        return Revealed(value=token, failed=True)
