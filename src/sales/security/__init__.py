"""Field cipher registry.

The cipher is process-wide: ``configure_cipher()`` loads the key once at
startup (from ``SALES_ENCRYPTION_KEY`` unless a secret is passed in) and the
repository receives it through ``get_cipher()``. ``set_cipher()`` and
``reset_cipher()`` exist for tests.
"""

import os

import structlog

from sales.security.cipher import FieldCipher, Revealed

logger = structlog.get_logger(__name__)

ENCRYPTION_KEY_ENV = "SALES_ENCRYPTION_KEY"

# Only ever used outside production, when no key is configured
_DEVELOPMENT_SECRET = "souk-sales-development-only-secret"

_current_cipher: FieldCipher | None = None


def configure_cipher(secret: str | None = None) -> FieldCipher:
    """Load the field cipher key and install the process-wide cipher."""
    global _current_cipher

    secret = secret or os.environ.get(ENCRYPTION_KEY_ENV)
    if not secret:
        if os.environ.get("PROTEAN_ENV") == "production":
            raise RuntimeError(f"{ENCRYPTION_KEY_ENV} must be set in production")
        logger.warning("encryption_key_missing", env_var=ENCRYPTION_KEY_ENV, fallback="development")
        secret = _DEVELOPMENT_SECRET

    _current_cipher = FieldCipher.from_secret(secret)
    return _current_cipher


def get_cipher() -> FieldCipher:
    """Return the configured cipher, configuring it from the environment on first use."""
    if _current_cipher is None:
        return configure_cipher()
    return _current_cipher


def set_cipher(cipher: FieldCipher) -> None:
    """Override the active cipher (useful for tests)."""
    global _current_cipher
    _current_cipher = cipher


def reset_cipher() -> None:
    """Forget the active cipher."""
    global _current_cipher
    _current_cipher = None


__all__ = [
    "FieldCipher",
    "Revealed",
    "configure_cipher",
    "get_cipher",
    "reset_cipher",
    "set_cipher",
]
