"""Keyring-backed storage for data feed API keys.

Thin wrapper around ``keyring`` so the Twelve Data and OpenFIGI keys can
live in the OS keychain instead of ``.env``. Lookups never raise: a
missing or broken keyring backend just means the next settings source
(environment, ``.env``) supplies the value.
"""

import logging

import keyring
from keyring.errors import KeyringError

logger = logging.getLogger(__name__)

SERVICE_NAME = "etf-ledger"

CREDENTIAL_KEYS: frozenset[str] = frozenset(
    {
        "TWELVE_DATA_API_KEY",
        "OPENFIGI_API_KEY",
    }
)


def get_credential(key: str) -> str | None:
    """Return the stored value for ``key``, or ``None`` if unavailable."""
    try:
        return keyring.get_password(SERVICE_NAME, key)
    except (KeyringError, RuntimeError):
        logger.debug("keyring lookup failed for %s", key, exc_info=True)
        return None


def set_credential(key: str, value: str) -> bool:
    """Store a feed credential in the keychain.

    Only keys listed in :data:`CREDENTIAL_KEYS` are accepted, and the value
    must be non-blank.

    Returns:
        ``True`` if stored successfully, ``False`` otherwise.
    """
    if key not in CREDENTIAL_KEYS:
        logger.warning("Attempted to store non-credential key: %s", key)
        return False
    if not value or not value.strip():
        logger.warning("Attempted to store empty value for %s", key)
        return False

    try:
        keyring.set_password(SERVICE_NAME, key, value)
    except (KeyringError, RuntimeError):
        logger.warning("Failed to store %s in keychain", key, exc_info=True)
        return False
    logger.info("Stored %s in keychain", key)
    return True


def delete_credential(key: str) -> bool:
    """Remove a feed credential from the keychain."""
    if key not in CREDENTIAL_KEYS:
        logger.warning("Attempted to delete non-credential key: %s", key)
        return False

    try:
        keyring.delete_password(SERVICE_NAME, key)
    except (KeyringError, RuntimeError):
        logger.debug("Failed to delete %s from keychain", key, exc_info=True)
        return False
    logger.info("Deleted %s from keychain", key)
    return True


def list_credentials() -> dict[str, str]:
    """Return the feed credentials currently present in the keychain."""
    result: dict[str, str] = {}
    for key in sorted(CREDENTIAL_KEYS):
        value = get_credential(key)
        if value is not None:
            result[key] = value
    return result
