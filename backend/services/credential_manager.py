"""Keychain storage for the upstream access token.

Settings consult the keychain before the environment for every key in
``CREDENTIAL_KEYS``. ``keyring`` is imported lazily; without it (or without
a usable backend) lookups return ``None`` and the ``.env`` value applies.
"""

import logging
from types import ModuleType
from typing import Optional

logger = logging.getLogger(__name__)

SERVICE_NAME = "catalog-sync"

CREDENTIAL_KEYS: frozenset[str] = frozenset({"MAGENTO_ACCESS_TOKEN"})


def _keyring() -> Optional[ModuleType]:
    try:
        import keyring
    except ImportError:
        return None
    return keyring


def _accepts(key: str, action: str) -> bool:
    if key in CREDENTIAL_KEYS:
        return True
    logger.warning("Refusing to %s %s: not a credential key", action, key)
    return False


def get_credential(key: str) -> Optional[str]:
    """Look up a stored credential, or None when absent or unreadable."""
    backend = _keyring()
    if backend is None:
        return None
    try:
        return backend.get_password(SERVICE_NAME, key)
    except Exception as e:
        # keyring backends raise their own error types (locked keychain, no D-Bus, ...)
        logger.debug("Keychain lookup of %s failed: %s", key, e)
        return None


def set_credential(key: str, value: str) -> bool:
    """Store a credential.

    Returns:
        True if the keychain accepted the value
    """
    if not _accepts(key, "store"):
        return False
    if not value or not value.strip():
        logger.warning("Refusing to store an empty %s", key)
        return False

    backend = _keyring()
    if backend is None:
        logger.warning("keyring is not installed, %s was not stored", key)
        return False
    try:
        backend.set_password(SERVICE_NAME, key, value.strip())
    except Exception as e:
        logger.warning("Keychain rejected %s: %s", key, e)
        return False
    logger.info("Stored %s in keychain", key)
    return True


def delete_credential(key: str) -> bool:
    """Remove a stored credential.

    Returns:
        True if an entry was removed
    """
    if not _accepts(key, "delete"):
        return False

    backend = _keyring()
    if backend is None:
        return False
    try:
        backend.delete_password(SERVICE_NAME, key)
    except Exception as e:
        logger.debug("No %s removed from keychain: %s", key, e)
        return False
    logger.info("Removed %s from keychain", key)
    return True
