"""Per-user encryption at rest with blind-index keyword search."""
from __future__ import annotations

from blindseal.config import ConfigurationError, Settings, get_settings
from blindseal.key_cache import KeyCache
from blindseal.services.encryption import DecryptionFailed, EncryptedPayload, EncryptionService

__all__ = [
    "ConfigurationError",
    "DecryptionFailed",
    "EncryptedPayload",
    "EncryptionService",
    "KeyCache",
    "Settings",
    "get_settings",
]
