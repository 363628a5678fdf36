"""Process-wide service providers."""

from __future__ import annotations

from functools import lru_cache

from blindseal.config import get_settings
from blindseal.key_cache import KeyCache
from blindseal.services.encryption import EncryptionService
from blindseal.services.search import SearchService


@lru_cache
def get_key_cache() -> KeyCache:
    return KeyCache()


@lru_cache
def get_encryption_service() -> EncryptionService:
    """The EncryptionService built from settings, sharing one KeyCache.

    Raises ConfigurationError (or a settings validation error in
    production) when the secrets are not provisioned.
    """
    return EncryptionService.from_settings(get_settings(), key_cache=get_key_cache())


def get_search_service() -> SearchService:
    return SearchService(get_encryption_service())
