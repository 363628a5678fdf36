"""Per-user encryption service for blindseal.

High-level, domain-aware service that provides encrypt/decrypt/search-token
operations: AES-256-GCM under a PBKDF2-derived key per user, plus a blind
index for keyword search over the encrypted content.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from cryptography.exceptions import InvalidTag

from blindseal.config import ConfigurationError, Settings
from blindseal.key_cache import KeyCache
from blindseal.services.blind_index import BlindIndexer
from blindseal.services.tokenizer import extract_keywords
from blindseal.utils.crypto import (
    aes_gcm_open,
    aes_gcm_seal,
    b64decode,
    b64encode,
    derive_user_key,
    secret_fingerprint,
)

logger = logging.getLogger(__name__)

# Bound into every seal/open. Changing the scheme means changing this tag,
# so old ciphertexts fail authentication instead of decrypting wrongly.
SCHEME_AAD = b"ElektrineV1"

PAYLOAD_FIELDS = ("encrypted_data", "iv", "tag")


class DecryptionFailed(Exception):
    """Raised when a payload cannot be opened.

    One exception and one message for every cause (bad tag, wrong user,
    malformed base64, truncated fields) so callers cannot be used as an
    oracle.
    """

    def __init__(self) -> None:
        super().__init__("decryption_failed")


@dataclass(frozen=True, slots=True)
class EncryptedPayload:
    """Sealed content as three independently base64-encoded fields."""

    encrypted_data: str
    iv: str  # 12-byte GCM nonce
    tag: str  # 16-byte GCM authentication tag

    def to_dict(self) -> dict[str, str]:
        return {
            "encrypted_data": self.encrypted_data,
            "iv": self.iv,
            "tag": self.tag,
        }

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> EncryptedPayload:
        """Build a payload from a storage row or JSON object.

        Raises DecryptionFailed if a field is missing or not a string.
        """
        try:
            values = [data[name] for name in PAYLOAD_FIELDS]
        except (KeyError, TypeError):
            raise DecryptionFailed() from None
        if not all(isinstance(v, str) for v in values):
            raise DecryptionFailed()
        return cls(*values)


class EncryptionService:
    """Encrypt, decrypt and blind-index content per user.

    All key material derives from one master secret. Per-user keys are
    derived on first use and memoized in the injected KeyCache, under a
    namespace of this secret, so one cache can back several services.
    """

    __slots__ = ("_master_secret", "_key_salt", "_fingerprint", "_key_cache", "_indexer")

    def __init__(
        self,
        master_secret: str | bytes,
        key_salt: str | bytes,
        search_salt: str | bytes,
        key_cache: KeyCache | None = None,
    ) -> None:
        if not master_secret:
            raise ConfigurationError("Encryption master secret is not configured")
        if not key_salt:
            raise ConfigurationError("Encryption key salt is not configured")
        if not search_salt:
            raise ConfigurationError("Encryption search salt is not configured")
        self._master_secret = master_secret
        self._key_salt = key_salt
        self._fingerprint = secret_fingerprint(master_secret, key_salt)
        self._key_cache = key_cache if key_cache is not None else KeyCache()
        if isinstance(search_salt, str):
            search_salt = search_salt.encode("utf-8")
        self._indexer = BlindIndexer(self.key_for, search_salt)

    @classmethod
    def from_settings(cls, settings: Settings, key_cache: KeyCache | None = None) -> EncryptionService:
        return cls(
            settings.encryption_master_secret,
            settings.encryption_key_salt,
            settings.encryption_search_salt,
            key_cache=key_cache,
        )

    @property
    def key_cache(self) -> KeyCache:
        return self._key_cache

    def key_for(self, user_id: int) -> bytes:
        """Return the 32-byte key of ``user_id``, deriving it on first use."""
        return self._key_cache.get_or_derive(
            self.cache_key(user_id),
            lambda: derive_user_key(self._master_secret, self._key_salt, user_id),
        )

    def cache_key(self, user_id: int) -> tuple[str, int]:
        """Key-cache entry of ``user_id`` under this service's secret."""
        return (self._fingerprint, user_id)

    def invalidate_key(self, user_id: int) -> bool:
        """Drop the cached key of ``user_id``. True if one was cached."""
        return self._key_cache.invalidate(self.cache_key(user_id))

    # ── AEAD ─────────────────────────────────────────────────────────

    def encrypt(self, plaintext: str | bytes, user_id: int) -> EncryptedPayload:
        """Seal plaintext under the user's key with a fresh random IV."""
        if isinstance(plaintext, str):
            plaintext = plaintext.encode("utf-8")
        ciphertext, iv, tag = aes_gcm_seal(self.key_for(user_id), plaintext, SCHEME_AAD)
        return EncryptedPayload(
            encrypted_data=b64encode(ciphertext),
            iv=b64encode(iv),
            tag=b64encode(tag),
        )

    def decrypt_bytes(
        self, payload: EncryptedPayload | Mapping[str, Any], user_id: int
    ) -> bytes:
        """Open a payload and return the raw plaintext bytes.

        Raises DecryptionFailed on any failure, whatever the cause.
        """
        if not isinstance(payload, EncryptedPayload):
            payload = EncryptedPayload.from_mapping(payload)
        try:
            return aes_gcm_open(
                self.key_for(user_id),
                b64decode(payload.encrypted_data),
                b64decode(payload.iv),
                b64decode(payload.tag),
                SCHEME_AAD,
            )
        except (InvalidTag, ValueError):
            logger.warning("Decryption failed for user %s", user_id)
            raise DecryptionFailed() from None

    def decrypt(self, payload: EncryptedPayload | Mapping[str, Any], user_id: int) -> str:
        """Open a payload and return the UTF-8 plaintext.

        Raises DecryptionFailed on any failure, whatever the cause.
        """
        data = self.decrypt_bytes(payload, user_id)
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError:
            raise DecryptionFailed() from None

    # ── Blind index ──────────────────────────────────────────────────

    def extract_keywords(self, text: str | None) -> list[str]:
        return extract_keywords(text)

    def hash_keyword(self, term: str, user_id: int) -> str:
        """Generate the blind index entry for one search term (case-insensitive)."""
        return self._indexer.hash_token(term, user_id)

    def create_search_index(self, keywords: Iterable[str], user_id: int) -> list[str]:
        return self._indexer.index_tokens(keywords, user_id)

    def index_content(self, text: str | None, user_id: int) -> list[str]:
        """Generate blind index entries for every keyword in ``text``."""
        return self.create_search_index(extract_keywords(text), user_id)
