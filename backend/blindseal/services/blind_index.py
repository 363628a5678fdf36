"""Blind index: deterministic one-way tokens for search over encrypted text.

An entry is base64(HMAC-SHA256(user_key || search_salt, lower(token))).
Equal ``(user_id, token)`` pairs always give equal entries, so a query term
can be matched against stored entries without decrypting anything. The
search salt keeps the HMAC key distinct from the AEAD key of the same user.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

from blindseal.utils.crypto import hmac_sha256_b64


class BlindIndexer:
    __slots__ = ("_key_for", "_search_salt")

    def __init__(self, key_for: Callable[[int], bytes], search_salt: bytes) -> None:
        """``key_for`` maps a user id to its derived key (normally the key cache)."""
        self._key_for = key_for
        self._search_salt = search_salt

    def hash_token(self, token: str, user_id: int) -> str:
        hmac_key = self._key_for(user_id) + self._search_salt
        return hmac_sha256_b64(hmac_key, token.lower().encode("utf-8"))

    def index_tokens(self, tokens: Iterable[str], user_id: int) -> list[str]:
        """Hash every token; the result holds no duplicate entries.

        Order follows first occurrence in ``tokens``.
        """
        hmac_key = self._key_for(user_id) + self._search_salt
        entries: dict[str, None] = {}
        for token in tokens:
            entries[hmac_sha256_b64(hmac_key, token.lower().encode("utf-8"))] = None
        return list(entries)
