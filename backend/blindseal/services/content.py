"""Helpers for callers that store encrypted message and mail bodies.

A stored record carries its encrypted payload(s) plus the blind index of the
plaintext. Reading a record back never raises on a bad payload: unreadable
content is replaced by a fixed placeholder.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from blindseal.services.encryption import DecryptionFailed, EncryptedPayload, EncryptionService

DECRYPTION_FAILED_PLACEHOLDER = "[Decryption failed]"

PayloadLike = EncryptedPayload | Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class SealedContent:
    payload: EncryptedPayload
    search_index: list[str]


@dataclass(frozen=True, slots=True)
class SealedMail:
    encrypted_text_body: EncryptedPayload | None = None
    encrypted_html_body: EncryptedPayload | None = None
    search_index: list[str] = field(default_factory=list)


def seal_content(service: EncryptionService, text: str | None, user_id: int) -> SealedContent | None:
    """Encrypt a message body and index it. Empty content is left alone (None)."""
    if not text:
        return None
    return SealedContent(
        payload=service.encrypt(text, user_id),
        search_index=service.index_content(text, user_id),
    )


def seal_mail_bodies(
    service: EncryptionService,
    text_body: str | None,
    html_body: str | None,
    user_id: int,
) -> SealedMail:
    """Encrypt each non-empty mail body separately.

    The index is built from the text body, or from the HTML body when the
    text body is None. An empty text body still wins over the HTML body, so
    such a mail is stored with an empty index.
    """
    if text_body is not None:
        search_content = text_body
    else:
        search_content = html_body or ""
    return SealedMail(
        encrypted_text_body=service.encrypt(text_body, user_id) if text_body else None,
        encrypted_html_body=service.encrypt(html_body, user_id) if html_body else None,
        search_index=service.index_content(search_content, user_id) if search_content else [],
    )


def open_content(service: EncryptionService, payload: PayloadLike | None, user_id: int) -> str | None:
    if payload is None:
        return None
    try:
        return service.decrypt(payload, user_id)
    except DecryptionFailed:
        return DECRYPTION_FAILED_PLACEHOLDER


def open_many(
    service: EncryptionService, payloads: Iterable[PayloadLike | None], user_id: int
) -> list[str | None]:
    return [open_content(service, payload, user_id) for payload in payloads]
