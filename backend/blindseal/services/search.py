"""Search service — blind index keyword search over encrypted documents."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import func
from sqlmodel import Session, col, select

from blindseal.models.document import DocumentKind, EncryptedDocument
from blindseal.models.search_token import SearchToken
from blindseal.services.content import open_content
from blindseal.services.encryption import EncryptionService

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 50
DOCUMENT_KINDS: frozenset[str] = frozenset({"message", "email"})


@dataclass(frozen=True, slots=True)
class SearchHit:
    """A single search result with decrypted content."""
    document_id: str
    kind: str
    content: str | None   # plaintext, or the decryption-failed placeholder
    matched_tokens: int   # how many query tokens matched
    created_at: datetime


class SearchService:
    """Store encrypted documents and find them by exact keyword, without decrypting."""

    __slots__ = ("encryption_service",)

    def __init__(self, encryption_service: EncryptionService) -> None:
        self.encryption_service = encryption_service

    def query_hashes(self, query: str, user_id: int) -> list[str]:
        """Blind index entries for the keywords of a query.

        Uses the same tokenizer as indexing, so a query of stop words or
        short words yields no hashes at all.
        """
        keywords = self.encryption_service.extract_keywords(query)
        return self.encryption_service.create_search_index(keywords, user_id)

    def store_document(
        self,
        session: Session,
        text: str,
        user_id: int,
        kind: DocumentKind = "message",
    ) -> EncryptedDocument:
        """Encrypt ``text``, persist it and its blind index tokens."""
        if kind not in DOCUMENT_KINDS:
            raise ValueError(f"Unknown document kind: {kind!r}")
        payload = self.encryption_service.encrypt(text, user_id)
        document = EncryptedDocument(
            user_id=user_id,
            kind=kind,
            encrypted_data=payload.encrypted_data,
            iv=payload.iv,
            tag=payload.tag,
        )
        session.add(document)
        session.flush()  # tokens reference the document row
        self._add_tokens(session, document.id, text, user_id)
        session.commit()
        session.refresh(document)
        return document

    def reindex_document(
        self, session: Session, document: EncryptedDocument, text: str
    ) -> int:
        """Replace a document's ciphertext and tokens after an edit.

        Returns the number of tokens now stored for it.
        """
        document.set_payload(self.encryption_service.encrypt(text, document.user_id))
        document.updated_at = datetime.now(timezone.utc)
        session.add(document)
        self._delete_tokens(session, document.id)
        count = self._add_tokens(session, document.id, text, document.user_id)
        session.commit()
        session.refresh(document)
        return count

    def search(
        self,
        session: Session,
        query: str,
        user_id: int,
        kind: DocumentKind | None = None,
        limit: int = DEFAULT_LIMIT,
    ) -> list[SearchHit]:
        """Find the user's documents containing any query keyword.

        Ranked by number of matched tokens, then newest first. Content comes
        back decrypted.
        """
        token_hmacs = self.query_hashes(query, user_id)
        if not token_hmacs:
            return []

        match_count = func.count(func.distinct(SearchToken.token_hmac)).label("match_count")
        statement = (
            select(EncryptedDocument, match_count)
            .join(SearchToken, col(SearchToken.document_id) == col(EncryptedDocument.id))
            .where(col(SearchToken.token_hmac).in_(token_hmacs))
            .where(col(EncryptedDocument.user_id) == user_id)
            .where(col(EncryptedDocument.deleted_at).is_(None))
        )
        if kind is not None:
            statement = statement.where(col(EncryptedDocument.kind) == kind)
        statement = (
            statement.group_by(col(EncryptedDocument.id))
            .order_by(match_count.desc(), col(EncryptedDocument.created_at).desc())
            .limit(limit)
        )

        hits = [
            SearchHit(
                document_id=document.id,
                kind=document.kind,
                content=open_content(self.encryption_service, document.payload, user_id),
                matched_tokens=matched,
                created_at=document.created_at,
            )
            for document, matched in session.exec(statement).all()
        ]
        logger.debug("Blind index search for user %s matched %d documents", user_id, len(hits))
        return hits

    def delete_document_tokens(self, session: Session, document_id: str) -> None:
        """Delete all search tokens for a document."""
        self._delete_tokens(session, document_id)
        session.commit()

    def _add_tokens(self, session: Session, document_id: str, text: str, user_id: int) -> int:
        token_hmacs = self.encryption_service.index_content(text, user_id)
        for token_hmac in token_hmacs:
            session.add(SearchToken(document_id=document_id, token_hmac=token_hmac))
        return len(token_hmacs)

    def _delete_tokens(self, session: Session, document_id: str) -> None:
        tokens = session.exec(
            select(SearchToken).where(col(SearchToken.document_id) == document_id)
        ).all()
        for token in tokens:
            session.delete(token)
        session.flush()
