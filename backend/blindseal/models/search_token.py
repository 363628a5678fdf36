"""SearchToken model — blind index entries of an encrypted document."""
from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


class SearchToken(SQLModel, table=True):
    __tablename__ = "search_tokens"
    __table_args__ = (
        UniqueConstraint("document_id", "token_hmac", name="uq_search_tokens_document_token"),
    )

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    document_id: str = Field(foreign_key="encrypted_documents.id", index=True)
    token_hmac: str = Field(index=True)  # base64 HMAC-SHA256 of a normalized keyword
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
