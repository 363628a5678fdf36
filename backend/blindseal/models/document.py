from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal
from uuid import uuid4

from sqlalchemy import CheckConstraint
from sqlmodel import Field, SQLModel

from blindseal.services.encryption import EncryptedPayload

DocumentKind = Literal["message", "email"]


class EncryptedDocument(SQLModel, table=True):
    __tablename__ = "encrypted_documents"
    __table_args__ = (
        CheckConstraint("kind IN ('message', 'email')", name="ck_encrypted_documents_kind"),
    )

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    user_id: int = Field(index=True)  # owner; the key is derived from this id
    kind: str = Field(default="message")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # AES-256-GCM payload, each column base64
    encrypted_data: str
    iv: str
    tag: str

    # Soft delete
    deleted_at: datetime | None = Field(default=None)

    @property
    def payload(self) -> EncryptedPayload:
        return EncryptedPayload(encrypted_data=self.encrypted_data, iv=self.iv, tag=self.tag)

    def set_payload(self, payload: EncryptedPayload) -> None:
        self.encrypted_data = payload.encrypted_data
        self.iv = payload.iv
        self.tag = payload.tag
