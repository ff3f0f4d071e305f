"""SQLModel database models."""

from __future__ import annotations

import json
import uuid
from datetime import datetime

from sqlmodel import Field, SQLModel

from edushare.content.models import ContentRecord, ContentStatus


def _new_id() -> str:
    return uuid.uuid4().hex


class ContentRecordRow(SQLModel, table=True):
    """Persisted submission: metadata, moderation status and tags."""

    __tablename__ = "content"

    id: str = Field(default_factory=_new_id, primary_key=True)
    title: str
    description: str
    file_url: str
    file_type: str
    owner_id: str = Field(index=True)
    is_paid: bool = False
    tags_json: str = "[]"
    status: str = Field(default="pending", index=True)  # pending | approved | rejected | archived
    reason: str = ""
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    def to_record(self) -> ContentRecord:
        return ContentRecord(
            id=self.id,
            title=self.title,
            description=self.description,
            file_url=self.file_url,
            file_type=self.file_type,
            owner_id=self.owner_id,
            is_paid=self.is_paid,
            tags=json.loads(self.tags_json or "[]"),
            status=ContentStatus(self.status),
            reason=self.reason,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class UserProfile(SQLModel, table=True):
    """Profile created on a user's first sign-in."""

    __tablename__ = "users"

    uid: str = Field(primary_key=True)
    email: str
    display_name: str | None = None
    created_at: datetime = Field(default_factory=datetime.now)
    followed_topics_json: str = "[]"

    @property
    def followed_topics(self) -> list[str]:
        return json.loads(self.followed_topics_json or "[]")
