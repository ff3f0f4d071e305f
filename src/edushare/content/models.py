"""Content lifecycle types and the tag/MIME helpers shared by the pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterable


class ContentStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    ARCHIVED = "archived"

    @property
    def is_terminal(self) -> bool:
        """True once no automated transition will touch the record again."""
        return self is not ContentStatus.PENDING


class ContentKind(str, Enum):
    """Coarse media category handed to the tagger."""

    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    PDF = "pdf"


class PipelineStage(str, Enum):
    """Client-visible progress of one submission."""

    UPLOADING = "uploading"
    VERIFYING = "verifying"
    TAGGING = "tagging"
    COMPLETED = "completed"


# Allowed status moves. Archiving is possible from any non-archived state.
_TRANSITIONS: dict[ContentStatus, set[ContentStatus]] = {
    ContentStatus.PENDING: {
        ContentStatus.APPROVED,
        ContentStatus.REJECTED,
        ContentStatus.ARCHIVED,
    },
    ContentStatus.APPROVED: {ContentStatus.ARCHIVED},
    ContentStatus.REJECTED: {ContentStatus.ARCHIVED},
    ContentStatus.ARCHIVED: set(),
}


def can_transition(current: ContentStatus, target: ContentStatus) -> bool:
    return target in _TRANSITIONS[current]


def content_kind_for_mime(mime_type: str) -> ContentKind:
    """Map a MIME type onto the tagger's content categories."""
    mime_type = (mime_type or "").lower()
    if mime_type.startswith("image/"):
        return ContentKind.IMAGE
    if mime_type.startswith("video/"):
        return ContentKind.VIDEO
    if mime_type == "application/pdf":
        return ContentKind.PDF
    return ContentKind.TEXT


def normalize_tags(tags: Iterable[str]) -> list[str]:
    """Strip, lower-case and de-duplicate tags, keeping first-seen order."""
    seen: set[str] = set()
    result: list[str] = []
    for tag in tags:
        cleaned = tag.strip().lower()
        if cleaned and cleaned not in seen:
            seen.add(cleaned)
            result.append(cleaned)
    return result


def merge_tags(user_tags: Iterable[str], ai_tags: Iterable[str]) -> list[str]:
    """Union of user and AI tags. User tags come first."""
    return normalize_tags([*user_tags, *ai_tags])


@dataclass
class ContentRecord:
    """Detached snapshot of a persisted submission.

    Listeners and callers get these instead of live ORM rows, so a snapshot
    never changes under them after the store's session is closed.
    """

    id: str
    title: str
    description: str
    file_url: str
    file_type: str
    owner_id: str
    is_paid: bool = False
    tags: list[str] = field(default_factory=list)
    status: ContentStatus = ContentStatus.PENDING
    reason: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def content_kind(self) -> ContentKind:
        return content_kind_for_mime(self.file_type)
