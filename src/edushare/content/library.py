"""Owner actions on submitted content and the public catalogue."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from edushare.config import Settings
from edushare.content.models import ContentRecord, ContentStatus
from edushare.content.submission import EditRequest, validate_edit
from edushare.errors import (
    ContentUnavailableError,
    PermissionDeniedError,
    RecordNotFoundError,
    ValidationError,
)
from edushare.session import SessionContext
from edushare.storage.blobs import BlobStorage
from edushare.storage.records import ContentQuery, ContentRecordStore, Subscription, where

logger = logging.getLogger(__name__)


@dataclass
class ContentView:
    """What a viewer gets for one approved record."""

    record: ContentRecord
    locked: bool


def my_content_query(session: SessionContext) -> ContentQuery:
    return ContentQuery(
        (
            where("owner_id", "==", session.user_id),
            where("status", "!=", ContentStatus.ARCHIVED),
        )
    )


APPROVED_QUERY = ContentQuery((where("status", "==", ContentStatus.APPROVED),))


class ContentLibrary:
    """My-content list, archive/delete/edit, and browsing approved content."""

    def __init__(
        self, settings: Settings, store: ContentRecordStore, storage: BlobStorage
    ) -> None:
        self._settings = settings
        self._store = store
        self._storage = storage

    # -- owner views -------------------------------------------------------

    def my_content(self, session: SessionContext) -> list[ContentRecord]:
        return self._store.query(*my_content_query(session).filters)

    def subscribe_my_content(
        self,
        session: SessionContext,
        on_change: Callable[[list[ContentRecord]], None],
    ) -> Subscription:
        return self._store.subscribe(my_content_query(session), on_change)

    def owned(self, session: SessionContext, record_id: str) -> ContentRecord:
        record = self._store.get(record_id)
        if record is None:
            raise RecordNotFoundError(f"No content with id {record_id}")
        if not session.owns(record.owner_id):
            raise PermissionDeniedError("You can only change content you uploaded.")
        return record

    # -- owner actions -----------------------------------------------------

    def archive(self, session: SessionContext, record_id: str) -> ContentRecord:
        """Hide a record from every listing. The record and its blob stay."""
        self.owned(session, record_id)
        record = self._store.update(record_id, status=ContentStatus.ARCHIVED)
        logger.info("Archived %s", record_id)
        return record

    def delete(self, session: SessionContext, record_id: str) -> None:
        """Delete the blob, then the record.

        Blob deletion is best-effort: a failure is logged and the record is
        deleted anyway.
        """
        record = self.owned(session, record_id)
        if record.file_url:
            try:
                self._storage.delete(record.file_url)
            except Exception:
                logger.warning(
                    "Could not delete blob %s for record %s",
                    record.file_url,
                    record_id,
                    exc_info=True,
                )
        self._store.delete(record_id)
        logger.info("Deleted %s", record_id)

    def edit(
        self, session: SessionContext, record_id: str, request: EditRequest
    ) -> ContentRecord:
        """Rewrite title, description, tags and paywall flag only."""
        self.owned(session, record_id)
        errors = validate_edit(request, self._settings)
        if errors:
            raise ValidationError(errors)
        return self._store.update(
            record_id,
            title=request.title.strip(),
            description=request.description.strip(),
            tags=request.tags,
            is_paid=request.is_paid,
        )

    # -- public catalogue --------------------------------------------------

    def browse(self, tag: str | None = None) -> list[ContentRecord]:
        records = self._store.query(*APPROVED_QUERY.filters)
        if tag:
            wanted = tag.strip().lower()
            records = [r for r in records if wanted in r.tags]
        return records

    def subscribe_approved(
        self, on_change: Callable[[list[ContentRecord]], None]
    ) -> Subscription:
        return self._store.subscribe(APPROVED_QUERY, on_change)

    def view(self, record_id: str, session: SessionContext | None = None) -> ContentView:
        record = self._store.get(record_id)
        if record is None:
            raise RecordNotFoundError(f"No content with id {record_id}")
        if record.status != ContentStatus.APPROVED:
            raise ContentUnavailableError("This content is not available for viewing.")
        signed_in = session is not None and bool(session.user_id)
        return ContentView(record=record, locked=record.is_paid and not signed_in)

    def all_topics(self) -> list[str]:
        return sorted({tag for record in self.browse() for tag in record.tags})
