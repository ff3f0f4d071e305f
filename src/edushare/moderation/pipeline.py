"""Upload, moderate and tag one submission.

The pipeline walks a submission through four stages::

    uploading -> verifying -> tagging -> completed

and the persisted record through ``pending -> approved | rejected``. Every
stage is a write to the record store, so a client watching the record sees
progress without waiting for this call to return.

Nothing here retries. A failed classifier or tagger call leaves the record
``pending``; a failed record write after a successful upload leaves the blob
orphaned. Both are surfaced to the user and left for manual cleanup.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from edushare.config import Settings
from edushare.content.models import (
    ContentRecord,
    ContentStatus,
    PipelineStage,
    content_kind_for_mime,
    merge_tags,
)
from edushare.content.submission import SubmissionRequest, build_submission
from edushare.errors import EdushareError, UploadError
from edushare.moderation.classifier import ContentClassifier
from edushare.moderation.tagger import ContentTagger
from edushare.session import SessionContext
from edushare.storage.blobs import BlobStorage
from edushare.storage.records import ContentRecordStore

logger = logging.getLogger(__name__)

StageCallback = Callable[[PipelineStage], None]


@dataclass
class Notification:
    """The single message shown to the user for one submission."""

    title: str
    message: str
    level: str = "success"  # success | warning | error


@dataclass
class SubmissionOutcome:
    stage: PipelineStage | None = None
    record_id: str | None = None
    record: ContentRecord | None = None
    error: EdushareError | None = None
    notification: Notification | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def status(self) -> ContentStatus | None:
        return self.record.status if self.record else None


@dataclass
class _Progress:
    stage: PipelineStage | None = None
    record_id: str | None = None


class SubmissionPipeline:
    """Drives one submission from raw input to a terminal record state."""

    def __init__(
        self,
        settings: Settings,
        storage: BlobStorage,
        store: ContentRecordStore,
        classifier: ContentClassifier,
        tagger: ContentTagger,
        on_stage: StageCallback | None = None,
    ) -> None:
        self._settings = settings
        self._storage = storage
        self._store = store
        self._classifier = classifier
        self._tagger = tagger
        self._on_stage = on_stage

    def submit(self, request: SubmissionRequest, session: SessionContext) -> ContentRecord:
        """Run the pipeline and return the final record.

        Raises:
            ValidationError: bad input, nothing written.
            UploadError: storage refused the file, no record created.
            PersistenceError: a record write failed.
            ModerationError: classifier failed, record left pending.
            TaggingError: tagger failed, record left pending.
        """
        return self._execute(request, session, _Progress())

    def run(self, request: SubmissionRequest, session: SessionContext) -> SubmissionOutcome:
        """Run the pipeline and turn any failure into one notification."""
        progress = _Progress()
        try:
            record = self._execute(request, session, progress)
        except EdushareError as exc:
            logger.error(
                "Submission %r failed at stage %s: %s",
                request.title,
                progress.stage.value if progress.stage else "validation",
                exc,
            )
            return SubmissionOutcome(
                stage=progress.stage,
                record_id=progress.record_id,
                record=self._last_known(progress.record_id),
                error=exc,
                notification=Notification(exc.title, str(exc), level="error"),
            )

        if record.status == ContentStatus.REJECTED:
            notification = Notification(
                "Content Rejected",
                f"Reason: {record.reason}. Please upload educational content only.",
                level="warning",
            )
        else:
            notification = Notification(
                "Upload Successful!",
                "Your content has been moderated and tagged.",
            )
        return SubmissionOutcome(
            stage=progress.stage,
            record_id=record.id,
            record=record,
            notification=notification,
        )

    def _last_known(self, record_id: str | None) -> ContentRecord | None:
        if record_id is None:
            return None
        try:
            return self._store.get(record_id)
        except EdushareError:
            logger.warning("Could not read back record %s after failure", record_id, exc_info=True)
            return None

    def _enter(self, progress: _Progress, stage: PipelineStage) -> None:
        progress.stage = stage
        logger.info("Submission %s: %s", progress.record_id or "(new)", stage.value)
        if self._on_stage:
            self._on_stage(stage)

    def _execute(
        self,
        request: SubmissionRequest,
        session: SessionContext,
        progress: _Progress,
    ) -> ContentRecord:
        upload = build_submission(request, session.user_id, self._settings)

        self._enter(progress, PipelineStage.UPLOADING)
        try:
            file_url = self._storage.upload(upload.data, upload.storage_path, upload.mime_type)
        except UploadError:
            raise
        except Exception as exc:
            raise UploadError(f"Could not store {upload.storage_path}: {exc}") from exc

        try:
            record_id = self._store.create(
                title=upload.title,
                description=upload.description,
                file_url=file_url,
                file_type=upload.mime_type,
                owner_id=session.user_id,
                is_paid=upload.is_paid,
            )
        except EdushareError:
            logger.warning("Blob %s is orphaned: its record was never created", file_url)
            raise
        progress.record_id = record_id

        self._enter(progress, PipelineStage.VERIFYING)
        verdict = self._classifier.classify(upload.title, upload.description, upload.mime_type)

        if not verdict.is_educational:
            record = self._store.update(
                record_id,
                status=ContentStatus.REJECTED,
                reason=verdict.reason,
            )
            self._enter(progress, PipelineStage.COMPLETED)
            return record

        self._enter(progress, PipelineStage.TAGGING)
        suggestion = self._tagger.suggest(
            upload.title, upload.description, content_kind_for_mime(upload.mime_type)
        )

        # Verdict and tags land together: no approved record without its tags
        record = self._store.update(
            record_id,
            status=ContentStatus.APPROVED,
            reason=verdict.reason,
            tags=merge_tags(upload.tags, suggestion.tags),
        )
        self._enter(progress, PipelineStage.COMPLETED)
        return record
