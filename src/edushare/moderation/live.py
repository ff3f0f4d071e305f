"""Follow a submission's record and derive its progress from store updates."""

from __future__ import annotations

from typing import Callable

from edushare.content.models import ContentRecord, ContentStatus, PipelineStage
from edushare.storage.records import ContentRecordStore, Subscription


class LiveProgressView:
    """Mirror of one record's moderation progress.

    The view only learns about progress from record writes. ``cancel()``
    detaches it; the pipeline keeps running regardless.
    """

    def __init__(
        self,
        store: ContentRecordStore,
        record_id: str,
        on_update: Callable[[LiveProgressView], None] | None = None,
    ) -> None:
        self.record_id = record_id
        self.record: ContentRecord | None = None
        self.deleted = False
        self._on_update = on_update
        self._subscription: Subscription = store.subscribe(record_id, self._apply)

    def _apply(self, record: ContentRecord | None) -> None:
        if record is None:
            self.deleted = self.record is not None
        self.record = record
        if self._on_update:
            self._on_update(self)

    @property
    def status(self) -> ContentStatus | None:
        return self.record.status if self.record else None

    @property
    def stage(self) -> PipelineStage | None:
        if self.record is None:
            return None
        if self.record.status == ContentStatus.PENDING:
            return PipelineStage.VERIFYING
        return PipelineStage.COMPLETED

    @property
    def finished(self) -> bool:
        return self.deleted or (self.record is not None and self.record.status.is_terminal)

    @property
    def reason(self) -> str:
        if self.record is None or not self.record.status.is_terminal:
            return ""
        return self.record.reason

    @property
    def tags(self) -> list[str]:
        return list(self.record.tags) if self.record else []

    @property
    def active(self) -> bool:
        return self._subscription.active

    def cancel(self) -> None:
        self._subscription.cancel()

    def __enter__(self) -> LiveProgressView:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.cancel()
