"""Content record store: one row per submission plus live subscriptions.

Every mutation goes through this class, so it is also where listeners are
told about changes. A listener is either keyed by record id (it receives the
record, or ``None`` once deleted) or by a ``ContentQuery`` (it receives the
full list of matching records whenever that list changes).
"""

from __future__ import annotations

import itertools
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select

from edushare.content.models import (
    ContentRecord,
    ContentStatus,
    can_transition,
    normalize_tags,
)
from edushare.errors import InvalidTransitionError, PersistenceError, RecordNotFoundError
from edushare.storage.database import get_session
from edushare.storage.models import ContentRecordRow

logger = logging.getLogger(__name__)

RecordCallback = Callable[[Union[ContentRecord, None]], None]
QueryCallback = Callable[[list[ContentRecord]], None]

# Fields the owner or the pipeline may change after creation.
UPDATABLE_FIELDS = frozenset({"title", "description", "tags", "is_paid", "status", "reason"})
FILTERABLE_FIELDS = frozenset({"id", "title", "owner_id", "file_type", "is_paid", "status"})


@dataclass(frozen=True)
class Filter:
    """Equality or inequality predicate on a top-level field."""

    field: str
    op: str
    value: Any

    def __post_init__(self) -> None:
        if self.op not in ("==", "!="):
            raise ValueError(f"Unsupported operator {self.op!r}")
        if self.field not in FILTERABLE_FIELDS:
            raise ValueError(f"Cannot filter on {self.field!r}")

    @property
    def plain_value(self) -> Any:
        return self.value.value if isinstance(self.value, ContentStatus) else self.value

    def matches(self, record: ContentRecord) -> bool:
        actual = getattr(record, self.field)
        if isinstance(actual, ContentStatus):
            actual = actual.value
        equal = actual == self.plain_value
        return equal if self.op == "==" else not equal

    def clause(self):
        column = getattr(ContentRecordRow, self.field)
        if self.op == "==":
            return column == self.plain_value
        return column != self.plain_value


def where(field_name: str, op: str, value: Any) -> Filter:
    return Filter(field_name, op, value)


@dataclass(frozen=True)
class ContentQuery:
    filters: tuple[Filter, ...] = ()

    def matches(self, record: ContentRecord) -> bool:
        return all(f.matches(record) for f in self.filters)


@dataclass
class _Listener:
    target: str | ContentQuery
    callback: Callable[[Any], None]
    last: Any = field(default=None)


class Subscription:
    """Handle for a live listener. Call ``cancel()`` when the view goes away."""

    def __init__(self, store: ContentRecordStore, key: int) -> None:
        self._store = store
        self._key = key

    @property
    def active(self) -> bool:
        return self._key in self._store._listeners

    def cancel(self) -> None:
        self._store._listeners.pop(self._key, None)

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.cancel()


class ContentRecordStore:
    """SQLite-backed document store for content records."""

    def __init__(self, db_path: Path) -> None:
        self._db_path = db_path
        self._listeners: dict[int, _Listener] = {}
        self._keys = itertools.count(1)

    # -- writes ------------------------------------------------------------

    def create(
        self,
        *,
        title: str,
        description: str,
        file_url: str,
        file_type: str,
        owner_id: str,
        is_paid: bool = False,
    ) -> str:
        """Insert a new pending record with no tags and return its id."""
        row = ContentRecordRow(
            title=title,
            description=description,
            file_url=file_url,
            file_type=file_type,
            owner_id=owner_id,
            is_paid=is_paid,
            status=ContentStatus.PENDING.value,
            tags_json="[]",
        )
        try:
            with get_session(self._db_path) as session:
                session.add(row)
                session.commit()
                record_id = row.id
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not create content record: {exc}") from exc

        logger.debug("Created content record %s for owner %s", record_id, owner_id)
        self._notify(record_id)
        return record_id

    def update(self, record_id: str, **fields: Any) -> ContentRecord:
        """Apply a partial update in one transaction and return the result.

        Raises:
            ValueError: a field that is immutable or unknown.
            RecordNotFoundError: no record with that id.
            InvalidTransitionError: a status move the lifecycle forbids.
            PersistenceError: the database write failed.
        """
        illegal = set(fields) - UPDATABLE_FIELDS
        if illegal:
            raise ValueError(f"Cannot update field(s): {', '.join(sorted(illegal))}")

        try:
            with get_session(self._db_path) as session:
                row = session.get(ContentRecordRow, record_id)
                if row is None:
                    raise RecordNotFoundError(f"No content record {record_id}")

                if "status" in fields:
                    target = ContentStatus(fields["status"])
                    current = ContentStatus(row.status)
                    if target != current and not can_transition(current, target):
                        raise InvalidTransitionError(
                            f"Cannot move record {record_id} from "
                            f"{current.value} to {target.value}"
                        )
                    row.status = target.value
                if "tags" in fields:
                    row.tags_json = json.dumps(normalize_tags(fields["tags"]))
                for name in ("title", "description", "is_paid", "reason"):
                    if name in fields:
                        setattr(row, name, fields[name])
                row.updated_at = datetime.now()

                session.add(row)
                session.commit()
                record = row.to_record()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not update record {record_id}: {exc}") from exc

        self._notify(record_id)
        return record

    def delete(self, record_id: str) -> bool:
        """Remove a record. Returns False if it did not exist."""
        try:
            with get_session(self._db_path) as session:
                row = session.get(ContentRecordRow, record_id)
                if row is None:
                    return False
                session.delete(row)
                session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not delete record {record_id}: {exc}") from exc

        self._notify(record_id)
        return True

    # -- reads -------------------------------------------------------------

    def get(self, record_id: str) -> ContentRecord | None:
        try:
            with get_session(self._db_path) as session:
                row = session.get(ContentRecordRow, record_id)
                return row.to_record() if row else None
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not read record {record_id}: {exc}") from exc

    def query(self, *filters: Filter) -> list[ContentRecord]:
        """Records matching all filters, newest first."""
        statement = select(ContentRecordRow)
        for f in filters:
            statement = statement.where(f.clause())
        statement = statement.order_by(ContentRecordRow.created_at.desc())
        try:
            with get_session(self._db_path) as session:
                return [row.to_record() for row in session.exec(statement).all()]
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not query content records: {exc}") from exc

    # -- live updates ------------------------------------------------------

    def subscribe(
        self,
        target: str | ContentQuery,
        on_change: RecordCallback | QueryCallback,
    ) -> Subscription:
        """Register a listener and deliver the current snapshot immediately."""
        key = next(self._keys)
        listener = _Listener(target=target, callback=on_change)
        self._listeners[key] = listener
        self._deliver(listener, self._snapshot(target))
        return Subscription(self, key)

    def _snapshot(self, target: str | ContentQuery) -> Any:
        if isinstance(target, ContentQuery):
            return self.query(*target.filters)
        return self.get(target)

    def _deliver(self, listener: _Listener, snapshot: Any) -> None:
        listener.last = snapshot
        try:
            listener.callback(snapshot)
        except Exception:
            logger.exception("Subscription listener for %r failed", listener.target)

    def _notify(self, record_id: str) -> None:
        # Copy: a callback may cancel its own subscription
        for key, listener in list(self._listeners.items()):
            if key not in self._listeners:
                continue
            if isinstance(listener.target, ContentQuery):
                snapshot = self.query(*listener.target.filters)
                if snapshot == listener.last:
                    continue
            elif listener.target == record_id:
                snapshot = self.get(record_id)
            else:
                continue
            self._deliver(listener, snapshot)
