"""Tests for the content record store and its live subscriptions."""

from __future__ import annotations

import pytest
from sqlalchemy.exc import OperationalError

from edushare.content.models import ContentRecord, ContentStatus
from edushare.errors import InvalidTransitionError, PersistenceError, RecordNotFoundError
from edushare.storage.records import ContentQuery, ContentRecordStore, Filter, where
from tests.conftest import locked_session


def _create(store: ContentRecordStore, owner: str = "alice", **overrides) -> str:
    fields = {
        "title": "Intro to Statistics",
        "description": "Means, medians and spread.",
        "file_url": "https://blobs.test/content/x.pdf",
        "file_type": "application/pdf",
        "owner_id": owner,
    }
    fields.update(overrides)
    return store.create(**fields)


class TestCreateAndUpdate:
    def test_created_record_is_pending_without_tags(self, store: ContentRecordStore) -> None:
        record_id = _create(store)
        record = store.get(record_id)

        assert record is not None
        assert record.status == ContentStatus.PENDING
        assert record.tags == []
        assert record.reason == ""
        assert record.created_at is not None
        assert len(record.id) == 32

    def test_ids_are_unique(self, store: ContentRecordStore) -> None:
        assert _create(store) != _create(store)

    def test_update_is_partial(self, store: ContentRecordStore) -> None:
        record_id = _create(store)
        updated = store.update(record_id, status="approved", reason="ok", tags=["Stats", "stats", "math"])

        assert updated.status == ContentStatus.APPROVED
        assert updated.reason == "ok"
        assert updated.tags == ["stats", "math"]
        assert updated.title == "Intro to Statistics"

    @pytest.mark.parametrize("field", ["file_url", "file_type", "owner_id", "id", "created_at"])
    def test_immutable_fields_refused(self, store: ContentRecordStore, field: str) -> None:
        record_id = _create(store)
        with pytest.raises(ValueError):
            store.update(record_id, **{field: "changed"})
        assert store.get(record_id).file_url == "https://blobs.test/content/x.pdf"

    def test_update_missing_record(self, store: ContentRecordStore) -> None:
        with pytest.raises(RecordNotFoundError):
            store.update("nope", title="Whatever title")

    def test_rejected_is_absorbing(self, store: ContentRecordStore) -> None:
        record_id = _create(store)
        store.update(record_id, status=ContentStatus.REJECTED, reason="ad")
        with pytest.raises(InvalidTransitionError):
            store.update(record_id, status=ContentStatus.APPROVED)
        assert store.get(record_id).status == ContentStatus.REJECTED

    def test_archived_is_final(self, store: ContentRecordStore) -> None:
        record_id = _create(store)
        store.update(record_id, status=ContentStatus.ARCHIVED)
        with pytest.raises(InvalidTransitionError):
            store.update(record_id, status=ContentStatus.PENDING)

    def test_delete(self, store: ContentRecordStore) -> None:
        record_id = _create(store)
        assert store.delete(record_id) is True
        assert store.get(record_id) is None
        assert store.delete(record_id) is False


class TestQuery:
    def test_equality_and_inequality(self, store: ContentRecordStore) -> None:
        a1 = _create(store, "alice")
        a2 = _create(store, "alice")
        _create(store, "bob")
        store.update(a2, status=ContentStatus.ARCHIVED)

        result = store.query(where("owner_id", "==", "alice"), where("status", "!=", "archived"))
        assert [r.id for r in result] == [a1]

    def test_unknown_operator(self) -> None:
        with pytest.raises(ValueError):
            Filter("status", ">", "pending")

    def test_unfilterable_field(self) -> None:
        with pytest.raises(ValueError):
            Filter("tags_json", "==", "[]")

    def test_query_matches_in_memory(self) -> None:
        record = ContentRecord(
            id="r1",
            title="t",
            description="d",
            file_url="u",
            file_type="image/png",
            owner_id="alice",
            status=ContentStatus.APPROVED,
        )
        assert ContentQuery((where("status", "==", ContentStatus.APPROVED),)).matches(record)
        assert not ContentQuery((where("owner_id", "!=", "alice"),)).matches(record)


class TestReadFailures:
    def test_get_wraps_database_error(self, store: ContentRecordStore, monkeypatch) -> None:
        record_id = _create(store)
        monkeypatch.setattr("edushare.storage.records.get_session", locked_session)

        with pytest.raises(PersistenceError) as exc_info:
            store.get(record_id)
        assert isinstance(exc_info.value.__cause__, OperationalError)

    def test_query_wraps_database_error(self, store: ContentRecordStore, monkeypatch) -> None:
        monkeypatch.setattr("edushare.storage.records.get_session", locked_session)

        with pytest.raises(PersistenceError):
            store.query(where("owner_id", "==", "alice"))


class TestSubscriptions:
    def test_subscribe_by_id_delivers_snapshot_then_changes(
        self, store: ContentRecordStore
    ) -> None:
        record_id = _create(store)
        seen: list = []

        sub = store.subscribe(record_id, seen.append)
        store.update(record_id, status=ContentStatus.APPROVED, reason="fine")
        store.delete(record_id)

        assert [r.status if r else None for r in seen] == [
            ContentStatus.PENDING,
            ContentStatus.APPROVED,
            None,
        ]
        sub.cancel()

    def test_other_records_do_not_notify(self, store: ContentRecordStore) -> None:
        watched = _create(store)
        other = _create(store)
        seen: list = []

        store.subscribe(watched, seen.append)
        store.update(other, title="Something else")

        assert len(seen) == 1

    def test_cancel_stops_delivery(self, store: ContentRecordStore) -> None:
        record_id = _create(store)
        seen: list = []

        with store.subscribe(record_id, seen.append) as sub:
            assert sub.active
        assert not sub.active

        store.update(record_id, status=ContentStatus.APPROVED)
        assert len(seen) == 1

    def test_query_subscription_only_fires_on_change(self, store: ContentRecordStore) -> None:
        query = ContentQuery((where("owner_id", "==", "alice"),))
        snapshots: list[list] = []
        store.subscribe(query, snapshots.append)

        first = _create(store, "alice")
        _create(store, "bob")  # result set unchanged
        store.update(first, status=ContentStatus.APPROVED)

        assert [len(s) for s in snapshots] == [0, 1, 1]
        assert snapshots[-1][0].status == ContentStatus.APPROVED

    def test_failing_listener_does_not_break_writes(self, store: ContentRecordStore) -> None:
        record_id = _create(store)
        calls: list = []

        def explode(record) -> None:
            calls.append(record)
            raise RuntimeError("listener bug")

        store.subscribe(record_id, explode)
        store.update(record_id, status=ContentStatus.APPROVED)

        assert len(calls) == 2
        assert store.get(record_id).status == ContentStatus.APPROVED

    def test_listener_may_cancel_itself(self, store: ContentRecordStore) -> None:
        record_id = _create(store)
        seen: list = []
        holder: dict = {}

        def once(record) -> None:
            seen.append(record)
            if len(seen) == 2:
                holder["sub"].cancel()

        holder["sub"] = store.subscribe(record_id, once)
        store.update(record_id, reason="first")
        store.update(record_id, reason="second")

        assert len(seen) == 2
