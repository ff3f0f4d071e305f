"""Tests for submission validation and packaging."""

from __future__ import annotations

import pytest

from edushare.config import Settings
from edushare.content.models import (
    ContentKind,
    ContentStatus,
    can_transition,
    content_kind_for_mime,
    merge_tags,
    normalize_tags,
)
from edushare.content.submission import (
    EditRequest,
    build_submission,
    storage_path_for,
    validate_edit,
    validate_submission,
)
from edushare.errors import ValidationError
from tests.conftest import make_request


def test_valid_submission_has_no_errors(settings: Settings) -> None:
    assert validate_submission(make_request(), settings) == []


def test_short_title_rejected(settings: Settings) -> None:
    errors = validate_submission(make_request(title="Quan"), settings)
    assert [e.field for e in errors] == ["title"]


def test_title_whitespace_does_not_count(settings: Settings) -> None:
    errors = validate_submission(make_request(title="  abc   "), settings)
    assert [e.field for e in errors] == ["title"]


def test_short_description_rejected(settings: Settings) -> None:
    errors = validate_submission(make_request(description="Too short."), settings)
    assert [e.field for e in errors] == ["description"]


def test_too_many_tags_rejected(settings: Settings) -> None:
    errors = validate_submission(make_request(tags=["a", "b", "c", "d", "e", "f"]), settings)
    assert [e.field for e in errors] == ["tags"]


def test_duplicate_tags_count_once(settings: Settings) -> None:
    request = make_request(tags=["Math", "math", "MATH ", "algebra", "proofs", "logic", "sets"])
    assert validate_submission(request, settings) == []


def test_oversized_file_rejected(settings: Settings) -> None:
    big = b"\x00" * (5 * 1024 * 1024 + 1)
    errors = validate_submission(make_request(data=big), settings)
    assert [e.field for e in errors] == ["file"]
    assert "5MB" in errors[0].message


def test_exactly_five_megabytes_accepted(settings: Settings) -> None:
    data = b"\x00" * (5 * 1024 * 1024)
    assert validate_submission(make_request(data=data), settings) == []


def test_empty_file_rejected(settings: Settings) -> None:
    errors = validate_submission(make_request(data=b""), settings)
    assert [e.field for e in errors] == ["file"]


@pytest.mark.parametrize("mime", ["image/gif", "text/plain", "application/zip"])
def test_unsupported_mime_rejected(settings: Settings, mime: str) -> None:
    errors = validate_submission(make_request(mime_type=mime), settings)
    assert [e.field for e in errors] == ["file"]


def test_mime_guessed_from_filename(settings: Settings) -> None:
    request = make_request(filename="notes.pdf", mime_type=None)
    assert validate_submission(request, settings) == []
    assert build_submission(request, "alice", settings).mime_type == "application/pdf"


def test_all_errors_reported_together(settings: Settings) -> None:
    request = make_request(title="x", description="y", mime_type="image/gif")
    errors = validate_submission(request, settings)
    assert {e.field for e in errors} == {"title", "description", "file"}


def test_build_submission_raises_with_fields(settings: Settings) -> None:
    with pytest.raises(ValidationError) as exc_info:
        build_submission(make_request(title="x"), "alice", settings)
    assert exc_info.value.fields == ["title"]


def test_build_submission_normalizes(settings: Settings) -> None:
    request = make_request(tags=[" Quantum ", "quantum", "Physics"])
    upload = build_submission(request, "alice", settings)

    assert upload.storage_path.startswith("content/alice/")
    assert upload.storage_path.endswith("_quantum.jpg")
    assert upload.tags == ["quantum", "physics"]
    assert upload.mime_type == "image/jpeg"
    assert upload.size == len(request.data)


def test_validate_edit(settings: Settings) -> None:
    ok = EditRequest(title="Linear Algebra", description="Vectors, matrices and maps.")
    assert validate_edit(ok, settings) == []
    bad = EditRequest(title="LA", description="Vectors, matrices and maps.", tags=list("abcdef"))
    assert {e.field for e in validate_edit(bad, settings)} == {"title", "tags"}


@pytest.mark.parametrize(
    "mime, kind",
    [
        ("image/png", ContentKind.IMAGE),
        ("video/mp4", ContentKind.VIDEO),
        ("application/pdf", ContentKind.PDF),
        ("text/markdown", ContentKind.TEXT),
        ("", ContentKind.TEXT),
    ],
)
def test_content_kind_for_mime(mime: str, kind: ContentKind) -> None:
    assert content_kind_for_mime(mime) == kind


def test_merge_tags_is_case_insensitive_union() -> None:
    assert merge_tags(["Quantum"], ["physics", "Science", "quantum", "intro"]) == [
        "quantum",
        "physics",
        "science",
        "intro",
    ]


def test_normalize_tags_drops_blanks() -> None:
    assert normalize_tags(["", "  ", "Art"]) == ["art"]


def test_status_transitions() -> None:
    assert can_transition(ContentStatus.PENDING, ContentStatus.APPROVED)
    assert can_transition(ContentStatus.PENDING, ContentStatus.REJECTED)
    assert can_transition(ContentStatus.APPROVED, ContentStatus.ARCHIVED)
    assert can_transition(ContentStatus.REJECTED, ContentStatus.ARCHIVED)
    assert not can_transition(ContentStatus.REJECTED, ContentStatus.APPROVED)
    assert not can_transition(ContentStatus.APPROVED, ContentStatus.PENDING)
    assert not can_transition(ContentStatus.ARCHIVED, ContentStatus.APPROVED)


def test_same_bytes_get_distinct_storage_paths(settings: Settings) -> None:
    first = build_submission(make_request(), "alice", settings)
    second = build_submission(make_request(), "alice", settings)
    assert first.storage_path != second.storage_path


def test_storage_path_keeps_filename_inside_owner_prefix() -> None:
    path = storage_path_for("alice", "../../etc/My Notes.pdf")
    prefix, name = path.rsplit("/", 1)
    assert prefix == "content/alice"
    assert name.endswith("_My_Notes.pdf")
