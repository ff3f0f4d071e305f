"""Validate and package a user's submission before anything is uploaded."""

from __future__ import annotations

import mimetypes
import re
import uuid
from dataclasses import dataclass, field
from pathlib import PurePosixPath

from edushare.config import Settings
from edushare.content.models import normalize_tags
from edushare.errors import FieldError, ValidationError

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")


@dataclass
class SubmissionRequest:
    """Raw input from the upload form."""

    title: str
    description: str
    filename: str
    data: bytes
    is_paid: bool = False
    tags: list[str] = field(default_factory=list)
    mime_type: str | None = None


@dataclass
class EditRequest:
    """Fields a record owner may rewrite after submission."""

    title: str
    description: str
    is_paid: bool = False
    tags: list[str] = field(default_factory=list)


@dataclass
class UploadRequest:
    """A validated submission, ready for the storage uploader."""

    title: str
    description: str
    tags: list[str]
    is_paid: bool
    data: bytes
    mime_type: str
    storage_path: str

    @property
    def size(self) -> int:
        return len(self.data)


def resolve_mime_type(request: SubmissionRequest) -> str:
    if request.mime_type:
        return request.mime_type.lower()
    guessed, _ = mimetypes.guess_type(request.filename)
    return guessed or ""


def _check_text_fields(
    title: str, description: str, tags: list[str], settings: Settings
) -> list[FieldError]:
    errors: list[FieldError] = []
    if len(title.strip()) < settings.min_title_length:
        errors.append(
            FieldError(
                "title",
                f"Title must be at least {settings.min_title_length} characters.",
            )
        )
    if len(description.strip()) < settings.min_description_length:
        errors.append(
            FieldError(
                "description",
                f"Description must be at least "
                f"{settings.min_description_length} characters.",
            )
        )
    if len(normalize_tags(tags)) > settings.max_user_tags:
        errors.append(
            FieldError(
                "tags", f"You can add a maximum of {settings.max_user_tags} tags."
            )
        )
    return errors


def validate_submission(
    request: SubmissionRequest, settings: Settings
) -> list[FieldError]:
    """Return every field-level problem with the request. Pure."""
    errors = _check_text_fields(
        request.title, request.description, request.tags, settings
    )

    if not request.data:
        errors.append(FieldError("file", "A file is required."))
    elif len(request.data) > settings.max_upload_bytes:
        limit_mb = settings.max_upload_bytes / (1024 * 1024)
        errors.append(FieldError("file", f"File must be {limit_mb:g}MB or smaller."))

    mime_type = resolve_mime_type(request)
    if mime_type not in settings.allowed_mime_types:
        errors.append(
            FieldError(
                "file",
                f"Unsupported file type {mime_type or 'unknown'!r}. Allowed: "
                + ", ".join(settings.allowed_mime_types),
            )
        )
    return errors


def validate_edit(request: EditRequest, settings: Settings) -> list[FieldError]:
    return _check_text_fields(
        request.title, request.description, request.tags, settings
    )


def storage_path_for(owner_id: str, filename: str) -> str:
    """Blob path unique to one submission, even when the bytes repeat."""
    name = _UNSAFE_NAME_CHARS.sub("_", PurePosixPath(filename).name) or "file"
    return f"content/{owner_id}/{uuid.uuid4().hex}_{name}"


def build_submission(
    request: SubmissionRequest, owner_id: str, settings: Settings
) -> UploadRequest:
    """Validate the request and produce an upload request.

    Raises:
        ValidationError: listing every offending field. Nothing is written.
    """
    errors = validate_submission(request, settings)
    if errors:
        raise ValidationError(errors)

    return UploadRequest(
        title=request.title.strip(),
        description=request.description.strip(),
        tags=normalize_tags(request.tags),
        is_paid=request.is_paid,
        data=request.data,
        mime_type=resolve_mime_type(request),
        storage_path=storage_path_for(owner_id, request.filename),
    )
