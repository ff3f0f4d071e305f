"""Error taxonomy for the submission pipeline and content actions."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class FieldError:
    """A single field-level validation failure."""

    field: str
    message: str


class EdushareError(Exception):
    """Base error for everything the platform reports to a user."""

    title = "An Error Occurred"


class ValidationError(EdushareError):
    """Input rejected before any side effect happened."""

    title = "Invalid Submission"

    def __init__(self, errors: list[FieldError]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(f"{e.field}: {e.message}" for e in self.errors))

    @property
    def fields(self) -> list[str]:
        return [e.field for e in self.errors]


class UploadError(EdushareError):
    """The storage collaborator did not accept the file. No record exists."""

    title = "Upload Failed"


class PersistenceError(EdushareError):
    """A write to the content record store failed."""

    title = "Could Not Save Content"


class ModerationError(EdushareError):
    """The classifier call failed; the record stays pending."""

    title = "Moderation Unavailable"


class TaggingError(EdushareError):
    """The tagger call failed; the record stays pending."""

    title = "Tagging Unavailable"


class PermissionDeniedError(EdushareError):
    """The acting user does not own the record."""

    title = "Permission Denied"


class RecordNotFoundError(EdushareError):
    title = "Content Not Found"


class InvalidTransitionError(EdushareError):
    """A status change that the record lifecycle does not allow."""

    title = "Invalid Status Change"


class ContentUnavailableError(EdushareError):
    """The record exists but is not approved for viewing."""

    title = "Content Unavailable"
