"""Generate discovery tags for approved content."""

from __future__ import annotations

import logging

from pydantic import BaseModel, ValidationError as PydanticValidationError

from edushare.content.models import ContentKind, normalize_tags
from edushare.errors import TaggingError
from edushare.llm.client import ClaudeClient, strip_json_fence
from edushare.llm.prompts import render

logger = logging.getLogger(__name__)

MIN_TAGS = 3
MAX_TAGS = 5


class TagSuggestion(BaseModel):
    tags: list[str]


class ContentTagger:
    """Ask Claude for 3-5 educational tags."""

    def __init__(self, client: ClaudeClient) -> None:
        self._client = client

    def suggest(self, title: str, description: str, kind: ContentKind) -> TagSuggestion:
        """Return lower-cased, de-duplicated tags, at most ``MAX_TAGS`` of them.

        Raises:
            TaggingError: the call failed or produced no usable tags.
        """
        system = render("tagging.j2", min_tags=MIN_TAGS, max_tags=MAX_TAGS)
        try:
            response = self._client.generate(
                system=system,
                messages=[
                    {
                        "role": "user",
                        "content": (
                            f"Title: {title}\n"
                            f"Description: {description}\n"
                            f"Content Type: {kind.value}"
                        ),
                    }
                ],
                temperature=0.3,
            )
        except Exception as exc:
            raise TaggingError(f"Tagger call failed: {exc}") from exc

        try:
            suggestion = TagSuggestion.model_validate_json(strip_json_fence(response))
        except PydanticValidationError as exc:
            logger.warning("Unparseable tag suggestion: %.200s", response)
            raise TaggingError("Tagger returned an unreadable answer") from exc

        tags = normalize_tags(suggestion.tags)[:MAX_TAGS]
        if not tags:
            raise TaggingError("Tagger returned no tags")
        if len(tags) < MIN_TAGS:
            logger.info("Tagger returned only %d tag(s) for %r", len(tags), title)
        return TagSuggestion(tags=tags)
