"""Decide whether a submission is educational."""

from __future__ import annotations

import logging

from pydantic import BaseModel, ValidationError as PydanticValidationError

from edushare.errors import ModerationError
from edushare.llm.client import ClaudeClient, strip_json_fence
from edushare.llm.prompts import render

logger = logging.getLogger(__name__)


class ModerationVerdict(BaseModel):
    is_educational: bool
    reason: str


class ContentClassifier:
    """Ask Claude whether the described content is educational."""

    def __init__(self, client: ClaudeClient) -> None:
        self._client = client

    def classify(self, title: str, description: str, file_type: str) -> ModerationVerdict:
        """Return the moderation verdict for one submission.

        Raises:
            ModerationError: the call failed or the answer was not a verdict.
        """
        system = render("moderation.j2")
        try:
            response = self._client.generate(
                system=system,
                messages=[
                    {
                        "role": "user",
                        "content": (
                            f"Title: {title}\n"
                            f"Description: {description}\n"
                            f"File Type: {file_type}"
                        ),
                    }
                ],
                temperature=0.0,
            )
        except Exception as exc:
            raise ModerationError(f"Classifier call failed: {exc}") from exc

        try:
            return ModerationVerdict.model_validate_json(strip_json_fence(response))
        except PydanticValidationError as exc:
            logger.warning("Unparseable moderation verdict: %.200s", response)
            raise ModerationError("Classifier returned an unreadable verdict") from exc
