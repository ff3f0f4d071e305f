"""Wrapper around the Anthropic Claude SDK."""

from __future__ import annotations

from anthropic import Anthropic, APIStatusError, AuthenticationError
from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from edushare.config import Settings


def _is_retryable(exc: BaseException) -> bool:
    """Return True only for transient API errors (rate-limits, server errors).

    Authentication errors (401) and bad-request errors (400) should NOT be
    retried; they will never succeed without a config change.
    """
    if isinstance(exc, AuthenticationError):
        return False
    if isinstance(exc, APIStatusError) and exc.status_code < 500:
        # 4xx errors other than 429 (rate limit) are not retryable
        return exc.status_code == 429
    return True


def strip_json_fence(text: str) -> str:
    """Drop a surrounding ```json fence if the model added one."""
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()


class ClaudeClient:
    """Thin wrapper providing a bounded retry policy and token tracking.

    ``llm_max_attempts`` defaults to 1: moderation and tagging are called
    exactly once per submission. The SDK's own retries are switched off so
    this setting is the only knob.
    """

    def __init__(self, settings: Settings) -> None:
        self._client = Anthropic(
            api_key=settings.anthropic_api_key,
            max_retries=0,
            timeout=settings.llm_timeout_seconds,
        )
        self._model = settings.model
        self._max_tokens = settings.max_tokens
        self._temperature = settings.temperature
        self._max_attempts = max(1, settings.llm_max_attempts)
        self._total_input_tokens = 0
        self._total_output_tokens = 0

    def _retrying(self) -> Retrying:
        return Retrying(
            retry=retry_if_exception(_is_retryable),
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=1, min=2, max=30),
            reraise=True,
        )

    def generate(
        self,
        system: str,
        messages: list[dict],
        *,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> str:
        """Send a message to Claude and return the text response."""
        for attempt in self._retrying():
            with attempt:
                response = self._client.messages.create(
                    model=self._model,
                    max_tokens=max_tokens or self._max_tokens,
                    temperature=temperature if temperature is not None else self._temperature,
                    system=system,
                    messages=messages,
                )
        self._total_input_tokens += response.usage.input_tokens
        self._total_output_tokens += response.usage.output_tokens
        return response.content[0].text

    @property
    def usage_summary(self) -> dict:
        return {
            "total_input_tokens": self._total_input_tokens,
            "total_output_tokens": self._total_output_tokens,
        }
