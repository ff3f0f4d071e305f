"""Shared test fixtures."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from edushare.config import Settings
from edushare.content.submission import SubmissionRequest
from edushare.llm.client import ClaudeClient
from edushare.session import SessionContext
from edushare.storage.blobs import LocalBlobStorage
from edushare.storage.records import ContentRecordStore


@pytest.fixture
def tmp_data_dir(tmp_path: Path) -> Path:
    """Create a temporary data directory structure."""
    (tmp_path / "blobs").mkdir()
    return tmp_path


@pytest.fixture
def settings(tmp_data_dir: Path) -> Settings:
    """Create test settings with temporary paths."""
    return Settings(
        anthropic_api_key="test-key-not-real",
        model="claude-sonnet-4-20250514",
        max_tokens=512,
        temperature=0.2,
        db_path=tmp_data_dir / "test.db",
        storage_dir=tmp_data_dir / "blobs",
        storage_base_url="https://blobs.test",
    )


@pytest.fixture
def mock_claude_client(settings: Settings) -> ClaudeClient:
    """Create a ClaudeClient with a mocked Anthropic SDK."""
    client = ClaudeClient(settings)
    # Replace the internal Anthropic client with a mock
    mock_anthropic = MagicMock()
    client._client = mock_anthropic
    return client


@pytest.fixture
def store(settings: Settings) -> ContentRecordStore:
    return ContentRecordStore(settings.db_path)


@pytest.fixture
def storage(settings: Settings) -> LocalBlobStorage:
    return LocalBlobStorage(settings.storage_dir, settings.storage_base_url)


@pytest.fixture
def alice() -> SessionContext:
    return SessionContext(user_id="alice", email="alice@example.com")


@pytest.fixture
def bob() -> SessionContext:
    return SessionContext(user_id="bob", email="bob@example.com")


def make_mock_response(text: str, input_tokens: int = 100, output_tokens: int = 200):
    """Helper to create a mock Anthropic API response."""
    mock_response = MagicMock()
    mock_response.content = [MagicMock(text=text)]
    mock_response.usage.input_tokens = input_tokens
    mock_response.usage.output_tokens = output_tokens
    return mock_response


def verdict_response(is_educational: bool, reason: str):
    return make_mock_response(json.dumps({"is_educational": is_educational, "reason": reason}))


def tags_response(*tags: str):
    return make_mock_response(json.dumps({"tags": list(tags)}))


JPEG_2MB = b"\xff\xd8\xff\xe0" + b"\x00" * (2 * 1024 * 1024 - 4)


def make_request(**overrides) -> SubmissionRequest:
    """A valid submission; override any field."""
    fields = {
        "title": "Intro to Quantum Physics",
        "description": "Wave functions explained.",  # 25 chars
        "filename": "quantum.jpg",
        "data": JPEG_2MB,
        "is_paid": False,
        "tags": ["Quantum"],
        "mime_type": "image/jpeg",
    }
    fields.update(overrides)
    return SubmissionRequest(**fields)


def locked_session(*args, **kwargs):
    """Stand-in for ``get_session`` when the database cannot be reached."""
    raise OperationalError("SELECT", {}, Exception("database is locked"))
