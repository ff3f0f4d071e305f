"""Configuration loading from environment variables with validation."""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

# Anchor all paths to the project root (two levels up from the package)
_PROJECT_DIR = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="EDUSHARE_",
        case_sensitive=False,
    )

    # Anthropic (loaded separately, no prefix)
    anthropic_api_key: str = ""

    # Model settings
    model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 1024
    temperature: float = 0.2
    llm_max_attempts: int = 1  # the pipeline never retries on its own
    llm_timeout_seconds: float = 60.0

    # Content record store
    db_path: Path = _PROJECT_DIR / "data" / "edushare.db"

    # Blob storage
    storage_backend: str = "local"  # local | http
    storage_dir: Path = _PROJECT_DIR / "data" / "blobs"
    storage_base_url: str = "file://" + str(_PROJECT_DIR / "data" / "blobs")
    storage_endpoint: str = ""
    storage_token: str = ""

    # Submission limits
    max_upload_bytes: int = 5 * 1024 * 1024
    max_user_tags: int = 5
    min_title_length: int = 5
    min_description_length: int = 20
    allowed_mime_types: list[str] = [
        "image/jpeg",
        "image/png",
        "image/webp",
        "video/mp4",
        "application/pdf",
    ]

    # Acting user for the CLI (there is no sign-in flow here)
    user_id: str = ""
    user_email: str = ""

    # Logging
    log_level: str = "INFO"


def get_settings() -> Settings:
    """Load settings from environment and .env file."""
    # Load .env from the project root regardless of cwd
    load_dotenv(_PROJECT_DIR / ".env")
    api_key = os.getenv("ANTHROPIC_API_KEY", "")
    return Settings(anthropic_api_key=api_key)
