"""Engine configuration loaded from environment variables."""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables with SCHEMAGIT_ prefix."""

    model_config = SettingsConfigDict(
        env_prefix="SCHEMAGIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    debug: bool = False

    # Project storage
    projects_root: Path = Path.home() / ".schemagit" / "projects"

    # Git
    git_timeout_seconds: int = 30

    # Timeline
    timeline_limit: int = 50
    tag_prefix: str = "schemagit/schema/"
    auto_commit_prefix: str = "[schemagit] "

    # Environments
    default_environment: str = "development"

    # Logging
    structured_logging: bool = False
    log_level: str = "INFO"

    @field_validator("tag_prefix")
    @classmethod
    def tag_prefix_ends_with_slash(cls, v: str) -> str:
        if not v:
            raise ValueError("tag_prefix cannot be empty")
        return v if v.endswith("/") else f"{v}/"

    @field_validator("timeline_limit", "git_timeout_seconds")
    @classmethod
    def positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be a positive integer")
        return v

    @field_validator("log_level")
    @classmethod
    def known_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {v!r}")
        return level


def load_settings(**overrides: object) -> Settings:
    """Load settings from environment, with optional overrides for testing."""
    settings = Settings(**overrides)  # type: ignore[arg-type]

    if settings.debug:
        logger.info("Loaded settings: projects_root=%s", settings.projects_root)

    return settings
