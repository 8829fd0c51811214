"""Project metadata and machine-local override models."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field

from schema_engine.models.environment import EnvironmentConfig


def _utc_now_iso() -> str:
    return datetime.now(UTC).isoformat()


class ProjectMetadata(BaseModel):
    """Committed project metadata (``schemagit.json``).

    The environment mapping block is an explicit field so that reading and
    writing it never depends on untyped extra keys.
    """

    version: int = 1
    id: str = Field(..., min_length=1)
    database_id: str = ""
    name: str = Field(..., min_length=1)
    description: str | None = None
    engine: str | None = None
    default_schema: str | None = None
    source_path: str | None = Field(
        default=None,
        description="For imported projects, the checked-out directory the project lives in.",
    )
    created_at: str = Field(default_factory=_utc_now_iso)
    updated_at: str = Field(default_factory=_utc_now_iso)
    environments: EnvironmentConfig | None = None

    def touch(self) -> None:
        self.updated_at = _utc_now_iso()


class LocalOverride(BaseModel):
    """Machine-local settings (``schemagit.local.json``), never committed."""

    database_id: str | None = Field(default=None, description="Local database connection identifier.")
    connection_url: str | None = Field(default=None, description="Developer-specific connection URL override.")
    environment: str | None = Field(default=None, description="Local environment label note.")
    notes: str | None = None


class ProjectSummary(BaseModel):
    """Lightweight index entry for a project."""

    id: str
    name: str
    database_id: str = ""
    description: str | None = None
    engine: str | None = None
    source_path: str | None = None
    created_at: str = Field(default_factory=_utc_now_iso)
    updated_at: str = Field(default_factory=_utc_now_iso)
