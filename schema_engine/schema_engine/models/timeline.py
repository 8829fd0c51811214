"""Timeline models describing the commit history of the snapshot file."""

from __future__ import annotations

from pydantic import BaseModel, Field

from schema_engine.models.diff import DiffSummary


class TimelineEntry(BaseModel):
    """One commit that touched the snapshot file."""

    hash: str = Field(..., description="Abbreviated commit hash.")
    full_hash: str = Field(..., description="Full commit hash.")
    author: str = ""
    date: str = Field(default="", description="Commit date as an ISO-8601 string.")
    subject: str = ""
    tags: list[str] = Field(default_factory=list, description="Namespaced tags pointing at this commit.")
    is_auto_commit: bool = Field(default=False, description="Commit was created by the auto-commit operation.")
    summary: DiffSummary | None = Field(
        default=None,
        description="Change summary against the first parent, when requested.",
    )


class TagResolutionFailure(BaseModel):
    """A tag that could not be resolved to a commit."""

    tag: str
    reason: str


class Timeline(BaseModel):
    """Timeline entries (newest first) plus tag-resolution diagnostics."""

    entries: list[TimelineEntry] = Field(default_factory=list)
    tag_failures: list[TagResolutionFailure] = Field(default_factory=list)


class AutoCommitResult(BaseModel):
    """Outcome of committing the snapshot file."""

    hash: str = Field(..., description="Abbreviated hash of the new commit.")
    tag: str | None = Field(default=None, description="Fully namespaced tag name, if one was created.")
    message: str
