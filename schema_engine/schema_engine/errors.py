"""Exception hierarchy for the schemagit engine.

Read paths (timeline listing, commit summaries, environment resolution,
conflict detection) degrade to neutral results instead of raising.  Only
write paths raise, so callers can tell a versioned snapshot apart from one
that silently failed to commit.
"""

from __future__ import annotations


class SchemaEngineError(Exception):
    """Base class for all engine errors."""


class NotARepositoryError(SchemaEngineError):
    """The project directory is not inside a git working tree."""


class ProjectNotFoundError(SchemaEngineError):
    """No metadata exists for the requested project."""


class MetadataWriteError(SchemaEngineError):
    """Project metadata or the local override file could not be written."""


class SnapshotWriteError(SchemaEngineError):
    """The snapshot file could not be written."""


class SchemaCommitError(SchemaEngineError):
    """Staging or committing the snapshot file failed."""


class TagCreationError(SchemaCommitError):
    """The snapshot commit succeeded but the tag could not be created.

    The commit is kept; ``commit_hash`` identifies it.
    """

    def __init__(self, message: str, *, commit_hash: str, tag: str) -> None:
        super().__init__(message)
        self.commit_hash = commit_hash
        self.tag = tag
