"""Domain models for the schemagit engine."""

from schema_engine.models.conflict import (
    ConflictingColumn,
    ConflictKind,
    ConflictReport,
    ConflictSeverity,
    SchemaConflict,
)
from schema_engine.models.diff import (
    ColumnDiff,
    DiffStatus,
    DiffSummary,
    SchemaDiff,
    SchemaDiffResult,
    TableDiff,
)
from schema_engine.models.environment import (
    ConnectionSource,
    EnvironmentConfig,
    EnvironmentMapping,
    ResolvedEnvironment,
)
from schema_engine.models.project import LocalOverride, ProjectMetadata, ProjectSummary
from schema_engine.models.snapshot import (
    ColumnSnapshot,
    SchemaSnapshot,
    SnapshotFile,
    TableSnapshot,
)
from schema_engine.models.timeline import (
    AutoCommitResult,
    TagResolutionFailure,
    Timeline,
    TimelineEntry,
)

__all__ = [
    "AutoCommitResult",
    "ColumnDiff",
    "ColumnSnapshot",
    "ConflictKind",
    "ConflictReport",
    "ConflictSeverity",
    "ConflictingColumn",
    "ConnectionSource",
    "DiffStatus",
    "DiffSummary",
    "EnvironmentConfig",
    "EnvironmentMapping",
    "LocalOverride",
    "ProjectMetadata",
    "ProjectSummary",
    "ResolvedEnvironment",
    "SchemaConflict",
    "SchemaDiff",
    "SchemaDiffResult",
    "SchemaSnapshot",
    "SnapshotFile",
    "TableDiff",
    "TableSnapshot",
    "TagResolutionFailure",
    "Timeline",
    "TimelineEntry",
]
