"""Durable JSON persistence for projects and schema snapshots."""

from schema_engine.store.project_store import (
    LOCAL_OVERRIDE_FILE,
    METADATA_FILE,
    SNAPSHOT_FILE,
    ProjectIndex,
    ProjectStore,
    SnapshotStore,
    schemas_equal,
)

__all__ = [
    "LOCAL_OVERRIDE_FILE",
    "METADATA_FILE",
    "SNAPSHOT_FILE",
    "ProjectIndex",
    "ProjectStore",
    "SnapshotStore",
    "schemas_equal",
]
