"""Engine services: timeline, environment resolution, conflict detection."""

from schema_engine.services.conflicts import ConflictDetector, find_conflicts
from schema_engine.services.environment import EnvironmentResolver
from schema_engine.services.timeline import MigrationTimelineService, SnapshotLocation, parse_snapshot

__all__ = [
    "ConflictDetector",
    "EnvironmentResolver",
    "MigrationTimelineService",
    "SnapshotLocation",
    "find_conflicts",
    "parse_snapshot",
]
