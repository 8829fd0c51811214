"""schemagit engine: version control for database schema snapshots."""

from schema_engine.config import Settings, load_settings
from schema_engine.diff.schema_diff import compute_schema_diff
from schema_engine.engine import SchemaEngine

__all__ = [
    "SchemaEngine",
    "Settings",
    "compute_schema_diff",
    "load_settings",
]
