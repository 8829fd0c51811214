"""Deterministic structural diff engine for schema snapshots."""

from schema_engine.diff.schema_diff import COLUMN_ATTRIBUTES, compute_schema_diff
from schema_engine.models.diff import SchemaDiffResult

__all__ = [
    "COLUMN_ATTRIBUTES",
    "SchemaDiffResult",
    "compute_schema_diff",
]
