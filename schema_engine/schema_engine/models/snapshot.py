"""Snapshot models for capturing the structural schema of a database.

A :class:`SnapshotFile` is the single versioned artifact of a project: it is
written to ``schema/schema.json`` whenever the database introspector produces
a new snapshot, and its git history is what the timeline and conflict
detector operate on.

Identity is always by name -- a table is identified by ``(schema, table)``
and a column by ``(schema, table, column)``.  List order is preserved for
display but never used to match entries between two snapshots.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field

SNAPSHOT_FORMAT_VERSION = 1


class ColumnSnapshot(BaseModel):
    """Structural description of a single column."""

    name: str = Field(..., min_length=1, description="Column name, unique within its table.")
    type: str = Field(default="", description="Database type string, e.g. 'varchar(255)'.")
    nullable: bool = Field(default=True, description="Whether the column accepts NULL.")
    is_primary_key: bool = Field(default=False, description="Column is part of the primary key.")
    is_foreign_key: bool = Field(default=False, description="Column references another table.")
    default_value: str | None = Field(default=None, description="Default expression, if any.")
    is_unique: bool = Field(default=False, description="Column carries a uniqueness constraint.")


class TableSnapshot(BaseModel):
    """A table or view within a schema."""

    name: str = Field(..., min_length=1, description="Table name, unique within its schema.")
    type: str = Field(default="BASE TABLE", description="Table type tag, e.g. 'BASE TABLE' or 'VIEW'.")
    columns: list[ColumnSnapshot] = Field(default_factory=list)


class SchemaSnapshot(BaseModel):
    """A named schema (namespace) and its tables."""

    name: str = Field(..., min_length=1, description="Schema name, unique within a snapshot.")
    tables: list[TableSnapshot] = Field(default_factory=list)


class SnapshotFile(BaseModel):
    """The versioned container persisted as ``schema/schema.json``.

    ``cached_at`` records when the introspector last refreshed the file.  It
    is not part of the structural content, so two files that differ only in
    ``cached_at`` compare as identical for diffing purposes.
    """

    version: int = Field(default=SNAPSHOT_FORMAT_VERSION, description="Snapshot file format version.")
    project_id: str = Field(default="", description="Owning project identifier.")
    database_id: str = Field(default="", description="Owning database-connection identifier.")
    schemas: list[SchemaSnapshot] = Field(default_factory=list)
    cached_at: str = Field(
        default_factory=lambda: datetime.now(UTC).isoformat(),
        description="ISO-8601 timestamp of the last introspection.",
    )

    def table_count(self) -> int:
        return sum(len(s.tables) for s in self.schemas)

    def column_count(self) -> int:
        return sum(len(t.columns) for s in self.schemas for t in s.tables)
