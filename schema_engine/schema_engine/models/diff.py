"""Diff models for comparing two schema snapshots.

These models represent the output of comparing a *before* snapshot with an
*after* snapshot at three levels (schema, table, column).  They are computed
on demand and never persisted.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from schema_engine.models.snapshot import ColumnSnapshot


class DiffStatus(str, Enum):
    """Classification of an entry between two snapshots."""

    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"
    UNCHANGED = "unchanged"


class ColumnDiff(BaseModel):
    """Per-column comparison result."""

    name: str
    status: DiffStatus
    before: ColumnSnapshot | None = Field(default=None, description="Column as it was, if it existed.")
    after: ColumnSnapshot | None = Field(default=None, description="Column as it is, if it exists.")
    changed_fields: list[str] = Field(
        default_factory=list,
        description="Attribute names that differ (only populated for modified columns).",
    )


class TableDiff(BaseModel):
    """Per-table comparison result with full per-column status."""

    name: str
    type: str = ""
    status: DiffStatus
    columns: list[ColumnDiff] = Field(default_factory=list)

    def changed_column_names(self) -> set[str]:
        """Names of columns whose status is not ``unchanged``."""
        return {c.name for c in self.columns if c.status != DiffStatus.UNCHANGED}


class SchemaDiff(BaseModel):
    """All table diffs within one schema name."""

    name: str
    tables: list[TableDiff] = Field(default_factory=list)


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'s' if count != 1 else ''}"


class DiffSummary(BaseModel):
    """Aggregate counts across every schema of a diff."""

    tables_added: int = 0
    tables_removed: int = 0
    tables_modified: int = 0
    columns_added: int = 0
    columns_removed: int = 0
    columns_modified: int = 0
    has_changes: bool = False

    def describe(self) -> str:
        """Short table-level phrase such as ``+2 tables, ~1 table``.

        Returns an empty string when no table-level change is present.
        """
        parts: list[str] = []
        if self.tables_added:
            parts.append(f"+{_plural(self.tables_added, 'table')}")
        if self.tables_removed:
            parts.append(f"-{_plural(self.tables_removed, 'table')}")
        if self.tables_modified:
            parts.append(f"~{_plural(self.tables_modified, 'table')}")
        return ", ".join(parts)


class SchemaDiffResult(BaseModel):
    """Full structural diff between two snapshots."""

    schemas: list[SchemaDiff] = Field(default_factory=list)
    summary: DiffSummary = Field(default_factory=DiffSummary)

    def iter_tables(self):
        """Yield ``(schema_name, TableDiff)`` pairs in output order."""
        for schema in self.schemas:
            for table in schema.tables:
                yield schema.name, table
