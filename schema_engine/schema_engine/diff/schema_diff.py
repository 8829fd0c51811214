"""Structural diff engine for comparing two schema snapshots.

Compares a *before* and an *after* :class:`SnapshotFile` at three levels --
schema, table, column -- and classifies every entry as added, removed,
modified or unchanged.  Entries are matched by name at each level, never by
position, so reordering tables or columns never produces a diff.

Output ordering follows *after* first and then appends entries that exist
only in *before* (in *before*'s order).  Identical inputs therefore always
produce byte-identical JSON, which the snapshot store relies on when it
skips rewriting an unchanged file.

This module performs no I/O and never raises for empty or absent inputs.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TypeVar

from schema_engine.models.diff import (
    ColumnDiff,
    DiffStatus,
    DiffSummary,
    SchemaDiff,
    SchemaDiffResult,
    TableDiff,
)
from schema_engine.models.snapshot import (
    ColumnSnapshot,
    SchemaSnapshot,
    SnapshotFile,
    TableSnapshot,
)

# Attributes compared to decide whether a column present on both sides
# counts as modified.
COLUMN_ATTRIBUTES: tuple[str, ...] = (
    "type",
    "nullable",
    "is_primary_key",
    "is_foreign_key",
    "default_value",
    "is_unique",
)

_T = TypeVar("_T", ColumnSnapshot, TableSnapshot, SchemaSnapshot)


def _index_by_name(items: Iterable[_T]) -> dict[str, _T]:
    """Key *items* by name, keeping the first occurrence of duplicates."""
    indexed: dict[str, _T] = {}
    for item in items:
        indexed.setdefault(item.name, item)
    return indexed


def _ordered_names(after: dict[str, _T], before: dict[str, _T]) -> list[str]:
    return list(after) + [name for name in before if name not in after]


def _changed_fields(before: ColumnSnapshot, after: ColumnSnapshot) -> list[str]:
    return [attr for attr in COLUMN_ATTRIBUTES if getattr(before, attr) != getattr(after, attr)]


def _diff_columns(
    before_columns: list[ColumnSnapshot],
    after_columns: list[ColumnSnapshot],
) -> list[ColumnDiff]:
    before = _index_by_name(before_columns)
    after = _index_by_name(after_columns)

    diffs: list[ColumnDiff] = []
    for name in _ordered_names(after, before):
        old = before.get(name)
        new = after.get(name)
        if old is None:
            diffs.append(ColumnDiff(name=name, status=DiffStatus.ADDED, after=new))
        elif new is None:
            diffs.append(ColumnDiff(name=name, status=DiffStatus.REMOVED, before=old))
        else:
            changed = _changed_fields(old, new)
            status = DiffStatus.MODIFIED if changed else DiffStatus.UNCHANGED
            diffs.append(ColumnDiff(name=name, status=status, before=old, after=new, changed_fields=changed))
    return diffs


def _diff_table(name: str, before: TableSnapshot | None, after: TableSnapshot | None) -> TableDiff:
    if before is None and after is not None:
        columns = [
            ColumnDiff(name=c.name, status=DiffStatus.ADDED, after=c) for c in _index_by_name(after.columns).values()
        ]
        return TableDiff(name=name, type=after.type, status=DiffStatus.ADDED, columns=columns)

    if after is None and before is not None:
        columns = [
            ColumnDiff(name=c.name, status=DiffStatus.REMOVED, before=c) for c in _index_by_name(before.columns).values()
        ]
        return TableDiff(name=name, type=before.type, status=DiffStatus.REMOVED, columns=columns)

    # Present on both sides (callers never pass two absent tables).
    columns = _diff_columns(before.columns, after.columns)  # type: ignore[union-attr]
    changed = any(c.status != DiffStatus.UNCHANGED for c in columns)
    return TableDiff(
        name=name,
        type=after.type,  # type: ignore[union-attr]
        status=DiffStatus.MODIFIED if changed else DiffStatus.UNCHANGED,
        columns=columns,
    )


def _diff_schema(name: str, before: SchemaSnapshot | None, after: SchemaSnapshot | None) -> SchemaDiff:
    before_tables = _index_by_name(before.tables) if before is not None else {}
    after_tables = _index_by_name(after.tables) if after is not None else {}
    tables = [
        _diff_table(table_name, before_tables.get(table_name), after_tables.get(table_name))
        for table_name in _ordered_names(after_tables, before_tables)
    ]
    return SchemaDiff(name=name, tables=tables)


def _summarise(schemas: list[SchemaDiff]) -> DiffSummary:
    table_counts = dict.fromkeys(DiffStatus, 0)
    column_counts = dict.fromkeys(DiffStatus, 0)
    for schema in schemas:
        for table in schema.tables:
            table_counts[table.status] += 1
            for column in table.columns:
                column_counts[column.status] += 1

    summary = DiffSummary(
        tables_added=table_counts[DiffStatus.ADDED],
        tables_removed=table_counts[DiffStatus.REMOVED],
        tables_modified=table_counts[DiffStatus.MODIFIED],
        columns_added=column_counts[DiffStatus.ADDED],
        columns_removed=column_counts[DiffStatus.REMOVED],
        columns_modified=column_counts[DiffStatus.MODIFIED],
    )
    summary.has_changes = any(
        (
            summary.tables_added,
            summary.tables_removed,
            summary.tables_modified,
            summary.columns_added,
            summary.columns_removed,
            summary.columns_modified,
        )
    )
    return summary


def compute_schema_diff(
    before: SnapshotFile | None,
    after: SnapshotFile | None,
) -> SchemaDiffResult:
    """Compare two snapshots and classify every schema, table and column.

    Parameters
    ----------
    before:
        The base (old) snapshot, or ``None`` when it does not exist.  An
        absent snapshot is treated as one with zero schemas.
    after:
        The target (new) snapshot, or ``None``.

    Returns
    -------
    SchemaDiffResult
        Per-schema table diffs, each carrying full per-column status, and
        aggregate counts in ``summary``.
    """
    before_schemas = _index_by_name(before.schemas) if before is not None else {}
    after_schemas = _index_by_name(after.schemas) if after is not None else {}

    schemas = [
        _diff_schema(name, before_schemas.get(name), after_schemas.get(name))
        for name in _ordered_names(after_schemas, before_schemas)
    ]
    return SchemaDiffResult(schemas=schemas, summary=_summarise(schemas))
