"""Unit tests for schema_engine.diff.schema_diff."""

from __future__ import annotations

from fakes import col, snapshot, table
from schema_engine.diff.schema_diff import COLUMN_ATTRIBUTES, compute_schema_diff
from schema_engine.models.diff import DiffStatus, DiffSummary
from schema_engine.models.snapshot import SchemaSnapshot, SnapshotFile


def _users() -> SnapshotFile:
    return snapshot(
        table("users", col("id", is_primary_key=True, nullable=False), col("name", "varchar")),
        table("orders", col("id"), col("user_id", is_foreign_key=True)),
    )


# ---------------------------------------------------------------------------
# Identity and absence
# ---------------------------------------------------------------------------


class TestIdentity:
    def test_self_diff_is_unchanged(self):
        snap = _users()
        result = compute_schema_diff(snap, snap)

        assert result.summary == DiffSummary()
        assert result.summary.has_changes is False
        for _, tbl in result.iter_tables():
            assert tbl.status == DiffStatus.UNCHANGED
            assert all(c.status == DiffStatus.UNCHANGED for c in tbl.columns)

    def test_both_absent_is_empty(self):
        result = compute_schema_diff(None, None)
        assert result.schemas == []
        assert result.summary.has_changes is False

    def test_against_absent_before_everything_added(self):
        snap = _users()
        result = compute_schema_diff(None, snap)

        assert result.summary.tables_added == snap.table_count()
        assert result.summary.columns_added == snap.column_count()
        assert result.summary.tables_removed == 0
        assert result.summary.has_changes is True
        for _, tbl in result.iter_tables():
            assert tbl.status == DiffStatus.ADDED
            assert all(c.status == DiffStatus.ADDED for c in tbl.columns)

    def test_against_absent_after_everything_removed(self):
        snap = _users()
        result = compute_schema_diff(snap, None)

        assert result.summary.tables_removed == 2
        assert result.summary.columns_removed == 4
        assert result.summary.tables_added == 0
        assert all(t.status == DiffStatus.REMOVED for _, t in result.iter_tables())

    def test_empty_snapshot_equals_absent(self):
        empty = SnapshotFile(schemas=[])
        assert compute_schema_diff(empty, _users()).summary == compute_schema_diff(None, _users()).summary


# ---------------------------------------------------------------------------
# Matching by name
# ---------------------------------------------------------------------------


class TestMatching:
    def test_reordering_produces_no_changes(self):
        before = snapshot(table("a", col("x"), col("y")), table("b", col("z")))
        after = snapshot(table("b", col("z")), table("a", col("y"), col("x")))

        result = compute_schema_diff(before, after)
        assert result.summary.has_changes is False

    def test_first_duplicate_wins(self):
        before = snapshot(table("t", col("c", "int")))
        after = snapshot(table("t", col("c", "int"), col("c", "text")))

        result = compute_schema_diff(before, after)
        assert result.summary.has_changes is False
        (_, tbl), = list(result.iter_tables())
        assert len(tbl.columns) == 1

    def test_same_table_name_in_different_schemas_is_distinct(self):
        before = SnapshotFile(
            schemas=[
                SchemaSnapshot(name="public", tables=[table("t", col("a"))]),
                SchemaSnapshot(name="audit", tables=[table("t", col("a"))]),
            ]
        )
        after = SnapshotFile(
            schemas=[
                SchemaSnapshot(name="public", tables=[table("t", col("a"))]),
                SchemaSnapshot(name="audit", tables=[table("t", col("a"), col("b"))]),
            ]
        )

        result = compute_schema_diff(before, after)
        statuses = {(s, t.name): t.status for s, t in result.iter_tables()}
        assert statuses == {("public", "t"): DiffStatus.UNCHANGED, ("audit", "t"): DiffStatus.MODIFIED}


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


class TestClassification:
    def test_added_and_removed_columns(self):
        before = snapshot(table("users", col("id"), col("legacy")))
        after = snapshot(table("users", col("id"), col("email", "text")))

        result = compute_schema_diff(before, after)
        (_, tbl), = list(result.iter_tables())
        statuses = {c.name: c.status for c in tbl.columns}

        assert tbl.status == DiffStatus.MODIFIED
        assert statuses == {"id": DiffStatus.UNCHANGED, "email": DiffStatus.ADDED, "legacy": DiffStatus.REMOVED}
        assert tbl.changed_column_names() == {"email", "legacy"}
        assert result.summary.tables_modified == 1
        assert result.summary.columns_added == 1
        assert result.summary.columns_removed == 1

    def test_each_attribute_marks_column_modified(self):
        base = col("c", "int")
        changes = {
            "type": {"type": "bigint"},
            "nullable": {"nullable": False},
            "is_primary_key": {"is_primary_key": True},
            "is_foreign_key": {"is_foreign_key": True},
            "default_value": {"default_value": "0"},
            "is_unique": {"is_unique": True},
        }
        assert set(changes) == set(COLUMN_ATTRIBUTES)

        for attr, update in changes.items():
            changed = base.model_copy(update=update)
            result = compute_schema_diff(snapshot(table("t", base)), snapshot(table("t", changed)))
            (_, tbl), = list(result.iter_tables())
            assert tbl.columns[0].status == DiffStatus.MODIFIED, attr
            assert tbl.columns[0].changed_fields == [attr]

    def test_table_type_change_alone_is_not_modification(self):
        before = snapshot(table("v", col("a"), type_="VIEW"))
        after = snapshot(table("v", col("a"), type_="BASE TABLE"))
        assert compute_schema_diff(before, after).summary.has_changes is False

    def test_output_order_follows_after_then_before_only(self):
        before = snapshot(table("gone", col("a")), table("kept", col("a")))
        after = snapshot(table("new", col("a")), table("kept", col("a")))

        names = [t.name for _, t in compute_schema_diff(before, after).iter_tables()]
        assert names == ["new", "kept", "gone"]

    def test_output_is_idempotent(self):
        before = _users()
        after = snapshot(table("users", col("id"), col("email")))

        first = compute_schema_diff(before, after).model_dump_json()
        second = compute_schema_diff(before, after).model_dump_json()
        assert first == second


# ---------------------------------------------------------------------------
# Summary phrasing
# ---------------------------------------------------------------------------


class TestDescribe:
    def test_describe_mixed(self):
        summary = DiffSummary(tables_added=2, tables_removed=1, tables_modified=1, has_changes=True)
        assert summary.describe() == "+2 tables, -1 table, ~1 table"

    def test_describe_empty(self):
        assert DiffSummary().describe() == ""
