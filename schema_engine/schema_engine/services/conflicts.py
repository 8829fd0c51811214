"""Structural schema-conflict detection between two branches.

Works in a single read-only pass:

1. find the merge-base (nearest common ancestor) of the current ref and the
   target branch;
2. ask git which paths a merge would textually conflict on;
3. read the snapshot at the merge-base, the current ref and the target;
4. diff each side against the merge-base;
5. classify every table changed on *both* sides.

Classification by the pair of table statuses:

* removed / modified (either order) -- ``modified-deleted``, high.
* added / added -- ``both-added``, medium.  The same name was introduced
  independently and the definitions may differ.
* modified / modified with overlapping changed columns -- ``both-modified``,
  high, with the overlapping columns listed.
* modified / modified with disjoint changed columns -- ``both-modified``,
  low.  Column-level independence does not guarantee the merged table still
  makes sense (a rename split across two columns, for example), so this is
  reported rather than dropped.

Tables changed on only one side are never conflicts.  Missing history,
missing files and malformed snapshots all degrade to an empty snapshot; the
detector never raises for them.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import PurePosixPath

from schema_engine.diff.schema_diff import compute_schema_diff
from schema_engine.git.git_client import GitClientError
from schema_engine.git.provider import GitProvider
from schema_engine.models.conflict import (
    SEVERITY_ORDER,
    ConflictingColumn,
    ConflictKind,
    ConflictReport,
    ConflictSeverity,
    SchemaConflict,
)
from schema_engine.models.diff import DiffStatus, SchemaDiffResult, TableDiff
from schema_engine.services.timeline import MigrationTimelineService, SnapshotLocation
from schema_engine.store.project_store import SnapshotStore

logger = logging.getLogger(__name__)

SUMMARY_NOT_A_REPOSITORY = "Not a git repository"
SUMMARY_NO_COMMON_ANCESTOR = "No common ancestor found between branches — histories are unrelated"
SUMMARY_SAFE = "No schema conflicts detected — safe to merge"

_SHORT_HASH_LEN = 8


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'s' if count != 1 else ''}"


def find_conflicts(
    ours: SchemaDiffResult,
    theirs: SchemaDiffResult,
    *,
    target_branch: str = "target",
) -> list[SchemaConflict]:
    """Cross-reference two diffs taken from the same merge-base.

    Parameters
    ----------
    ours:
        Diff from the merge-base to the current branch.
    theirs:
        Diff from the merge-base to the target branch.
    target_branch:
        Used only in conflict descriptions.

    Returns
    -------
    list[SchemaConflict]
        Conflicts ordered high, medium, low; ties keep the order of *ours*.
    """
    theirs_tables: dict[tuple[str, str], TableDiff] = {
        (schema_name, table.name): table
        for schema_name, table in theirs.iter_tables()
        if table.status != DiffStatus.UNCHANGED
    }

    conflicts: list[SchemaConflict] = []
    for schema_name, table in ours.iter_tables():
        if table.status == DiffStatus.UNCHANGED:
            continue
        their_table = theirs_tables.get((schema_name, table.name))
        if their_table is None:
            continue

        conflict = _classify(schema_name, table, their_table, target_branch)
        if conflict is not None:
            conflicts.append(conflict)

    conflicts.sort(key=lambda c: SEVERITY_ORDER[c.severity])
    return conflicts


def _classify(
    schema_name: str,
    ours: TableDiff,
    theirs: TableDiff,
    target_branch: str,
) -> SchemaConflict | None:
    pair = (ours.status, theirs.status)
    name = ours.name

    if pair == (DiffStatus.REMOVED, DiffStatus.MODIFIED):
        return SchemaConflict(
            schema_name=schema_name,
            table=name,
            kind=ConflictKind.MODIFIED_DELETED,
            severity=ConflictSeverity.HIGH,
            description=f'Table "{name}" was deleted on the current branch but modified on {target_branch}',
        )

    if pair == (DiffStatus.MODIFIED, DiffStatus.REMOVED):
        return SchemaConflict(
            schema_name=schema_name,
            table=name,
            kind=ConflictKind.MODIFIED_DELETED,
            severity=ConflictSeverity.HIGH,
            description=f'Table "{name}" was modified on the current branch but deleted on {target_branch}',
        )

    if pair == (DiffStatus.ADDED, DiffStatus.ADDED):
        return SchemaConflict(
            schema_name=schema_name,
            table=name,
            kind=ConflictKind.BOTH_ADDED,
            severity=ConflictSeverity.MEDIUM,
            description=f'Table "{name}" was added on both branches; definitions may differ',
        )

    if pair == (DiffStatus.MODIFIED, DiffStatus.MODIFIED):
        shared = ours.changed_column_names() & theirs.changed_column_names()
        their_status = {c.name: c.status for c in theirs.columns}
        overlapping = [
            ConflictingColumn(
                name=column.name,
                ours_change=column.status.value,
                theirs_change=their_status[column.name].value,
            )
            for column in ours.columns
            if column.name in shared
        ]
        if overlapping:
            return SchemaConflict(
                schema_name=schema_name,
                table=name,
                kind=ConflictKind.BOTH_MODIFIED,
                severity=ConflictSeverity.HIGH,
                description=f"{_plural(len(overlapping), 'column')} modified on both branches",
                columns=overlapping,
            )
        return SchemaConflict(
            schema_name=schema_name,
            table=name,
            kind=ConflictKind.BOTH_MODIFIED,
            severity=ConflictSeverity.LOW,
            description=f'Table "{name}" modified on both branches but different columns affected',
        )

    # removed/removed and other pairs agree with each other.
    return None


def summarise(conflicts: list[SchemaConflict], *, has_schema_file_conflict: bool, snapshot_name: str) -> str:
    """One-line human summary of a conflict report."""
    count = len(conflicts)
    if count == 0 and not has_schema_file_conflict:
        return SUMMARY_SAFE
    if count == 0:
        return f"Git detects a text-level conflict in {snapshot_name} but no structural conflicts"

    summary = f"{_plural(count, 'conflicting table')}"
    high = sum(1 for c in conflicts if c.severity == ConflictSeverity.HIGH)
    medium = sum(1 for c in conflicts if c.severity == ConflictSeverity.MEDIUM)
    if high:
        summary += f" ({high} high severity)"
    elif medium:
        summary += f" ({medium} medium severity)"
    return summary


class ConflictDetector:
    """Detects structural schema conflicts with another branch.

    Parameters
    ----------
    git:
        Version-control provider.
    timeline:
        Supplies the snapshot's repo-relative location and ref reads.
    store:
        Snapshot store used to locate the project directory.
    """

    def __init__(
        self,
        git: GitProvider,
        timeline: MigrationTimelineService,
        store: SnapshotStore,
    ) -> None:
        self._git = git
        self._timeline = timeline
        self._store = store

    async def detect_conflicts(self, project_id: str, target_branch: str) -> ConflictReport:
        """Compare the current branch with *target_branch*.

        Always returns a well-formed report; see the module docstring for
        the classification rules.
        """
        try:
            location = await self._timeline.locate_snapshot(project_id)
        except GitClientError as exc:
            logger.warning("Could not locate repository for project %s: %s", project_id, exc)
            location = None
        if location is None:
            return ConflictReport(target_branch=target_branch, summary=SUMMARY_NOT_A_REPOSITORY)

        current_branch = await self._current_branch(project_id)
        current_ref = current_branch or "HEAD"

        try:
            base = await self._git.merge_base(location.repo_root, current_ref, target_branch)
        except GitClientError as exc:
            logger.warning(
                "Could not compute merge-base of %s and %s: %s",
                current_ref,
                target_branch,
                exc,
                extra={"project_id": project_id, "target_branch": target_branch},
            )
            return ConflictReport(
                current_branch=current_branch,
                target_branch=target_branch,
                summary=f"Could not compare with {target_branch}: branch or ref not found",
            )
        if base is None:
            return ConflictReport(
                current_branch=current_branch,
                target_branch=target_branch,
                summary=SUMMARY_NO_COMMON_ANCESTOR,
            )

        file_conflicts = await self._file_conflicts(location, target_branch)
        snapshot_name = PurePosixPath(location.rel_path).name
        has_schema_file_conflict = any(
            path == location.rel_path or path.endswith(snapshot_name) for path in file_conflicts
        )

        base_snapshot, ours_snapshot, theirs_snapshot = await asyncio.gather(
            self._timeline.read_snapshot_at(location, base),
            self._timeline.read_snapshot_at(location, current_ref),
            self._timeline.read_snapshot_at(location, target_branch),
        )

        ours_diff = compute_schema_diff(base_snapshot, ours_snapshot)
        theirs_diff = compute_schema_diff(base_snapshot, theirs_snapshot)
        conflicts = find_conflicts(ours_diff, theirs_diff, target_branch=target_branch)

        report = ConflictReport(
            current_branch=current_branch,
            target_branch=target_branch,
            merge_base=base[:_SHORT_HASH_LEN],
            file_conflicts=file_conflicts,
            schema_conflicts=conflicts,
            has_schema_file_conflict=has_schema_file_conflict,
            conflict_count=len(conflicts),
            summary=summarise(
                conflicts,
                has_schema_file_conflict=has_schema_file_conflict,
                snapshot_name=snapshot_name,
            ),
        )
        logger.info(
            "Conflict check %s -> %s: %s",
            current_ref,
            target_branch,
            report.summary,
            extra={"project_id": project_id, "branch": current_branch, "target_branch": target_branch},
        )
        return report

    async def _current_branch(self, project_id: str) -> str | None:
        try:
            status = await self._git.get_status(self._store.project_dir(project_id))
        except GitClientError as exc:
            logger.warning("Could not read branch for project %s: %s", project_id, exc)
            return None
        return status.branch

    async def _file_conflicts(self, location: SnapshotLocation, target_branch: str) -> list[str]:
        try:
            return await self._git.dry_run_merge(location.repo_root, target_branch)
        except GitClientError as exc:
            logger.warning("Dry-run merge against %s failed: %s", target_branch, exc)
            return []
