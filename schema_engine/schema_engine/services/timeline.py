"""Migration timeline built from the git history of the snapshot file.

Each commit that touches ``schema/schema.json`` is one timeline entry.
Entries carry any tags in the reserved namespace that point at them, and are
flagged as auto-commits when their subject starts with the reserved prefix.

The service can also *create* history: :meth:`auto_commit_schema` stages and
commits only the snapshot file and optionally tags the new commit.

Reads are best-effort.  A project outside version control, a ref at which
the snapshot file is missing, or a snapshot that fails to parse all degrade
to empty or absent values rather than raising.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from schema_engine.config import Settings, load_settings
from schema_engine.diff.schema_diff import compute_schema_diff
from schema_engine.errors import NotARepositoryError, SchemaCommitError, TagCreationError
from schema_engine.git.git_client import GitClientError, validate_tag_name
from schema_engine.git.provider import GitProvider
from schema_engine.models.diff import DiffSummary
from schema_engine.models.snapshot import SnapshotFile
from schema_engine.models.timeline import (
    AutoCommitResult,
    TagResolutionFailure,
    Timeline,
    TimelineEntry,
)
from schema_engine.store.project_store import SnapshotStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SnapshotLocation:
    """Where the snapshot file lives inside its repository."""

    repo_root: Path
    rel_path: str


def parse_snapshot(raw: str | None) -> SnapshotFile | None:
    """Parse snapshot JSON, returning None for empty or malformed content."""
    if not raw or not raw.strip():
        return None
    try:
        return SnapshotFile.model_validate_json(raw)
    except ValidationError as exc:
        logger.warning("Ignoring malformed snapshot content (%d error(s))", exc.error_count())
        return None


class MigrationTimelineService:
    """Reads and writes the version history of a project's snapshot file.

    Parameters
    ----------
    git:
        Version-control provider.
    store:
        Snapshot store used to locate the project directory and read the
        working-tree snapshot.
    settings:
        Supplies the tag namespace, auto-commit prefix and default limit.
    """

    def __init__(
        self,
        git: GitProvider,
        store: SnapshotStore,
        *,
        settings: Settings | None = None,
    ) -> None:
        self._git = git
        self._store = store
        self._settings = settings or load_settings()

    @property
    def tag_prefix(self) -> str:
        return self._settings.tag_prefix

    @property
    def auto_commit_prefix(self) -> str:
        return self._settings.auto_commit_prefix

    def namespace_tag(self, tag: str) -> str:
        """Place *tag* under the reserved namespace unless it already is."""
        tag = tag.strip()
        return tag if tag.startswith(self.tag_prefix) else f"{self.tag_prefix}{tag}"

    # ------------------------------------------------------------------
    # Location and content
    # ------------------------------------------------------------------

    async def locate_snapshot(self, project_id: str) -> SnapshotLocation | None:
        """Resolve the repository root and the snapshot's repo-relative path.

        Returns None when the project directory is not under version control.

        Raises
        ------
        GitClientError
            If the repository root cannot be determined.
        """
        project_dir = self._store.project_dir(project_id)
        if not await self._git.is_repository(project_dir):
            return None

        repo_root = await self._git.get_repo_root(project_dir)
        snapshot_path = self._store.snapshot_path(project_id).resolve()
        rel_path = os.path.relpath(snapshot_path, repo_root.resolve()).replace(os.sep, "/")
        return SnapshotLocation(repo_root=repo_root, rel_path=rel_path)

    async def read_snapshot_at(self, location: SnapshotLocation, ref: str) -> SnapshotFile | None:
        """Return the snapshot as of *ref*, or None if it cannot be read."""
        try:
            raw = await self._git.read_file_at_ref(location.repo_root, location.rel_path, ref)
        except GitClientError as exc:
            logger.debug("No snapshot at %s: %s", ref, exc)
            return None
        return parse_snapshot(raw)

    async def _summary_for(self, location: SnapshotLocation, commit_hash: str) -> DiffSummary:
        after = await self.read_snapshot_at(location, commit_hash)
        before = await self.read_snapshot_at(location, f"{commit_hash}~1")
        return compute_schema_diff(before, after).summary

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_timeline(
        self,
        project_id: str,
        limit: int | None = None,
        *,
        include_summaries: bool = False,
    ) -> Timeline:
        """Return commits that touched the snapshot file, newest first.

        Parameters
        ----------
        project_id:
            Project whose snapshot history is listed.
        limit:
            Maximum number of commits; defaults to ``settings.timeline_limit``
            when None.  A limit below 1 yields an empty timeline.
        include_summaries:
            When True, each entry's ``summary`` is computed against its
            first parent.
        """
        if limit is None:
            limit = self._settings.timeline_limit
        if limit < 1:
            logger.warning("Ignoring timeline request for project %s with limit %d", project_id, limit)
            return Timeline()
        try:
            location = await self.locate_snapshot(project_id)
        except GitClientError as exc:
            logger.warning("Could not locate repository for project %s: %s", project_id, exc)
            return Timeline()
        if location is None:
            return Timeline()

        try:
            commits = await self._git.file_history(location.repo_root, location.rel_path, limit)
        except GitClientError as exc:
            # A repository without commits has no history to show.
            logger.info("No history for %s: %s", location.rel_path, exc)
            return Timeline()
        if not commits:
            return Timeline()

        tags_by_commit, failures = await self._tags_by_commit(location.repo_root)

        entries: list[TimelineEntry] = []
        for commit in commits:
            entry = TimelineEntry(
                hash=commit.hash,
                full_hash=commit.full_hash,
                author=commit.author,
                date=commit.date,
                subject=commit.subject,
                tags=tags_by_commit.get(commit.full_hash, []),
                is_auto_commit=commit.subject.startswith(self.auto_commit_prefix),
            )
            if include_summaries:
                entry.summary = await self._summary_for(location, commit.full_hash)
            entries.append(entry)

        return Timeline(entries=entries, tag_failures=failures)

    async def _tags_by_commit(self, repo_root: Path) -> tuple[dict[str, list[str]], list[TagResolutionFailure]]:
        """Group namespaced tags by the full hash of the commit they point at."""
        failures: list[TagResolutionFailure] = []
        pattern = f"{self.tag_prefix}*"
        try:
            tags = await self._git.list_tags(repo_root, pattern)
        except GitClientError as exc:
            logger.warning("Could not list tags matching %s: %s", pattern, exc)
            return {}, [TagResolutionFailure(tag=pattern, reason=str(exc))]

        grouped: dict[str, list[str]] = {}
        for tag in tags:
            try:
                commit = await self._git.resolve_ref_to_commit(repo_root, tag)
            except GitClientError as exc:
                failures.append(TagResolutionFailure(tag=tag, reason=str(exc)))
                continue
            if commit is None:
                failures.append(TagResolutionFailure(tag=tag, reason="tag does not point to a commit"))
                continue
            grouped.setdefault(commit, []).append(tag)

        if failures:
            logger.warning("%d tag(s) could not be resolved", len(failures))
        return grouped, failures

    async def get_commit_summary(self, project_id: str, commit_hash: str) -> DiffSummary | None:
        """Summarise what *commit_hash* changed relative to its first parent.

        Returns None when the project is not under version control.  A
        missing file at either side (root commit, file not yet created) is
        treated as an empty snapshot.
        """
        try:
            location = await self.locate_snapshot(project_id)
        except GitClientError as exc:
            logger.warning("Could not locate repository for project %s: %s", project_id, exc)
            return None
        if location is None:
            return None
        return await self._summary_for(location, commit_hash)

    async def get_working_tree_summary(self, project_id: str) -> DiffSummary | None:
        """Summarise the working-tree snapshot against its ``HEAD`` version."""
        try:
            location = await self.locate_snapshot(project_id)
        except GitClientError as exc:
            logger.warning("Could not locate repository for project %s: %s", project_id, exc)
            return None
        if location is None:
            return None
        return await self._working_tree_summary(project_id, location)

    async def _working_tree_summary(self, project_id: str, location: SnapshotLocation) -> DiffSummary:
        before = await self.read_snapshot_at(location, "HEAD")
        after = await self._store.get_snapshot_file(project_id)
        return compute_schema_diff(before, after).summary

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def auto_commit_schema(
        self,
        project_id: str,
        *,
        message: str | None = None,
        tag: str | None = None,
    ) -> AutoCommitResult:
        """Commit the snapshot file and optionally tag the new commit.

        Parameters
        ----------
        project_id:
            Project whose snapshot file is committed.
        message:
            Commit message.  When omitted, one is synthesised from the
            working-tree diff, e.g. ``[schemagit] +2 tables, ~1 table``.
        tag:
            Optional tag name; placed under the reserved namespace if it is
            not already.  The tag is annotated with the commit message.

        Raises
        ------
        NotARepositoryError
            If the project directory is not under version control.
        SchemaCommitError
            If the tag name is invalid or staging/committing fails.  Nothing
            was committed.
        TagCreationError
            If the commit succeeded but the tag could not be created.  The
            commit is kept.
        """
        try:
            location = await self.locate_snapshot(project_id)
        except GitClientError as exc:
            raise SchemaCommitError(f"Could not locate repository: {exc}") from exc
        if location is None:
            raise NotARepositoryError("Project directory is not a git repository")

        tag_name: str | None = None
        if tag and tag.strip():
            tag_name = self.namespace_tag(tag)
            try:
                validate_tag_name(tag_name)
            except ValueError as exc:
                raise SchemaCommitError(str(exc)) from exc

        if not message or not message.strip():
            summary = await self._working_tree_summary(project_id, location)
            phrase = summary.describe()
            message = f"{self.auto_commit_prefix}{phrase or 'schema update'}"

        try:
            commit_hash = await self._git.stage_and_commit(location.repo_root, [location.rel_path], message)
        except GitClientError as exc:
            raise SchemaCommitError(f"Could not commit schema snapshot: {exc}") from exc

        if tag_name is not None:
            try:
                await self._git.create_annotated_tag(location.repo_root, tag_name, message)
            except GitClientError as exc:
                raise TagCreationError(
                    f"Committed {commit_hash} but could not create tag {tag_name}: {exc}",
                    commit_hash=commit_hash,
                    tag=tag_name,
                ) from exc

        logger.info(
            "Auto-committed schema snapshot %s%s",
            commit_hash,
            f" tagged {tag_name}" if tag_name else "",
            extra={"project_id": project_id, "commit": commit_hash},
        )
        return AutoCommitResult(hash=commit_hash, tag=tag_name, message=message)
