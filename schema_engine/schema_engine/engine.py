"""Wires the engine services to their collaborators.

There are no module-level service instances.  A :class:`SchemaEngine` owns
one version-control provider and one snapshot store and hands the same
instances to every service, so tests can swap either for a fake.
"""

from __future__ import annotations

import logging

from schema_engine.config import Settings, load_settings
from schema_engine.diff.schema_diff import compute_schema_diff
from schema_engine.git.provider import GitProvider, SubprocessGitProvider
from schema_engine.models.conflict import ConflictReport
from schema_engine.models.diff import DiffSummary, SchemaDiffResult
from schema_engine.models.environment import EnvironmentConfig, EnvironmentMapping, ResolvedEnvironment
from schema_engine.models.snapshot import SnapshotFile
from schema_engine.models.timeline import AutoCommitResult, Timeline
from schema_engine.services.conflicts import ConflictDetector
from schema_engine.services.environment import EnvironmentResolver
from schema_engine.services.timeline import MigrationTimelineService
from schema_engine.store.project_store import ProjectStore, SnapshotStore

logger = logging.getLogger(__name__)


class SchemaEngine:
    """Entry point exposing every engine operation.

    Parameters
    ----------
    settings:
        Engine settings; loaded from the environment when omitted.
    git:
        Version-control provider; defaults to :class:`SubprocessGitProvider`.
    store:
        Snapshot store; defaults to a :class:`ProjectStore` rooted at
        ``settings.projects_root``.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        git: GitProvider | None = None,
        store: SnapshotStore | None = None,
    ) -> None:
        self.settings = settings or load_settings()
        self.git: GitProvider = git or SubprocessGitProvider(timeout=self.settings.git_timeout_seconds)
        self.store: SnapshotStore = store or ProjectStore(self.settings.projects_root)

        self.timeline = MigrationTimelineService(self.git, self.store, settings=self.settings)
        self.environments = EnvironmentResolver(self.git, self.store, settings=self.settings)
        self.conflicts = ConflictDetector(self.git, self.timeline, self.store)

    @staticmethod
    def diff(before: SnapshotFile | None, after: SnapshotFile | None) -> SchemaDiffResult:
        return compute_schema_diff(before, after)

    # -- timeline ------------------------------------------------------------

    async def get_timeline(
        self,
        project_id: str,
        limit: int | None = None,
        *,
        include_summaries: bool = False,
    ) -> Timeline:
        return await self.timeline.get_timeline(project_id, limit, include_summaries=include_summaries)

    async def get_commit_summary(self, project_id: str, commit_hash: str) -> DiffSummary | None:
        return await self.timeline.get_commit_summary(project_id, commit_hash)

    async def get_working_tree_summary(self, project_id: str) -> DiffSummary | None:
        return await self.timeline.get_working_tree_summary(project_id)

    async def auto_commit_schema(
        self,
        project_id: str,
        *,
        message: str | None = None,
        tag: str | None = None,
    ) -> AutoCommitResult:
        return await self.timeline.auto_commit_schema(project_id, message=message, tag=tag)

    # -- environments --------------------------------------------------------

    async def get_environment_config(self, project_id: str) -> EnvironmentConfig:
        return await self.environments.get_config(project_id)

    async def save_environment_config(self, project_id: str, config: EnvironmentConfig) -> EnvironmentConfig:
        return await self.environments.save_config(project_id, config)

    async def set_environment_mapping(self, project_id: str, mapping: EnvironmentMapping) -> EnvironmentConfig:
        return await self.environments.set_mapping(project_id, mapping)

    async def remove_environment_mapping(self, project_id: str, branch: str) -> EnvironmentConfig:
        return await self.environments.remove_mapping(project_id, branch)

    async def resolve_environment(self, project_id: str) -> ResolvedEnvironment:
        return await self.environments.resolve(project_id)

    # -- conflicts -----------------------------------------------------------

    async def detect_conflicts(self, project_id: str, target_branch: str) -> ConflictReport:
        return await self.conflicts.detect_conflicts(project_id, target_branch)
