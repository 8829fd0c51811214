"""Maps git branches to logical database environments.

The mapping table is stored in the committed project metadata so it is
shared across the team.  Per-developer connection overrides live in the
git-ignored local override file and always win over the shared mapping.

Connection URL precedence, strictly in this order:

1. the machine-local override,
2. the matched mapping's shared URL,
3. none.
"""

from __future__ import annotations

import logging

from schema_engine.config import Settings, load_settings
from schema_engine.errors import ProjectNotFoundError
from schema_engine.git.git_client import GitClientError
from schema_engine.git.provider import GitProvider
from schema_engine.models.environment import (
    ConnectionSource,
    EnvironmentConfig,
    EnvironmentMapping,
    ResolvedEnvironment,
)
from schema_engine.store.project_store import SnapshotStore

logger = logging.getLogger(__name__)


def _dedupe_mappings(config: EnvironmentConfig) -> EnvironmentConfig:
    """Keep only the first mapping for each branch."""
    seen: set[str] = set()
    kept: list[EnvironmentMapping] = []
    for mapping in config.mappings:
        if mapping.branch in seen:
            logger.warning("Dropping duplicate environment mapping for branch %s", mapping.branch)
            continue
        seen.add(mapping.branch)
        kept.append(mapping)
    return EnvironmentConfig(mappings=kept, default_environment=config.default_environment)


class EnvironmentResolver:
    """Environment configuration CRUD and branch-based resolution.

    Parameters
    ----------
    git:
        Version-control provider used to read the current branch.
    store:
        Snapshot store holding project metadata and local overrides.
    settings:
        Supplies the fallback environment label.
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

    # ------------------------------------------------------------------
    # Config CRUD
    # ------------------------------------------------------------------

    async def get_config(self, project_id: str) -> EnvironmentConfig:
        """Return the committed mapping config (empty if none is stored)."""
        metadata = await self._store.get_project_metadata(project_id)
        if metadata is None or metadata.environments is None:
            return EnvironmentConfig()
        return metadata.environments.model_copy(deep=True)

    async def save_config(self, project_id: str, config: EnvironmentConfig) -> EnvironmentConfig:
        """Replace the committed mapping config.

        Raises
        ------
        ProjectNotFoundError
            If the project has no metadata to write into.
        MetadataWriteError
            If the metadata file cannot be written.
        """
        metadata = await self._store.get_project_metadata(project_id)
        if metadata is None:
            raise ProjectNotFoundError(f"Project {project_id} not found")

        config = _dedupe_mappings(config)
        metadata.environments = config
        metadata.touch()
        await self._store.save_project_metadata(metadata)
        logger.info(
            "Saved environment config for project %s (%d mapping(s))",
            project_id,
            len(config.mappings),
            extra={"project_id": project_id},
        )
        return config

    async def set_mapping(self, project_id: str, mapping: EnvironmentMapping) -> EnvironmentConfig:
        """Add a mapping, or replace the existing one for the same branch in place."""
        config = await self.get_config(project_id)
        for idx, existing in enumerate(config.mappings):
            if existing.branch == mapping.branch:
                config.mappings[idx] = mapping
                break
        else:
            config.mappings.append(mapping)
        return await self.save_config(project_id, config)

    async def remove_mapping(self, project_id: str, branch: str) -> EnvironmentConfig:
        config = await self.get_config(project_id)
        config.mappings = [m for m in config.mappings if m.branch != branch]
        return await self.save_config(project_id, config)

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    async def current_branch(self, project_id: str) -> str | None:
        """Checked-out branch, or None outside a repository or on a detached HEAD."""
        project_dir = self._store.project_dir(project_id)
        if not await self._git.is_repository(project_dir):
            return None
        try:
            status = await self._git.get_status(project_dir)
        except GitClientError as exc:
            logger.warning("Could not read branch for project %s: %s", project_id, exc)
            return None
        return status.branch

    async def resolve(self, project_id: str) -> ResolvedEnvironment:
        """Resolve the environment the working copy currently represents."""
        branch = await self.current_branch(project_id)
        config = await self.get_config(project_id)
        local = await self._store.get_local_override(project_id)

        mapping = config.find(branch)
        if mapping is not None:
            environment = mapping.environment
        else:
            environment = config.default_environment or self._settings.default_environment

        connection_url: str | None = None
        source = ConnectionSource.NONE
        if local is not None and local.connection_url:
            connection_url = local.connection_url
            source = ConnectionSource.LOCAL
        elif mapping is not None and mapping.connection_url:
            connection_url = mapping.connection_url
            source = ConnectionSource.MAPPING

        return ResolvedEnvironment(
            branch=branch,
            environment=environment,
            is_production=mapping.is_production if mapping is not None else False,
            connection_url=connection_url,
            connection_source=source,
            mapping=mapping,
        )
