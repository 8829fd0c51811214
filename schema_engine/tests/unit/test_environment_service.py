"""Unit tests for schema_engine.services.environment."""

from __future__ import annotations

import pytest
from fakes import PROJECT_ID
from schema_engine.errors import ProjectNotFoundError
from schema_engine.models.environment import ConnectionSource, EnvironmentConfig, EnvironmentMapping
from schema_engine.models.project import LocalOverride
from schema_engine.services.environment import EnvironmentResolver


@pytest.fixture()
def resolver(fake_git, fake_store, settings) -> EnvironmentResolver:
    return EnvironmentResolver(fake_git, fake_store, settings=settings)


def _prod_mapping(url: str | None = "postgres://prod") -> EnvironmentMapping:
    return EnvironmentMapping(branch="main", environment="production", connection_url=url, is_production=True)


# ---------------------------------------------------------------------------
# Config CRUD
# ---------------------------------------------------------------------------


class TestEnvironmentConfig:
    @pytest.mark.asyncio
    async def test_empty_when_unset(self, resolver):
        config = await resolver.get_config(PROJECT_ID)
        assert config == EnvironmentConfig()

    @pytest.mark.asyncio
    async def test_empty_for_unknown_project(self, resolver):
        assert await resolver.get_config("missing") == EnvironmentConfig()

    @pytest.mark.asyncio
    async def test_save_round_trips_through_metadata(self, resolver, fake_store):
        config = EnvironmentConfig(mappings=[_prod_mapping()], default_environment="dev")
        await resolver.save_config(PROJECT_ID, config)

        assert fake_store.metadata[PROJECT_ID].environments == config
        assert await resolver.get_config(PROJECT_ID) == config

    @pytest.mark.asyncio
    async def test_save_unknown_project_raises(self, resolver):
        with pytest.raises(ProjectNotFoundError):
            await resolver.save_config("missing", EnvironmentConfig())

    @pytest.mark.asyncio
    async def test_save_drops_duplicate_branches(self, resolver):
        config = EnvironmentConfig(
            mappings=[
                EnvironmentMapping(branch="main", environment="production"),
                EnvironmentMapping(branch="main", environment="staging"),
            ]
        )
        saved = await resolver.save_config(PROJECT_ID, config)
        assert [m.environment for m in saved.mappings] == ["production"]

    @pytest.mark.asyncio
    async def test_set_mapping_upserts_in_place(self, resolver):
        await resolver.set_mapping(PROJECT_ID, _prod_mapping())
        await resolver.set_mapping(PROJECT_ID, EnvironmentMapping(branch="develop", environment="staging"))
        config = await resolver.set_mapping(PROJECT_ID, _prod_mapping(url="postgres://prod-2"))

        assert [m.branch for m in config.mappings] == ["main", "develop"]
        assert config.mappings[0].connection_url == "postgres://prod-2"

    @pytest.mark.asyncio
    async def test_remove_mapping(self, resolver):
        await resolver.set_mapping(PROJECT_ID, _prod_mapping())
        config = await resolver.remove_mapping(PROJECT_ID, "main")
        assert config.mappings == []

    @pytest.mark.asyncio
    async def test_save_touches_updated_at(self, resolver, fake_store):
        fake_store.metadata[PROJECT_ID].updated_at = "2000-01-01T00:00:00+00:00"
        await resolver.save_config(PROJECT_ID, EnvironmentConfig())
        assert fake_store.metadata[PROJECT_ID].updated_at != "2000-01-01T00:00:00+00:00"


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


class TestResolve:
    @pytest.mark.asyncio
    async def test_local_override_wins(self, resolver, fake_store):
        await resolver.set_mapping(PROJECT_ID, _prod_mapping())
        fake_store.local[PROJECT_ID] = LocalOverride(connection_url="postgres://laptop")

        resolved = await resolver.resolve(PROJECT_ID)

        assert resolved.branch == "main"
        assert resolved.environment == "production"
        assert resolved.is_production is True
        assert resolved.connection_url == "postgres://laptop"
        assert resolved.connection_source == ConnectionSource.LOCAL

    @pytest.mark.asyncio
    async def test_mapping_url_when_no_local_override(self, resolver):
        await resolver.set_mapping(PROJECT_ID, _prod_mapping())

        resolved = await resolver.resolve(PROJECT_ID)

        assert resolved.connection_url == "postgres://prod"
        assert resolved.connection_source == ConnectionSource.MAPPING
        assert resolved.mapping == _prod_mapping()

    @pytest.mark.asyncio
    async def test_no_url_anywhere(self, resolver, fake_store):
        await resolver.set_mapping(PROJECT_ID, _prod_mapping(url=None))
        fake_store.local[PROJECT_ID] = LocalOverride()

        resolved = await resolver.resolve(PROJECT_ID)

        assert resolved.connection_url is None
        assert resolved.connection_source == ConnectionSource.NONE

    @pytest.mark.asyncio
    async def test_unmatched_branch_uses_config_default(self, resolver, fake_git):
        fake_git.branch = "feature/x"
        await resolver.save_config(
            PROJECT_ID,
            EnvironmentConfig(mappings=[_prod_mapping()], default_environment="sandbox"),
        )

        resolved = await resolver.resolve(PROJECT_ID)

        assert resolved.environment == "sandbox"
        assert resolved.is_production is False
        assert resolved.mapping is None
        assert resolved.connection_url is None

    @pytest.mark.asyncio
    async def test_unmatched_branch_falls_back_to_settings_default(self, resolver, fake_git, settings):
        fake_git.branch = "feature/x"
        resolved = await resolver.resolve(PROJECT_ID)
        assert resolved.environment == settings.default_environment == "development"

    @pytest.mark.asyncio
    async def test_outside_repository(self, resolver, fake_git, fake_store):
        fake_git.repository = False
        await resolver.set_mapping(PROJECT_ID, _prod_mapping())
        fake_store.local[PROJECT_ID] = LocalOverride(connection_url="postgres://laptop")

        resolved = await resolver.resolve(PROJECT_ID)

        assert resolved.branch is None
        assert resolved.environment == "development"
        assert resolved.is_production is False
        assert resolved.connection_url == "postgres://laptop"

    @pytest.mark.asyncio
    async def test_detached_head_matches_nothing(self, resolver, fake_git):
        fake_git.branch = None
        await resolver.set_mapping(PROJECT_ID, _prod_mapping())

        resolved = await resolver.resolve(PROJECT_ID)
        assert resolved.mapping is None
        assert resolved.environment == "development"
