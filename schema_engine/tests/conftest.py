"""Shared fixtures for schema engine tests."""

from __future__ import annotations

from pathlib import Path

import pytest
from fakes import PROJECT_ID, FakeGitProvider, FakeSnapshotStore
from schema_engine.config import Settings
from schema_engine.models.project import ProjectMetadata


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(projects_root=tmp_path / "projects")


@pytest.fixture()
def fake_git(tmp_path: Path) -> FakeGitProvider:
    return FakeGitProvider(tmp_path)


@pytest.fixture()
def fake_store(tmp_path: Path) -> FakeSnapshotStore:
    store = FakeSnapshotStore(tmp_path / "projects")
    store.metadata[PROJECT_ID] = ProjectMetadata(id=PROJECT_ID, name="Demo", database_id="db-1")
    return store
