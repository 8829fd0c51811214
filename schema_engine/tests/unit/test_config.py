"""Unit tests for schema_engine.config."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError
from schema_engine.config import Settings, load_settings

# ---------------------------------------------------------------------------
# Settings - default values
# ---------------------------------------------------------------------------


class TestSettingsDefaults:
    def test_default_projects_root(self):
        settings = Settings()
        assert settings.projects_root == Path.home() / ".schemagit" / "projects"

    def test_default_timeline_limit(self):
        assert Settings().timeline_limit == 50

    def test_default_git_timeout(self):
        assert Settings().git_timeout_seconds == 30

    def test_default_namespaces(self):
        settings = Settings()
        assert settings.tag_prefix == "schemagit/schema/"
        assert settings.auto_commit_prefix == "[schemagit] "

    def test_default_environment(self):
        assert Settings().default_environment == "development"

    def test_default_logging(self):
        settings = Settings()
        assert settings.structured_logging is False
        assert settings.log_level == "INFO"


# ---------------------------------------------------------------------------
# Environment variable overrides
# ---------------------------------------------------------------------------


class TestSettingsEnvOverrides:
    def test_env_var_overrides_projects_root(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
        monkeypatch.setenv("SCHEMAGIT_PROJECTS_ROOT", str(tmp_path))
        assert Settings().projects_root == tmp_path

    def test_env_var_overrides_default_environment(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("SCHEMAGIT_DEFAULT_ENVIRONMENT", "local")
        assert Settings().default_environment == "local"

    def test_env_var_overrides_structured_logging(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("SCHEMAGIT_STRUCTURED_LOGGING", "true")
        assert Settings().structured_logging is True


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestSettingsValidation:
    def test_tag_prefix_gets_trailing_slash(self):
        assert Settings(tag_prefix="team/schema").tag_prefix == "team/schema/"

    def test_empty_tag_prefix_rejected(self):
        with pytest.raises(ValidationError):
            Settings(tag_prefix="")

    @pytest.mark.parametrize("field", ["timeline_limit", "git_timeout_seconds"])
    def test_non_positive_rejected(self, field):
        with pytest.raises(ValidationError):
            Settings(**{field: 0})

    def test_log_level_normalised(self):
        assert Settings(log_level="debug").log_level == "DEBUG"

    def test_unknown_log_level_rejected(self):
        with pytest.raises(ValidationError):
            Settings(log_level="chatty")


class TestLoadSettings:
    def test_overrides_applied(self, tmp_path: Path):
        settings = load_settings(projects_root=tmp_path, timeline_limit=5)
        assert settings.projects_root == tmp_path
        assert settings.timeline_limit == 5
