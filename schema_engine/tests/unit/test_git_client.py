"""Unit tests for schema_engine.git.git_client input validation and error mapping."""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from schema_engine.git import git_client
from schema_engine.git.git_client import (
    GitClientError,
    _validate_git_ref,
    dry_run_merge,
    file_history,
    merge_base,
    validate_tag_name,
)
from schema_engine.git.provider import SubprocessGitProvider


def _completed(returncode: int = 0, stdout: str = "", stderr: str = "") -> subprocess.CompletedProcess[str]:
    return subprocess.CompletedProcess(args=["git"], returncode=returncode, stdout=stdout, stderr=stderr)


# ---------------------------------------------------------------------------
# Ref validation
# ---------------------------------------------------------------------------


class TestRefValidation:
    @pytest.mark.parametrize("ref", ["main", "feature/login", "HEAD~1", "abc1234", "origin/main", "v1.0^{commit}"])
    def test_accepts_safe_refs(self, ref):
        _validate_git_ref(ref)

    @pytest.mark.parametrize("ref", ["feat+audit", "fix#12", "a,b", "release=2025", "user@host/topic"])
    def test_accepts_branch_names_git_allows(self, ref):
        _validate_git_ref(ref)

    @pytest.mark.parametrize(
        "ref",
        [
            "",
            "--output=/tmp/x",
            "main; rm -rf /",
            "a b",
            "$(id)",
            "main|cat",
            "main:schema.json",
            "a*b",
            "x?y",
            "tab\tname",
            "a\\b",
            "feat[1]",
        ],
    )
    def test_rejects_unsafe_refs(self, ref):
        with pytest.raises(ValueError):
            _validate_git_ref(ref)

    @pytest.mark.parametrize("name", ["schemagit/schema/v1", "schemagit/schema/2025-05-01"])
    def test_accepts_tag_names(self, name):
        validate_tag_name(name)

    @pytest.mark.parametrize(
        "name",
        ["schemagit/schema/", "a..b", "x.lock", "tag~1", "tag^", "a//b", "x@{1}", "-tag"],
    )
    def test_rejects_bad_tag_names(self, name):
        with pytest.raises(ValueError):
            validate_tag_name(name)


# ---------------------------------------------------------------------------
# Subprocess handling
# ---------------------------------------------------------------------------


class TestRunGit:
    def test_non_zero_exit_raises_with_stderr(self, tmp_path: Path):
        with patch.object(git_client.subprocess, "run", return_value=_completed(128, stderr="fatal: bad")):
            with pytest.raises(GitClientError, match="fatal: bad"):
                git_client.get_repo_root(tmp_path)

    def test_timeout_maps_to_client_error(self, tmp_path: Path):
        side_effect = subprocess.TimeoutExpired(cmd=["git"], timeout=1)
        with patch.object(git_client.subprocess, "run", side_effect=side_effect):
            with pytest.raises(GitClientError, match="timed out"):
                git_client.get_repo_root(tmp_path, timeout=1)

    def test_missing_binary_maps_to_client_error(self, tmp_path: Path):
        with patch.object(git_client.subprocess, "run", side_effect=FileNotFoundError("git")):
            with pytest.raises(GitClientError, match="not found"):
                git_client.get_repo_root(tmp_path)

    def test_output_decoded_with_replacement(self, tmp_path: Path):
        mock_run = MagicMock(return_value=_completed(stdout=str(tmp_path)))
        with patch.object(git_client.subprocess, "run", mock_run):
            git_client.get_repo_root(tmp_path)

        assert mock_run.call_args.kwargs["errors"] == "replace"

    def test_merge_base_exit_one_means_unrelated(self, tmp_path: Path):
        with patch.object(git_client.subprocess, "run", return_value=_completed(1)):
            assert merge_base(tmp_path, "main", "orphan") is None

    def test_dry_run_merge_parses_conflicting_paths(self, tmp_path: Path):
        stdout = "4b825dc642cb6eb9a060e54bf8d69288fbee4904\nschema/schema.json\nschema/schema.json\nREADME.md\n"
        with patch.object(git_client.subprocess, "run", return_value=_completed(1, stdout=stdout)):
            assert dry_run_merge(tmp_path, "feature") == ["schema/schema.json", "README.md"]

    def test_dry_run_merge_clean(self, tmp_path: Path):
        with patch.object(git_client.subprocess, "run", return_value=_completed(0, stdout="4b825dc\n")):
            assert dry_run_merge(tmp_path, "feature") == []

    def test_file_history_parses_fields(self, tmp_path: Path):
        line = "\x1f".join(["f" * 40, "fffffff", "Dana Smith", "2025-05-01T10:00:00+02:00", "[schemagit] +1 table"])
        mock_run = MagicMock(return_value=_completed(stdout=line + "\n"))
        with patch.object(git_client.subprocess, "run", mock_run):
            entries = file_history(tmp_path, "schema/schema.json", 10)

        assert len(entries) == 1
        assert entries[0].author == "Dana Smith"
        assert entries[0].subject == "[schemagit] +1 table"
        cmd = mock_run.call_args.args[0]
        assert cmd[-2:] == ["--", "schema/schema.json"]
        assert "--max-count=10" in cmd

    def test_is_repository_false_for_missing_directory(self, tmp_path: Path):
        assert git_client.is_repository(tmp_path / "absent") is False


# ---------------------------------------------------------------------------
# Async provider
# ---------------------------------------------------------------------------


class TestSubprocessGitProvider:
    @pytest.mark.asyncio
    async def test_invalid_ref_surfaces_as_client_error(self, tmp_path: Path):
        provider = SubprocessGitProvider(timeout=5)
        with pytest.raises(GitClientError):
            await provider.merge_base(tmp_path, "main", "bad ref")

    @pytest.mark.asyncio
    async def test_status_reports_detached_head(self, tmp_path: Path):
        provider = SubprocessGitProvider(timeout=5)
        with patch.object(git_client.subprocess, "run", return_value=_completed(1)):
            status = await provider.get_status(tmp_path)
        assert status.branch is None
        assert status.detached is True
