"""Git integration for versioning the schema snapshot file."""

from __future__ import annotations

from schema_engine.git.git_client import (
    GitClientError,
    GitLogEntry,
    create_annotated_tag,
    dry_run_merge,
    file_history,
    get_current_branch,
    get_current_sha,
    get_file_at_ref,
    get_repo_root,
    is_repository,
    list_tags,
    merge_base,
    resolve_ref_to_commit,
    stage_and_commit,
    validate_tag_name,
)
from schema_engine.git.provider import GitProvider, GitStatus, SubprocessGitProvider

__all__ = [
    "GitClientError",
    "GitLogEntry",
    "GitProvider",
    "GitStatus",
    "SubprocessGitProvider",
    "create_annotated_tag",
    "dry_run_merge",
    "file_history",
    "get_current_branch",
    "get_current_sha",
    "get_file_at_ref",
    "get_repo_root",
    "is_repository",
    "list_tags",
    "merge_base",
    "resolve_ref_to_commit",
    "stage_and_commit",
    "validate_tag_name",
]
