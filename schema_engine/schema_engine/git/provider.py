"""Version-control provider interface consumed by the engine services.

Services depend on the :class:`GitProvider` protocol rather than on the
subprocess helpers directly so that tests can substitute an in-memory fake.
:class:`SubprocessGitProvider` is the production implementation: each method
runs one :mod:`schema_engine.git.git_client` call in a worker thread so the
event loop is never blocked on a git subprocess.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Protocol, TypeVar

from pydantic import BaseModel

from schema_engine.git import git_client
from schema_engine.git.git_client import GitClientError, GitLogEntry

logger = logging.getLogger(__name__)

_R = TypeVar("_R")


class GitStatus(BaseModel):
    """Working-copy status relevant to the engine."""

    branch: str | None = None

    @property
    def detached(self) -> bool:
        return self.branch is None


class GitProvider(Protocol):
    """Async version-control operations used by the engine.

    Every method except :meth:`is_repository` may raise
    :class:`GitClientError`.
    """

    async def is_repository(self, path: Path) -> bool: ...

    async def get_status(self, path: Path) -> GitStatus: ...

    async def get_repo_root(self, path: Path) -> Path: ...

    async def merge_base(self, repo_root: Path, ref_a: str, ref_b: str) -> str | None: ...

    async def dry_run_merge(self, repo_root: Path, target_branch: str) -> list[str]: ...

    async def file_history(self, repo_root: Path, rel_path: str, limit: int) -> list[GitLogEntry]: ...

    async def list_tags(self, repo_root: Path, pattern: str) -> list[str]: ...

    async def resolve_ref_to_commit(self, repo_root: Path, ref: str) -> str | None: ...

    async def read_file_at_ref(self, repo_root: Path, rel_path: str, ref: str) -> str | None: ...

    async def stage_and_commit(self, repo_root: Path, paths: list[str], message: str) -> str: ...

    async def create_annotated_tag(self, repo_root: Path, name: str, message: str) -> None: ...


class SubprocessGitProvider:
    """:class:`GitProvider` backed by the ``git`` binary.

    Parameters
    ----------
    timeout:
        Per-invocation timeout in seconds.
    """

    def __init__(self, *, timeout: int = git_client.DEFAULT_TIMEOUT) -> None:
        self._timeout = timeout

    async def _call(self, func: Callable[..., _R], *args: object) -> _R:
        bound = functools.partial(func, *args, timeout=self._timeout)
        try:
            return await asyncio.to_thread(bound)
        except ValueError as exc:
            # Ref validation failures surface as the same error type as any
            # other git failure.
            raise GitClientError(str(exc)) from exc

    async def is_repository(self, path: Path) -> bool:
        return await self._call(git_client.is_repository, path)

    async def get_status(self, path: Path) -> GitStatus:
        branch = await self._call(git_client.get_current_branch, path)
        return GitStatus(branch=branch)

    async def get_repo_root(self, path: Path) -> Path:
        return await self._call(git_client.get_repo_root, path)

    async def merge_base(self, repo_root: Path, ref_a: str, ref_b: str) -> str | None:
        return await self._call(git_client.merge_base, repo_root, ref_a, ref_b)

    async def dry_run_merge(self, repo_root: Path, target_branch: str) -> list[str]:
        return await self._call(git_client.dry_run_merge, repo_root, target_branch)

    async def file_history(self, repo_root: Path, rel_path: str, limit: int) -> list[GitLogEntry]:
        return await self._call(git_client.file_history, repo_root, rel_path, limit)

    async def list_tags(self, repo_root: Path, pattern: str) -> list[str]:
        return await self._call(git_client.list_tags, repo_root, pattern)

    async def resolve_ref_to_commit(self, repo_root: Path, ref: str) -> str | None:
        sha = await self._call(git_client.resolve_ref_to_commit, repo_root, ref)
        return sha or None

    async def read_file_at_ref(self, repo_root: Path, rel_path: str, ref: str) -> str | None:
        return await self._call(git_client.get_file_at_ref, repo_root, rel_path, ref)

    async def stage_and_commit(self, repo_root: Path, paths: list[str], message: str) -> str:
        return await self._call(git_client.stage_and_commit, repo_root, paths, message)

    async def create_annotated_tag(self, repo_root: Path, name: str, message: str) -> None:
        await self._call(git_client.create_annotated_tag, repo_root, name, message)
