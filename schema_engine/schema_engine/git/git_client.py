"""Thin git client for reading and versioning the schema snapshot file.

All interaction with the ``git`` binary is done through :func:`subprocess.run`
with explicit timeouts and structured error handling so that callers receive
:class:`GitClientError` exceptions with descriptive messages rather than raw
subprocess failures.  Every function is a single git invocation (or a short
fixed sequence of them) with no retry loop.
"""

from __future__ import annotations

import logging
import re
import subprocess
from pathlib import Path

from pydantic import BaseModel

from schema_engine.errors import SchemaEngineError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30  # seconds

# Unit separator used between ``git log`` format fields; it cannot appear in
# author names or subject lines.
_FIELD_SEP = "\x1f"
_LOG_FORMAT = _FIELD_SEP.join(["%H", "%h", "%an", "%aI", "%s"])

# ---------------------------------------------------------------------------
# Git ref validation
# ---------------------------------------------------------------------------

# Matches hex SHAs (4-40 chars) and ref names as ``git check-ref-format``
# allows them (``feat+audit``, ``fix#12``, ``HEAD~2``, ``origin/main``),
# minus whitespace, control characters, the characters git forbids in refs
# and shell metacharacters.
_GIT_SHA_RE = re.compile(r"^[0-9a-fA-F]{4,40}$")
_GIT_REF_RE = re.compile(r"^[^\s\x00-\x1f\x7f:?*\[\\;|&$`()<>'\"!]+$")


def _validate_git_ref(ref: str) -> None:
    """Validate a git ref or SHA to prevent command injection.

    Accepts hex SHAs (4-40 characters) and safe ref names (branch names,
    tags, HEAD, etc.).  Rejects strings containing shell metacharacters,
    spaces, a leading dash (which git would parse as an option), or other
    characters that could be used for injection.

    Raises
    ------
    ValueError
        If *ref* does not match the expected pattern.
    """
    if not ref:
        raise ValueError("Git ref cannot be empty")
    if ref.startswith("-"):
        raise ValueError(f"Invalid git ref: {ref!r}")
    if not (_GIT_SHA_RE.match(ref) or _GIT_REF_RE.match(ref)):
        raise ValueError(f"Invalid git ref: {ref!r}")


def validate_tag_name(name: str) -> None:
    """Validate a tag name before it is handed to ``git tag``.

    Applies :func:`_validate_git_ref` plus the ref-format rules that are
    most likely to be violated by user input.

    Raises
    ------
    ValueError
        If *name* is not a usable tag name.
    """
    _validate_git_ref(name)
    if ".." in name or name.endswith((".", "/", ".lock")) or "//" in name or "@{" in name:
        raise ValueError(f"Invalid tag name: {name!r}")
    if any(ch in name for ch in "~^{}"):
        raise ValueError(f"Invalid tag name: {name!r}")


# ---------------------------------------------------------------------------
# Public types
# ---------------------------------------------------------------------------


class GitLogEntry(BaseModel):
    """A single commit returned by :func:`file_history`."""

    hash: str
    full_hash: str
    author: str
    date: str
    subject: str


class GitClientError(SchemaEngineError):
    """Raised when a git operation fails or the repository is invalid."""


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _run_git(
    cmd: list[str],
    repo_path: Path,
    *,
    timeout: int = DEFAULT_TIMEOUT,
    ok_codes: tuple[int, ...] = (0,),
) -> subprocess.CompletedProcess[str]:
    """Execute a git command and return the completed process.

    Parameters
    ----------
    cmd:
        Command list (e.g. ``["git", "rev-parse", "HEAD"]``).
    repo_path:
        Working directory passed to the subprocess.
    timeout:
        Seconds before the invocation is abandoned.
    ok_codes:
        Exit codes treated as success.  ``git merge-base`` and
        ``git merge-tree`` use exit code 1 as a meaningful answer.

    Raises
    ------
    GitClientError
        On a disallowed exit code, timeout, or if the process cannot be
        started.
    """
    try:
        result = subprocess.run(
            cmd,
            cwd=repo_path,
            capture_output=True,
            text=True,
            errors="replace",
            check=False,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as exc:
        raise GitClientError(f"git command timed out after {timeout}s: {' '.join(cmd)}") from exc
    except FileNotFoundError as exc:
        raise GitClientError("git executable not found. Ensure git is installed and on PATH.") from exc
    except NotADirectoryError as exc:
        raise GitClientError(f"Repository path is not a directory: {repo_path}") from exc

    if result.returncode not in ok_codes:
        stderr = (result.stderr or "").strip()
        raise GitClientError(f"git command failed: {' '.join(cmd)}\n" f"Exit code {result.returncode}: {stderr}")
    return result


# ---------------------------------------------------------------------------
# Repository queries
# ---------------------------------------------------------------------------


def is_repository(path: Path, *, timeout: int = DEFAULT_TIMEOUT) -> bool:
    """Return True if *path* lies inside a git working tree."""
    if not path.is_dir():
        return False
    try:
        result = _run_git(["git", "rev-parse", "--is-inside-work-tree"], path, timeout=timeout)
    except GitClientError:
        return False
    return result.stdout.strip() == "true"


def get_repo_root(path: Path, *, timeout: int = DEFAULT_TIMEOUT) -> Path:
    """Return the top-level directory of the working tree containing *path*.

    Raises
    ------
    GitClientError
        If *path* is not inside a git working tree.
    """
    result = _run_git(["git", "rev-parse", "--show-toplevel"], path, timeout=timeout)
    return Path(result.stdout.strip())


def get_current_branch(path: Path, *, timeout: int = DEFAULT_TIMEOUT) -> str | None:
    """Return the checked-out branch name, or None on a detached HEAD."""
    result = _run_git(
        ["git", "symbolic-ref", "--quiet", "--short", "HEAD"],
        path,
        timeout=timeout,
        ok_codes=(0, 1),
    )
    branch = result.stdout.strip()
    return branch or None


def get_current_sha(repo_path: Path, *, short: bool = False, timeout: int = DEFAULT_TIMEOUT) -> str:
    """Return the SHA of the current HEAD commit.

    Raises
    ------
    GitClientError
        If the repository has no commits or git fails.
    """
    cmd = ["git", "rev-parse", "--short", "HEAD"] if short else ["git", "rev-parse", "HEAD"]
    result = _run_git(cmd, repo_path, timeout=timeout)
    return result.stdout.strip()


def merge_base(repo_path: Path, ref_a: str, ref_b: str, *, timeout: int = DEFAULT_TIMEOUT) -> str | None:
    """Return the nearest common ancestor of two refs.

    Returns None when the refs share no history.

    Raises
    ------
    GitClientError
        If either ref cannot be resolved.
    """
    _validate_git_ref(ref_a)
    _validate_git_ref(ref_b)

    result = _run_git(["git", "merge-base", ref_a, ref_b], repo_path, timeout=timeout, ok_codes=(0, 1))
    sha = result.stdout.strip()
    return sha or None


def dry_run_merge(repo_path: Path, target_ref: str, *, timeout: int = DEFAULT_TIMEOUT) -> list[str]:
    """Return the paths a merge of *target_ref* into HEAD would conflict on.

    Uses ``git merge-tree --write-tree`` which computes the merge entirely in
    the object database; neither the index nor the working tree is touched.
    The first line of output is the resulting tree id, followed by one line
    per conflicted path.
    """
    _validate_git_ref(target_ref)

    result = _run_git(
        ["git", "merge-tree", "--write-tree", "--name-only", "--no-messages", "HEAD", target_ref],
        repo_path,
        timeout=timeout,
        ok_codes=(0, 1),
    )
    if result.returncode == 0:
        return []

    lines = [line.strip() for line in result.stdout.splitlines()[1:]]
    # dict.fromkeys keeps first-seen order while dropping duplicates.
    return list(dict.fromkeys(line for line in lines if line))


def file_history(
    repo_path: Path,
    rel_path: str,
    limit: int,
    *,
    timeout: int = DEFAULT_TIMEOUT,
) -> list[GitLogEntry]:
    """Return up to *limit* commits (newest first) that touched *rel_path*.

    Raises
    ------
    GitClientError
        If git fails (for example, the repository has no commits yet).
    """
    result = _run_git(
        ["git", "log", f"--max-count={int(limit)}", f"--format={_LOG_FORMAT}", "--", rel_path],
        repo_path,
        timeout=timeout,
    )

    entries: list[GitLogEntry] = []
    for line in result.stdout.splitlines():
        if not line:
            continue
        parts = line.split(_FIELD_SEP)
        if len(parts) != 5:
            logger.warning("Skipping unparseable log line: %s", line)
            continue
        full_hash, short_hash, author, date, subject = parts
        entries.append(GitLogEntry(hash=short_hash, full_hash=full_hash, author=author, date=date, subject=subject))
    return entries


def list_tags(repo_path: Path, pattern: str, *, timeout: int = DEFAULT_TIMEOUT) -> list[str]:
    """Return tag names matching the glob *pattern*, sorted by name."""
    result = _run_git(["git", "tag", "--list", pattern], repo_path, timeout=timeout)
    return sorted(line.strip() for line in result.stdout.splitlines() if line.strip())


def resolve_ref_to_commit(repo_path: Path, ref: str, *, timeout: int = DEFAULT_TIMEOUT) -> str:
    """Peel *ref* (branch, tag, annotated tag) to the full hash of its commit.

    Raises
    ------
    GitClientError
        If *ref* does not resolve to a commit.
    """
    _validate_git_ref(ref)

    result = _run_git(["git", "rev-parse", "--verify", f"{ref}^{{commit}}"], repo_path, timeout=timeout)
    return result.stdout.strip()


def get_file_at_ref(
    repo_path: Path,
    file_path: str,
    ref: str,
    *,
    timeout: int = DEFAULT_TIMEOUT,
) -> str:
    """Return the contents of *file_path* as it existed at *ref*.

    Parameters
    ----------
    repo_path:
        Root of the git repository.
    file_path:
        Repository-relative path to the file.
    ref:
        Commit hash, branch, tag or relative ref such as ``abc123~1``.

    Raises
    ------
    GitClientError
        If the file does not exist at the given ref or git fails.
    """
    _validate_git_ref(ref)

    result = _run_git(["git", "show", f"{ref}:{file_path}"], repo_path, timeout=timeout)
    return result.stdout


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


def stage_and_commit(
    repo_path: Path,
    paths: list[str],
    message: str,
    *,
    timeout: int = DEFAULT_TIMEOUT,
) -> str:
    """Stage *paths* and commit only those paths.

    Anything else the user has staged stays staged and out of the commit.

    Returns
    -------
    str
        Abbreviated hash of the new commit.

    Raises
    ------
    GitClientError
        If staging or committing fails, including when nothing changed.
    """
    if not paths:
        raise GitClientError("No paths given to commit")
    if not message.strip():
        raise GitClientError("Commit message cannot be empty")

    _run_git(["git", "add", "--", *paths], repo_path, timeout=timeout)
    _run_git(["git", "commit", "--quiet", "-m", message, "--", *paths], repo_path, timeout=timeout)
    sha = get_current_sha(repo_path, short=True, timeout=timeout)
    logger.info("Committed %d path(s) as %s", len(paths), sha)
    return sha


def create_annotated_tag(
    repo_path: Path,
    name: str,
    message: str,
    *,
    ref: str = "HEAD",
    timeout: int = DEFAULT_TIMEOUT,
) -> None:
    """Create an annotated tag *name* pointing at *ref*.

    Raises
    ------
    ValueError
        If *name* is not a valid tag name.
    GitClientError
        If the tag already exists or git fails.
    """
    validate_tag_name(name)
    _validate_git_ref(ref)

    _run_git(["git", "tag", "-a", name, "-m", message, ref], repo_path, timeout=timeout)
    logger.info("Created tag %s at %s", name, ref)
