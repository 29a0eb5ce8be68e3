"""Version-control status supplier backed by the ``git`` command line."""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

from skm.errors import VersionControlError
from skm.models import RepositoryStatus
from skm.utils.time_utils import utc_from_timestamp

LOGGER = logging.getLogger(__name__)

DEFAULT_GIT_TIMEOUT_SEC = 10.0
RECENT_COMMIT_WINDOW = 5
FAILURE_MARKERS: tuple[str, ...] = ("FIXME", "TODO", "XXX", "HACK", "BUG")
COMMIT_SEPARATOR = "\x1e"


def run_git(
    args: Sequence[str],
    cwd: Path,
    *,
    timeout: float = DEFAULT_GIT_TIMEOUT_SEC,
) -> subprocess.CompletedProcess[str]:
    """Run one git command in ``cwd`` without raising on non-zero exit codes."""

    env = os.environ.copy()
    env["GIT_TERMINAL_PROMPT"] = "0"
    env["GIT_OPTIONAL_LOCKS"] = "0"
    try:
        return subprocess.run(
            ["git", *args],
            cwd=cwd,
            env=env,
            check=False,
            text=True,
            capture_output=True,
            timeout=timeout,
        )
    except FileNotFoundError as exc:
        raise VersionControlError(f"git executable not found: {exc}") from exc
    except subprocess.TimeoutExpired as exc:
        raise VersionControlError(f"git {' '.join(args)} timed out after {timeout}s in {cwd}") from exc


def _require_success(proc: subprocess.CompletedProcess[str], args: Sequence[str], cwd: Path) -> str:
    if proc.returncode != 0:
        detail = proc.stderr.strip() or proc.stdout.strip()
        raise VersionControlError(f"git {' '.join(args)} failed in {cwd}: {detail}")
    return proc.stdout


def is_repository_root(path: Path, *, timeout: float = DEFAULT_GIT_TIMEOUT_SEC) -> bool:
    """True only when ``path`` itself is the top level of a git working tree."""

    if not path.is_dir():
        return False
    proc = run_git(["rev-parse", "--show-toplevel"], path, timeout=timeout)
    if proc.returncode != 0:
        return False
    toplevel = proc.stdout.strip()
    if not toplevel:
        return False
    return Path(toplevel).resolve() == path.resolve()


def current_branch(path: Path, *, timeout: float = DEFAULT_GIT_TIMEOUT_SEC) -> str | None:
    """Short name of HEAD, or ``None`` for a repository without commits."""

    proc = run_git(["rev-parse", "--abbrev-ref", "HEAD"], path, timeout=timeout)
    if proc.returncode != 0:
        return None
    return proc.stdout.strip() or None


def is_working_tree_clean(path: Path, *, timeout: float = DEFAULT_GIT_TIMEOUT_SEC) -> bool:
    """True when there are no staged, unstaged, or untracked changes."""

    args = ["status", "--porcelain", "--untracked-files=all"]
    output = _require_success(run_git(args, path, timeout=timeout), args, path)
    return output.strip() == ""


def last_commit_time(path: Path, *, timeout: float = DEFAULT_GIT_TIMEOUT_SEC) -> datetime | None:
    """Commit time of HEAD in UTC, or ``None`` when HEAD has no commit."""

    proc = run_git(["log", "-1", "--format=%ct"], path, timeout=timeout)
    if proc.returncode != 0:
        return None
    raw = proc.stdout.strip()
    if not raw:
        return None
    try:
        return utc_from_timestamp(int(raw))
    except ValueError:
        LOGGER.warning("repository.bad_commit_time path=%s value=%r", path, raw)
        return None


def ahead_behind(path: Path, *, timeout: float = DEFAULT_GIT_TIMEOUT_SEC) -> tuple[int, int]:
    """Commits ahead of and behind the upstream branch; ``(0, 0)`` without upstream."""

    proc = run_git(["rev-list", "--left-right", "--count", "HEAD...@{upstream}"], path, timeout=timeout)
    if proc.returncode != 0:
        return 0, 0
    parts = proc.stdout.split()
    if len(parts) != 2:
        return 0, 0
    try:
        return int(parts[0]), int(parts[1])
    except ValueError:
        return 0, 0


def get_repository_status(
    path: Path,
    *,
    timeout: float = DEFAULT_GIT_TIMEOUT_SEC,
    logger: logging.Logger | None = None,
) -> RepositoryStatus:
    """Collect the repository status of a project directory.

    Directories that are not the root of a git working tree are reported as
    ``RepositoryStatus()`` (not a repository, clean, nothing ahead/behind).
    """

    effective_logger = logger or LOGGER
    if not is_repository_root(path, timeout=timeout):
        effective_logger.debug("repository.not_a_repository path=%s", path)
        return RepositoryStatus()

    commits_ahead, commits_behind = ahead_behind(path, timeout=timeout)
    status = RepositoryStatus(
        is_repository=True,
        branch=current_branch(path, timeout=timeout),
        is_clean=is_working_tree_clean(path, timeout=timeout),
        last_commit=last_commit_time(path, timeout=timeout),
        commits_ahead=commits_ahead,
        commits_behind=commits_behind,
    )
    effective_logger.debug(
        "repository.status path=%s branch=%s clean=%s ahead=%s behind=%s",
        path,
        status.branch,
        status.is_clean,
        status.commits_ahead,
        status.commits_behind,
    )
    return status


def has_recent_failures(path: Path, *, timeout: float = DEFAULT_GIT_TIMEOUT_SEC) -> bool:
    """True when any of the last five commit messages carries a failure marker."""

    if not is_repository_root(path, timeout=timeout):
        return False
    proc = run_git(
        ["log", f"-{RECENT_COMMIT_WINDOW}", f"--format=%B{COMMIT_SEPARATOR}"],
        path,
        timeout=timeout,
    )
    if proc.returncode != 0:
        return False
    messages = [message for message in proc.stdout.split(COMMIT_SEPARATOR) if message.strip()]
    return any(marker in message for message in messages for marker in FAILURE_MARKERS)
