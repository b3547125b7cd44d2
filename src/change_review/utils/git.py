"""Read-only git helpers for the command line.

Only ``git diff`` and ``git rev-parse`` are run, always:
- with list arguments and ``shell=False``
- with a timeout
- with commit ranges validated so they cannot be read as options

Output is decoded with ``surrogateescape`` so bytes that are not UTF-8
survive into patches unchanged.
"""

from __future__ import annotations

import re
import shutil
import subprocess
from pathlib import Path

import structlog

from change_review.errors import ReviewError

log = structlog.get_logger()

DEFAULT_TIMEOUT = 30
DEFAULT_CONTEXT_LINES = 3

# HEAD against its parent
DEFAULT_RANGE = "HEAD~1..HEAD"

COMMIT_RANGE_PATTERN = re.compile(r"^[A-Za-z0-9_./~^@{}:+-]+$")


class GitError(ReviewError):
    """Raised when git is missing, times out or exits with an error."""


class InvalidRangeError(GitError):
    """Raised when a commit range could be mistaken for an option."""


def validate_commit_range(commit_range: str) -> bool:
    """Return True if ``commit_range`` is a plain revision or range expression."""
    if not commit_range or commit_range.startswith("-"):
        return False
    return bool(COMMIT_RANGE_PATTERN.match(commit_range))


def run_git(args: list[str], cwd: Path | None = None, timeout: int = DEFAULT_TIMEOUT) -> str:
    """Run a git command and return its stdout.

    Args:
        args: Arguments after ``git``
        cwd: Working directory (default: the current directory)
        timeout: Seconds before the command is abandoned

    Raises:
        GitError: If git is not installed, times out or fails
    """
    git = shutil.which("git")
    if git is None:
        raise GitError("git not found in PATH")

    cmd = [git, *args]
    log.debug("executing_git_command", command=cmd, cwd=str(cwd) if cwd else None)

    try:
        proc = subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=True,
            timeout=timeout,
            shell=False,
        )
    except subprocess.TimeoutExpired as e:
        log.error("command_timeout", command=cmd, timeout=timeout)
        raise GitError(f"git {args[0]} timed out after {timeout}s") from e

    if proc.returncode != 0:
        stderr = proc.stderr.decode("utf-8", "replace").strip()
        raise GitError(f"git {args[0]} failed: {stderr or f'exit status {proc.returncode}'}")

    return proc.stdout.decode("utf-8", "surrogateescape")


def find_repo_root(cwd: Path | None = None) -> Path | None:
    """Top level of the git work tree containing ``cwd``, or None outside one."""
    try:
        out = run_git(["rev-parse", "--show-toplevel"], cwd=cwd)
    except GitError as e:
        log.debug("repo_root_not_found", error=str(e))
        return None
    return Path(out.strip())


def git_diff(
    commit_range: str = DEFAULT_RANGE,
    cwd: Path | None = None,
    context_lines: int = DEFAULT_CONTEXT_LINES,
) -> str:
    """Unified diff for ``commit_range`` such as ``main...HEAD``.

    Raises:
        InvalidRangeError: If the range is not a plain revision expression
        GitError: If git fails
    """
    if not validate_commit_range(commit_range):
        log.warning("invalid_commit_range_rejected", commit_range=commit_range)
        raise InvalidRangeError(f"Invalid commit range: {commit_range!r}")

    return run_git(
        ["diff", f"-U{context_lines}", "--no-color", "--no-ext-diff", commit_range, "--"],
        cwd=cwd,
    )
