"""Git command helpers used by the PR agent.

Every command is built as an argument list; nothing is interpolated into a
shell string, so goal text, paths and commit messages are passed verbatim.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Sequence

logger = logging.getLogger(__name__)


class GitError(RuntimeError):
    """Raised when a git command fails."""


@dataclass(frozen=True)
class GitCommandResult:
    """Typed container for git command output."""

    args: Sequence[str]
    stdout: str
    stderr: str
    returncode: int

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def _run_git(args: Iterable[str], cwd: Path | None = None, check: bool = True) -> GitCommandResult:
    """Execute a git command and optionally raise on failure."""

    args = tuple(args)
    cmd = ["git", *args]
    logger.debug("git %s (cwd=%s)", " ".join(args), cwd)
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, cwd=cwd)
    except FileNotFoundError as exc:
        raise GitError("git executable not found. Please ensure git is installed.") from exc

    git_result = GitCommandResult(args=args, stdout=result.stdout.strip(), stderr=result.stderr.strip(), returncode=result.returncode)

    if check and result.returncode != 0:
        raise GitError(f"git {' '.join(args)} failed: {git_result.stderr or git_result.stdout}")
    return git_result


def clone(url: str, destination: Path) -> GitCommandResult:
    """Clone ``url`` into ``destination`` (full history)."""

    return _run_git(["clone", url, str(destination)])


def has_changes(cwd: Path | None = None) -> bool:
    """Check if the working tree has any modifications (staged or unstaged).

    Returns:
        True if there are changes to commit, False if working tree is clean
    """
    status = _run_git(["status", "--porcelain"], cwd=cwd, check=False)
    return status.stdout.strip() != ""


def create_branch(branch_name: str, cwd: Path | None = None) -> None:
    """Create ``branch_name`` from the current HEAD and check it out."""

    _run_git(["checkout", "-b", branch_name], cwd=cwd)


def stage_all(cwd: Path | None = None) -> None:
    """Stage new, modified and deleted files."""

    _run_git(["add", "--all"], cwd=cwd)


def commit(message: str, cwd: Path | None = None) -> GitCommandResult:
    """Create a git commit with the given message.

    Returns:
        GitCommandResult with enhanced error messages when commit fails
    """
    result = _run_git(["commit", "-m", message], cwd=cwd, check=False)

    # Empty stderr usually means nothing to commit
    if not result.ok and not result.stderr:
        return GitCommandResult(
            args=result.args,
            stdout=result.stdout,
            stderr="No changes to commit",
            returncode=result.returncode,
        )
    return result


def commit_all(message: str, cwd: Path | None = None) -> tuple[bool, Optional[str]]:
    """Stage all changes and commit them.

    Returns:
        Tuple of (success: bool, error_message: Optional[str])
    """
    if not has_changes(cwd=cwd):
        return False, "No changes to commit in working tree"

    try:
        stage_all(cwd=cwd)
    except GitError as exc:
        return False, str(exc)

    result = commit(message, cwd=cwd)
    if not result.ok:
        return False, result.stderr or result.stdout or "git commit failed"
    return True, None


def push(branch_name: str, remote: str = "origin", cwd: Path | None = None) -> GitCommandResult:
    """Push the branch to the remote and set it as upstream."""

    return _run_git(["push", "-u", remote, branch_name], cwd=cwd, check=False)


def classify_push_error(stderr: str) -> str:
    """Classify push error type from stderr output.

    Returns:
        Error type: "email_privacy", "network", "auth", or "unknown"
    """
    stderr_lower = stderr.lower()

    if "gh007" in stderr_lower or "push declined due to email privacy" in stderr_lower:
        return "email_privacy"

    if any(pattern in stderr_lower for pattern in [
        "could not resolve host",
        "failed to connect",
        "connection timed out",
        "connection refused",
        "network is unreachable",
        "temporary failure",
    ]):
        return "network"

    if any(pattern in stderr_lower for pattern in [
        "authentication failed",
        "permission denied",
        "could not read from remote repository",
        "fatal: unable to access",
    ]):
        return "auth"

    return "unknown"


def get_remote_url(remote: str = "origin", cwd: Path | None = None) -> str:
    """Return the configured URL for ``remote``."""

    return _run_git(["remote", "get-url", remote], cwd=cwd).stdout


__all__ = [
    "GitCommandResult",
    "GitError",
    "classify_push_error",
    "clone",
    "commit",
    "commit_all",
    "create_branch",
    "get_remote_url",
    "has_changes",
    "push",
    "stage_all",
]
