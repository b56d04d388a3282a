"""Per-run workspace creation and cleanup."""

from __future__ import annotations

import logging
import re
import shutil
import time
from pathlib import Path
from typing import Optional

from .config import AgentConfig
from .data_types import Workspace
from .git_ops import GitError, clone

logger = logging.getLogger(__name__)

# http(s)://, ssh://, git://, file:// URLs or scp-style user@host:path remotes
_URL_PATTERN = re.compile(r"^(?:[a-z][a-z0-9+.-]*://|[\w.-]+@[\w.-]+:)", re.IGNORECASE)


class WorkspaceError(RuntimeError):
    """Raised when the repository cannot be materialized into a workspace."""


def is_remote_location(repo_location: str) -> bool:
    """Return True when ``repo_location`` should be cloned rather than copied."""

    return bool(_URL_PATTERN.match(repo_location.strip()))


def repo_base_name(repo_location: str) -> str:
    """Return the repository name used for workspace directories.

    Examples:
        >>> repo_base_name("https://github.com/acme/widgets.git")
        'widgets'
        >>> repo_base_name("git@github.com:acme/widgets")
        'widgets'
        >>> repo_base_name("/tmp/demo/")
        'demo'
    """
    trimmed = repo_location.strip().rstrip("/\\")
    name = re.split(r"[/\\:]", trimmed)[-1]
    if name.endswith(".git"):
        name = name[: -len(".git")]
    return name or "repo"


class WorkspaceManager:
    """Creates an isolated directory per run and materializes the repository into it."""

    def __init__(self, config: AgentConfig):
        self.config = config

    def workspace_dir_for(self, repo_location: str, timestamp_ms: Optional[int] = None) -> Path:
        stamp = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
        return Path(self.config.work_root) / f"{repo_base_name(repo_location)}-{stamp}"

    def materialize(self, repo_location: str) -> Workspace:
        """Clone or copy ``repo_location`` into a fresh workspace.

        Raises:
            WorkspaceError: If the clone or copy fails; the message carries the
                underlying diagnostic text.
        """

        root_dir = self.workspace_dir_for(repo_location)
        repo_dir = root_dir / repo_base_name(repo_location)
        root_dir.mkdir(parents=True, exist_ok=True)

        if is_remote_location(repo_location):
            logger.info(f"Cloning {repo_location} into {repo_dir}")
            try:
                clone(repo_location, repo_dir)
            except GitError as exc:
                raise WorkspaceError(f"Failed to clone {repo_location}: {exc}") from exc
        else:
            source = Path(repo_location).expanduser()
            logger.info(f"Copying {source} into {repo_dir}")
            if not source.is_dir():
                raise WorkspaceError(f"Failed to copy {repo_location}: not a directory")
            try:
                shutil.copytree(source, repo_dir, symlinks=True)
            except (OSError, shutil.Error) as exc:
                raise WorkspaceError(f"Failed to copy {repo_location}: {exc}") from exc

        return Workspace(root_dir=root_dir, repo_dir=repo_dir)

    def teardown(self, workspace: Workspace) -> bool:
        """Remove the workspace directory (best-effort cleanup).

        Returns:
            True if the directory is gone afterwards, False otherwise
        """
        root_dir = Path(workspace.root_dir)
        if not root_dir.exists():
            return True

        try:
            shutil.rmtree(root_dir)
        except OSError as exc:
            logger.warning(f"Workspace teardown failed for {root_dir}: {exc}")
            return False

        logger.debug(f"Workspace removed: {root_dir}")
        return True


__all__ = [
    "WorkspaceError",
    "WorkspaceManager",
    "is_remote_location",
    "repo_base_name",
]
