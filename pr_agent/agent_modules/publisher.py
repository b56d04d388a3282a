"""Publisher: branch, commit, push and pull-request creation.

Branch, commit and push failures propagate as ``GitError``. Pull-request
creation is best-effort and always returns a ``PullRequestResult``.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from . import git_ops
from .config import PULL_REQUEST_TIMEOUT_SECONDS, AgentConfig
from .data_types import Patch, PullRequestData, PullRequestResult, RepoInfo, TestResult
from .git_ops import GitError
from .github import create_pull_request, parse_repo_info
from .utils import branch_timestamp

logger = logging.getLogger(__name__)

BRANCH_PREFIX = "fix/"


def pr_title(summary: str) -> str:
    return f"Fix: {summary}"


def build_pr_body(patch: Patch, baseline: TestResult, verify: TestResult) -> str:
    """Render the before/after report used as the pull-request description."""

    body = f"## Summary\n\n{patch.summary}\n\n"
    body += "## Changes\n\n"
    body += f"- File: `{os.path.basename(patch.target_file)}`\n\n"
    body += "## Test Results\n\n"
    body += f"### Before\n```\n{baseline.output}\n```\n\n"
    body += f"### After\n```\n{verify.output}\n```\n"
    return body


class Publisher:
    """Turns a verified working tree into a pushed branch and a pull request."""

    def __init__(self, config: AgentConfig, clock: Optional[Callable[[], datetime]] = None):
        self.config = config
        self.clock = clock or datetime.now

    def branch_name(self) -> str:
        return f"{BRANCH_PREFIX}{branch_timestamp(self.clock())}"

    def create_branch(self, repo_dir: Path) -> str:
        """Create and check out a ``fix/YYYYMMDD-HHMMSS`` branch."""

        branch_name = self.branch_name()
        try:
            git_ops.create_branch(branch_name, cwd=repo_dir)
        except GitError as exc:
            raise GitError(f"Failed to create branch {branch_name}: {exc}") from exc
        logger.info(f"Branch created: {branch_name}")
        return branch_name

    def commit(self, repo_dir: Path, message: str) -> None:
        """Stage every working-tree change and commit with ``message`` verbatim."""

        success, error = git_ops.commit_all(message, cwd=repo_dir)
        if not success:
            raise GitError(f"Failed to commit: {error}")
        logger.info("Changes committed")

    def push(self, repo_dir: Path, branch_name: str) -> None:
        result = git_ops.push(branch_name, remote=self.config.remote, cwd=repo_dir)
        if not result.ok:
            error_type = git_ops.classify_push_error(result.stderr)
            raise GitError(f"Failed to push branch {branch_name} ({error_type}): {result.stderr or result.stdout}")
        logger.info(f"Pushed {branch_name} to {self.config.remote}")

    def repo_info(self, repo_dir: Path) -> RepoInfo:
        """Parse owner/name from the configured remote's URL.

        Raises:
            GitError: If the remote is not configured
            RepoInfoError: If the URL matches no known hosting pattern
        """
        return parse_repo_info(git_ops.get_remote_url(self.config.remote, cwd=repo_dir))

    def open_pull_request(self, repo_info: RepoInfo, branch_name: str, title: str, body: str) -> PullRequestResult:
        """Create the pull request via the API when possible; never raises.

        Without a token, or on any API failure, the payload is returned with
        ``created_via_api=False`` so it can be submitted out of band.
        """
        payload = PullRequestData(
            owner=repo_info.owner,
            repo=repo_info.name,
            head=branch_name,
            base=self.config.base_branch,
            title=title,
            body=body,
        )

        if not self.config.pull_request_api_enabled:
            logger.warning("Pull request not created via API: missing token (set GITHUB_TOKEN)")
            return PullRequestResult(payload=payload)

        success, created, error = create_pull_request(
            payload,
            token=self.config.github_token,
            api_url=self.config.github_api_url,
            timeout=PULL_REQUEST_TIMEOUT_SECONDS,
        )
        if not success:
            logger.warning(f"Pull request not created via API: {error}")
            return PullRequestResult(payload=payload)

        logger.info(f"Pull request created on {repo_info.full_name}: {created['url']}")
        return PullRequestResult(
            payload=payload,
            url=created["url"],
            number=created.get("number"),
            created_via_api=True,
        )


__all__ = [
    "BRANCH_PREFIX",
    "Publisher",
    "build_pr_body",
    "pr_title",
]
