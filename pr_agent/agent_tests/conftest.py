"""Shared fixtures for the PR agent test suite."""

from __future__ import annotations

import json
import logging
import shutil
import subprocess
from pathlib import Path

import pytest

from pr_agent.agent_modules.config import AgentConfig
from pr_agent.agent_modules.utils import LOGGER_PREFIX

BUGGY_DATE_JS = """function addDays(date, days) {
  const result = new Date(date);
  result.setDate(days);
  return result;
}

module.exports = { addDays };
"""

DATE_TEST_JS = """const assert = require('assert');
const { addDays } = require('./utils/date');

const result = addDays(new Date(2024, 0, {start}), 5);
assert.strictEqual(result.getDate(), {expected}, 'addDays returned ' + result.toDateString());
console.log('All tests passed');
"""

REMOTE_URL = "https://github.com/acme/date-utils.git"

requires_node = pytest.mark.skipif(
    shutil.which("npm") is None or shutil.which("node") is None,
    reason="node and npm are required",
)


def git(*args: str, cwd: Path) -> subprocess.CompletedProcess:
    return subprocess.run(["git", *args], cwd=cwd, check=True, capture_output=True, text=True)


def init_repo(repo_path: Path) -> Path:
    """Initialise ``repo_path`` as a git repository on ``main`` with a test identity."""

    repo_path.mkdir(parents=True, exist_ok=True)
    git("init", cwd=repo_path)
    git("symbolic-ref", "HEAD", "refs/heads/main", cwd=repo_path)
    git("config", "user.name", "Test User", cwd=repo_path)
    git("config", "user.email", "test@example.com", cwd=repo_path)
    git("config", "commit.gpgsign", "false", cwd=repo_path)
    return repo_path


def commit_everything(repo_path: Path, message: str = "Initial commit") -> None:
    git("add", "--all", cwd=repo_path)
    git("commit", "-m", message, cwd=repo_path)


def write_date_project(repo_path: Path, expected_day: int = 15, test_script: str | None = "node test.js") -> None:
    """Write a tiny node project whose test exercises ``addDays``."""

    manifest = {"name": "date-utils", "version": "1.0.0", "private": True}
    if test_script:
        manifest["scripts"] = {"test": test_script}
    (repo_path / "package.json").write_text(json.dumps(manifest, indent=2) + "\n")
    (repo_path / "utils").mkdir(exist_ok=True)
    (repo_path / "utils" / "date.js").write_text(BUGGY_DATE_JS)
    (repo_path / "test.js").write_text(
        DATE_TEST_JS.replace("{start}", "10").replace("{expected}", str(expected_day))
    )


@pytest.fixture
def agent_config(tmp_path: Path) -> AgentConfig:
    """Config isolated to the test's temporary directory, with no credentials."""

    return AgentConfig(
        work_root=tmp_path / "work",
        log_root=tmp_path / "logs",
        log_level="WARNING",
    )


@pytest.fixture
def temp_git_repo(tmp_path: Path) -> Path:
    """Create a temporary git repository with one commit on ``main``."""

    repo_path = init_repo(tmp_path / "repo")
    (repo_path / "README.md").write_text("# Test Repo\n")
    commit_everything(repo_path)
    return repo_path


@pytest.fixture
def bare_remote(tmp_path: Path) -> Path:
    remote_path = tmp_path / "remote.git"
    subprocess.run(["git", "init", "--bare", str(remote_path)], check=True, capture_output=True)
    return remote_path


def make_date_repo(tmp_path: Path, bare_remote: Path, expected_day: int) -> Path:
    """Create a committed date project whose origin fetches from a hosting URL and pushes locally."""

    repo_path = init_repo(tmp_path / "date-utils")
    write_date_project(repo_path, expected_day=expected_day)
    commit_everything(repo_path)
    git("remote", "add", "origin", REMOTE_URL, cwd=repo_path)
    git("remote", "set-url", "--push", "origin", str(bare_remote), cwd=repo_path)
    return repo_path


@pytest.fixture
def date_repo(tmp_path: Path, bare_remote: Path) -> Path:
    """Repository whose failing test is fixed by the built-in ``utils/date.js`` patch."""

    return make_date_repo(tmp_path, bare_remote, expected_day=15)


@pytest.fixture
def unfixable_date_repo(tmp_path: Path, bare_remote: Path) -> Path:
    """Repository whose test still fails after the built-in patch is applied."""

    return make_date_repo(tmp_path, bare_remote, expected_day=16)


@pytest.fixture(autouse=True)
def reset_agent_loggers():
    """Close handlers attached by ``setup_logger`` so they do not leak between tests."""

    yield
    names = [LOGGER_PREFIX] + [
        name for name in logging.root.manager.loggerDict if name.startswith(f"{LOGGER_PREFIX}.run.")
    ]
    for name in names:
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)
