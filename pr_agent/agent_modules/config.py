"""Configuration record for PR agent runs.

The environment is read once, at process start, by ``AgentConfig.from_env``.
Components receive the resulting record through their constructors so tests
can inject a fake configuration without touching ``os.environ``.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

DEFAULT_ENV_FILENAMES = (
    ".env.pr_agent",
    ".env.pr_agent.local",
)

DEFAULT_TEST_OUTPUT_LIMIT = 10 * 1024 * 1024

# Fixed network budgets (seconds).
LLM_TIMEOUT_SECONDS = 30.0
PULL_REQUEST_TIMEOUT_SECONDS = 30.0


def _default_work_root() -> Path:
    return Path(tempfile.gettempdir()) / "pr-agent-work"


def _default_log_root() -> Path:
    return Path(tempfile.gettempdir()) / "pr-agent-logs"


def load_agent_env(cwd: Optional[Path] = None) -> None:
    """Load shared and agent-specific dotenv files with agent values taking precedence."""

    base = Path(cwd) if cwd else Path.cwd()
    load_dotenv(base / ".env", override=False)

    override = os.getenv("PR_AGENT_ENV_FILE", "").strip()
    if override:
        candidates = [Path(entry.strip()).expanduser() for entry in override.split(os.pathsep) if entry.strip()]
    else:
        candidates = [base / name for name in DEFAULT_ENV_FILENAMES]

    for env_path in candidates:
        if not env_path.is_absolute():
            env_path = base / env_path
        if env_path.is_file():
            load_dotenv(env_path, override=True)


class AgentConfig(BaseModel):
    """Everything a run needs from its environment."""

    model_config = ConfigDict(frozen=True)

    work_root: Path = Field(default_factory=_default_work_root)
    log_root: Path = Field(default_factory=_default_log_root)
    log_level: str = "INFO"

    github_token: Optional[str] = None
    github_api_url: str = "https://api.github.com"
    base_branch: str = "main"
    remote: str = "origin"

    llm_api_key: Optional[str] = None
    llm_base_url: str = "https://api.openai.com/v1"
    llm_model: str = "gpt-4o-mini"

    test_output_limit: int = DEFAULT_TEST_OUTPUT_LIMIT

    @property
    def llm_enabled(self) -> bool:
        return bool(self.llm_api_key)

    @property
    def pull_request_api_enabled(self) -> bool:
        return bool(self.github_token)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, load_dotenv_files: bool = True) -> "AgentConfig":
        """Build a configuration record from environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ`` (tests).
            load_dotenv_files: Load ``.env`` files first when reading ``os.environ``.
        """

        if environ is None:
            if load_dotenv_files:
                load_agent_env()
            environ = os.environ

        def _get(name: str, fallback: Optional[str] = None) -> Optional[str]:
            value = (environ.get(name) or "").strip()
            if value:
                return value
            if fallback:
                value = (environ.get(fallback) or "").strip()
                return value or None
            return None

        values: dict[str, object] = {}
        if _get("PR_AGENT_WORK_ROOT"):
            values["work_root"] = Path(_get("PR_AGENT_WORK_ROOT")).expanduser()
        if _get("PR_AGENT_LOG_ROOT"):
            values["log_root"] = Path(_get("PR_AGENT_LOG_ROOT")).expanduser()
        if _get("PR_AGENT_LOG_LEVEL"):
            values["log_level"] = _get("PR_AGENT_LOG_LEVEL").upper()
        if _get("PR_AGENT_GITHUB_API_URL"):
            values["github_api_url"] = _get("PR_AGENT_GITHUB_API_URL").rstrip("/")
        if _get("PR_AGENT_BASE_BRANCH"):
            values["base_branch"] = _get("PR_AGENT_BASE_BRANCH")
        if _get("PR_AGENT_REMOTE"):
            values["remote"] = _get("PR_AGENT_REMOTE")
        if _get("PR_AGENT_LLM_BASE_URL"):
            values["llm_base_url"] = _get("PR_AGENT_LLM_BASE_URL").rstrip("/")
        if _get("PR_AGENT_LLM_MODEL"):
            values["llm_model"] = _get("PR_AGENT_LLM_MODEL")
        if _get("PR_AGENT_TEST_OUTPUT_LIMIT"):
            values["test_output_limit"] = int(_get("PR_AGENT_TEST_OUTPUT_LIMIT"))

        values["github_token"] = _get("GITHUB_TOKEN", "GITHUB_PAT")
        values["llm_api_key"] = _get("PR_AGENT_LLM_API_KEY", "OPENAI_API_KEY")

        return cls(**values)


__all__ = [
    "AgentConfig",
    "DEFAULT_ENV_FILENAMES",
    "DEFAULT_TEST_OUTPUT_LIMIT",
    "LLM_TIMEOUT_SECONDS",
    "PULL_REQUEST_TIMEOUT_SECONDS",
    "load_agent_env",
]
