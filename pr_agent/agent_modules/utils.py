"""Shared utilities for PR agent runs."""

from __future__ import annotations

import json
import logging
import re
import sys
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

LOGGER_PREFIX = "pr_agent"


def make_run_id() -> str:
    """Generate an 8-character run identifier."""

    return str(uuid.uuid4())[:8]


def branch_timestamp(now: Optional[datetime] = None) -> str:
    """Return a zero-padded local ``YYYYMMDD-HHMMSS`` stamp for branch names."""

    return (now or datetime.now()).strftime("%Y%m%d-%H%M%S")


def run_logs_dir(log_root: Path, run_id: str) -> Path:
    """Return the directory holding logs for a single run."""

    return Path(log_root) / run_id


def setup_logger(run_id: str, log_root: Path, level: str = "INFO") -> logging.Logger:
    """Configure a logger that writes to both stdout and the run log directory.

    The run logger is built directly rather than through ``logging.getLogger``
    so it is not kept in the global registry; ``close_logger`` releases it.
    """

    log_dir = run_logs_dir(log_root, run_id)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "execution.log"

    logger = logging.Logger(f"{LOGGER_PREFIX}.run.{run_id}", logging.DEBUG)
    logger.propagate = False

    file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level.upper())
    console_handler.setFormatter(logging.Formatter("%(message)s"))

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    # Component loggers (pr_agent.agent_modules.*) share the run's handlers.
    package_logger = logging.getLogger(LOGGER_PREFIX)
    package_logger.setLevel(logging.DEBUG)
    package_logger.addHandler(file_handler)
    package_logger.addHandler(console_handler)

    logger.info(f"PR agent logger initialized - ID: {run_id}")
    logger.debug(f"Log file: {log_file}")

    return logger


def close_logger(logger: logging.Logger) -> None:
    """Detach and close the handlers ``setup_logger`` attached for a run."""

    package_logger = logging.getLogger(LOGGER_PREFIX)
    for handler in list(logger.handlers):
        package_logger.removeHandler(handler)
        logger.removeHandler(handler)
        handler.close()


def extract_json_object(text: str) -> Any:
    """Parse a JSON object that may be wrapped in Markdown code fences or prose.

    Raises:
        ValueError: If no JSON payload can be decoded.
    """

    code_block_pattern = r"```(?:json)?\s*\n(.*?)\n```"
    match = re.search(code_block_pattern, text, re.DOTALL)
    if match:
        json_str = match.group(1).strip()
    else:
        json_str = text.strip()

    if not json_str.startswith("{"):
        obj_start = json_str.find("{")
        obj_end = json_str.rfind("}")
        if obj_start != -1 and obj_end != -1:
            json_str = json_str[obj_start : obj_end + 1]

    try:
        return json.loads(json_str)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Failed to parse JSON from model output: {exc}") from exc


def truncate(value: Optional[str], limit: int) -> str:
    """Clip ``value`` to ``limit`` characters, marking the cut."""

    if not value:
        return ""
    if len(value) <= limit:
        return value
    return value[:limit] + "\n...[truncated]..."


__all__ = [
    "LOGGER_PREFIX",
    "branch_timestamp",
    "close_logger",
    "extract_json_object",
    "make_run_id",
    "run_logs_dir",
    "setup_logger",
    "truncate",
]
