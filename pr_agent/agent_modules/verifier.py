"""Test discovery and execution.

``TestRunner.run`` never raises for a failing suite: every outcome, including
a missing executable, is folded into a ``TestResult`` with ``success=False``.
"""

from __future__ import annotations

import json
import logging
import subprocess
from pathlib import Path
from typing import List, Optional

from .config import AgentConfig
from .data_types import TestResult

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "package.json"
TEST_COMMAND: tuple[str, ...] = ("npm", "test")
NO_TEST_COMMAND_OUTPUT = "No test command found"
OUTPUT_LIMIT_MARKER = "\n...[output limit exceeded, test process terminated]..."

_READ_CHUNK = 64 * 1024


def detect_test_command(repo_dir: Path) -> Optional[List[str]]:
    """Return the test invocation declared by the repository manifest.

    Returns None when the manifest is absent, unreadable, not an object, or
    declares no ``test`` script.
    """
    manifest = Path(repo_dir) / MANIFEST_FILENAME
    if not manifest.is_file():
        return None

    try:
        data = json.loads(manifest.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.debug(f"Ignoring unreadable manifest {manifest}: {exc}")
        return None

    scripts = data.get("scripts") if isinstance(data, dict) else None
    if isinstance(scripts, dict) and scripts.get("test"):
        return list(TEST_COMMAND)
    return None


class TestRunner:
    """Discovers and runs a repository's test suite."""

    __test__ = False  # not a pytest class

    def __init__(self, config: AgentConfig):
        self.config = config

    def run(self, repo_dir: Path) -> TestResult:
        command = detect_test_command(repo_dir)
        if not command:
            return TestResult(success=False, output=NO_TEST_COMMAND_OUTPUT, command=None)

        command_str = " ".join(command)
        logger.debug(f"Running tests: {command_str} (cwd={repo_dir})")

        try:
            returncode, output = self._execute(command, Path(repo_dir))
        except OSError as exc:
            logger.warning(f"Could not invoke test command '{command_str}': {exc}")
            return TestResult(success=False, output=str(exc), command=command_str)

        return TestResult(success=returncode == 0, output=output, command=command_str)

    def _execute(self, command: List[str], cwd: Path) -> tuple[Optional[int], str]:
        """Run ``command`` capturing combined output up to the configured ceiling.

        Returns:
            Tuple of (returncode, output); returncode is None when the process
            was terminated for exceeding the output ceiling.
        """
        limit = self.config.test_output_limit
        chunks: list[bytes] = []
        captured = 0
        exceeded = False

        with subprocess.Popen(
            command,
            cwd=cwd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
        ) as proc:
            assert proc.stdout is not None
            while True:
                chunk = proc.stdout.read(_READ_CHUNK)
                if not chunk:
                    break
                if captured + len(chunk) > limit:
                    chunks.append(chunk[: max(limit - captured, 0)])
                    exceeded = True
                    proc.kill()
                    break
                chunks.append(chunk)
                captured += len(chunk)
            proc.wait()

        output = b"".join(chunks).decode("utf-8", errors="replace")
        if exceeded:
            logger.warning(f"Test output exceeded {limit} bytes; process terminated")
            return None, output + OUTPUT_LIMIT_MARKER
        return proc.returncode, output


__all__ = [
    "MANIFEST_FILENAME",
    "NO_TEST_COMMAND_OUTPUT",
    "TEST_COMMAND",
    "TestRunner",
    "detect_test_command",
]
