"""Patch Provider: built-in patches, externally generated patches, fallback plans.

Strategies are tried in a fixed order by the orchestrator:

1. ``provide``: a built-in patch whose marker appears in the goal text
2. ``provide_external``: a patch proposed by the external reasoning service
3. ``generate_plan``: no patch, only a diagnostic bundle for an operator

Neither patch strategy raises for "nothing available"; both return None.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from .config import AgentConfig
from .data_types import FallbackPlan, Patch
from .executor import file_exists, list_files, read_file
from .llm_client import LLMClient
from .validation import build_validated_patch, validate_external_patch

logger = logging.getLogger(__name__)

SOURCE_EXTENSION = ".js"
MAX_CANDIDATE_FILES = 5

# word/word.ext tokens such as "utils/date.js"
_PATH_TOKEN_PATTERN = re.compile(r"(\w+/[\w.]+)")


class PlanningError(RuntimeError):
    """Raised when no candidate files exist to build a fallback plan from."""


@dataclass(frozen=True)
class BuiltinPatch:
    """A hand-verified patch selected when ``marker`` occurs in the goal."""

    marker: str
    relative_path: str
    old_code: str
    new_code: str
    summary: str

    def matches(self, goal: str) -> bool:
        return self.marker in goal


BUILTIN_PATCHES: Tuple[BuiltinPatch, ...] = (
    BuiltinPatch(
        marker="utils/date.js",
        relative_path="utils/date.js",
        old_code="  result.setDate(days);",
        new_code="  result.setDate(result.getDate() + days);",
        summary="Fixed addDays function to correctly add days instead of setting day of month",
    ),
)

SYSTEM_PROMPT = (
    "You are a careful software engineer fixing a failing test suite. "
    "Respond with a single JSON object and nothing else: no prose, no Markdown."
)

USER_PROMPT_TEMPLATE = """Goal: {goal}

Target file: {relative_path}

Current content of {relative_path}:
```
{content}
```

Failing test output:
```
{test_output}
```

Return exactly one JSON object with these four string fields and no others:
- "summary": one sentence describing the fix
- "file": the path of the file to change, relative to the repository root
- "oldCode": an exact, verbatim excerpt of the current file content to replace
- "newCode": the replacement text
"""


def find_relevant_files(repo_dir: Path, goal: str) -> List[Path]:
    """Pick the files most likely to need a change for ``goal``.

    A path-shaped token in the goal wins when it names an existing file.
    Otherwise the first few source files in the repository are returned.
    """
    repo_dir = Path(repo_dir)
    match = _PATH_TOKEN_PATTERN.search(goal)
    if match:
        mentioned = repo_dir / match.group(1)
        if file_exists(mentioned):
            return [mentioned]

    return list_files(repo_dir, SOURCE_EXTENSION)[:MAX_CANDIDATE_FILES]


def build_prompt(goal: str, relative_path: str, content: str, test_output: str) -> str:
    return USER_PROMPT_TEMPLATE.format(
        goal=goal,
        relative_path=relative_path,
        content=content,
        test_output=test_output,
    )


class PatchProvider:
    """Produces at most one candidate Patch per run."""

    def __init__(
        self,
        config: AgentConfig,
        llm_client: Optional[LLMClient] = None,
        builtin_patches: Tuple[BuiltinPatch, ...] = BUILTIN_PATCHES,
    ):
        self.config = config
        self.llm_client = llm_client or LLMClient(config)
        self.builtin_patches = builtin_patches

    def provide(self, repo_dir: Path, goal: str, baseline_output: str) -> Optional[Patch]:
        """Return the built-in patch matching ``goal``, or None.

        Built-in patches go through the same existence and fragment checks as
        external ones, so a repository that has drifted yields None.
        """
        for builtin in self.builtin_patches:
            if not builtin.matches(goal):
                continue

            patch, reason = build_validated_patch(
                repo_dir,
                builtin.relative_path,
                builtin.old_code,
                builtin.new_code,
                builtin.summary,
            )
            if patch:
                logger.debug(f"Built-in patch selected for marker '{builtin.marker}'")
                return patch
            logger.warning(f"Built-in patch for '{builtin.marker}' does not apply [{reason}]")

        return None

    async def provide_external(self, repo_dir: Path, goal: str, test_output: str) -> Optional[Patch]:
        """Ask the external reasoning service for a patch and validate it.

        Returns:
            A validated Patch, or None when the service is unconfigured,
            unreachable, or its reply fails validation.
        """
        if not self.config.llm_enabled:
            logger.info("External patch skipped: no LLM API key configured")
            return None

        repo_dir = Path(repo_dir)
        candidates = find_relevant_files(repo_dir, goal)
        if not candidates:
            logger.warning("External patch skipped: no candidate files in repository")
            return None

        target = candidates[0]
        try:
            content = read_file(target)
        except UnicodeDecodeError:
            logger.warning(f"External patch skipped: {target} is not valid UTF-8 [undecodable_file]")
            return None
        except OSError as exc:
            logger.warning(f"External patch skipped: {exc}")
            return None

        relative_path = target.relative_to(repo_dir).as_posix()
        logger.info(f"Requesting external patch for {relative_path}")

        reply = await self.llm_client.complete(
            SYSTEM_PROMPT,
            build_prompt(goal, relative_path, content, test_output),
        )
        if reply is None:
            return None

        patch, reason = validate_external_patch(reply, repo_dir)
        if patch is None:
            logger.warning(f"External patch rejected [{reason}]")
            return None

        logger.info(f"External patch accepted: {patch.summary}")
        return patch

    def generate_plan(self, repo_dir: Path, goal: str, test_output: str) -> FallbackPlan:
        """Bundle candidate files and the baseline output for an operator.

        Raises:
            PlanningError: If the repository holds no candidate files at all.
        """
        files = find_relevant_files(repo_dir, goal)
        if not files:
            raise PlanningError(f"No relevant files found for goal: {goal}")

        # Binary or mis-encoded candidates are still listed, with lossy content.
        file_contents = {str(path): read_file(path, errors="replace") for path in files}
        return FallbackPlan(
            files=[str(path) for path in files],
            file_contents=file_contents,
            test_output=test_output,
            goal=goal,
        )


__all__ = [
    "BUILTIN_PATCHES",
    "BuiltinPatch",
    "MAX_CANDIDATE_FILES",
    "PatchProvider",
    "PlanningError",
    "SYSTEM_PROMPT",
    "build_prompt",
    "find_relevant_files",
]
