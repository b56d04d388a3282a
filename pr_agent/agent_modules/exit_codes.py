"""Exit code constants for the PR agent CLI.

Exit Code Ranges:
    0: Success
    1-9: Blockers (missing preconditions, invalid arguments)
    10-19: Validation failures (tests still failing after the patch)
    20-29: Execution failures (no patch available, unexpected errors)
    30-39: Resource failures (git, file I/O, network)
"""

from __future__ import annotations

# Success
EXIT_SUCCESS = 0

# Blockers (1-9)
EXIT_BLOCKER_MISSING_ENV = 1  # Missing executables (git, npm)
EXIT_BLOCKER_INVALID_ARGS = 5  # Invalid command-line arguments

# Validation Failures (10-19)
EXIT_VALIDATION_TESTS_FAILED = 11  # Tests fail after applying the patch

# Execution Failures (20-29)
EXIT_EXEC_NEEDS_LLM = 20  # No deterministic or external patch available
EXIT_EXEC_UNEXPECTED_ERROR = 23  # Unexpected runtime error

# Resource Failures (30-39)
EXIT_RESOURCE_GIT_ERROR = 30  # Git operation failed
EXIT_RESOURCE_FILE_ERROR = 31  # File I/O error

STATUS_EXIT_CODES = {
    "success": EXIT_SUCCESS,
    "verify_failed": EXIT_VALIDATION_TESTS_FAILED,
    "needs_llm": EXIT_EXEC_NEEDS_LLM,
    "error": EXIT_EXEC_UNEXPECTED_ERROR,
}

ERROR_CAUSE_EXIT_CODES = {
    "GitError": EXIT_RESOURCE_GIT_ERROR,
    "WorkspaceError": EXIT_RESOURCE_GIT_ERROR,
    "PatchNotFoundError": EXIT_RESOURCE_FILE_ERROR,
    "OSError": EXIT_RESOURCE_FILE_ERROR,
    "FileNotFoundError": EXIT_BLOCKER_MISSING_ENV,
}


def exit_code_for(status: str, cause: str | None = None) -> int:
    """Map a terminal run status (and error cause) to a process exit code.

    Examples:
        >>> exit_code_for("success")
        0
        >>> exit_code_for("error", "GitError")
        30
        >>> exit_code_for("error", "KeyError")
        23
    """
    if status == "error" and cause in ERROR_CAUSE_EXIT_CODES:
        return ERROR_CAUSE_EXIT_CODES[cause]
    return STATUS_EXIT_CODES.get(status, EXIT_EXEC_UNEXPECTED_ERROR)


def get_exit_code_description(code: int) -> str:
    """Get human-readable description for an exit code.

    Examples:
        >>> get_exit_code_description(EXIT_VALIDATION_TESTS_FAILED)
        'Validation Failure: Tests still failing after patch'
        >>> get_exit_code_description(99)
        'Unknown exit code: 99'
    """
    descriptions = {
        EXIT_SUCCESS: "Success",
        EXIT_BLOCKER_MISSING_ENV: "Blocker: Missing executables",
        EXIT_BLOCKER_INVALID_ARGS: "Blocker: Invalid command-line arguments",
        EXIT_VALIDATION_TESTS_FAILED: "Validation Failure: Tests still failing after patch",
        EXIT_EXEC_NEEDS_LLM: "Execution Failure: No patch available, manual fix required",
        EXIT_EXEC_UNEXPECTED_ERROR: "Execution Failure: Unexpected runtime error",
        EXIT_RESOURCE_GIT_ERROR: "Resource Failure: Git operation failed",
        EXIT_RESOURCE_FILE_ERROR: "Resource Failure: File I/O error",
    }
    return descriptions.get(code, f"Unknown exit code: {code}")
