"""Validation of externally generated patches.

Model output is untrusted: it can be prose instead of JSON, omit fields,
point at absolute or nonexistent paths, or quote code that is not in the
file. Each check returns a short reason code so rejections can be told
apart in the logs:

- ``invalid_json``            reply contains no decodable JSON object
- ``missing_field:<name>``    a required key is absent
- ``non_string_field:<name>`` a required key is not a string
- ``empty_field:<name>``      a required key is an empty string
- ``absolute_path``           ``file`` is absolute
- ``invalid_path``            ``file`` cannot be resolved (e.g. embedded NUL)
- ``outside_repo``            ``file`` resolves outside the repository
- ``file_not_found``          ``file`` does not exist in the repository
- ``undecodable_file``        the target is not valid UTF-8 text
- ``old_code_not_found``      ``oldCode`` is not in the file verbatim
"""

from __future__ import annotations

from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import Any, Optional, Tuple

from .data_types import Patch
from .executor import read_file
from .utils import extract_json_object

REQUIRED_FIELDS = ("summary", "file", "oldCode", "newCode")


def check_patch_fields(payload: Any) -> Optional[str]:
    """Return a reason code if ``payload`` lacks the four required string fields."""

    if not isinstance(payload, dict):
        return "invalid_json"

    for name in REQUIRED_FIELDS:
        if name not in payload:
            return f"missing_field:{name}"
        value = payload[name]
        if not isinstance(value, str):
            return f"non_string_field:{name}"
        if not value:
            return f"empty_field:{name}"
    return None


def resolve_target(repo_dir: Path, relative_path: str) -> Tuple[Optional[Path], Optional[str]]:
    """Resolve a repository-relative path.

    Returns:
        Tuple of (absolute_path, reason); exactly one is None.
    """
    if PurePosixPath(relative_path).is_absolute() or PureWindowsPath(relative_path).is_absolute():
        return None, "absolute_path"

    root = Path(repo_dir).resolve()
    try:
        target = (root / relative_path).resolve()
    except (OSError, ValueError):
        return None, "invalid_path"
    if target != root and root not in target.parents:
        return None, "outside_repo"
    if not target.is_file():
        return None, "file_not_found"
    return target, None


def check_fragment_present(target: Path, old_code: str) -> Optional[str]:
    """Return ``old_code_not_found`` unless ``old_code`` appears in ``target``."""

    try:
        content = read_file(target)
    except UnicodeDecodeError:
        return "undecodable_file"
    except OSError:
        return "file_not_found"
    if old_code not in content:
        return "old_code_not_found"
    return None


def build_validated_patch(
    repo_dir: Path, relative_path: str, old_code: str, new_code: str, summary: str
) -> Tuple[Optional[Patch], Optional[str]]:
    """Construct a Patch only after the target exists and contains ``old_code``."""

    target, reason = resolve_target(repo_dir, relative_path)
    if reason:
        return None, reason

    reason = check_fragment_present(target, old_code)
    if reason:
        return None, reason

    return Patch(target_file=target, old_fragment=old_code, new_fragment=new_code, summary=summary), None


def validate_external_patch(reply: str, repo_dir: Path) -> Tuple[Optional[Patch], Optional[str]]:
    """Validate a model reply and turn it into a Patch.

    Args:
        reply: Raw text returned by the external service
        repo_dir: Repository the patch must apply to

    Returns:
        Tuple of (patch, reason)
        - patch: Validated Patch with an absolute ``target_file``, or None
        - reason: Rejection reason code, None when valid

    Examples:
        >>> validate_external_patch("not json", Path("."))
        (None, 'invalid_json')
    """
    try:
        payload = extract_json_object(reply or "")
    except ValueError:
        return None, "invalid_json"

    reason = check_patch_fields(payload)
    if reason:
        return None, reason

    return build_validated_patch(
        repo_dir,
        payload["file"],
        payload["oldCode"],
        payload["newCode"],
        payload["summary"],
    )


__all__ = [
    "REQUIRED_FIELDS",
    "build_validated_patch",
    "check_fragment_present",
    "check_patch_fields",
    "resolve_target",
    "validate_external_patch",
]
