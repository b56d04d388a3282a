"""File operations and exact-match change application."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Optional

from .data_types import Patch

logger = logging.getLogger(__name__)

IGNORED_DIRECTORIES = frozenset({"node_modules", ".git"})


class PatchNotFoundError(RuntimeError):
    """Raised when a patch's old fragment is absent from its target file."""

    def __init__(self, target_file: Path):
        super().__init__(f"Old code not found in file: {target_file}")
        self.target_file = target_file


def read_file(path: Path, errors: str = "strict") -> str:
    """Return the UTF-8 text of ``path``.

    With the default ``errors="strict"`` undecodable bytes raise
    ``UnicodeDecodeError``; pass ``"replace"`` for a lossy read.
    """

    try:
        with open(path, "r", encoding="utf-8", errors=errors, newline="") as handle:
            return handle.read()
    except OSError as exc:
        raise OSError(f"Failed to read file {path}: {exc}") from exc


def write_file(path: Path, content: str) -> None:
    """Replace the contents of ``path`` with ``content``."""

    try:
        with open(path, "w", encoding="utf-8", newline="") as handle:
            handle.write(content)
    except OSError as exc:
        raise OSError(f"Failed to write file {path}: {exc}") from exc


def file_exists(path: Path) -> bool:
    return Path(path).is_file()


def list_files(root: Path, extension: Optional[str] = None) -> List[Path]:
    """List files under ``root`` recursively, skipping dependency and VCS directories.

    Args:
        root: Directory to walk
        extension: Optional suffix filter such as ``".js"``

    Returns:
        Sorted list of absolute file paths
    """
    results: List[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(name for name in dirnames if name not in IGNORED_DIRECTORIES)
        for filename in sorted(filenames):
            if extension and not filename.endswith(extension):
                continue
            results.append(Path(dirpath) / filename)
    return results


def apply_changes(patch: Patch) -> None:
    """Replace the first occurrence of ``patch.old_fragment`` in its target file.

    Only the earliest occurrence is replaced; later duplicates are left alone.

    Raises:
        PatchNotFoundError: If the fragment is missing. The file is not written.
    """
    content = read_file(patch.target_file)

    if patch.old_fragment not in content:
        raise PatchNotFoundError(patch.target_file)

    write_file(patch.target_file, content.replace(patch.old_fragment, patch.new_fragment, 1))
    logger.debug(f"Applied patch to {patch.target_file}")


__all__ = [
    "IGNORED_DIRECTORIES",
    "PatchNotFoundError",
    "apply_changes",
    "file_exists",
    "list_files",
    "read_file",
    "write_file",
]
