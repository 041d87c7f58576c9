"""Path-safety gate.

Every path the engine writes to, deletes or moves is produced by
:func:`secure_join`.  The check is purely lexical: symlinks are not followed,
so a path is accepted only if its normalized string form lives under the
normalized root.
"""

from __future__ import annotations

import os
from pathlib import Path

from .errors import PathTraversalError


def _is_within(root: str, candidate: str) -> bool:
    try:
        return os.path.commonpath([root, candidate]) == root
    except ValueError:
        # Different drives on Windows.
        return False


def secure_join(root: str | Path, *segments: str | Path) -> Path:
    """Join *segments* onto *root* and refuse results that escape it.

    Args:
        root: Directory that must contain the result.
        *segments: Path components, typically derived from user-supplied
            route, feature or component names.

    Returns:
        The absolute, normalized joined path.

    Raises:
        PathTraversalError: If the result is neither *root* nor one of its
            descendants (``..`` segments, absolute segments, etc.).
    """
    root_abs = os.path.abspath(os.fspath(root))
    joined = os.path.abspath(
        os.path.join(root_abs, *(os.fspath(segment) for segment in segments))
    )
    if not _is_within(root_abs, joined):
        raise PathTraversalError(joined, root_abs)
    return Path(joined)


def is_within(root: str | Path, path: str | Path) -> bool:
    """Return ``True`` if *path* is *root* or lies beneath it (lexically)."""
    return _is_within(os.path.abspath(os.fspath(root)), os.path.abspath(os.fspath(path)))


def to_project_path(path: str | Path, project_root: str | Path) -> str:
    """Return *path* relative to *project_root* with forward slashes.

    This is the key format used by the ledger's ``files`` mapping.
    """
    relative = os.path.relpath(os.path.abspath(os.fspath(path)), os.path.abspath(os.fspath(project_root)))
    return relative.replace(os.sep, "/")


def from_project_path(relative: str, project_root: str | Path) -> Path:
    """Inverse of :func:`to_project_path`; guarded against escaping the root."""
    return secure_join(project_root, *relative.split("/"))
