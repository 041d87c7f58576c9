"""Directory scanning and generated-file detection."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

from textor.naming import to_pascal_case

from .models import FileKind
from .paths import to_project_path

if TYPE_CHECKING:
    from textor.config import Config

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".textor",
    "node_modules",
    "__pycache__",
}


def _walk_files(root: Path, base: Path) -> list[str]:
    found: list[str] = []
    for current, dirnames, filenames in os.walk(root):
        dirnames[:] = [d for d in dirnames if d not in _EXCLUDED_DIRS]
        for filename in filenames:
            found.append(to_project_path(Path(current) / filename, base))
    return found


async def scan_directory(
    root: str | Path, found: set[str], *, base: str | Path | None = None
) -> None:
    """Add every file below *root* to *found*.

    Paths are recorded relative to *base* (the project root; defaults to the
    current working directory) with forward slashes, which is the key format
    of the ledger.  A missing *root* adds nothing.
    """
    root_path = Path(root)
    if not root_path.is_dir():
        return
    base_path = Path(base) if base is not None else Path.cwd()
    files = await asyncio.to_thread(_walk_files, root_path, base_path)
    found.update(files)


def _read_text(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except (FileNotFoundError, IsADirectoryError, PermissionError):
        return None


async def is_textor_generated(path: str | Path, signatures: Iterable[str]) -> bool:
    """Return ``True`` if the file at *path* contains any of *signatures*."""
    markers = [s for s in signatures if s]
    if not markers:
        return False
    content = await asyncio.to_thread(_read_text, Path(path))
    if content is None:
        return False
    return any(marker in content for marker in markers)


def _under(relative_path: str, root: str) -> str | None:
    prefix = root.rstrip("/") + "/"
    if relative_path.startswith(prefix):
        return relative_path[len(prefix):]
    return None


def infer_kind(relative_path: str, config: "Config") -> FileKind:
    """Classify a project-relative path by the managed root it lives under.

    Entry files (``Foo/Foo.astro`` under components, ``users/list/UsersList.astro``
    under features) are ``component``/``feature``; everything else in those
    roots is ``component-file``/``feature-file``.
    """
    below = _under(relative_path, config.relative_root("pages"))
    if below is not None:
        return FileKind.ROUTE

    below = _under(relative_path, config.relative_root("components"))
    if below is not None:
        parts = below.split("/")
        if len(parts) == 2 and Path(parts[1]).stem == parts[0]:
            return FileKind.COMPONENT
        return FileKind.COMPONENT_FILE

    below = _under(relative_path, config.relative_root("features"))
    if below is not None:
        parent, _, filename = below.rpartition("/")
        if parent and Path(filename).stem == to_pascal_case(parent):
            return FileKind.FEATURE
        return FileKind.FEATURE_FILE

    return FileKind.FEATURE_FILE
