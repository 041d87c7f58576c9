"""Git helpers: the clean-tree gate and staging of generated files.

A directory that is not a git repository (or a machine without git) counts as
clean, and staging failures are ignored; git is optional for Textor.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

from textor.core.errors import DirtyRepositoryError
from textor.utils import run_command


async def _run_git(*args: str, cwd: str | Path | None = None, timeout: int = 30) -> tuple[int, str, str]:
    return await run_command(["git", *args], cwd=cwd, timeout=timeout)


async def is_repo_clean(cwd: str | Path | None = None) -> bool:
    """Return ``True`` unless ``git status --porcelain`` reports changes."""
    returncode, stdout, _stderr = await _run_git("status", "--porcelain", cwd=cwd)
    if returncode != 0:
        return True
    return stdout.strip() == ""


async def require_clean_repo(cwd: str | Path, enabled: bool) -> None:
    """Raise :class:`DirtyRepositoryError` when *enabled* and the tree is dirty."""
    if not enabled:
        return
    returncode, stdout, _stderr = await _run_git("status", "--porcelain", cwd=cwd)
    if returncode == 0 and stdout.strip():
        raise DirtyRepositoryError(cwd, stdout)


async def stage_files(paths: Iterable[str | Path], cwd: str | Path | None = None) -> bool:
    """``git add`` *paths*; returns ``False`` if nothing was staged."""
    targets = [str(p) for p in paths]
    if not targets:
        return False
    returncode, _stdout, _stderr = await _run_git("add", "--", *targets, cwd=cwd)
    return returncode == 0
