"""Text-level refactoring used when sections and components move.

None of this parses source code.  Imports are found with regular expressions
over quoted module specifiers and identifiers are renamed on word boundaries,
which covers the files Textor itself generates and most hand-written ones.
"""

from __future__ import annotations

import asyncio
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from textor.core.errors import DestinationExistsError, NotFoundError
from textor.core.fileops import safe_move
from textor.core.hashing import calculate_hash
from textor.core.models import State
from textor.core.paths import to_project_path
from textor.naming import get_relative_import_path

if TYPE_CHECKING:
    from textor.config import Config

_RELATIVE_IMPORT = re.compile(r"""(\bfrom\s+|\bimport\s+|\bimport\()(['"])(\.\.?/[^'"]+)\2""")

SOURCE_EXTENSIONS = (".astro", ".ts", ".tsx", ".js", ".jsx", ".mjs", ".md", ".mdx")
_SKIPPED_DIRS = {".git", ".textor", "node_modules", "dist", ".astro"}


@dataclass
class MoveDirectoryResult:
    moved: list[tuple[str, str]] = field(default_factory=list)
    skipped: list[tuple[str, str]] = field(default_factory=list)
    source_removed: bool = False


def _read(path: Path) -> str:
    return path.read_text(encoding="utf-8", errors="replace")


def _write(path: Path, content: str) -> None:
    path.write_text(content, encoding="utf-8")


# ---------------------------------------------------------------------------
# Single-file rewrites
# ---------------------------------------------------------------------------


def rewrite_relative_imports(content: str, old_file: str | Path, new_file: str | Path) -> str:
    """Re-point every relative import in *content* after a move from *old_file* to *new_file*."""
    old_dir = os.path.dirname(os.path.abspath(old_file))
    new_file_abs = os.path.abspath(new_file)
    if old_dir == os.path.dirname(new_file_abs):
        return content

    def _replace(match: re.Match[str]) -> str:
        keyword, quote, specifier = match.groups()
        target = os.path.normpath(os.path.join(old_dir, specifier))
        return f"{keyword}{quote}{get_relative_import_path(new_file_abs, target)}{quote}"

    return _RELATIVE_IMPORT.sub(_replace, content)


async def update_imports_in_file(
    file_path: str | Path, old_file_path: str | Path, new_file_path: str | Path
) -> bool:
    """Rewrite relative imports of a file that moved from *old_file_path*.

    *file_path* is where the file lives now (normally *new_file_path*).
    Returns ``True`` if the file was rewritten.
    """
    target = Path(file_path)
    if not await asyncio.to_thread(target.is_file):
        return False
    content = await asyncio.to_thread(_read, target)
    updated = rewrite_relative_imports(content, old_file_path, new_file_path)
    if updated == content:
        return False
    await asyncio.to_thread(_write, target, updated)
    return True


def rename_component_tags(content: str, old: str, new: str) -> str:
    """Rename the identifier *old* to *new* on word boundaries (tags, imports, usages)."""
    if not old or old == new:
        return content
    return re.sub(rf"\b{re.escape(old)}\b", new, content)


def _rename_in_content(content: str, old: str, new: str) -> str:
    updated = content.replace(old, new)
    old_lower, new_lower = old.lower(), new.lower()
    if old_lower != old:
        updated = updated.replace(old_lower, new_lower)
    return updated


# ---------------------------------------------------------------------------
# Directory moves
# ---------------------------------------------------------------------------


async def move_directory(
    source: str | Path,
    destination: str | Path,
    state: State,
    config: "Config",
    *,
    from_name: Optional[str] = None,
    to_name: Optional[str] = None,
    owner: Optional[str] = None,
    force: bool = False,
    accept_changes: bool = False,
    _result: MoveDirectoryResult | None = None,
) -> MoveDirectoryResult:
    """Move a generated directory tree file by file.

    Entries whose names contain *from_name* are renamed to *to_name* and the
    name is rewritten inside moved files (also in lower case, for CSS
    classes).  Ledger records in *state* follow their files and are
    re-hashed; the caller saves *state*.  Files refused by
    :func:`~textor.core.fileops.safe_move` stay behind and are listed in
    ``skipped``; the source directory is removed only once empty.

    Raises:
        NotFoundError: If *source* is not a directory.
        DestinationExistsError: If *destination* exists and *force* is not set.
    """
    src = Path(source)
    dst = Path(destination)
    top_level = _result is None
    result = _result or MoveDirectoryResult()

    if not await asyncio.to_thread(src.is_dir):
        raise NotFoundError(f"Source directory not found: {src}", path=src)
    if top_level and not force and await asyncio.to_thread(dst.exists):
        raise DestinationExistsError(dst)

    await asyncio.to_thread(dst.mkdir, parents=True, exist_ok=True)
    renaming = bool(from_name and to_name and from_name != to_name)
    signatures = config.signature_list()
    normalization = config.normalization
    root = config.project_root

    for entry in sorted(await asyncio.to_thread(os.listdir, src)):
        target_entry = entry.replace(from_name, to_name, 1) if renaming and from_name in entry else entry
        from_entry = src / entry
        to_entry = dst / target_entry

        if await asyncio.to_thread(from_entry.is_dir):
            await move_directory(
                from_entry,
                to_entry,
                state,
                config,
                from_name=from_name,
                to_name=to_name,
                owner=owner,
                force=force,
                accept_changes=accept_changes,
                _result=result,
            )
            continue

        from_key = to_project_path(from_entry, root)
        to_key = to_project_path(to_entry, root)
        record = state.files.get(from_key)

        moved = await safe_move(
            from_entry,
            to_entry,
            force=force,
            expected_hash=record.hash if record else None,
            accept_changes=accept_changes,
            normalization=normalization,
            owner=owner,
            actual_owner=record.owner if record else None,
            signatures=signatures,
        )
        if not moved.moved:
            result.skipped.append((from_key, moved.message or "not moved"))
            continue

        new_hash = moved.hash
        if renaming:
            content = await asyncio.to_thread(_read, to_entry)
            updated = _rename_in_content(content, from_name, to_name)
            if updated != content:
                await asyncio.to_thread(_write, to_entry, updated)
                new_hash = calculate_hash(updated, normalization)

        if record is not None:
            state.files.pop(from_key, None)
            state.files[to_key] = record.model_copy(update={"hash": new_hash})
        result.moved.append((from_key, to_key))

    if not await asyncio.to_thread(os.listdir, src):
        await asyncio.to_thread(src.rmdir)
        if top_level:
            result.source_removed = True
    return result


# ---------------------------------------------------------------------------
# Project-wide import rewriting
# ---------------------------------------------------------------------------


def _walk_sources(root: Path) -> list[Path]:
    found: list[Path] = []
    for current, dirnames, filenames in os.walk(root):
        dirnames[:] = [d for d in dirnames if d not in _SKIPPED_DIRS]
        for filename in filenames:
            if filename.endswith(SOURCE_EXTENSIONS):
                found.append(Path(current) / filename)
    return sorted(found)


def rewrite_import_specifier(content: str, old_dir: str, new_dir: str, from_name: str, to_name: str) -> str:
    """Replace quoted specifiers equal to *old_dir* or starting with ``old_dir/``."""
    pattern = re.compile(r"""(['"])""" + re.escape(old_dir) + r"""(/[^'"]*)?\1""")

    def _replace(match: re.Match[str]) -> str:
        quote, tail = match.group(1), match.group(2) or ""
        if tail and from_name != to_name:
            head, _, last = tail.rpartition("/")
            tail = f"{head}/{last.replace(from_name, to_name, 1)}"
        return f"{quote}{new_dir}{tail}{quote}"

    return pattern.sub(_replace, content)


async def scan_and_replace_imports(
    config: "Config",
    state: State,
    *,
    kind: str,
    from_path: str,
    to_path: str,
    from_name: str,
    to_name: str,
    dry_run: bool = False,
) -> list[str]:
    """Re-point imports of a moved feature or component across the project.

    Args:
        kind: ``"feature"`` or ``"component"``; selects the managed root and
            the import alias.
        from_path / to_path: Old and new location relative to that root.
        from_name / to_name: Old and new entry component names.  Identifiers
            are renamed only in files whose imports changed.

    Aliased specifiers (``@features/users/list``) are rewritten first, then
    relative ones.  Files inside the new location are left alone.  A tracked
    file that was clean before the rewrite gets its ledger hash refreshed;
    already drifted files keep their old hash.

    Returns:
        Project-relative paths of the files that were (or would be) updated.
    """
    root_key = "components" if kind == "component" else "features"
    kind_root = config.resolve_path(root_key)
    alias = getattr(config.import_aliases, root_key)
    old_dir_abs = os.path.normpath(os.path.join(kind_root, from_path))
    new_dir_abs = os.path.normpath(os.path.join(kind_root, to_path))
    normalization = config.normalization
    project_root = config.project_root

    updated_files: list[str] = []
    for full in await asyncio.to_thread(_walk_sources, project_root):
        full_abs = os.path.abspath(full)
        if full_abs == new_dir_abs or full_abs.startswith(new_dir_abs + os.sep):
            continue

        content = await asyncio.to_thread(_read, full)
        updated = content
        if alias:
            updated = rewrite_import_specifier(
                updated, f"{alias}/{from_path}", f"{alias}/{to_path}", from_name, to_name
            )
        updated = rewrite_import_specifier(
            updated,
            get_relative_import_path(full_abs, old_dir_abs),
            get_relative_import_path(full_abs, new_dir_abs),
            from_name,
            to_name,
        )
        if updated == content:
            continue

        updated = rename_component_tags(updated, from_name, to_name)
        key = to_project_path(full, project_root)
        updated_files.append(key)
        if dry_run:
            continue

        await asyncio.to_thread(_write, full, updated)
        record = state.files.get(key)
        if record is not None and record.hash == calculate_hash(content, normalization):
            record.hash = calculate_hash(updated, normalization)
    return updated_files
