"""Safe write, delete and move primitives.

Each primitive compares the file on disk with what the ledger expects (hash
and owner) before mutating anything.  A mismatch is returned as a skipped
result carrying a human-readable reason; only path-safety violations,
existing destinations and missing move sources are raised.
"""

from __future__ import annotations

import asyncio
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping, Optional

from .errors import DestinationExistsError, NotFoundError
from .hashing import DEFAULT_NORMALIZATION, NormalizationMode, calculate_hash
from .models import FileRecord
from .paths import to_project_path

NormalizationArg = NormalizationMode | str | None

REASON_CHANGED = "content changed since last generation"
REASON_UNTRACKED = "file is not tracked by Textor and has no generated signature"


@dataclass
class FileOpResult:
    """Outcome of a delete.

    ``deleted=False`` with no ``message`` means there was nothing to delete.
    """

    path: Path
    deleted: bool = False
    message: Optional[str] = None

    @property
    def skipped(self) -> bool:
        return not self.deleted and self.message is not None


@dataclass
class MoveResult:
    """Outcome of a move; ``hash`` is the content hash at the destination."""

    source: Path
    destination: Path
    moved: bool = False
    hash: Optional[str] = None
    message: Optional[str] = None

    @property
    def skipped(self) -> bool:
        return not self.moved and self.message is not None


@dataclass
class _Blocked:
    path: str
    reason: str


@dataclass
class DirCheck:
    """Per-file verdicts gathered before deleting a directory tree."""

    blocked: list[_Blocked] = field(default_factory=list)
    checked: int = 0

    @property
    def ok(self) -> bool:
        return not self.blocked


# ---------------------------------------------------------------------------
# Low-level helpers
# ---------------------------------------------------------------------------


def _read(path: Path) -> str:
    return path.read_text(encoding="utf-8", errors="replace")


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def _has_signature(content: str, signatures: Iterable[str] | None) -> bool:
    return any(sig and sig in content for sig in (signatures or ()))


def _owner_conflict(owner: Optional[str], actual_owner: Optional[str]) -> Optional[str]:
    if owner and actual_owner and owner != actual_owner:
        return f"owned by a different entity ('{actual_owner}', expected '{owner}')"
    return None


def _conflict_reason(
    content: str,
    *,
    force: bool,
    expected_hash: Optional[str],
    accept_changes: bool,
    normalization: NormalizationArg,
    owner: Optional[str],
    actual_owner: Optional[str],
    signatures: Iterable[str] | None,
) -> Optional[str]:
    """Return why mutating a file with *content* must be refused, or ``None``."""
    if force:
        return None

    owner_reason = _owner_conflict(owner, actual_owner)
    if owner_reason:
        return owner_reason

    if expected_hash is not None and calculate_hash(content, normalization) == expected_hash:
        return None
    # Drifted or untracked: still ours if it keeps a signature.
    if accept_changes or _has_signature(content, signatures):
        return None
    if expected_hash is not None:
        return f"{REASON_CHANGED} (use --accept-changes or --force)"
    return f"{REASON_UNTRACKED} (use --force)"


async def ensure_dir(path: str | Path) -> Path:
    """Create a directory (and parents) if it does not exist."""
    dir_path = Path(path)
    await asyncio.to_thread(dir_path.mkdir, parents=True, exist_ok=True)
    return dir_path


async def ensure_not_exists(path: str | Path, force: bool = False) -> None:
    """Raise :class:`DestinationExistsError` if *path* exists and *force* is not set."""
    if not force and await asyncio.to_thread(Path(path).exists):
        raise DestinationExistsError(path)


# ---------------------------------------------------------------------------
# Primitives
# ---------------------------------------------------------------------------


async def write_file_with_signature(
    path: str | Path,
    content: str,
    signature: Optional[str],
    normalization: NormalizationArg = DEFAULT_NORMALIZATION,
) -> str:
    """Write *content* to *path*, stamping *signature* at the top if absent.

    Overwrite policy is the caller's concern (see :func:`ensure_not_exists`).

    Returns:
        The hash of the content actually written.
    """
    final = content
    if signature and signature not in content:
        final = f"{signature}\n{content}"
    await asyncio.to_thread(_write, Path(path), final)
    return calculate_hash(final, normalization)


async def safe_delete(
    path: str | Path,
    *,
    force: bool = False,
    expected_hash: Optional[str] = None,
    accept_changes: bool = False,
    normalization: NormalizationArg = DEFAULT_NORMALIZATION,
    owner: Optional[str] = None,
    actual_owner: Optional[str] = None,
    signatures: Iterable[str] | None = None,
) -> FileOpResult:
    """Delete a file only if it is what the ledger says it is.

    * Missing file: nothing to delete, no message.
    * Owner mismatch: refused unless *force*.
    * Tracked file (``expected_hash`` set): deleted when the hash matches, or
      on drift with *force* / *accept_changes* or when it still carries one
      of *signatures* and the owner is compatible.
    * Untracked file: deleted with *force* / *accept_changes* or when it
      carries one of *signatures*.
    """
    target = Path(path)
    if not await asyncio.to_thread(target.is_file):
        return FileOpResult(path=target)

    content = await asyncio.to_thread(_read, target)
    reason = _conflict_reason(
        content,
        force=force,
        expected_hash=expected_hash,
        accept_changes=accept_changes,
        normalization=normalization,
        owner=owner,
        actual_owner=actual_owner,
        signatures=signatures,
    )
    if reason:
        return FileOpResult(path=target, message=reason)

    await asyncio.to_thread(target.unlink)
    return FileOpResult(path=target, deleted=True)


async def safe_move(
    source: str | Path,
    destination: str | Path,
    *,
    force: bool = False,
    expected_hash: Optional[str] = None,
    accept_changes: bool = False,
    normalization: NormalizationArg = DEFAULT_NORMALIZATION,
    owner: Optional[str] = None,
    actual_owner: Optional[str] = None,
    signatures: Iterable[str] | None = None,
) -> MoveResult:
    """Move *source* to *destination* after the same checks as :func:`safe_delete`.

    Raises:
        NotFoundError: If *source* does not exist.
        DestinationExistsError: If *destination* exists and *force* is not set.
    """
    src = Path(source)
    dst = Path(destination)
    if not await asyncio.to_thread(src.is_file):
        raise NotFoundError(f"Source file not found: {src}", path=src)

    content = await asyncio.to_thread(_read, src)
    reason = _conflict_reason(
        content,
        force=force,
        expected_hash=expected_hash,
        accept_changes=accept_changes,
        normalization=normalization,
        owner=owner,
        actual_owner=actual_owner,
        signatures=signatures,
    )
    if reason:
        return MoveResult(source=src, destination=dst, message=reason)

    if not force and await asyncio.to_thread(dst.exists):
        raise DestinationExistsError(dst)

    def _move() -> None:
        dst.parent.mkdir(parents=True, exist_ok=True)
        os.replace(src, dst)

    await asyncio.to_thread(_move)
    return MoveResult(
        source=src,
        destination=dst,
        moved=True,
        hash=calculate_hash(content, normalization),
    )


def _check_tree(
    root: Path,
    *,
    project_root: Path,
    state_files: Mapping[str, FileRecord],
    accept_changes: bool,
    normalization: NormalizationArg,
    owner: Optional[str],
    signatures: Iterable[str] | None,
) -> DirCheck:
    check = DirCheck()
    signature_list = list(signatures or ())
    for current, _dirs, filenames in os.walk(root):
        for filename in sorted(filenames):
            full = Path(current) / filename
            key = to_project_path(full, project_root)
            content = _read(full)
            check.checked += 1
            record = state_files.get(key)

            if record is None:
                if accept_changes and _has_signature(content, signature_list):
                    continue
                check.blocked.append(_Blocked(key, "untracked file inside a generated directory"))
                continue

            owner_reason = _owner_conflict(owner, record.owner)
            if owner_reason:
                check.blocked.append(_Blocked(key, owner_reason))
            elif not accept_changes and calculate_hash(content, normalization) != record.hash:
                check.blocked.append(_Blocked(key, REASON_CHANGED))
    return check


async def safe_delete_dir(
    path: str | Path,
    *,
    project_root: str | Path,
    state_files: Mapping[str, FileRecord],
    force: bool = False,
    accept_changes: bool = False,
    normalization: NormalizationArg = DEFAULT_NORMALIZATION,
    owner: Optional[str] = None,
    signatures: Iterable[str] | None = None,
) -> FileOpResult:
    """Remove a directory tree only if every file in it is accounted for.

    Without *force*, each contained file must be tracked with a matching hash
    (or *accept_changes*) and a compatible owner.  Untracked files block the
    deletion unless they carry a signature and *accept_changes* is set.  One
    blocked file refuses the whole tree; the message lists every blocker.
    """
    target = Path(path)
    if not await asyncio.to_thread(target.is_dir):
        return FileOpResult(path=target)

    if not force:
        check = await asyncio.to_thread(
            _check_tree,
            target,
            project_root=Path(project_root),
            state_files=state_files,
            accept_changes=accept_changes,
            normalization=normalization,
            owner=owner,
            signatures=signatures,
        )
        if not check.ok:
            details = "; ".join(f"{b.path}: {b.reason}" for b in check.blocked)
            return FileOpResult(
                path=target,
                message=(
                    f"directory contains {len(check.blocked)} unexpected file(s): {details} "
                    "(use --accept-changes or --force)"
                ),
            )

    await asyncio.to_thread(shutil.rmtree, target)
    return FileOpResult(path=target, deleted=True)


async def cleanup_empty_dirs(path: str | Path, stop_at: str | Path) -> None:
    """Remove *path* and its empty parents, never going above *stop_at*."""
    stop = os.path.abspath(stop_at)

    def _cleanup() -> None:
        current = os.path.abspath(path)
        while current != stop and current.startswith(stop + os.sep):
            try:
                if os.listdir(current):
                    return
                os.rmdir(current)
            except FileNotFoundError:
                pass
            current = os.path.dirname(current)

    await asyncio.to_thread(_cleanup)
