"""Reconcile the ledger with the files actually on disk.

:func:`get_project_status` partitions the union of ledger paths and files
under the managed roots into synced / modified / missing / untracked /
orphaned.  :class:`Reconciler` turns that classification into ledger
mutations (``sync``, ``prune``, ``validate --fix``) and heals the derived
``components``/``sections`` metadata afterwards.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Optional

from .hashing import calculate_hash
from .models import Component, FileRecord, Section, State, utc_now
from .paths import from_project_path
from .scanner import infer_kind, is_textor_generated, scan_directory
from .state import StateStore, reconstruct_components, reconstruct_sections

if TYPE_CHECKING:
    from textor.config import Config


@dataclass
class ModifiedFile:
    path: str
    recorded_hash: str
    current_hash: str


@dataclass
class ProjectStatus:
    missing: list[str] = field(default_factory=list)
    modified: list[ModifiedFile] = field(default_factory=list)
    untracked: list[str] = field(default_factory=list)  # signature, no ledger entry
    orphaned: list[str] = field(default_factory=list)  # no signature, no ledger entry
    synced: int = 0

    @property
    def modified_paths(self) -> list[str]:
        return [m.path for m in self.modified]

    @property
    def is_clean(self) -> bool:
        return not (self.missing or self.modified or self.untracked)


@dataclass
class SyncReport:
    added: dict[str, str] = field(default_factory=dict)  # path -> hash
    updated: dict[str, str] = field(default_factory=dict)  # path -> new hash
    removed: list[str] = field(default_factory=list)
    untouched: int = 0
    ignored: int = 0
    missing_roots: list[str] = field(default_factory=list)
    metadata_rebuilt: bool = False
    dry_run: bool = False

    @property
    def changed(self) -> bool:
        return bool(self.added or self.updated or self.removed)


@dataclass
class PruneReport:
    removed: list[str] = field(default_factory=list)
    aborted: bool = False
    dry_run: bool = False


@dataclass
class ValidationReport:
    valid: int = 0
    missing: list[str] = field(default_factory=list)
    modified: list[ModifiedFile] = field(default_factory=list)
    fixed: int = 0


def _read(path: Path) -> str:
    return path.read_text(encoding="utf-8", errors="replace")


async def _scan_managed_roots(config: "Config", found: set[str]) -> list[str]:
    """Scan every managed root into *found*; return the roots that do not exist."""
    missing_roots: list[str] = []
    for key in ("pages", "features", "components"):
        root = config.resolve_path(key)
        if await asyncio.to_thread(root.is_dir):
            await scan_directory(root, found, base=config.project_root)
        else:
            missing_roots.append(config.relative_root(key))
    return missing_roots


async def _current_hash(config: "Config", relative: str) -> str | None:
    full = from_project_path(relative, config.project_root)
    if not await asyncio.to_thread(full.is_file):
        return None
    content = await asyncio.to_thread(_read, full)
    return calculate_hash(content, config.normalization)


async def get_project_status(config: "Config", state: State) -> ProjectStatus:
    """Classify ledger entries and managed files against each other.

    One scan of the managed roots builds a working set; every ledger path is
    removed from it while being classified as synced, modified or missing.
    What remains is untracked (has a signature) or orphaned (has none).
    """
    status = ProjectStatus()
    disk_files: set[str] = set()
    await _scan_managed_roots(config, disk_files)
    signatures = config.signature_list()

    for relative, record in state.files.items():
        current = await _current_hash(config, relative)
        if current is None:
            status.missing.append(relative)
            continue
        disk_files.discard(relative)
        if current != record.hash:
            status.modified.append(ModifiedFile(relative, record.hash, current))
        else:
            status.synced += 1

    for relative in sorted(disk_files):
        full = from_project_path(relative, config.project_root)
        if await is_textor_generated(full, signatures):
            status.untracked.append(relative)
        else:
            status.orphaned.append(relative)

    return status


def _metadata_differs(state: State, components: list[Component], sections: list[Section]) -> bool:
    def _dump(items: list) -> list[dict]:
        return [item.model_dump(by_alias=True) for item in items]

    return _dump(components) != _dump(state.components) or _dump(sections) != _dump(state.sections)


def rebuild_metadata(state: State, config: "Config") -> bool:
    """Recompute ``components`` and ``sections`` in place; return whether they changed."""
    components = reconstruct_components(state.files, config)
    # Sections read the stored ones for names and layouts, so compare before assigning.
    sections = reconstruct_sections(state, config)
    changed = _metadata_differs(state, components, sections)
    state.components = components
    state.sections = sections
    return changed


class Reconciler:
    """Ledger/disk reconciliation for one project.

    Args:
        config: Project configuration (managed roots, signatures, hashing).
        store: Ledger store; defaults to one rooted at ``config.project_root``.
    """

    def __init__(self, config: "Config", store: StateStore | None = None) -> None:
        self.config = config
        self.store = store or StateStore(config.project_root)

    async def status(self) -> ProjectStatus:
        return await get_project_status(self.config, await self.store.load())

    async def sync(
        self,
        *,
        include_all: bool = False,
        force: bool = False,
        dry_run: bool = False,
    ) -> SyncReport:
        """Fold disk reality back into the ledger.

        * Untracked files carrying a signature are added (every untracked file
          with *include_all*).
        * Modified files that still carry a signature get their hash refreshed
          (every modified file with *force*).
        * Missing entries are dropped.

        Components and sections are reconstructed afterwards, even when no file
        entry changed, if the derived metadata differs from what is stored.
        """
        config = self.config
        state = await self.store.load()
        report = SyncReport(dry_run=dry_run)
        signatures = config.signature_list()

        managed: set[str] = set()
        report.missing_roots = await _scan_managed_roots(config, managed)

        for relative, record in state.files.items():
            current = await _current_hash(config, relative)
            if current is None:
                report.removed.append(relative)
                continue
            managed.discard(relative)
            if current == record.hash:
                report.untouched += 1
                continue
            full = from_project_path(relative, config.project_root)
            if force or await is_textor_generated(full, signatures):
                report.updated[relative] = current

        for relative in sorted(managed):
            full = from_project_path(relative, config.project_root)
            generated = await is_textor_generated(full, signatures)
            if generated or include_all:
                content = await asyncio.to_thread(_read, full)
                report.added[relative] = calculate_hash(content, config.normalization)
            else:
                report.ignored += 1

        if dry_run:
            return report

        now = utc_now()
        for relative, digest in report.added.items():
            state.files[relative] = FileRecord(
                kind=infer_kind(relative, config),
                hash=digest,
                timestamp=now,
                synced=True,
                has_signature=await is_textor_generated(
                    from_project_path(relative, config.project_root), signatures
                ),
            )
        for relative, digest in report.updated.items():
            record = state.files[relative]
            record.hash = digest
            record.timestamp = now
            record.synced = True
        for relative in report.removed:
            del state.files[relative]

        report.metadata_rebuilt = rebuild_metadata(state, config)
        if report.changed or report.metadata_rebuilt:
            await self.store.save(state)
        return report

    async def prune(
        self,
        *,
        dry_run: bool = False,
        confirm: Optional[Callable[[list[str]], bool]] = None,
    ) -> PruneReport:
        """Drop ledger entries whose files are gone, then rebuild metadata.

        Args:
            dry_run: Report without saving.
            confirm: Called with the missing paths; returning ``False`` aborts.
        """
        state = await self.store.load()
        status = await get_project_status(self.config, state)
        report = PruneReport(removed=list(status.missing), dry_run=dry_run)
        if not report.removed or dry_run:
            return report
        if confirm is not None and not confirm(report.removed):
            report.aborted = True
            return report

        for relative in report.removed:
            state.files.pop(relative, None)
        rebuild_metadata(state, self.config)
        await self.store.save(state)
        return report

    async def validate(self, *, fix: bool = False) -> ValidationReport:
        """Check every ledger entry against disk.

        With *fix*, modified files that still carry a signature get their hash
        refreshed, missing entries are dropped and components and sections are
        rebuilt.
        """
        config = self.config
        state = await self.store.load()
        report = ValidationReport()

        for relative, record in state.files.items():
            current = await _current_hash(config, relative)
            if current is None:
                report.missing.append(relative)
            elif current != record.hash:
                report.modified.append(ModifiedFile(relative, record.hash, current))
            else:
                report.valid += 1

        if not fix:
            return report

        signatures = config.signature_list()
        for item in report.modified:
            full = from_project_path(item.path, config.project_root)
            if await is_textor_generated(full, signatures):
                state.files[item.path].hash = item.current_hash
                state.files[item.path].synced = True
                report.fixed += 1
        for relative in report.missing:
            del state.files[relative]
            report.fixed += 1

        metadata_changed = rebuild_metadata(state, config)
        if report.fixed or metadata_changed:
            await self.store.save(state)
        return report

    async def normalize(self, *, dry_run: bool = False) -> State:
        """Rewrite the ledger in canonical form.

        Sections are deduplicated by route (standalone ones by feature path) and
        components by name; the last occurrence wins.
        """
        state = await self.store.load()

        sections: dict[tuple[str, str], Section] = {}
        for section in state.sections:
            key = ("route", section.route) if section.route is not None else ("feature", section.feature_path)
            sections.pop(key, None)
            sections[key] = section
        state.sections = list(sections.values())

        components: dict[str, Component] = {}
        for component in state.components:
            components.pop(component.name, None)
            components[component.name] = component
        state.components = list(components.values())

        state.files = dict(sorted(state.files.items()))
        if not dry_run:
            await self.store.save(state)
        return state
