"""Pieces shared by every command: the result record and the write/stage helpers."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from textor.config import Config
from textor.core.fileops import write_file_with_signature
from textor.core.models import FileKind
from textor.core.paths import to_project_path
from textor.core.state import StateStore
from textor.git import require_clean_repo, stage_files
from textor.templates import TemplateRenderer
from textor.utils import (
    console,
    print_created,
    print_file_list,
    print_removed,
    print_skipped,
    print_success,
    print_warning,
)


@dataclass
class CommandResult:
    """What a mutating command did (or, with ``dry_run``, would do).

    Paths are project-relative with forward slashes.
    """

    created: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    moved: list[tuple[str, str]] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    skipped: list[tuple[str, str]] = field(default_factory=list)
    planned: list[str] = field(default_factory=list)
    dry_run: bool = False

    @property
    def ok(self) -> bool:
        return not self.skipped

    def report(self, success_message: str) -> None:
        """Print the outcome with Rich."""
        if self.dry_run:
            print_file_list("Dry run - would", self.planned, style="cyan", marker="~")
            return

        for path in self.created:
            print_created(path)
        for path in self.deleted:
            print_removed(path)
        for source, destination in self.moved:
            console.print(f"  [cyan]>[/cyan] {source} -> {destination}")
        print_file_list("Updated", self.updated, style="cyan", marker="~")

        if self.skipped:
            print_warning(f"Skipped {len(self.skipped)} item(s):")
            for path, reason in self.skipped:
                print_skipped(path, reason)
        elif self.created or self.deleted or self.moved or self.updated:
            print_success(success_message)
        else:
            console.print("Nothing to do.")


class CommandContext:
    """Per-invocation collaborators derived from a :class:`Config`."""

    def __init__(self, config: Config) -> None:
        self.config = config
        self.store = StateStore(config.project_root)
        self.renderer = TemplateRenderer(override_dir=config.templates_dir)

    def relative(self, path: str | Path) -> str:
        return to_project_path(path, self.config.project_root)

    async def git_gate(self) -> None:
        await require_clean_repo(self.config.project_root, self.config.git.require_clean_repo)

    async def stage(self, paths: list[str]) -> None:
        if self.config.git.stage_changes and paths:
            await stage_files(paths, cwd=self.config.project_root)

    async def write_generated(
        self,
        path: Path,
        template: str,
        context: dict,
        *,
        kind: FileKind,
        template_id: str,
        owner: Optional[str],
        result: CommandResult,
        signature: Optional[str] = None,
    ) -> str:
        """Render *template*, write it with its signature and record it in the ledger.

        The ledger entry is written only after the file itself.
        """
        content = self.renderer.render(template, context)
        stamp = signature if signature is not None else self.config.signature_for(path)
        digest = await write_file_with_signature(path, content, stamp, self.config.normalization)
        await self.store.register_file(
            path,
            kind=kind,
            hash=digest,
            template=template_id,
            owner=owner,
            has_signature=bool(stamp),
        )
        result.created.append(self.relative(path))
        return digest
