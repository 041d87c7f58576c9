"""Project-level commands: init, status, sync, prune, validate, normalize, adopt, rename."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import Callable, Optional

from rich.prompt import Confirm

from textor.config import Config
from textor.core.errors import NotFoundError, TextorError
from textor.core.hashing import calculate_hash
from textor.core.models import FileRecord, State, utc_now
from textor.core.paths import is_within, secure_join, to_project_path
from textor.core.reconciler import (
    ProjectStatus,
    PruneReport,
    Reconciler,
    SyncReport,
    ValidationReport,
    rebuild_metadata,
)
from textor.core.scanner import infer_kind, scan_directory
from textor.core.state import find_section
from textor.naming import feature_to_directory_path, normalize_route
from textor.utils import (
    console,
    print_file_list,
    print_success,
    print_summary_table,
    print_warning,
)

from .base import CommandContext, CommandResult
from .components import rename_component
from .sections import move_section


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------


def init_project(project_root: str | Path | None = None, *, force: bool = False, quiet: bool = False) -> Path:
    """Write a default ``.textor/config.json`` under *project_root*.

    Raises:
        ConfigError: If a configuration exists and *force* is not set.
    """
    root = Path(project_root) if project_root is not None else Path.cwd()
    config = Config(project_root=root.absolute())
    path = config.save(force=force)
    if not quiet:
        print_success(f"Textor configuration created at: {path}")
        console.print("\nYou can now use Textor commands like:")
        console.print("  textor add-section /users users/catalog --layout Main")
    return path


# ---------------------------------------------------------------------------
# status / sync / prune / validate / normalize
# ---------------------------------------------------------------------------


async def status_command(config: Config) -> ProjectStatus:
    """Print how the ledger and the managed roots differ."""
    status = await Reconciler(config).status()

    print_summary_table(
        {
            "Synced": status.synced,
            "Modified": len(status.modified),
            "Missing": len(status.missing),
            "Untracked (generated)": len(status.untracked),
            "Orphaned": len(status.orphaned),
        },
        title="Textor status",
    )
    print_file_list("Modified", status.modified_paths, style="yellow", marker="M")
    print_file_list("Missing", status.missing, style="red", marker="D")
    print_file_list("Untracked", status.untracked, style="cyan", marker="?")
    print_file_list("Orphaned", status.orphaned, style="dim", marker="-")

    if status.is_clean:
        print_success("Project is in sync with the Textor ledger.")
    elif status.untracked or status.missing:
        console.print("Run [bold]textor sync[/bold] to reconcile the ledger.")
    return status


async def sync_command(
    config: Config,
    *,
    include_all: bool = False,
    force: bool = False,
    dry_run: bool = False,
) -> SyncReport:
    """Fold untracked, modified and missing files back into the ledger."""
    report = await Reconciler(config).sync(include_all=include_all, force=force, dry_run=dry_run)

    for root in report.missing_roots:
        print_warning(f"Managed directory does not exist: {root}")
    verb = "Would add" if dry_run else "Added"
    print_file_list(verb, report.added, style="green", marker="+")
    print_file_list("Would update" if dry_run else "Updated", report.updated, style="cyan", marker="~")
    print_file_list("Would remove" if dry_run else "Removed", report.removed, style="red", marker="-")
    if report.ignored:
        console.print(
            f"Ignored {report.ignored} file(s) without a Textor signature (use --include-all)."
        )

    if dry_run:
        console.print("Dry run: ledger not written.")
    elif report.changed:
        print_success("Ledger synchronized.")
    elif report.metadata_rebuilt:
        print_success("Section and component metadata rebuilt.")
    else:
        console.print("Ledger already in sync.")
    return report


def _ask_prune(paths: list[str]) -> bool:
    print_file_list("Missing", paths, style="red", marker="-")
    return Confirm.ask(f"Remove {len(paths)} missing file(s) from the ledger?", default=False)


async def prune_missing_command(
    config: Config,
    *,
    dry_run: bool = False,
    yes: bool = False,
    confirm: Optional[Callable[[list[str]], bool]] = None,
) -> PruneReport:
    """Drop ledger entries whose files no longer exist."""
    ask = None if yes else (confirm or _ask_prune)
    report = await Reconciler(config).prune(dry_run=dry_run, confirm=ask)

    if not report.removed:
        console.print("No missing files in the ledger.")
    elif dry_run:
        print_file_list("Would remove", report.removed, style="red", marker="-")
    elif report.aborted:
        print_warning("Aborted; ledger unchanged.")
    else:
        print_success(f"Removed {len(report.removed)} missing file(s) from the ledger.")
    return report


async def validate_state_command(config: Config, *, fix: bool = False) -> ValidationReport:
    """Check every ledger entry against disk, optionally repairing it."""
    report = await Reconciler(config).validate(fix=fix)

    print_summary_table(
        {
            "Valid": report.valid,
            "Modified": len(report.modified),
            "Missing": len(report.missing),
        },
        title="Ledger validation",
    )
    print_file_list("Modified", [m.path for m in report.modified], style="yellow", marker="M")
    print_file_list("Missing", report.missing, style="red", marker="D")
    if fix:
        print_success(f"Fixed {report.fixed} entr{'y' if report.fixed == 1 else 'ies'}.")
    elif report.modified or report.missing:
        console.print("Run [bold]textor validate-state --fix[/bold] to repair the ledger.")
    else:
        print_success("Ledger is valid.")
    return report


async def normalize_state_command(config: Config, *, dry_run: bool = False) -> State:
    """Rewrite the ledger in canonical form."""
    state = await Reconciler(config).normalize(dry_run=dry_run)
    if dry_run:
        console.print(state.to_json())
    else:
        print_success(
            f"Ledger normalized: {len(state.files)} files, {len(state.sections)} sections, "
            f"{len(state.components)} components."
        )
    return state


# ---------------------------------------------------------------------------
# adopt
# ---------------------------------------------------------------------------


async def _collect(target: Path, state: State, project_root: Path, found: set[str]) -> None:
    if await asyncio.to_thread(target.is_dir):
        candidates: set[str] = set()
        await scan_directory(target, candidates, base=project_root)
    elif await asyncio.to_thread(target.is_file):
        candidates = {to_project_path(target, project_root)}
    else:
        return
    found.update(path for path in candidates if path not in state.files)


async def _adoption_candidates(config: Config, state: State, identifier: Optional[str], adopt_all: bool) -> list[str]:
    root = config.project_root
    found: set[str] = set()

    if identifier is None:
        if not adopt_all:
            raise TextorError("Provide a path or identifier, or use --all")
        for managed in config.managed_roots():
            await _collect(managed, state, root, found)
    else:
        route = (normalize_route(identifier) or "/").lstrip("/")
        # A direct path may be absolute; it only counts inside the project.
        direct = Path(os.path.abspath(root / identifier))
        direct_exists = is_within(root, direct) and await asyncio.to_thread(direct.exists)
        candidates = [direct] if direct_exists else []
        candidates.append(secure_join(config.resolve_path("components"), identifier.strip("/")))
        candidates.append(
            secure_join(config.resolve_path("features"), feature_to_directory_path(identifier))
        )
        if route:
            pages = config.resolve_path("pages")
            candidates.append(secure_join(pages, route + config.naming.route_extension))
            candidates.append(secure_join(pages, route, config.routing.index_file))
        for candidate in candidates:
            await _collect(candidate, state, root, found)
        if not found and not direct_exists:
            raise NotFoundError(f"Could not find any untracked files for identifier: {identifier}")

    managed_roots = config.managed_roots()
    return sorted(
        path for path in found
        if any(is_within(managed, root / path) for managed in managed_roots)
    )


async def adopt_command(
    config: Config,
    identifier: Optional[str] = None,
    *,
    adopt_all: bool = False,
    add_signature: bool = True,
    dry_run: bool = False,
) -> CommandResult:
    """Bring hand-written files under the managed roots into the ledger.

    Each file gets the signature for its extension prepended (unless
    *add_signature* is off) and is recorded as ``synced``.  Sections and
    components are rebuilt afterwards.
    """
    ctx = CommandContext(config)
    state = await ctx.store.load()
    paths = await _adoption_candidates(config, state, identifier, adopt_all)

    result = CommandResult(dry_run=dry_run)
    if not paths:
        console.print("No untracked files found to adopt.")
        return result
    if dry_run:
        result.planned = [f"adopt {path}" for path in paths]
        result.report("")
        return result

    now = utc_now()
    for relative in paths:
        full = config.project_root / relative
        content = await asyncio.to_thread(full.read_text, encoding="utf-8", errors="replace")
        signature = config.signature_for(relative)
        signed = bool(signature) and signature in content
        if add_signature and signature and not signed:
            content = f"{signature}\n{content}"
            await asyncio.to_thread(full.write_text, content, encoding="utf-8")
            signed = True
            result.updated.append(relative)

        state.files[relative] = FileRecord(
            kind=infer_kind(relative, config),
            hash=calculate_hash(content, config.normalization),
            timestamp=now,
            synced=True,
            has_signature=signed,
        )
        result.created.append(relative)

    rebuild_metadata(state, config)
    await ctx.store.save(state)
    result.report(f"Adopted {len(paths)} file(s)")
    return result


# ---------------------------------------------------------------------------
# rename
# ---------------------------------------------------------------------------

RENAME_KINDS = ("route", "path", "feature", "component")


async def rename_command(
    config: Config,
    kind: str,
    old_name: str,
    new_name: str,
    *,
    scan: bool = False,
    force: bool = False,
    accept_changes: bool = False,
    dry_run: bool = False,
) -> CommandResult:
    """Dispatch ``textor rename <route|feature|component> <old> <new>``.

    * ``route`` (alias ``path``): moves only the route file.
    * ``feature``: moves the feature directory, keeping the route.
    * ``component``: renames a shared component.
    """
    options = {"force": force, "accept_changes": accept_changes, "dry_run": dry_run}

    if kind in ("route", "path"):
        return await move_section(
            config, normalize_route(old_name), normalize_route(new_name), keep_feature=True, **options
        )

    if kind == "feature":
        state = await CommandContext(config).store.load()
        old_feature = feature_to_directory_path(old_name)
        section = find_section(state, old_feature)
        if section is None:
            raise NotFoundError(
                f"Feature not found in the ledger: {old_feature}. Run 'textor sync' first."
            )
        return await move_section(
            config,
            section.route or section.feature_path,
            to_feature=feature_to_directory_path(new_name),
            scan=scan,
            **options,
        )

    if kind == "component":
        return await rename_component(config, old_name, new_name, scan=scan, **options)

    raise TextorError(
        f"Unknown rename type: {kind}. Supported types: route, feature, component."
    )
