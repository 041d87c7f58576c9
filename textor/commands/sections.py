"""Section commands: a page route wired to a feature directory.

``add_section`` scaffolds both halves and records them, ``remove_section``
deletes them through the safe-delete checks, ``move_section`` relocates them
while keeping imports and component names consistent, and ``list_sections``
prints what the ledger knows.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

from rich.table import Table

from textor.config import Config
from textor.core.errors import NotFoundError, TextorError
from textor.core.fileops import (
    cleanup_empty_dirs,
    ensure_dir,
    ensure_not_exists,
    safe_delete,
    safe_delete_dir,
    safe_move,
)
from textor.core.hashing import calculate_hash
from textor.core.models import FileKind, Section, State
from textor.core.paths import from_project_path, secure_join
from textor.core.state import files_under, find_section
from textor.naming import (
    feature_to_directory_path,
    get_feature_component_name,
    get_feature_file_name,
    get_relative_import_path,
    normalize_route,
    route_to_file_path,
    strip_extension,
)
from textor.refactor import (
    move_directory,
    rename_component_tags,
    rewrite_import_specifier,
    scan_and_replace_imports,
    update_imports_in_file,
)
from textor.templates import (
    ENDPOINT_TEMPLATE,
    FEATURE_TEMPLATE,
    ROUTE_TEMPLATE,
    SCRIPTS_INDEX_TEMPLATE,
)
from textor.utils import console

from .base import CommandContext, CommandResult
from .items import FEATURE_ITEMS, enabled_items, item_path, write_items

NO_LAYOUT = "none"


def _route_file(config: Config, route: str, extension: str) -> Path:
    name = route_to_file_path(
        route,
        extension=extension,
        mode=config.routing.mode,
        index_file=config.routing.index_file,
    )
    return secure_join(config.resolve_path("pages"), *name.split("/"))


def _feature_import(config: Config, route_file: Path, feature_dir: str, feature_file: Path, entry: str) -> str:
    alias = config.import_aliases.features
    extension = config.naming.feature_extension
    if alias:
        if entry == "index":
            return f"{alias}/{feature_dir}"
        return f"{alias}/{feature_dir}/{feature_file.name}"
    relative = get_relative_import_path(route_file, feature_file)
    # .astro components must be imported with their extension.
    return relative if extension == ".astro" else strip_extension(relative)


def _layout_import(config: Config, route_file: Path, layout: str) -> str:
    alias = config.import_aliases.layouts
    if alias:
        return f"{alias}/{layout}.astro"
    layout_file = secure_join(config.resolve_path("layouts"), f"{layout}.astro")
    return get_relative_import_path(route_file, layout_file)


# ---------------------------------------------------------------------------
# add-section
# ---------------------------------------------------------------------------


async def add_section(
    config: Config,
    route: Optional[str],
    feature_path: str,
    *,
    layout: Optional[str] = None,
    name: Optional[str] = None,
    endpoint: bool = False,
    entry: Optional[str] = None,
    create_scripts_dir: Optional[bool] = None,
    create_sub_components_dir: Optional[bool] = None,
    create_index: Optional[bool] = None,
    create_hooks: Optional[bool] = None,
    create_api: Optional[bool] = None,
    create_services: Optional[bool] = None,
    create_schemas: Optional[bool] = None,
    create_context: Optional[bool] = None,
    create_tests: Optional[bool] = None,
    create_types: Optional[bool] = None,
    create_readme: Optional[bool] = None,
    create_stories: Optional[bool] = None,
    force: bool = False,
    dry_run: bool = False,
) -> CommandResult:
    """Create a route file and its feature directory, and record both.

    A ``None`` *route* creates a standalone feature with no page.  Options
    left as ``None`` fall back to the ``features`` section of the config.
    """
    ctx = CommandContext(config)
    features_cfg = config.features
    entry = entry or features_cfg.entry
    scripts = features_cfg.create_scripts_dir if create_scripts_dir is None else create_scripts_dir
    sub_components = (
        features_cfg.create_sub_components_dir
        if create_sub_components_dir is None
        else create_sub_components_dir
    )
    items = enabled_items(
        features_cfg,
        {
            "index": create_index,
            "hooks": create_hooks,
            "api": create_api,
            "services": create_services,
            "schemas": create_schemas,
            "context": create_context,
            "tests": create_tests,
            "types": create_types,
            "readme": create_readme,
            "stories": create_stories,
        },
        FEATURE_ITEMS,
    )
    layout = layout or config.default_layout

    normalized_route = normalize_route(route)
    feature = feature_to_directory_path(feature_path)
    if not feature:
        raise TextorError("A feature path is required")

    component_name = get_feature_component_name(feature)
    route_extension = ".ts" if endpoint else config.naming.route_extension
    feature_ext = config.naming.feature_extension

    feature_dir = secure_join(config.resolve_path("features"), *feature.split("/"))
    feature_file = feature_dir / get_feature_file_name(feature, feature_ext, entry)
    scripts_index = secure_join(feature_dir, *features_cfg.scripts_index_file.split("/"))
    route_file = _route_file(config, normalized_route, route_extension) if normalized_route else None

    targets: list[Path] = [feature_file]
    if route_file is not None:
        targets.insert(0, route_file)
    if scripts:
        targets.append(scripts_index)
    targets.extend(item_path(config, feature_dir, component_name, item) for item in items)

    result = CommandResult(dry_run=dry_run)
    if dry_run:
        result.planned = [f"create {ctx.relative(p)}" for p in targets]
        if sub_components:
            result.planned.append(f"create {ctx.relative(feature_dir / 'sub-components')}/")
        result.report("")
        return result

    for target in targets:
        await ensure_not_exists(target, force)

    owner = normalized_route
    if route_file is not None:
        if endpoint:
            await ctx.write_generated(
                route_file,
                ENDPOINT_TEMPLATE,
                {"component_name": component_name},
                kind=FileKind.ROUTE,
                template_id="endpoint",
                owner=owner,
                result=result,
                signature=config.signatures.typescript,
            )
        else:
            await ctx.write_generated(
                route_file,
                ROUTE_TEMPLATE,
                {
                    "layout_name": None if layout == NO_LAYOUT else layout,
                    "layout_import_path": None if layout == NO_LAYOUT else _layout_import(config, route_file, layout),
                    "component_name": component_name,
                    "feature_import_path": _feature_import(config, route_file, feature, feature_file, entry),
                },
                kind=FileKind.ROUTE,
                template_id="route",
                owner=owner,
                result=result,
            )

    await ensure_dir(feature_dir)
    if sub_components:
        await ensure_dir(feature_dir / "sub-components")

    await ctx.write_generated(
        feature_file,
        FEATURE_TEMPLATE,
        {
            "component_name": component_name,
            "script_import_path": (
                strip_extension(get_relative_import_path(feature_file, scripts_index)) if scripts else None
            ),
        },
        kind=FileKind.FEATURE,
        template_id="feature",
        owner=owner,
        result=result,
    )
    if scripts:
        await ctx.write_generated(
            scripts_index,
            SCRIPTS_INDEX_TEMPLATE,
            {},
            kind=FileKind.FEATURE_FILE,
            template_id="scripts-index",
            owner=owner,
            result=result,
        )
    await write_items(
        ctx,
        items,
        directory=feature_dir,
        main_file=feature_file,
        component_name=component_name,
        kind=FileKind.FEATURE_FILE,
        owner=owner,
        result=result,
    )

    await ctx.store.add_section(
        Section(
            name=name or component_name,
            route=normalized_route,
            feature_path=feature,
            layout=layout,
            extension=route_extension,
        )
    )
    await ctx.stage(result.created)
    result.report("Section created successfully")
    return result


# ---------------------------------------------------------------------------
# remove-section
# ---------------------------------------------------------------------------


def _resolve_section(state: State, identifier: str, feature_path: Optional[str]) -> Section:
    section = find_section(state, identifier) or find_section(state, normalize_route(identifier))
    if feature_path is None:
        if section is None:
            raise NotFoundError(
                f"Section not found for identifier: {identifier}. "
                "Provide both the route and the feature path."
            )
        return section
    return Section(
        name=section.name if section else get_feature_component_name(feature_path),
        route=normalize_route(identifier),
        feature_path=feature_to_directory_path(feature_path),
        layout=section.layout if section else "Main",
        extension=section.extension if section else ".astro",
    )


async def remove_section(
    config: Config,
    identifier: str,
    feature_path: Optional[str] = None,
    *,
    keep_route: bool = False,
    keep_feature: bool = False,
    force: bool = False,
    accept_changes: bool = False,
    dry_run: bool = False,
) -> CommandResult:
    """Delete a section's route file and feature directory.

    Files that drifted, belong to another owner or are not Textor's are left
    in place and listed in ``skipped``.  The section record is dropped only
    when nothing was skipped.
    """
    ctx = CommandContext(config)
    await ctx.git_gate()

    state = await ctx.store.load()
    section = _resolve_section(state, identifier, feature_path)
    route = section.route
    owner = route
    signatures = config.signature_list()
    pages_root = config.resolve_path("pages")
    features_root = config.resolve_path("features")

    route_file = _route_file(config, route, section.extension) if route and not keep_route else None
    feature_dir = (
        secure_join(features_root, *section.feature_path.split("/"))
        if section.feature_path and not keep_feature
        else None
    )

    result = CommandResult(dry_run=dry_run)
    if dry_run:
        if route_file is not None:
            result.planned.append(f"delete {ctx.relative(route_file)}")
        if feature_dir is not None:
            result.planned.append(f"delete {ctx.relative(feature_dir)}/")
        result.report("")
        return result

    if route_file is not None:
        key = ctx.relative(route_file)
        record = state.files.get(key)
        outcome = await safe_delete(
            route_file,
            force=force,
            expected_hash=record.hash if record else None,
            accept_changes=accept_changes,
            normalization=config.normalization,
            owner=owner,
            actual_owner=record.owner if record else None,
            signatures=signatures,
        )
        if outcome.deleted:
            state.files.pop(key, None)
            result.deleted.append(key)
            await cleanup_empty_dirs(route_file.parent, pages_root)
        elif outcome.message:
            result.skipped.append((key, outcome.message))
        else:
            state.files.pop(key, None)

    if feature_dir is not None:
        dir_key = ctx.relative(feature_dir)
        outcome = await safe_delete_dir(
            feature_dir,
            project_root=config.project_root,
            state_files=state.files,
            force=force,
            accept_changes=accept_changes,
            normalization=config.normalization,
            owner=owner,
            signatures=signatures,
        )
        if outcome.deleted:
            for key in files_under(state, dir_key):
                del state.files[key]
            result.deleted.append(dir_key + "/")
            await cleanup_empty_dirs(feature_dir.parent, features_root)
        elif outcome.message:
            result.skipped.append((dir_key + "/", outcome.message))
        else:
            for key in files_under(state, dir_key):
                del state.files[key]

    if not result.skipped:
        state.sections = [
            s for s in state.sections
            if not (s.route == section.route and s.feature_path == section.feature_path)
        ]
    await ctx.store.save(state)
    result.report("Section removed")
    return result


# ---------------------------------------------------------------------------
# move-section
# ---------------------------------------------------------------------------


def _import_dir(config: Config, from_file: Path, feature_dir: Path, feature: str) -> str:
    alias = config.import_aliases.features
    if alias:
        return f"{alias}/{feature}"
    return get_relative_import_path(from_file, feature_dir)


async def _rewrite_route_file(
    config: Config,
    state: State,
    key: str,
    route_file: Path,
    *,
    old_route_file: Path,
    old_feature: str,
    new_feature: str,
) -> bool:
    features_root = config.resolve_path("features")
    old_dir = secure_join(features_root, *old_feature.split("/"))
    new_dir = secure_join(features_root, *new_feature.split("/"))
    old_name = get_feature_component_name(old_feature)
    new_name = get_feature_component_name(new_feature)

    changed = await update_imports_in_file(route_file, old_route_file, route_file)
    # Relative imports now resolve from the new location, the feature's old directory included.
    content = await asyncio.to_thread(route_file.read_text, encoding="utf-8")
    updated = rewrite_import_specifier(
        content,
        _import_dir(config, route_file, old_dir, old_feature),
        _import_dir(config, route_file, new_dir, new_feature),
        old_name,
        new_name,
    )
    updated = rename_component_tags(updated, old_name, new_name)
    if updated != content:
        await asyncio.to_thread(route_file.write_text, updated, encoding="utf-8")
        changed = True
    if not changed:
        return False

    record = state.files.get(key)
    if record is not None:
        record.hash = calculate_hash(updated, config.normalization)
    return True


async def move_section(
    config: Config,
    identifier: str,
    to_route: Optional[str] = None,
    to_feature: Optional[str] = None,
    *,
    keep_feature: bool = False,
    scan: bool = False,
    force: bool = False,
    accept_changes: bool = False,
    dry_run: bool = False,
) -> CommandResult:
    """Move a section to a new route and/or feature path.

    The route file moves through ``safe_move`` and has its relative imports,
    feature import and feature component name rewritten.  The feature
    directory moves file by file, renaming entries and identifiers that carry
    the old component name.  With *scan*, imports of the feature elsewhere in
    the project are re-pointed too.  Ledger records follow their files and
    take the new route as owner.

    Raises:
        NotFoundError: If no section matches *identifier*.
        DestinationExistsError: If a target exists and *force* is not set.
    """
    ctx = CommandContext(config)
    await ctx.git_gate()

    state = await ctx.store.load()
    section = find_section(state, identifier) or find_section(state, normalize_route(identifier))
    if section is None:
        raise NotFoundError(f"Section not found: {identifier}")

    from_route = section.route
    new_route = normalize_route(to_route) if to_route else from_route
    from_feature = section.feature_path
    new_feature = from_feature if keep_feature or not to_feature else feature_to_directory_path(to_feature)
    if new_route == from_route and new_feature == from_feature:
        raise TextorError("Source and destination are the same")
    if from_route is None and new_route is not None:
        raise TextorError(
            f"Section '{section.name}' has no route; create one with add-section first"
        )

    pages_root = config.resolve_path("pages")
    features_root = config.resolve_path("features")
    moves_route = from_route is not None and new_route != from_route
    moves_feature = bool(from_feature) and new_feature != from_feature

    from_route_file = _route_file(config, from_route, section.extension) if from_route else None
    to_route_file = _route_file(config, new_route, section.extension) if new_route else None
    from_dir = secure_join(features_root, *from_feature.split("/")) if from_feature else None
    to_dir = secure_join(features_root, *new_feature.split("/")) if new_feature else None

    result = CommandResult(dry_run=dry_run)
    if dry_run:
        if moves_route:
            result.planned.append(f"move {ctx.relative(from_route_file)} -> {ctx.relative(to_route_file)}")
        if moves_feature:
            result.planned.append(f"move {ctx.relative(from_dir)}/ -> {ctx.relative(to_dir)}/")
        result.report("")
        return result

    if moves_route:
        await ensure_not_exists(to_route_file, force)
    if moves_feature:
        await ensure_not_exists(to_dir, force)

    signatures = config.signature_list()

    if moves_route:
        from_key = ctx.relative(from_route_file)
        to_key = ctx.relative(to_route_file)
        record = state.files.get(from_key)
        moved = await safe_move(
            from_route_file,
            to_route_file,
            force=force,
            expected_hash=record.hash if record else None,
            accept_changes=accept_changes,
            normalization=config.normalization,
            owner=from_route,
            actual_owner=record.owner if record else None,
            signatures=signatures,
        )
        if not moved.moved:
            result.skipped.append((from_key, moved.message or "not moved"))
            result.report("")
            return result
        if record is not None:
            del state.files[from_key]
            state.files[to_key] = record.model_copy(update={"hash": moved.hash, "owner": new_route})
        result.moved.append((from_key, to_key))
        await cleanup_empty_dirs(from_route_file.parent, pages_root)

    if to_route_file is not None and (moves_route or moves_feature):
        to_key = ctx.relative(to_route_file)
        if await asyncio.to_thread(to_route_file.is_file):
            changed = await _rewrite_route_file(
                config,
                state,
                to_key,
                to_route_file,
                old_route_file=from_route_file or to_route_file,
                old_feature=from_feature,
                new_feature=new_feature,
            )
            if changed and not moves_route:
                result.updated.append(to_key)

    if moves_feature:
        if await asyncio.to_thread(from_dir.is_dir):
            outcome = await move_directory(
                from_dir,
                to_dir,
                state,
                config,
                from_name=get_feature_component_name(from_feature),
                to_name=get_feature_component_name(new_feature),
                owner=from_route,
                force=force,
                accept_changes=accept_changes,
            )
            result.moved.extend(outcome.moved)
            result.skipped.extend(outcome.skipped)
            await cleanup_empty_dirs(from_dir.parent, features_root)

        if scan:
            result.updated.extend(
                await scan_and_replace_imports(
                    config,
                    state,
                    kind="feature",
                    from_path=from_feature,
                    to_path=new_feature,
                    from_name=get_feature_component_name(from_feature),
                    to_name=get_feature_component_name(new_feature),
                )
            )

    if moves_route and to_dir is not None:
        for key in files_under(state, ctx.relative(to_dir)):
            if state.files[key].owner == from_route:
                state.files[key].owner = new_route

    old_component = get_feature_component_name(from_feature) if from_feature else None
    state.sections = [s for s in state.sections if s is not section]
    state.sections.append(
        Section(
            name=(
                get_feature_component_name(new_feature)
                if section.name == old_component and new_feature
                else section.name
            ),
            route=new_route,
            feature_path=new_feature,
            layout=section.layout,
            extension=section.extension,
        )
    )
    await ctx.store.save(state)
    await ctx.stage([dst for _src, dst in result.moved])
    result.report("Section moved")
    return result


# ---------------------------------------------------------------------------
# list-sections
# ---------------------------------------------------------------------------


async def list_sections(config: Config) -> State:
    """Print the sections and components recorded in the ledger."""
    ctx = CommandContext(config)
    state = await ctx.store.load()
    features_root = config.relative_root("features")

    if not state.sections:
        console.print("No Textor-managed sections found.")
    else:
        table = Table(title="Managed Sections", show_header=True, header_style="bold cyan")
        table.add_column("Name", no_wrap=True)
        table.add_column("Route")
        table.add_column("Feature")
        table.add_column("Layout", style="dim")
        table.add_column("Files", justify="right")
        for section in state.sections:
            tracked = files_under(state, f"{features_root}/{section.feature_path}") if section.feature_path else []
            table.add_row(
                section.name,
                section.route or "-",
                section.feature_path or "-",
                section.layout,
                str(len(tracked)),
            )
        console.print(table)

    if state.components:
        table = Table(title="Managed Components", show_header=True, header_style="bold cyan")
        table.add_column("Name", no_wrap=True)
        table.add_column("Path")
        table.add_column("Files", justify="right")
        for component in state.components:
            present = await asyncio.to_thread(
                from_project_path(component.path, config.project_root).is_dir
            )
            table.add_row(
                component.name,
                component.path if present else f"{component.path} [red](missing)[/red]",
                str(len(files_under(state, component.path))),
            )
        console.print(table)

    return state

