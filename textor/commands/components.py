"""Shared component commands."""

from __future__ import annotations

import asyncio
from typing import Optional

from textor.config import Config
from textor.core.errors import NotFoundError, TextorError
from textor.core.fileops import cleanup_empty_dirs, ensure_dir, ensure_not_exists, safe_delete_dir
from textor.core.models import Component, FileKind
from textor.core.paths import from_project_path, secure_join
from textor.core.state import files_under, find_component
from textor.naming import normalize_component_name
from textor.refactor import move_directory, scan_and_replace_imports
from textor.templates import COMPONENT_TEMPLATE

from .base import CommandContext, CommandResult
from .items import COMPONENT_ITEMS, enabled_items, item_path, write_items


async def create_component(
    config: Config,
    name: str,
    *,
    create_index: Optional[bool] = None,
    create_hook: Optional[bool] = None,
    create_sub_components_dir: Optional[bool] = None,
    create_context: Optional[bool] = None,
    create_tests: Optional[bool] = None,
    create_config: Optional[bool] = None,
    create_constants: Optional[bool] = None,
    create_types: Optional[bool] = None,
    create_readme: Optional[bool] = None,
    create_stories: Optional[bool] = None,
    force: bool = False,
    dry_run: bool = False,
) -> CommandResult:
    """Scaffold ``<components>/<Name>/`` and record every generated file.

    All files are owned by the component name.
    """
    ctx = CommandContext(config)
    settings = config.components
    items = enabled_items(
        settings,
        {
            "index": create_index,
            "hooks": create_hook,
            "context": create_context,
            "tests": create_tests,
            "config": create_config,
            "constants": create_constants,
            "types": create_types,
            "readme": create_readme,
            "stories": create_stories,
        },
        COMPONENT_ITEMS,
    )
    sub_components = (
        settings.create_sub_components_dir
        if create_sub_components_dir is None
        else create_sub_components_dir
    )

    component_name = normalize_component_name(name)
    if not component_name:
        raise TextorError("A component name is required")

    component_dir = secure_join(config.resolve_path("components"), component_name)
    component_file = component_dir / f"{component_name}{config.naming.component_extension}"

    targets = [component_file]
    targets.extend(item_path(config, component_dir, component_name, item) for item in items)

    result = CommandResult(dry_run=dry_run)
    if dry_run:
        result.planned = [f"create {ctx.relative(p)}" for p in targets]
        if sub_components:
            result.planned.append(f"create {ctx.relative(component_dir / 'sub-components')}/")
        result.report("")
        return result

    for target in targets:
        await ensure_not_exists(target, force)

    await ensure_dir(component_dir)
    if sub_components:
        await ensure_dir(component_dir / "sub-components")

    await ctx.write_generated(
        component_file,
        COMPONENT_TEMPLATE,
        {"component_name": component_name},
        kind=FileKind.COMPONENT,
        template_id="component",
        owner=component_name,
        result=result,
    )
    await write_items(
        ctx,
        items,
        directory=component_dir,
        main_file=component_file,
        component_name=component_name,
        kind=FileKind.COMPONENT_FILE,
        owner=component_name,
        result=result,
    )

    await ctx.store.add_component(Component(name=component_name, path=ctx.relative(component_dir)))
    await ctx.stage(result.created)
    result.report(f"Component {component_name} created successfully")
    return result


async def remove_component(
    config: Config,
    identifier: str,
    *,
    force: bool = False,
    accept_changes: bool = False,
    dry_run: bool = False,
) -> CommandResult:
    """Delete a component directory if every file in it is accounted for.

    Raises:
        NotFoundError: If the component is neither recorded nor on disk.
    """
    ctx = CommandContext(config)
    await ctx.git_gate()

    state = await ctx.store.load()
    component = find_component(state, identifier) or find_component(
        state, normalize_component_name(identifier)
    )
    components_root = config.resolve_path("components")
    if component is not None:
        component_dir = from_project_path(component.path, config.project_root)
        owner = component.name
    else:
        component_dir = secure_join(components_root, identifier)
        owner = identifier
        if not await asyncio.to_thread(component_dir.is_dir):
            raise NotFoundError(f"Component not found: {identifier}", path=component_dir)

    dir_key = ctx.relative(component_dir)
    result = CommandResult(dry_run=dry_run)
    if dry_run:
        result.planned.append(f"delete {dir_key}/")
        result.report("")
        return result

    outcome = await safe_delete_dir(
        component_dir,
        project_root=config.project_root,
        state_files=state.files,
        force=force,
        accept_changes=accept_changes,
        normalization=config.normalization,
        owner=owner,
        signatures=config.signature_list(),
    )
    if outcome.message:
        result.skipped.append((dir_key + "/", outcome.message))
        result.report("")
        return result

    if outcome.deleted:
        result.deleted.append(dir_key + "/")
        await cleanup_empty_dirs(component_dir.parent, components_root)
    for key in files_under(state, dir_key):
        del state.files[key]
    state.components = [c for c in state.components if c.name != owner]
    await ctx.store.save(state)
    result.report(f"Component {owner} removed")
    return result


async def rename_component(
    config: Config,
    old_name: str,
    new_name: str,
    *,
    scan: bool = False,
    force: bool = False,
    accept_changes: bool = False,
    dry_run: bool = False,
) -> CommandResult:
    """Rename a component directory, its files and the identifiers inside them.

    With *scan*, imports of the component elsewhere in the project are
    re-pointed and the identifier renamed in the files that import it.
    """
    ctx = CommandContext(config)
    await ctx.git_gate()

    state = await ctx.store.load()
    old = normalize_component_name(old_name)
    new = normalize_component_name(new_name)
    if old == new:
        raise TextorError("Source and destination are the same")

    components_root = config.resolve_path("components")
    component = find_component(state, old)
    from_dir = (
        from_project_path(component.path, config.project_root)
        if component is not None
        else secure_join(components_root, old)
    )
    to_dir = secure_join(components_root, new)

    result = CommandResult(dry_run=dry_run)
    if dry_run:
        result.planned.append(f"move {ctx.relative(from_dir)}/ -> {ctx.relative(to_dir)}/")
        if scan:
            result.planned.extend(
                f"update {path}"
                for path in await scan_and_replace_imports(
                    config,
                    state,
                    kind="component",
                    from_path=old,
                    to_path=new,
                    from_name=old,
                    to_name=new,
                    dry_run=True,
                )
            )
        result.report("")
        return result

    outcome = await move_directory(
        from_dir,
        to_dir,
        state,
        config,
        from_name=old,
        to_name=new,
        owner=old,
        force=force,
        accept_changes=accept_changes,
    )
    result.moved.extend(outcome.moved)
    result.skipped.extend(outcome.skipped)

    if scan:
        result.updated.extend(
            await scan_and_replace_imports(
                config,
                state,
                kind="component",
                from_path=old,
                to_path=new,
                from_name=old,
                to_name=new,
            )
        )
    await cleanup_empty_dirs(from_dir.parent, components_root)

    for key in files_under(state, ctx.relative(to_dir)):
        if state.files[key].owner == old:
            state.files[key].owner = new
    state.components = [c for c in state.components if c.name not in (old, new)]
    state.components.append(Component(name=new, path=ctx.relative(to_dir)))
    await ctx.store.save(state)
    await ctx.stage([dst for _src, dst in result.moved])
    result.report(f"Renamed component {old} to {new}")
    return result
