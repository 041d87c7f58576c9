"""Optional files that live inside a feature or component directory.

``add_section`` and ``create_component`` scaffold them on request;
``add_item`` adds one later to a section or component the ledger already
knows about.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

from textor.config import Config
from textor.core.errors import NotFoundError, TextorError
from textor.core.fileops import ensure_not_exists
from textor.core.models import FileKind
from textor.core.paths import from_project_path, secure_join
from textor.core.state import find_component, find_section
from textor.naming import (
    get_feature_component_name,
    get_feature_file_name,
    get_hook_file_name,
    get_hook_function_name,
    get_relative_import_path,
    normalize_component_name,
    strip_extension,
)
from textor.templates import (
    API_TEMPLATE,
    CONFIG_TEMPLATE,
    CONSTANTS_TEMPLATE,
    CONTEXT_TEMPLATE,
    HOOK_TEMPLATE,
    INDEX_TEMPLATE,
    README_TEMPLATE,
    SCHEMA_TEMPLATE,
    SERVICE_TEMPLATE,
    STORIES_TEMPLATE,
    TEST_TEMPLATE,
    TYPES_TEMPLATE,
)

from .base import CommandContext, CommandResult


@dataclass(frozen=True)
class ItemKind:
    template: str
    template_id: str
    # Path inside the owning directory.
    pattern: str


ITEMS: dict[str, ItemKind] = {
    "index": ItemKind(INDEX_TEMPLATE, "index", "index.ts"),
    "hooks": ItemKind(HOOK_TEMPLATE, "hook", "hooks/{hook_file}"),
    "api": ItemKind(API_TEMPLATE, "api", "api/index.ts"),
    "services": ItemKind(SERVICE_TEMPLATE, "service", "services/index.ts"),
    "schemas": ItemKind(SCHEMA_TEMPLATE, "schema", "schemas/index.ts"),
    "context": ItemKind(CONTEXT_TEMPLATE, "context", "context/{name}Context.tsx"),
    "tests": ItemKind(TEST_TEMPLATE, "test", "__tests__/{name}{test_extension}"),
    "types": ItemKind(TYPES_TEMPLATE, "types", "types/index.ts"),
    "config": ItemKind(CONFIG_TEMPLATE, "config", "config/index.ts"),
    "constants": ItemKind(CONSTANTS_TEMPLATE, "constants", "constants/index.ts"),
    "readme": ItemKind(README_TEMPLATE, "readme", "README.md"),
    "stories": ItemKind(STORIES_TEMPLATE, "stories", "{name}.stories.tsx"),
}

# Item -> config toggle, in generation order.
FEATURE_ITEMS: dict[str, str] = {
    "index": "create_index",
    "hooks": "create_hooks",
    "api": "create_api",
    "services": "create_services",
    "schemas": "create_schemas",
    "context": "create_context",
    "tests": "create_tests",
    "types": "create_types",
    "readme": "create_readme",
    "stories": "create_stories",
}
COMPONENT_ITEMS: dict[str, str] = {
    "index": "create_index",
    "hooks": "create_hook",
    "context": "create_context",
    "tests": "create_tests",
    "config": "create_config",
    "constants": "create_constants",
    "types": "create_types",
    "readme": "create_readme",
    "stories": "create_stories",
}

_ALIASES = {
    "hook": "hooks",
    "test": "tests",
    "service": "services",
    "schema": "schemas",
    "story": "stories",
}


def normalize_item(item_type: str) -> str:
    """Map ``hook``/``test``/``service``... onto the names used in :data:`ITEMS`."""
    item = item_type.strip().lower()
    item = _ALIASES.get(item, item)
    if item not in ITEMS:
        raise TextorError(f"Unknown item type: {item_type} (expected one of: {', '.join(ITEMS)})")
    return item


def enabled_items(settings: Any, requested: Mapping[str, Optional[bool]], toggles: Mapping[str, str]) -> list[str]:
    """Items to generate: an explicit ``True``/``False`` wins, ``None`` defers to *settings*."""
    enabled = []
    for item, toggle in toggles.items():
        flag = requested.get(item)
        if flag is None:
            flag = getattr(settings, toggle)
        if flag:
            enabled.append(item)
    return enabled


def item_path(config: Config, directory: Path, component_name: str, item: str) -> Path:
    relative = ITEMS[item].pattern.format(
        name=component_name,
        hook_file=get_hook_file_name(component_name, config.naming.hook_extension),
        test_extension=config.naming.test_extension,
    )
    return secure_join(directory, *relative.split("/"))


def _import_path(path: Path, main_file: Path) -> str:
    relative = get_relative_import_path(path, main_file)
    return relative if main_file.suffix == ".astro" else strip_extension(relative)


async def write_items(
    ctx: CommandContext,
    items: Iterable[str],
    *,
    directory: Path,
    main_file: Path,
    component_name: str,
    kind: FileKind,
    owner: Optional[str],
    result: CommandResult,
) -> None:
    """Render and record each of *items* inside *directory*."""
    for item in items:
        path = item_path(ctx.config, directory, component_name, item)
        await ctx.write_generated(
            path,
            ITEMS[item].template,
            {
                "component_name": component_name,
                "hook_name": get_hook_function_name(component_name),
                "extension": main_file.suffix,
                "component_import_path": _import_path(path, main_file),
            },
            kind=kind,
            template_id=ITEMS[item].template_id,
            owner=owner,
            result=result,
        )


# ---------------------------------------------------------------------------
# add-item
# ---------------------------------------------------------------------------


async def add_item(
    config: Config,
    item_type: str,
    target: str,
    *,
    force: bool = False,
    dry_run: bool = False,
) -> CommandResult:
    """Add one optional file to an existing section's feature or to a component.

    *target* is looked up as a section (route, name or feature path, or the
    last segments of a feature path) first, then as a component.

    Raises:
        NotFoundError: If the ledger knows neither a section nor a component
            called *target*.
    """
    ctx = CommandContext(config)
    item = normalize_item(item_type)
    state = await ctx.store.load()

    section = find_section(state, target)
    component = None
    if section is None:
        component = find_component(state, target) or find_component(state, normalize_component_name(target))
    if section is None and component is None:
        section = next(
            (s for s in state.sections if s.feature_path.endswith("/" + target.strip("/"))),
            None,
        )
    if section is None and component is None:
        raise NotFoundError(
            f'Target not found in state: "{target}". '
            "Use add-section or create-component for code Textor does not manage."
        )

    if section is not None:
        if item not in FEATURE_ITEMS:
            raise TextorError(f"A feature cannot have a {item} item")
        feature = section.feature_path
        component_name = get_feature_component_name(feature)
        directory = secure_join(config.resolve_path("features"), *feature.split("/"))
        main_file = directory / get_feature_file_name(
            feature, config.naming.feature_extension, config.features.entry
        )
        kind, owner, label = FileKind.FEATURE_FILE, section.route, f"feature {feature}"
    else:
        if item not in COMPONENT_ITEMS:
            raise TextorError(f"A component cannot have a {item} item")
        component_name = component.name
        directory = from_project_path(component.path, config.project_root)
        main_file = directory / f"{component_name}{config.naming.component_extension}"
        kind, owner, label = FileKind.COMPONENT_FILE, component.name, f"component {component_name}"

    path = item_path(config, directory, component_name, item)
    result = CommandResult(dry_run=dry_run)
    if dry_run:
        result.planned.append(f"create {ctx.relative(path)}")
        result.report("")
        return result

    await ensure_not_exists(path, force)
    await write_items(
        ctx,
        [item],
        directory=directory,
        main_file=main_file,
        component_name=component_name,
        kind=kind,
        owner=owner,
        result=result,
    )
    await ctx.stage(result.created)
    result.report(f"Added {item} to {label}")
    return result
