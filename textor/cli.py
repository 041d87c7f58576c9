"""Textor command line.

Usage::

    textor init
    textor add-section /users users/catalog --layout Main
    textor move-section /users --to-route /people --to-feature people/catalog
    textor create-component Button
    textor add-item api users/catalog
    textor status
    textor sync --dry-run
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from pathlib import Path
from typing import Any, Optional, Sequence

from textor import __version__
from textor.commands import (
    add_item,
    add_section,
    adopt_command,
    create_component,
    init_project,
    list_sections,
    move_section,
    normalize_state_command,
    prune_missing_command,
    remove_component,
    remove_section,
    rename_command,
    status_command,
    sync_command,
    validate_state_command,
)
from textor.commands.maintenance import RENAME_KINDS
from textor.config import Config
from textor.core.errors import TextorError
from textor.utils import print_error, print_header


def _add_safety_flags(parser: argparse.ArgumentParser, *, accept_changes: bool = True) -> None:
    parser.add_argument("--force", action="store_true", help="Overwrite or delete regardless of checks")
    if accept_changes:
        parser.add_argument(
            "--accept-changes",
            action="store_true",
            help="Proceed even if generated files were edited",
        )
    parser.add_argument("--dry-run", action="store_true", help="Show what would happen without changing anything")


def _optional_flag(parser: argparse.ArgumentParser, name: str, help_text: str) -> None:
    """Add ``--name`` / ``--no-name``; unset means "use the config default"."""
    parser.add_argument(f"--{name}", dest=name.replace("-", "_"), action=argparse.BooleanOptionalAction, default=None, help=help_text)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="textor",
        description="Textor -- safe scaffolding for Astro projects",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  textor init\n"
            "  textor add-section /users users/catalog --layout Main\n"
            "  textor add-item hook Button\n"
            "  textor remove-section /users\n"
            "  textor rename component Button PrimaryButton --scan\n"
        ),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("init", help="Create .textor/config.json")
    p.add_argument("--force", action="store_true", help="Overwrite an existing configuration")
    p.add_argument("--quiet", action="store_true")

    p = sub.add_parser("add-section", help="Create a route and its feature")
    p.add_argument("route", nargs="?", default=None, help="Route such as /users (omit for a standalone feature)")
    p.add_argument("feature_path", help="Feature path such as users/catalog")
    p.add_argument("--layout", default=None, help="Layout name, or 'none'")
    p.add_argument("--name", default=None, help="Section name (default: feature component name)")
    p.add_argument("--endpoint", action="store_true", help="Create a .ts API endpoint instead of a page")
    p.add_argument("--entry", choices=["pascal", "index"], default=None)
    _optional_flag(p, "scripts-dir", "Create the scripts/index.ts entry")
    _optional_flag(p, "sub-components-dir", "Create a sub-components/ directory")
    _optional_flag(p, "index", "Create an index.ts re-export")
    _optional_flag(p, "hooks", "Create a hooks/use<Name>.ts file")
    for item in ("api", "services", "schemas", "context", "tests", "types", "readme", "stories"):
        _optional_flag(p, item, f"Create the {item} scaffold")
    _add_safety_flags(p, accept_changes=False)

    p = sub.add_parser("remove-section", help="Delete a route and its feature")
    p.add_argument("identifier", help="Route, section name or feature path")
    p.add_argument("feature_path", nargs="?", default=None)
    p.add_argument("--keep-route", action="store_true")
    p.add_argument("--keep-feature", action="store_true")
    _add_safety_flags(p)

    p = sub.add_parser("move-section", help="Move a section to a new route and/or feature")
    p.add_argument("identifier", help="Route, section name or feature path")
    p.add_argument("--to-route", default=None)
    p.add_argument("--to-feature", default=None)
    p.add_argument("--keep-feature", action="store_true", help="Move only the route file")
    p.add_argument("--scan", action="store_true", help="Update imports across the project")
    _add_safety_flags(p)

    sub.add_parser("list-sections", help="List managed sections and components")

    p = sub.add_parser("create-component", help="Create a shared component")
    p.add_argument("name")
    _optional_flag(p, "index", "Create an index.ts re-export")
    _optional_flag(p, "hook", "Create a hooks/use<Name>.ts file")
    _optional_flag(p, "sub-components-dir", "Create a sub-components/ directory")
    for item in ("context", "tests", "config", "constants", "types", "readme", "stories"):
        _optional_flag(p, item, f"Create the {item} scaffold")
    _add_safety_flags(p, accept_changes=False)

    p = sub.add_parser("add-item", help="Add an optional file to an existing feature or component")
    p.add_argument("item_type", help="api, services, schemas, hooks, context, tests, types, config, constants, readme, stories or index")
    p.add_argument("target", help="Section route, name or feature path, or a component name")
    _add_safety_flags(p, accept_changes=False)

    p = sub.add_parser("remove-component", help="Delete a shared component")
    p.add_argument("identifier")
    _add_safety_flags(p)

    p = sub.add_parser("rename", help="Rename a route, feature or component")
    p.add_argument("kind", choices=RENAME_KINDS)
    p.add_argument("old_name")
    p.add_argument("new_name")
    p.add_argument("--scan", action="store_true", help="Update imports across the project")
    _add_safety_flags(p)

    sub.add_parser("status", help="Compare the ledger with the files on disk")

    p = sub.add_parser("sync", help="Reconcile the ledger with the files on disk")
    p.add_argument("--include-all", action="store_true", help="Also add files without a signature")
    p.add_argument("--force", action="store_true", help="Refresh hashes even for unsigned modified files")
    p.add_argument("--dry-run", action="store_true")

    p = sub.add_parser("prune-missing", help="Drop ledger entries whose files are gone")
    p.add_argument("--dry-run", action="store_true")
    p.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation")

    p = sub.add_parser("validate-state", help="Check ledger hashes against disk")
    p.add_argument("--fix", action="store_true")

    p = sub.add_parser("normalize-state", help="Rewrite the ledger in canonical form")
    p.add_argument("--dry-run", action="store_true")

    p = sub.add_parser("adopt", help="Bring existing files under Textor management")
    p.add_argument("identifier", nargs="?", default=None, help="Path, component, feature or route")
    p.add_argument("--all", dest="adopt_all", action="store_true", help="Adopt every untracked file")
    p.add_argument("--no-signature", dest="add_signature", action="store_false")
    p.add_argument("--dry-run", action="store_true")

    return parser


async def _dispatch(args: argparse.Namespace, config: Config) -> Any:
    command = args.command
    if command == "add-section":
        return await add_section(
            config,
            args.route,
            args.feature_path,
            layout=args.layout,
            name=args.name,
            endpoint=args.endpoint,
            entry=args.entry,
            create_scripts_dir=args.scripts_dir,
            create_sub_components_dir=args.sub_components_dir,
            create_index=args.index,
            create_hooks=args.hooks,
            create_api=args.api,
            create_services=args.services,
            create_schemas=args.schemas,
            create_context=args.context,
            create_tests=args.tests,
            create_types=args.types,
            create_readme=args.readme,
            create_stories=args.stories,
            force=args.force,
            dry_run=args.dry_run,
        )
    if command == "remove-section":
        return await remove_section(
            config,
            args.identifier,
            args.feature_path,
            keep_route=args.keep_route,
            keep_feature=args.keep_feature,
            force=args.force,
            accept_changes=args.accept_changes,
            dry_run=args.dry_run,
        )
    if command == "move-section":
        return await move_section(
            config,
            args.identifier,
            args.to_route,
            args.to_feature,
            keep_feature=args.keep_feature,
            scan=args.scan,
            force=args.force,
            accept_changes=args.accept_changes,
            dry_run=args.dry_run,
        )
    if command == "list-sections":
        return await list_sections(config)
    if command == "create-component":
        return await create_component(
            config,
            args.name,
            create_index=args.index,
            create_hook=args.hook,
            create_sub_components_dir=args.sub_components_dir,
            create_context=args.context,
            create_tests=args.tests,
            create_config=args.config,
            create_constants=args.constants,
            create_types=args.types,
            create_readme=args.readme,
            create_stories=args.stories,
            force=args.force,
            dry_run=args.dry_run,
        )
    if command == "add-item":
        return await add_item(
            config, args.item_type, args.target, force=args.force, dry_run=args.dry_run
        )
    if command == "remove-component":
        return await remove_component(
            config,
            args.identifier,
            force=args.force,
            accept_changes=args.accept_changes,
            dry_run=args.dry_run,
        )
    if command == "rename":
        return await rename_command(
            config,
            args.kind,
            args.old_name,
            args.new_name,
            scan=args.scan,
            force=args.force,
            accept_changes=args.accept_changes,
            dry_run=args.dry_run,
        )
    if command == "status":
        return await status_command(config)
    if command == "sync":
        return await sync_command(
            config, include_all=args.include_all, force=args.force, dry_run=args.dry_run
        )
    if command == "prune-missing":
        return await prune_missing_command(config, dry_run=args.dry_run, yes=args.yes)
    if command == "validate-state":
        return await validate_state_command(config, fix=args.fix)
    if command == "normalize-state":
        return await normalize_state_command(config, dry_run=args.dry_run)
    if command == "adopt":
        return await adopt_command(
            config,
            args.identifier,
            adopt_all=args.adopt_all,
            add_signature=args.add_signature,
            dry_run=args.dry_run,
        )
    raise TextorError(f"Unknown command: {command}")


def _project_root() -> Path:
    return Path(os.environ.get("TEXTOR_PROJECT_ROOT") or Path.cwd()).absolute()


def main(argv: Optional[Sequence[str]] = None) -> None:
    """CLI entry point for ``textor`` and ``python -m textor``."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        if args.command == "init":
            init_project(_project_root(), force=args.force, quiet=args.quiet)
            return

        # Config.load raises the "run textor init" error for a missing file.
        Config.load(_project_root())
        config = Config.from_env()
        if getattr(args, "dry_run", False):
            print_header(f"textor {args.command} (dry run: nothing is written)")
        result = asyncio.run(_dispatch(args, config))
    except TextorError as exc:
        print_error(f"Error: {exc}")
        sys.exit(1)

    if getattr(result, "ok", True) is False:
        sys.exit(1)


if __name__ == "__main__":
    main()
