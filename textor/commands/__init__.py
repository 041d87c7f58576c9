"""Textor commands.

Each command takes a :class:`~textor.config.Config`, reports progress on the
Rich console and returns a result object.  Fatal problems are raised as
:class:`~textor.core.errors.TextorError` subclasses.
"""

from .base import CommandResult
from .components import create_component, remove_component, rename_component
from .items import add_item
from .maintenance import (
    adopt_command,
    init_project,
    normalize_state_command,
    prune_missing_command,
    rename_command,
    status_command,
    sync_command,
    validate_state_command,
)
from .sections import add_section, list_sections, move_section, remove_section

__all__ = [
    "CommandResult",
    # Sections
    "add_section",
    "remove_section",
    "move_section",
    "list_sections",
    # Components
    "create_component",
    "remove_component",
    "rename_component",
    # Items
    "add_item",
    # Maintenance
    "init_project",
    "status_command",
    "sync_command",
    "prune_missing_command",
    "validate_state_command",
    "normalize_state_command",
    "adopt_command",
    "rename_command",
]
