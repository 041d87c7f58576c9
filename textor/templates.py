"""Jinja2 template rendering for generated files.

Provides the TemplateRenderer class which loads ``.j2`` templates from the
packaged ``textor/templates/`` directory.  A project may override any of them
by placing a file of the same name under ``.textor/templates/``; that
directory is searched first.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from jinja2 import ChoiceLoader, Environment, FileSystemLoader, select_autoescape

from textor.naming import to_camel_case, to_pascal_case

# ---------------------------------------------------------------------------
# Template directory discovery
# ---------------------------------------------------------------------------

_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"

ROUTE_TEMPLATE = "route.astro.j2"
ENDPOINT_TEMPLATE = "endpoint.ts.j2"
FEATURE_TEMPLATE = "feature.astro.j2"
SCRIPTS_INDEX_TEMPLATE = "scripts_index.ts.j2"
INDEX_TEMPLATE = "index.ts.j2"
HOOK_TEMPLATE = "hook.ts.j2"
COMPONENT_TEMPLATE = "component.astro.j2"
API_TEMPLATE = "api.ts.j2"
SERVICE_TEMPLATE = "service.ts.j2"
SCHEMA_TEMPLATE = "schema.ts.j2"
CONTEXT_TEMPLATE = "context.tsx.j2"
TEST_TEMPLATE = "test.tsx.j2"
TYPES_TEMPLATE = "types.ts.j2"
README_TEMPLATE = "readme.md.j2"
STORIES_TEMPLATE = "stories.tsx.j2"
CONFIG_TEMPLATE = "config.ts.j2"
CONSTANTS_TEMPLATE = "constants.ts.j2"


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Renders Jinja2 templates for generated routes, features and components.

    Args:
        override_dir: Optional directory whose templates shadow the packaged
            ones (usually ``config.templates_dir``).  It need not exist.
        template_dir: Packaged template root; overridable for tests.
    """

    def __init__(
        self,
        override_dir: str | Path | None = None,
        template_dir: str | Path | None = None,
    ) -> None:
        self.template_dir = Path(template_dir) if template_dir is not None else _DEFAULT_TEMPLATE_DIR
        self.override_dir = Path(override_dir) if override_dir is not None else None

        loaders = []
        if self.override_dir is not None:
            loaders.append(FileSystemLoader(str(self.override_dir)))
        loaders.append(FileSystemLoader(str(self.template_dir)))

        self.env = Environment(
            loader=ChoiceLoader(loaders),
            autoescape=select_autoescape([]),
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["pascal_case"] = to_pascal_case
        self.env.filters["camel_case"] = to_camel_case

    def render(self, template_name: str, context: dict[str, Any]) -> str:
        """Render a single template with the provided context.

        Args:
            template_name: File name relative to the template roots (e.g.
                ``"route.astro.j2"``).
            context: Dictionary of variables available inside the template.
        """
        template = self.env.get_template(template_name)
        return template.render(**context)

    def render_string(self, template_string: str, context: dict[str, Any]) -> str:
        """Render an inline template string with the provided context."""
        template = self.env.from_string(template_string)
        return template.render(**context)

    def is_overridden(self, template_name: str) -> bool:
        """Return ``True`` if the project supplies its own *template_name*."""
        return self.override_dir is not None and (self.override_dir / template_name).is_file()

    def list_templates(self) -> list[str]:
        """Sorted names of every template visible to this renderer."""
        return sorted(name for name in self.env.list_templates() if name.endswith(".j2"))
