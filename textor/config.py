"""Textor project configuration.

Typed configuration for every command. All settings use Pydantic v2 models so
they are validated at construction time and round-trip to the camelCase JSON
document stored at ``.textor/config.json`` without boiler-plate.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from textor.core.errors import ConfigError
from textor.core.hashing import NormalizationMode

CONFIG_DIR = ".textor"
CONFIG_FILE = "config.json"
CURRENT_CONFIG_VERSION = 2

MANAGED_ROOT_KEYS: tuple[str, ...] = ("pages", "features", "components")


class _CamelModel(BaseModel):
    """Base model that reads and writes camelCase JSON keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PathsConfig(_CamelModel):
    """Project-relative locations of the managed roots."""

    pages: str = Field(default="src/pages")
    features: str = Field(default="src/features")
    components: str = Field(default="src/components")
    layouts: str = Field(default="src/layouts")


class NamingConfig(_CamelModel):
    """File extensions used when generating files."""

    route_extension: str = Field(default=".astro")
    feature_extension: str = Field(default=".astro")
    component_extension: str = Field(default=".astro")
    hook_extension: str = Field(default=".ts")
    test_extension: str = Field(default=".test.tsx")

    @field_validator(
        "route_extension",
        "feature_extension",
        "component_extension",
        "hook_extension",
        "test_extension",
    )
    @classmethod
    def _starts_with_dot(cls, value: str) -> str:
        if not value.startswith("."):
            raise ValueError(f"Extension '{value}' should start with a dot")
        return value


class RoutingConfig(_CamelModel):
    """How routes map onto files under the pages root."""

    mode: Literal["flat", "nested"] = Field(default="flat")
    index_file: str = Field(default="index.astro")


class SignaturesConfig(_CamelModel):
    """Marker strings stamped onto every generated file, per file type."""

    astro: str = Field(default="<!-- @generated by Textor -->")
    typescript: str = Field(default="// @generated by Textor")
    javascript: str = Field(default="// @generated by Textor")
    tsx: str = Field(default="// @generated by Textor")


class HashingConfig(_CamelModel):
    normalization: NormalizationMode = Field(default=NormalizationMode.EOL)


class ImportAliasesConfig(_CamelModel):
    """Optional import aliases (e.g. ``@features``) used instead of relative paths."""

    features: Optional[str] = Field(default=None)
    components: Optional[str] = Field(default=None)
    layouts: Optional[str] = Field(default=None)


class GitConfig(_CamelModel):
    require_clean_repo: bool = Field(
        default=False, description="Refuse destructive commands on a dirty working tree"
    )
    stage_changes: bool = Field(default=False, description="git add generated files")


class FeaturesConfig(_CamelModel):
    """Scaffolding defaults for ``add-section``."""

    entry: Literal["pascal", "index"] = Field(default="pascal")
    create_scripts_dir: bool = Field(default=True)
    scripts_index_file: str = Field(default="scripts/index.ts")
    create_sub_components_dir: bool = Field(default=True)
    create_index: bool = Field(default=False)
    create_hooks: bool = Field(default=False)
    create_api: bool = Field(default=False)
    create_services: bool = Field(default=False)
    create_schemas: bool = Field(default=False)
    create_context: bool = Field(default=False)
    create_tests: bool = Field(default=False)
    create_types: bool = Field(default=False)
    create_readme: bool = Field(default=False)
    create_stories: bool = Field(default=False)


class ComponentsConfig(_CamelModel):
    """Scaffolding defaults for ``create-component``."""

    create_index: bool = Field(default=True)
    create_hook: bool = Field(default=True)
    create_sub_components_dir: bool = Field(default=False)
    create_context: bool = Field(default=False)
    create_tests: bool = Field(default=False)
    create_config: bool = Field(default=False)
    create_constants: bool = Field(default=False)
    create_types: bool = Field(default=False)
    create_readme: bool = Field(default=False)
    create_stories: bool = Field(default=False)


class Config(_CamelModel):
    """Global Textor configuration.

    Holds every tuneable parameter used by the commands and derives absolute
    paths from ``project_root``.  Instances are created once by the CLI (or a
    test) and passed through the rest of the system.
    """

    config_version: int = Field(default=CURRENT_CONFIG_VERSION)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    naming: NamingConfig = Field(default_factory=NamingConfig)
    routing: RoutingConfig = Field(default_factory=RoutingConfig)
    signatures: SignaturesConfig = Field(default_factory=SignaturesConfig)
    hashing: HashingConfig = Field(default_factory=HashingConfig)
    import_aliases: ImportAliasesConfig = Field(default_factory=ImportAliasesConfig)
    git: GitConfig = Field(default_factory=GitConfig)
    features: FeaturesConfig = Field(default_factory=FeaturesConfig)
    components: ComponentsConfig = Field(default_factory=ComponentsConfig)
    default_layout: str = Field(default="Main")

    project_root: Path = Field(default_factory=Path.cwd, exclude=True)

    # ------------------------------------------------------------------
    # Derived paths
    # ------------------------------------------------------------------

    @property
    def config_dir(self) -> Path:
        """Root of the ``.textor/`` metadata directory."""
        return self.project_root / CONFIG_DIR

    @property
    def config_path(self) -> Path:
        return self.config_dir / CONFIG_FILE

    @property
    def templates_dir(self) -> Path:
        """Directory holding per-project template overrides."""
        return self.config_dir / "templates"

    @property
    def normalization(self) -> NormalizationMode:
        return self.hashing.normalization

    def resolve_path(self, key: str) -> Path:
        """Return the absolute path of the configured root named *key*.

        Raises:
            ConfigError: If *key* is not a configured path.
        """
        value = getattr(self.paths, key, None)
        if not isinstance(value, str):
            raise ConfigError(f"Path key '{key}' not found in configuration")
        return Path(os.path.abspath(self.project_root / value))

    def relative_root(self, key: str) -> str:
        """Return the configured root *key* as a forward-slash project path."""
        relative = os.path.relpath(self.resolve_path(key), os.path.abspath(self.project_root))
        return relative.replace(os.sep, "/")

    def managed_roots(self) -> list[Path]:
        """Absolute paths of the pages, features and components roots."""
        return [self.resolve_path(key) for key in MANAGED_ROOT_KEYS]

    def signature_list(self) -> list[str]:
        """Every distinct, non-empty configured signature."""
        seen: list[str] = []
        for value in self.signatures.model_dump().values():
            if value and value not in seen:
                seen.append(value)
        return seen

    def signature_for(self, path: str | Path) -> str | None:
        """Return the signature to stamp onto a file with *path*'s extension."""
        suffix = Path(path).suffix.lower()
        if suffix in (".astro", ".md", ".mdx", ".html"):
            return self.signatures.astro
        if suffix == ".tsx":
            return self.signatures.tsx or self.signatures.typescript
        if suffix == ".ts":
            return self.signatures.typescript
        if suffix in (".js", ".jsx", ".mjs"):
            return self.signatures.javascript
        return None

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)

    def save(self, force: bool = False) -> Path:
        """Persist the configuration to ``.textor/config.json``.

        Args:
            force: Overwrite an existing configuration file.

        Returns:
            The path where the file was written.

        Raises:
            ConfigError: If the file exists and *force* is not set.
        """
        target = self.config_path
        if target.exists() and not force:
            raise ConfigError(
                f"Configuration already exists at {target}\nUse --force to overwrite."
            )
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.to_json() + "\n", encoding="utf-8")
        return target

    @classmethod
    def load(cls, project_root: str | Path | None = None) -> "Config":
        """Load ``.textor/config.json`` from *project_root* (default: cwd).

        Missing keys fall back to their defaults, so older or partial
        configuration files keep working.

        Raises:
            ConfigError: If the file is missing, is not valid JSON, or fails
                validation.
        """
        root = Path(project_root) if project_root is not None else Path.cwd()
        root = Path(os.path.abspath(root))
        path = root / CONFIG_DIR / CONFIG_FILE
        if not path.exists():
            raise ConfigError(
                f"Textor configuration not found at {path}\n"
                "Run 'textor init' to create it."
            )
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Failed to parse config: Invalid JSON ({exc.msg})") from exc
        if not isinstance(raw, dict):
            raise ConfigError("Invalid configuration: top-level value must be an object")
        try:
            config = cls.model_validate(raw)
        except ValidationError as exc:
            raise ConfigError(f"Invalid configuration: {exc}") from exc
        config.project_root = root
        return config

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` honouring environment variables.

        Recognised variables (all optional):
            TEXTOR_PROJECT_ROOT, TEXTOR_HASH_NORMALIZATION.

        The configuration file under the project root is used when present;
        otherwise defaults apply.
        """
        root = Path(os.environ.get("TEXTOR_PROJECT_ROOT") or Path.cwd())
        if (root / CONFIG_DIR / CONFIG_FILE).exists():
            config = cls.load(root)
        else:
            config = cls(project_root=Path(os.path.abspath(root)))

        normalization = os.environ.get("TEXTOR_HASH_NORMALIZATION")
        if normalization:
            try:
                config.hashing = HashingConfig(normalization=NormalizationMode(normalization))
            except ValueError as exc:
                raise ConfigError(f"Invalid TEXTOR_HASH_NORMALIZATION: {normalization}") from exc
        return config
