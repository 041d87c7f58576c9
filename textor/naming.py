"""Naming conventions for routes, features, components and hooks.

Examples::

    to_pascal_case("users/catalog")      -> "UsersCatalog"
    normalize_route("users/")            -> "/users"
    route_to_file_path("/users/list")    -> "users/list.astro"
    route_to_file_path("/users", mode="nested") -> "users/index.astro"
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

_SEGMENT_SPLIT = re.compile(r"[/_\-\s]+")
_PATTERN_KEY = re.compile(r"{{\s*([a-zA-Z0-9_]+)\s*}}")


def to_pascal_case(value: str) -> str:
    """Convert ``users/catalog``, ``user_profile`` or ``my-page`` to PascalCase.

    All-caps segments longer than one character are lowered first, so
    ``API/keys`` becomes ``ApiKeys``.
    """
    parts: list[str] = []
    for segment in _SEGMENT_SPLIT.split(value):
        if not segment:
            continue
        if len(segment) > 1 and segment == segment.upper():
            segment = segment.lower()
        parts.append(segment[0].upper() + segment[1:])
    return "".join(parts)


def to_camel_case(value: str) -> str:
    pascal = to_pascal_case(value)
    return pascal[:1].lower() + pascal[1:]


def normalize_route(route: str | None) -> str | None:
    """Return *route* with exactly one leading slash and no trailing slash."""
    if route is None:
        return None
    normalized = route.strip()
    if not normalized.startswith("/"):
        normalized = "/" + normalized
    if len(normalized) > 1 and normalized.endswith("/"):
        normalized = normalized.rstrip("/") or "/"
    return normalized


def route_to_file_path(
    route: str,
    extension: str = ".astro",
    mode: str = "flat",
    index_file: str = "index.astro",
) -> str:
    """Map a route to a file path relative to the pages root.

    In ``flat`` mode ``/users`` maps to ``users.astro``; in ``nested`` mode to
    ``users/index.astro``.  The root route always maps to the index file.
    """
    normalized = normalize_route(route) or "/"
    index_stem = Path(index_file).stem
    if normalized == "/":
        return index_stem + extension
    if mode == "nested":
        return f"{normalized[1:]}/{index_stem}{extension}"
    return normalized[1:] + extension


def feature_to_directory_path(feature_path: str) -> str:
    """Strip leading and trailing slashes from a feature path."""
    return feature_path.strip().strip("/")


def get_feature_component_name(feature_path: str) -> str:
    return to_pascal_case(feature_path)


def get_feature_file_name(
    feature_path: str, extension: str = ".astro", strategy: str = "pascal"
) -> str:
    """File name of a feature's entry file (``UsersCatalog.astro`` or ``index.astro``)."""
    if strategy == "index":
        return "index" + extension
    return get_feature_component_name(feature_path) + extension


def get_hook_function_name(component_name: str) -> str:
    return "use" + component_name


def get_hook_file_name(component_name: str, extension: str = ".ts") -> str:
    return get_hook_function_name(component_name) + extension


def normalize_component_name(name: str) -> str:
    return to_pascal_case(name)


def get_relative_import_path(from_file: str | Path, to_file: str | Path) -> str:
    """Return the relative import specifier from *from_file* to *to_file*.

    Always uses forward slashes and starts with ``./`` or ``../``.
    """
    relative = os.path.relpath(os.fspath(to_file), os.path.dirname(os.fspath(from_file)))
    relative = relative.replace(os.sep, "/")
    if not relative.startswith("."):
        relative = "./" + relative
    return relative


def strip_extension(import_path: str) -> str:
    """Drop the file extension from the last segment of an import path."""
    head, _, tail = import_path.rpartition("/")
    stem = tail.rsplit(".", 1)[0] if "." in tail.lstrip(".") else tail
    return f"{head}/{stem}" if head else stem


def render_name_pattern(
    pattern: str | None, data: dict[str, Any], label: str = "pattern"
) -> str | None:
    """Render a ``{{key}}`` file-name pattern.

    Returns ``None`` for an empty pattern.

    Raises:
        ValueError: If the pattern references keys missing from *data*.
    """
    if not isinstance(pattern, str) or not pattern.strip():
        return None

    missing: list[str] = []

    def _substitute(match: re.Match[str]) -> str:
        key = match.group(1)
        if key not in data:
            missing.append(key)
            return ""
        return str(data[key])

    rendered = _PATTERN_KEY.sub(_substitute, pattern.strip())
    if missing:
        raise ValueError(f"Invalid {label}: missing values for {', '.join(missing)}")
    return rendered
