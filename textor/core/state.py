"""Persistent ledger of everything Textor generated.

:class:`StateStore` owns ``.textor/state.json``.  Each operation loads a fresh
:class:`~textor.core.models.State`, mutates it and saves it back.  Saves are
atomic (temp file + fsync + ``os.replace``) and serialized per ledger path
through a process-local :class:`asyncio.Lock`; read-modify-write helpers hold
the lock across the whole cycle so logically concurrent callers cannot lose
each other's updates.

There is no cross-process lock: two CLI invocations racing on the same
project resolve as last-writer-wins on the whole document.
"""

from __future__ import annotations

import asyncio
import json
import os
import tempfile
import weakref
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Optional

from pydantic import ValidationError

from textor.naming import to_pascal_case

from .models import Component, FileKind, FileRecord, Section, State, utc_now
from .paths import to_project_path

if TYPE_CHECKING:
    from textor.config import Config

STATE_DIR = ".textor"
STATE_FILE = "state.json"

# Ledger path -> lock, per event loop; entries go away with their loop.
_SAVE_LOCKS: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, dict[str, asyncio.Lock]]" = (
    weakref.WeakKeyDictionary()
)


def _lock_for(path: Path) -> asyncio.Lock:
    locks = _SAVE_LOCKS.setdefault(asyncio.get_running_loop(), {})
    key = os.path.abspath(path)
    lock = locks.get(key)
    if lock is None:
        lock = locks[key] = asyncio.Lock()
    return lock


def _atomic_write_text(path: Path, content: str) -> None:
    """Write *content* to *path* via a temp file in the same directory."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(
        dir=str(path.parent),
        prefix=f".{path.name}.",
        suffix=".tmp",
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def _salvage(model: type, raw: object) -> Optional[object]:
    try:
        return model.model_validate(raw)
    except ValidationError:
        return None


def _read_state(path: Path) -> State:
    """Load the ledger, dropping only the entries that fail validation."""
    if not path.is_file():
        return State()
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError):
        # Unreadable ledger: treat as nothing tracked yet.
        return State()
    if not isinstance(raw, dict):
        return State()

    files = raw.get("files") if isinstance(raw.get("files"), dict) else {}
    sections = raw.get("sections") if isinstance(raw.get("sections"), list) else []
    components = raw.get("components") if isinstance(raw.get("components"), list) else []

    records = {key: _salvage(FileRecord, value) for key, value in files.items()}
    extra = {k: v for k, v in raw.items() if k not in ("files", "sections", "components")}
    return State(
        files={key: record for key, record in records.items() if record is not None},
        sections=[s for s in (_salvage(Section, item) for item in sections) if s is not None],
        components=[c for c in (_salvage(Component, item) for item in components) if c is not None],
        **extra,
    )


class StateStore:
    """Loads and saves the ledger of one project.

    Args:
        project_root: Directory containing ``.textor/``.  Ledger keys are
            paths relative to it.
    """

    def __init__(self, project_root: str | Path) -> None:
        self.project_root = Path(os.path.abspath(project_root))
        self.path = self.project_root / STATE_DIR / STATE_FILE

    # -- Load / save --------------------------------------------------------

    async def load(self) -> State:
        """Return the ledger, or an empty one if it is missing or unreadable."""
        return await asyncio.to_thread(_read_state, self.path)

    async def save(self, state: State) -> None:
        """Atomically replace the ledger with *state*."""
        async with _lock_for(self.path):
            await self._write(state)

    async def _write(self, state: State) -> None:
        await asyncio.to_thread(_atomic_write_text, self.path, state.to_json() + "\n")

    async def update(self, mutator: Callable[[State], None]) -> State:
        """Load, apply *mutator* in place and save, holding the write lock."""
        async with _lock_for(self.path):
            state = await self.load()
            mutator(state)
            await self._write(state)
            return state

    def relative(self, path: str | Path) -> str:
        """Ledger key for *path* (absolute or relative to the project root)."""
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self.project_root / candidate
        return to_project_path(candidate, self.project_root)

    # -- Files --------------------------------------------------------------

    async def register_file(
        self,
        path: str | Path,
        *,
        kind: FileKind | str,
        hash: str,
        template: Optional[str] = None,
        owner: Optional[str] = None,
        has_signature: bool = True,
    ) -> FileRecord:
        """Record (or replace) the ledger entry for *path*."""
        record = FileRecord(
            kind=FileKind(kind),
            template=template,
            hash=hash,
            timestamp=utc_now(),
            owner=owner,
            has_signature=has_signature,
        )
        key = self.relative(path)

        def _apply(state: State) -> None:
            state.files[key] = record

        await self.update(_apply)
        return record

    async def unregister_file(self, path: str | Path) -> None:
        key = self.relative(path)

        def _apply(state: State) -> None:
            state.files.pop(key, None)

        await self.update(_apply)

    # -- Sections -----------------------------------------------------------

    async def add_section(self, section: Section) -> None:
        """Insert *section*, replacing any section with the same route.

        Standalone sections (no route) are keyed by feature path instead.
        """

        def _apply(state: State) -> None:
            state.sections = [s for s in state.sections if not _same_section(s, section)]
            state.sections.append(section)

        await self.update(_apply)

    async def remove_section(self, identifier: str) -> None:
        """Remove sections whose route or name equals *identifier*."""

        def _apply(state: State) -> None:
            state.sections = [
                s for s in state.sections if s.route != identifier and s.name != identifier
            ]

        await self.update(_apply)

    async def update_section(self, previous: Section, section: Section) -> None:
        """Replace *previous* with *section*."""

        def _apply(state: State) -> None:
            state.sections = [
                s for s in state.sections
                if not _same_section(s, previous) and not _same_section(s, section)
            ]
            state.sections.append(section)

        await self.update(_apply)

    # -- Components ---------------------------------------------------------

    async def add_component(self, component: Component) -> None:
        """Insert *component*, replacing any component with the same name."""

        def _apply(state: State) -> None:
            state.components = [c for c in state.components if c.name != component.name]
            state.components.append(component)

        await self.update(_apply)

    async def remove_component(self, name: str) -> None:
        def _apply(state: State) -> None:
            state.components = [c for c in state.components if c.name != name]

        await self.update(_apply)


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def _same_section(a: Section, b: Section) -> bool:
    if a.route is None and b.route is None:
        return a.feature_path == b.feature_path
    return a.route == b.route


def find_section(state: State, identifier: str | None) -> Section | None:
    """Find a section by route, name or feature path."""
    if identifier is None:
        return None
    for section in state.sections:
        if identifier in (section.route, section.name, section.feature_path):
            return section
    return None


def find_component(state: State, name: str) -> Component | None:
    for component in state.components:
        if component.name == name:
            return component
    return None


def _below(path: str, root: str) -> str | None:
    prefix = root.rstrip("/") + "/"
    return path[len(prefix):] if path.startswith(prefix) else None


def reconstruct_components(files: dict[str, FileRecord], config: "Config") -> list[Component]:
    """Derive the component list from tracked files under the components root.

    A component is the first directory below the root that contains at least
    one tracked file.  Loose files directly in the root are not components.
    """
    root = config.relative_root("components")
    names: dict[str, Component] = {}
    for path in files:
        below = _below(path, root)
        if below is None or "/" not in below:
            continue
        name = below.split("/", 1)[0]
        names.setdefault(name, Component(name=name, path=f"{root}/{name}"))
    return [names[name] for name in sorted(names)]


def _route_from_page(below: str, index_stem: str) -> str:
    stem = below.rsplit(".", 1)[0] if "." in below.rsplit("/", 1)[-1] else below
    parts = stem.split("/")
    if parts and parts[-1] == index_stem:
        parts = parts[:-1]
    return "/" + "/".join(parts) if parts else "/"


def _feature_dirs(files: dict[str, FileRecord], features_root: str) -> set[str]:
    """Feature directories (relative to the features root) holding a tracked entry file."""
    dirs: set[str] = set()
    for path, record in files.items():
        below = _below(path, features_root)
        if below is None or "/" not in below:
            continue
        parent = below.rsplit("/", 1)[0]
        if record.kind == FileKind.FEATURE:
            dirs.add(parent)
    return dirs


def _has_files_under(files: dict[str, FileRecord], directory: str) -> bool:
    prefix = directory.rstrip("/") + "/"
    return any(path.startswith(prefix) for path in files)


def reconstruct_sections(state: State, config: "Config") -> list[Section]:
    """Derive the section list from tracked files.

    * Each tracked file under the pages root yields a route (extension and a
      trailing ``index`` segment stripped).
    * The route is paired with the feature recorded by an existing section for
      that route if that feature still has tracked files, else with a tracked
      feature directory of the same path (case-insensitive).
    * Tracked feature directories that no route claims become standalone
      sections (``route=None``).
    * Existing sections donate ``name``, ``layout`` and ``extension``.
    """
    pages_root = config.relative_root("pages")
    features_root = config.relative_root("features")
    index_stem = Path(config.routing.index_file).stem
    files = state.files

    existing_by_route = {s.route: s for s in state.sections if s.route is not None}
    existing_by_feature = {s.feature_path: s for s in state.sections if s.feature_path}
    feature_dirs = _feature_dirs(files, features_root)
    lowered = {path.lower(): path for path in feature_dirs}

    sections: dict[str, Section] = {}
    claimed: set[str] = set()

    for path in sorted(files):
        below = _below(path, pages_root)
        if below is None:
            continue
        route = _route_from_page(below, index_stem)
        if route in sections:
            continue

        previous = existing_by_route.get(route)
        feature_path: str | None = None
        if previous and previous.feature_path and _has_files_under(
            files, f"{features_root}/{previous.feature_path}"
        ):
            feature_path = previous.feature_path
        elif route != "/":
            feature_path = lowered.get(route[1:].lower())

        resolved_feature = feature_path or (previous.feature_path if previous else route.strip("/"))
        if feature_path:
            claimed.add(feature_path)

        sections[route] = Section(
            name=previous.name if previous else _section_name(resolved_feature, route),
            route=route,
            feature_path=resolved_feature,
            layout=previous.layout if previous else config.default_layout,
            extension=previous.extension if previous else Path(below).suffix or config.naming.route_extension,
        )

    result = list(sections.values())

    standalone = set(feature_dirs)
    for section in state.sections:
        if section.feature_path and _has_files_under(files, f"{features_root}/{section.feature_path}"):
            standalone.add(section.feature_path)

    for feature_path in sorted(standalone - claimed):
        previous = existing_by_feature.get(feature_path)
        result.append(
            Section(
                name=previous.name if previous else _section_name(feature_path, None),
                route=None,
                feature_path=feature_path,
                layout=previous.layout if previous else config.default_layout,
                extension=previous.extension if previous else config.naming.route_extension,
            )
        )
    return result


def _section_name(feature_path: str, route: str | None) -> str:
    source = feature_path or (route or "").strip("/") or "index"
    return to_pascal_case(source)


def files_under(state: State, directory: str) -> list[str]:
    """Ledger keys located under the project-relative *directory*."""
    prefix = directory.rstrip("/") + "/"
    return [path for path in state.files if path.startswith(prefix)]

