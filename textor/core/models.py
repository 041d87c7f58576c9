"""Pydantic v2 models for the Textor ledger.

The ledger is one JSON document shaped as
``{"sections": [...], "components": [...], "files": {path: record}}``.
JSON keys are camelCase (``featurePath``, ``hasSignature``); attributes are
snake_case.  Unknown keys are kept so documents written by newer versions
survive a load/save cycle.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utc_now() -> str:
    """Current UTC time as an ISO-8601 string with a ``Z`` suffix."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class FileKind(str, Enum):
    """What a tracked file is."""
    ROUTE = "route"
    FEATURE = "feature"
    COMPONENT = "component"
    FEATURE_FILE = "feature-file"
    COMPONENT_FILE = "component-file"


class _LedgerModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )


class FileRecord(_LedgerModel):
    """Ledger entry for one generated file.

    ``hash`` is the digest of the content as of the last write or move
    recorded by Textor; a different digest on disk means drift.
    """
    kind: FileKind = Field(..., description="Role of the file in the project")
    template: Optional[str] = Field(default=None, description="Template it was rendered from")
    hash: str = Field(..., description="Content hash at the last recorded write")
    timestamp: str = Field(default_factory=utc_now)
    owner: Optional[str] = Field(default=None, description="Route or component identifier")
    has_signature: bool = Field(default=True)
    synced: bool = Field(default=False, description="Recorded by sync/adopt rather than generation")


class Section(_LedgerModel):
    """A page route paired with its feature directory.

    ``route`` is ``None`` for a standalone feature with no page wiring.
    """
    name: str
    route: Optional[str] = None
    feature_path: str = ""
    layout: str = "Main"
    extension: str = ".astro"


class Component(_LedgerModel):
    """A shared component directory."""
    name: str
    path: str


class State(_LedgerModel):
    """The whole ledger for one project."""
    sections: list[Section] = Field(default_factory=list)
    components: list[Component] = Field(default_factory=list)
    files: dict[str, FileRecord] = Field(default_factory=dict)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)
