"""Exception hierarchy for Textor.

Only problems that must abort the calling command are raised.  Hash and
ownership conflicts are reported as skipped results by :mod:`textor.core.fileops`
so batch operations can finish with an itemised list of refusals.
"""

from __future__ import annotations

from pathlib import Path


class TextorError(Exception):
    """Base class for all Textor errors."""


class PathTraversalError(TextorError):
    """Raised when a resolved path escapes its configured root."""

    def __init__(self, path: str | Path, root: str | Path) -> None:
        self.path = str(path)
        self.root = str(root)
        super().__init__(
            f"Security error: Path traversal attempt detected: {self.path} "
            f"is outside of {self.root}"
        )


class DestinationExistsError(TextorError):
    """Raised when a write or move target already exists and force is not set."""

    def __init__(self, path: str | Path) -> None:
        self.path = str(path)
        super().__init__(
            f"Destination already exists: {self.path}\nUse --force to overwrite."
        )


class NotFoundError(TextorError):
    """Raised when a section, component or file cannot be located."""

    def __init__(self, message: str, path: str | Path | None = None) -> None:
        self.path = str(path) if path is not None else None
        super().__init__(message)


class ConfigError(TextorError):
    """Raised when the project configuration is missing or invalid."""


class DirtyRepositoryError(TextorError):
    """Raised when ``git.requireCleanRepo`` is set and the working tree has changes."""

    def __init__(self, cwd: str | Path, changes: str = "") -> None:
        self.cwd = str(cwd)
        self.changes = changes
        super().__init__(
            "Git repository is not clean. Commit or stash your changes first, "
            "or disable git.requireCleanRepo."
        )
