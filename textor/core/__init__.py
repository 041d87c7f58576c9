"""Textor core: the state ledger and the safe-mutation engine.

Key pieces:
    calculate_hash     - Content hashing with line-ending / whitespace normalization
    secure_join        - Path joining that refuses to leave its root
    StateStore         - Atomic, serialized persistence of .textor/state.json
    safe_delete / safe_move / safe_delete_dir
                       - Mutations that refuse to destroy drifted or foreign files
    Reconciler         - status / sync / prune / validate against the disk
"""

from .errors import (
    ConfigError,
    DestinationExistsError,
    DirtyRepositoryError,
    NotFoundError,
    PathTraversalError,
    TextorError,
)
from .fileops import (
    FileOpResult,
    MoveResult,
    cleanup_empty_dirs,
    ensure_dir,
    ensure_not_exists,
    safe_delete,
    safe_delete_dir,
    safe_move,
    write_file_with_signature,
)
from .hashing import DEFAULT_NORMALIZATION, NormalizationMode, calculate_hash, normalize_content
from .models import Component, FileKind, FileRecord, Section, State
from .paths import secure_join, to_project_path
from .reconciler import (
    ModifiedFile,
    ProjectStatus,
    PruneReport,
    Reconciler,
    SyncReport,
    ValidationReport,
    get_project_status,
)
from .scanner import is_textor_generated, scan_directory
from .state import StateStore, reconstruct_components, reconstruct_sections

__all__ = [
    # Errors
    "TextorError",
    "PathTraversalError",
    "DestinationExistsError",
    "NotFoundError",
    "ConfigError",
    "DirtyRepositoryError",
    # Hashing
    "NormalizationMode",
    "DEFAULT_NORMALIZATION",
    "calculate_hash",
    "normalize_content",
    # Paths and scanning
    "secure_join",
    "to_project_path",
    "scan_directory",
    "is_textor_generated",
    # Ledger
    "State",
    "FileRecord",
    "FileKind",
    "Section",
    "Component",
    "StateStore",
    "reconstruct_components",
    "reconstruct_sections",
    # Safe file operations
    "FileOpResult",
    "MoveResult",
    "write_file_with_signature",
    "safe_delete",
    "safe_move",
    "safe_delete_dir",
    "ensure_dir",
    "ensure_not_exists",
    "cleanup_empty_dirs",
    # Reconciliation
    "Reconciler",
    "ProjectStatus",
    "ModifiedFile",
    "SyncReport",
    "PruneReport",
    "ValidationReport",
    "get_project_status",
]
