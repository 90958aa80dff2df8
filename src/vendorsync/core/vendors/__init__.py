"""vendorsync vendor subsystem.

Copies files, directories and line ranges from remote git repositories
into a project, pinned to exact revisions.

Key components:
- VendorConfig: Load vendor configuration from .vendorsync/vendors.yaml
- VendorLock: Deterministic lock file with resolved revisions and hashes
- VendorCache: Incremental-sync records that let unchanged refs skip fetching
- VendorSyncManager: Orchestrate sync/update/verify/validate operations
"""
from __future__ import annotations

from vendorsync.core.vendors.cache import VendorCache
from vendorsync.core.vendors.config import SyncSettings, VendorConfig
from vendorsync.core.vendors.conflicts import find_conflicts
from vendorsync.core.vendors.exceptions import (
    BinaryContentError,
    CacheCorruptionError,
    ConflictError,
    CopyError,
    ErrorKind,
    FetchError,
    GitCommandError,
    GroupNotFoundError,
    HookError,
    PathNotFoundError,
    PositionSpecError,
    StalePinnedRevisionError,
    SyncCancelledError,
    SyncPhase,
    VendorCacheError,
    VendorConfigError,
    VendorError,
    VendorLockError,
    VendorNotFoundError,
)
from vendorsync.core.vendors.extract import extract, place
from vendorsync.core.vendors.lock import VendorLock
from vendorsync.core.vendors.models import (
    CacheEntry,
    ConflictRecord,
    LockEntry,
    PathMapping,
    PositionSpec,
    RefSpec,
    SyncReport,
    FileStatus,
    SyncResult,
    VendorSpec,
    VerifyReport,
)
from vendorsync.core.vendors.positions import parse_path_position
from vendorsync.core.vendors.reporting import LoggingReporter, SyncReporter
from vendorsync.core.vendors.sync import VendorSyncManager
from vendorsync.core.vendors.verify import DriftVerifier

__all__ = [
    # Config
    "VendorConfig",
    "SyncSettings",
    # Lock / cache
    "VendorLock",
    "VendorCache",
    # Sync
    "VendorSyncManager",
    "SyncReporter",
    "LoggingReporter",
    "find_conflicts",
    "DriftVerifier",
    # Positions
    "parse_path_position",
    "extract",
    "place",
    # Models
    "VendorSpec",
    "RefSpec",
    "PathMapping",
    "PositionSpec",
    "LockEntry",
    "CacheEntry",
    "ConflictRecord",
    "SyncResult",
    "SyncReport",
    "FileStatus",
    "VerifyReport",
    # Exceptions
    "ErrorKind",
    "SyncPhase",
    "VendorError",
    "VendorConfigError",
    "VendorNotFoundError",
    "GroupNotFoundError",
    "PositionSpecError",
    "PathNotFoundError",
    "ConflictError",
    "FetchError",
    "GitCommandError",
    "StalePinnedRevisionError",
    "BinaryContentError",
    "VendorCacheError",
    "CacheCorruptionError",
    "HookError",
    "CopyError",
    "SyncCancelledError",
    "VendorLockError",
]
