"""Vendor subsystem exceptions.

Every failure the sync engine can report belongs to exactly one
:class:`ErrorKind`. Callers branch on ``error.kind`` (or on the exception
class) rather than on message text, and every error carries the vendor,
ref and phase it happened in through ``error.context``.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Mapping

from vendorsync.core.exceptions import VendorsyncError


class ErrorKind(str, Enum):
    """Closed set of failure categories."""

    INPUT = "input"
    FETCH = "fetch"
    STALE_REVISION = "stale_revision"
    BINARY = "binary"
    CACHE = "cache"
    HOOK = "hook"
    COPY = "copy"
    CANCELLED = "cancelled"
    LOCK = "lock"


class SyncPhase(str, Enum):
    """Where in a vendor sync a failure happened."""

    PRE_SYNC = "pre_sync"
    CACHE_CHECK = "cache_check"
    FETCH = "fetch"
    EXTRACT = "extract"
    POST_SYNC = "post_sync"


class VendorError(VendorsyncError):
    """Base exception for vendor subsystem errors."""

    kind: ErrorKind = ErrorKind.INPUT

    def __init__(
        self,
        message: str = "",
        *,
        vendor: str | None = None,
        ref: str | None = None,
        phase: SyncPhase | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        ctx = dict(context or {})
        if vendor:
            ctx["vendor"] = vendor
        if ref:
            ctx["ref"] = ref
        if phase is not None:
            ctx["phase"] = phase.value
        super().__init__(message, context=ctx)

    @property
    def vendor(self) -> str | None:
        return self.context.get("vendor")

    @property
    def ref(self) -> str | None:
        return self.context.get("ref")

    @property
    def phase(self) -> str | None:
        return self.context.get("phase")

    def with_context(
        self,
        *,
        vendor: str | None = None,
        ref: str | None = None,
        phase: SyncPhase | None = None,
    ) -> "VendorError":
        """Fill in vendor/ref/phase fields that are still missing.

        Lower layers (the extractor, the git client) do not know which
        vendor they are working for; the orchestrator annotates their
        errors on the way out.
        """
        if vendor and "vendor" not in self.context:
            self.context["vendor"] = vendor
        if ref and "ref" not in self.context:
            self.context["ref"] = ref
        if phase is not None and "phase" not in self.context:
            self.context["phase"] = phase.value
        return self

    def to_json_error(self) -> dict[str, Any]:
        payload = super().to_json_error()
        payload["kind"] = self.kind.value
        return payload


class VendorConfigError(VendorError):
    """Raised when vendor configuration is invalid or missing required fields."""


class VendorNotFoundError(VendorError):
    """Raised when a vendor is not found in configuration."""


class GroupNotFoundError(VendorError):
    """Raised when no configured vendor carries the requested group tag."""


class PositionSpecError(VendorError, ValueError):
    """Raised for malformed or out-of-range position specifiers."""


class PathNotFoundError(VendorError):
    """Raised when a mapped source path does not exist at the fetched revision."""


class ConflictError(VendorError):
    """Raised when two vendors would write the same destination path."""

    def __init__(self, message: str = "", *, conflicts: Any = (), **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.conflicts = tuple(conflicts)


class FetchError(VendorError):
    """Raised when fetching a ref fails after the shallow and full attempts."""

    kind = ErrorKind.FETCH


class GitCommandError(FetchError):
    """Raised when a single git invocation exits non-zero."""


class StalePinnedRevisionError(VendorError):
    """Raised when a locked revision is unreachable even after a full fetch.

    The fix is to re-resolve the ref (``vendorsync update``), not to retry.
    """

    kind = ErrorKind.STALE_REVISION

    def __init__(self, revision: str, **kwargs: Any) -> None:
        self.revision = revision
        short = revision[:7] if len(revision) > 7 else revision
        message = (
            f"Locked revision {short} is no longer reachable from the remote "
            "(deleted or force-pushed). Run 'vendorsync update' to re-resolve the ref."
        )
        ctx = dict(kwargs.pop("context", None) or {})
        ctx["revision"] = revision
        super().__init__(message, context=ctx, **kwargs)


class BinaryContentError(VendorError):
    """Raised when a position operation is attempted on binary content."""

    kind = ErrorKind.BINARY


class VendorCacheError(VendorError):
    """Raised when cache operations fail."""

    kind = ErrorKind.CACHE


class CacheCorruptionError(VendorCacheError):
    """Raised when a cache record cannot be parsed."""


class HookError(VendorError):
    """Raised when a pre/post-sync hook exits non-zero or times out."""

    kind = ErrorKind.HOOK

    def __init__(
        self,
        message: str = "",
        *,
        command: str = "",
        timed_out: bool = False,
        returncode: int | None = None,
        **kwargs: Any,
    ) -> None:
        ctx = dict(kwargs.pop("context", None) or {})
        ctx["command"] = command
        ctx["timed_out"] = timed_out
        if returncode is not None:
            ctx["returncode"] = returncode
        super().__init__(message, context=ctx, **kwargs)
        self.command = command
        self.timed_out = timed_out
        self.returncode = returncode


class CopyError(VendorError):
    """Raised when copying or placing a mapping fails on the local filesystem."""

    kind = ErrorKind.COPY


class SyncCancelledError(VendorError):
    """Raised when a sync is cancelled before or while it runs."""

    kind = ErrorKind.CANCELLED


class VendorLockError(VendorError):
    """Raised when lock file operations fail."""

    kind = ErrorKind.LOCK


__all__ = [
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
