"""Vendor data models.

Provides immutable dataclasses for vendor configuration, lock and cache
state, and the per-job results exchanged between the orchestrator and
the aggregation step.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from vendorsync.core.vendors.exceptions import VendorError


@dataclass(frozen=True, slots=True)
class PositionSpec:
    """A line/column range inside a file.

    Attributes:
        start_line: First line, 1-indexed
        end_line: Last line (0 means same as ``start_line``)
        start_col: First byte column, 1-indexed (0 means whole lines)
        end_col: Last byte column, 1-indexed and inclusive
        to_eof: Extract through the final line, ignoring ``end_line``
    """

    start_line: int
    end_line: int = 0
    start_col: int = 0
    end_col: int = 0
    to_eof: bool = False

    @property
    def last_line(self) -> int:
        return self.end_line or self.start_line

    @property
    def has_columns(self) -> bool:
        return self.start_col > 0

    def format(self) -> str:
        """Render the canonical position string (``L5``, ``L5-L9`` ...)."""
        if self.to_eof:
            return f"L{self.start_line}-EOF"
        if self.has_columns:
            return f"L{self.start_line}C{self.start_col}:L{self.last_line}C{self.end_col}"
        if self.last_line != self.start_line:
            return f"L{self.start_line}-L{self.last_line}"
        return f"L{self.start_line}"


@dataclass(frozen=True, slots=True)
class PathMapping:
    """One ``from``/``to`` pair of a ref spec.

    Either side may carry a position suffix such as ``:L5-L20``. ``exclude``
    holds glob patterns, relative to a directory source, for files to skip.
    """

    source: str
    destination: str = ""
    exclude: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PathMapping:
        return cls(
            source=str(data["from"]),
            destination=str(data.get("to") or ""),
            exclude=tuple(str(p) for p in data.get("exclude") or []),
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"from": self.source, "to": self.destination}
        if self.exclude:
            result["exclude"] = list(self.exclude)
        return result


@dataclass(frozen=True, slots=True)
class HookSpec:
    """Shell commands run around a vendor sync."""

    pre_sync: str | None = None
    post_sync: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> HookSpec:
        data = data or {}
        return cls(pre_sync=data.get("pre_sync") or None, post_sync=data.get("post_sync") or None)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        if self.pre_sync:
            result["pre_sync"] = self.pre_sync
        if self.post_sync:
            result["post_sync"] = self.post_sync
        return result


@dataclass(frozen=True, slots=True)
class RefSpec:
    """A ref to track and the paths to vendor from it.

    Attributes:
        ref: Branch, tag or revision
        default_target: Directory used for auto-named destinations
        mappings: Ordered path mappings
    """

    ref: str
    default_target: str = ""
    mappings: tuple[PathMapping, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RefSpec:
        return cls(
            ref=str(data["ref"]),
            default_target=str(data.get("default_target") or ""),
            mappings=tuple(PathMapping.from_dict(m) for m in data.get("mapping") or []),
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"ref": self.ref}
        if self.default_target:
            result["default_target"] = self.default_target
        result["mapping"] = [m.to_dict() for m in self.mappings]
        return result


@dataclass(frozen=True, slots=True)
class VendorSpec:
    """Represents a vendor configuration.

    Attributes:
        name: Unique vendor identifier
        url: Git repository URL
        license: SPDX identifier recorded in the lock file
        groups: Tags used to select vendors in batches
        hooks: Pre/post-sync shell commands
        specs: Tracked refs, in declaration order
    """

    name: str
    url: str
    license: str = ""
    groups: tuple[str, ...] = ()
    hooks: HookSpec = field(default_factory=HookSpec)
    specs: tuple[RefSpec, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VendorSpec:
        return cls(
            name=str(data["name"]),
            url=str(data["url"]),
            license=str(data.get("license") or ""),
            groups=tuple(str(g) for g in data.get("groups") or []),
            hooks=HookSpec.from_dict(data.get("hooks")),
            specs=tuple(RefSpec.from_dict(s) for s in data.get("specs") or []),
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"name": self.name, "url": self.url}
        if self.license:
            result["license"] = self.license
        if self.groups:
            result["groups"] = list(self.groups)
        hooks = self.hooks.to_dict()
        if hooks:
            result["hooks"] = hooks
        result["specs"] = [s.to_dict() for s in self.specs]
        return result


@dataclass(frozen=True, slots=True)
class PositionLock:
    """Provenance of one position-mode extraction.

    Attributes:
        source: Source path with position suffix
        destination: Destination path with position suffix, if any
        source_hash: ``sha256:<hex>`` of exactly the extracted bytes
    """

    source: str
    destination: str
    source_hash: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PositionLock:
        return cls(
            source=str(data["from"]),
            destination=str(data["to"]),
            source_hash=str(data["source_hash"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"from": self.source, "to": self.destination, "source_hash": self.source_hash}


@dataclass(frozen=True, slots=True)
class LockEntry:
    """Entry in the vendor lock file (one per vendor and ref)."""

    name: str
    ref: str
    commit_hash: str
    license: str = ""
    updated: str = ""
    file_hashes: dict[str, str] = field(default_factory=dict)
    positions: tuple[PositionLock, ...] = ()

    @property
    def key(self) -> tuple[str, str]:
        return (self.name, self.ref)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "name": self.name,
            "ref": self.ref,
            "commit_hash": self.commit_hash,
        }
        if self.license:
            result["license"] = self.license
        result["updated"] = self.updated
        if self.file_hashes:
            result["file_hashes"] = {k: self.file_hashes[k] for k in sorted(self.file_hashes)}
        if self.positions:
            result["positions"] = [p.to_dict() for p in self.positions]
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LockEntry:
        required_keys = {"name", "ref", "commit_hash"}
        missing = required_keys - set(data.keys())
        if missing:
            raise ValueError(f"Missing required keys: {sorted(missing)}")
        return cls(
            name=str(data["name"]),
            ref=str(data["ref"]),
            commit_hash=str(data["commit_hash"]),
            license=str(data.get("license") or ""),
            updated=str(data.get("updated") or ""),
            file_hashes={str(k): str(v) for k, v in (data.get("file_hashes") or {}).items()},
            positions=tuple(PositionLock.from_dict(p) for p in data.get("positions") or []),
        )


@dataclass(frozen=True, slots=True)
class FileChecksum:
    """Checksum of one vendored file, path relative to the project root."""

    path: str
    sha256: str

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "sha256": self.sha256}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FileChecksum:
        return cls(path=str(data["path"]), sha256=str(data["sha256"]))


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """Incremental-sync record for one vendor and ref."""

    vendor: str
    ref: str
    commit_hash: str
    mapping_digest: str
    cached_at: str
    files: tuple[FileChecksum, ...] = ()
    positions: tuple[PositionLock, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "vendor": self.vendor,
            "ref": self.ref,
            "commit_hash": self.commit_hash,
            "mapping_digest": self.mapping_digest,
            "cached_at": self.cached_at,
            "files": [f.to_dict() for f in self.files],
            "positions": [p.to_dict() for p in self.positions],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CacheEntry:
        return cls(
            vendor=str(data["vendor"]),
            ref=str(data["ref"]),
            commit_hash=str(data["commit_hash"]),
            mapping_digest=str(data["mapping_digest"]),
            cached_at=str(data["cached_at"]),
            files=tuple(FileChecksum.from_dict(f) for f in data.get("files") or []),
            positions=tuple(PositionLock.from_dict(p) for p in data.get("positions") or []),
        )


@dataclass(frozen=True, slots=True)
class SyncJob:
    """Unit of work for one vendor.

    Attributes:
        vendor: Vendor configuration
        locked_refs: ref -> pinned revision; a missing ref means "latest"
        force: Ignore lock and cache
        no_cache: Ignore the incremental cache only
        previous: ref -> lock entry from the last successful sync
    """

    vendor: VendorSpec
    locked_refs: dict[str, str] = field(default_factory=dict)
    force: bool = False
    no_cache: bool = False
    previous: dict[str, LockEntry] = field(default_factory=dict)

    @property
    def known_hashes(self) -> dict[str, str]:
        hashes: dict[str, str] = {}
        for entry in self.previous.values():
            hashes.update(entry.file_hashes)
        return hashes


@dataclass(frozen=True, slots=True)
class RefOutcome:
    """What a sync did for one ref of a vendor."""

    ref: str
    commit_hash: str
    files_copied: int = 0
    dirs_created: int = 0
    cache_hit: bool = False
    positions: tuple[PositionLock, ...] = ()
    file_hashes: dict[str, str] = field(default_factory=dict)
    cache_entry: CacheEntry | None = None


@dataclass(frozen=True, slots=True)
class SyncResult:
    """Result of syncing one vendor.

    Attributes:
        vendor_name: Vendor name
        refs: Outcomes of the refs that completed, in declaration order
        warnings: Non-fatal messages collected during the sync
        error: The failure, or None when every phase succeeded
    """

    vendor_name: str
    refs: tuple[RefOutcome, ...] = ()
    warnings: tuple[str, ...] = ()
    error: VendorError | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def files_copied(self) -> int:
        return sum(r.files_copied for r in self.refs)

    @property
    def dirs_created(self) -> int:
        return sum(r.dirs_created for r in self.refs)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "vendor": self.vendor_name,
            "success": self.success,
            "files_copied": self.files_copied,
            "dirs_created": self.dirs_created,
            "refs": [
                {
                    "ref": r.ref,
                    "commit_hash": r.commit_hash,
                    "files_copied": r.files_copied,
                    "cache_hit": r.cache_hit,
                }
                for r in self.refs
            ],
        }
        if self.warnings:
            result["warnings"] = list(self.warnings)
        if self.error is not None:
            result["error"] = self.error.to_json_error()
        return result


@dataclass(frozen=True, slots=True)
class SyncReport:
    """Outcome of a ``sync``/``update`` call across all selected vendors."""

    results: tuple[SyncResult, ...] = ()
    lock_entries: tuple[LockEntry, ...] = ()
    dry_run: bool = False

    @property
    def success(self) -> bool:
        return all(r.success for r in self.results)

    @property
    def errors(self) -> dict[str, VendorError]:
        return {r.vendor_name: r.error for r in self.results if r.error is not None}

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "dry_run": self.dry_run,
            "results": [r.to_dict() for r in self.results],
            "lock_entries": [e.to_dict() for e in self.lock_entries],
        }


@dataclass(frozen=True, slots=True)
class ConflictOwner:
    """One side of a conflict: who writes the path."""

    vendor: str
    ref: str
    mapping: str

    def to_dict(self) -> dict[str, Any]:
        return {"vendor": self.vendor, "ref": self.ref, "mapping": self.mapping}


@dataclass(frozen=True, slots=True)
class ConflictRecord:
    """Two vendors writing the same (or a nested) destination path.

    ``first`` always sorts before ``second`` so a record does not depend
    on declaration order.
    """

    path: str
    kind: str
    first: ConflictOwner
    second: ConflictOwner

    def describe(self) -> str:
        verb = "both write" if self.kind == "exact" else "overlap at"
        return (
            f"{self.first.vendor}@{self.first.ref} and {self.second.vendor}@{self.second.ref} "
            f"{verb} '{self.path}'"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "kind": self.kind,
            "first": self.first.to_dict(),
            "second": self.second.to_dict(),
        }


@dataclass(frozen=True, slots=True)
class HookContext:
    """Values exposed to hook commands as environment variables."""

    vendor: str
    url: str
    ref: str
    commit: str
    root: str
    files_copied: int = 0
    dirs_created: int = 0


@dataclass(frozen=True, slots=True)
class FileStatus:
    """Drift status of one vendored file or position range.

    ``status`` is one of ``verified``, ``modified``, ``deleted`` or
    ``added``; ``kind`` is ``file`` or ``position``. Added files belong to
    no vendor.
    """

    path: str
    status: str
    kind: str = "file"
    vendor: str | None = None
    expected_hash: str | None = None
    actual_hash: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "status": self.status,
            "type": self.kind,
            "vendor": self.vendor,
            "expected_hash": self.expected_hash,
            "actual_hash": self.actual_hash,
        }


@dataclass(frozen=True, slots=True)
class VerifyReport:
    """Offline comparison of the project against the lock file."""

    files: tuple[FileStatus, ...] = ()

    def count(self, status: str) -> int:
        return sum(1 for f in self.files if f.status == status)

    @property
    def result(self) -> str:
        """``FAIL`` on modified or deleted content, ``WARN`` on added files."""
        if self.count("modified") or self.count("deleted"):
            return "FAIL"
        if self.count("added"):
            return "WARN"
        return "PASS"

    @property
    def success(self) -> bool:
        return self.result != "FAIL"

    def to_dict(self) -> dict[str, Any]:
        return {
            "result": self.result,
            "summary": {
                status: self.count(status) for status in ("verified", "modified", "deleted", "added")
            },
            "files": [f.to_dict() for f in self.files],
        }


__all__ = [
    "PositionSpec",
    "PathMapping",
    "HookSpec",
    "RefSpec",
    "VendorSpec",
    "PositionLock",
    "LockEntry",
    "FileChecksum",
    "CacheEntry",
    "SyncJob",
    "RefOutcome",
    "SyncResult",
    "SyncReport",
    "ConflictOwner",
    "ConflictRecord",
    "HookContext",
    "FileStatus",
    "VerifyReport",
]
