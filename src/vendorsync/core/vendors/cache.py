"""Incremental sync cache.

One JSON record per vendor@ref under ``.vendorsync/cache/`` remembers the
revision that was last vendored, a digest of the ref's mappings and a
checksum of every file written. A sync may be skipped only when all of
them still match; anything else (including an unreadable record) is a
cache miss.
"""
from __future__ import annotations

import hashlib
import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from vendorsync.core.utils.io import read_json, write_json
from vendorsync.core.vendors.exceptions import CacheCorruptionError, VendorCacheError
from vendorsync.core.vendors.models import CacheEntry, FileChecksum, PositionLock, RefSpec

logger = logging.getLogger(__name__)

MAX_CACHE_FILES = 1000

_UNSAFE_FILENAME_RE = re.compile(r"[^A-Za-z0-9._-]")


def mapping_digest(spec: RefSpec) -> str:
    """Digest of everything in a ref spec that affects what gets written."""
    payload = json.dumps(spec.to_dict(), sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def file_checksum(path: Path) -> str:
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            h.update(chunk)
    return h.hexdigest()


def utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class VendorCache:
    """File-backed store of :class:`CacheEntry` records."""

    def __init__(self, repo_root: Path) -> None:
        self.repo_root = Path(repo_root)

    @property
    def cache_dir(self) -> Path:
        return self.repo_root / ".vendorsync" / "cache"

    def entry_path(self, vendor: str, ref: str) -> Path:
        key = f"{vendor}@{ref}"
        safe = _UNSAFE_FILENAME_RE.sub("_", key)
        # Sanitizing is lossy ("a/b" and "a_b"), the suffix keeps keys apart.
        suffix = hashlib.sha256(key.encode("utf-8")).hexdigest()[:8]
        return self.cache_dir / f"{safe}-{suffix}.json"

    def load(self, vendor: str, ref: str) -> CacheEntry | None:
        """Load the record for ``vendor@ref``.

        Returns:
            The entry, or None when there is none

        Raises:
            CacheCorruptionError: If the record exists but cannot be parsed
        """
        path = self.entry_path(vendor, ref)
        if not path.exists():
            return None
        try:
            entry = CacheEntry.from_dict(read_json(path))
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            raise CacheCorruptionError(
                f"Corrupt cache record {path.name}: {e}", vendor=vendor, ref=ref
            ) from e
        if entry.vendor != vendor or entry.ref != ref:
            raise CacheCorruptionError(
                f"Cache record {path.name} belongs to {entry.vendor}@{entry.ref}",
                vendor=vendor,
                ref=ref,
            )
        return entry

    def can_skip(self, vendor: str, ref: str, revision: str | None, digest: str) -> bool:
        """Whether ``vendor@ref`` is already vendored at ``revision``.

        Never raises: every problem is a miss.
        """
        if not revision:
            return False
        try:
            entry = self.load(vendor, ref)
        except CacheCorruptionError as e:
            logger.warning("Ignoring cache for %s@%s: %s", vendor, ref, e)
            return False
        if entry is None:
            return False
        if entry.commit_hash != revision:
            logger.debug("Cache miss for %s@%s: revision changed", vendor, ref)
            return False
        if entry.mapping_digest != digest:
            logger.debug("Cache miss for %s@%s: mappings changed", vendor, ref)
            return False
        for item in entry.files:
            path = self.repo_root / item.path
            try:
                actual = file_checksum(path)
            except OSError:
                logger.warning("Cache miss for %s@%s: %s is missing", vendor, ref, item.path)
                return False
            if actual != item.sha256:
                logger.warning("Cache miss for %s@%s: %s was modified", vendor, ref, item.path)
                return False
        return True

    def build(
        self,
        vendor: str,
        ref: str,
        revision: str,
        digest: str,
        files: Iterable[str],
        positions: Iterable[PositionLock] = (),
    ) -> CacheEntry:
        """Checksum ``files`` (project-relative paths) into a new entry.

        ``positions`` are kept so a cache hit can still report them.
        """
        unique = sorted(set(files))
        if len(unique) > MAX_CACHE_FILES:
            logger.warning(
                "%s@%s wrote %d files; caching checksums for the first %d only",
                vendor,
                ref,
                len(unique),
                MAX_CACHE_FILES,
            )
            unique = unique[:MAX_CACHE_FILES]

        checksums: list[FileChecksum] = []
        for rel in unique:
            path = self.repo_root / rel
            try:
                checksums.append(FileChecksum(path=rel, sha256=file_checksum(path)))
            except OSError:
                # Not there any more; the next can_skip will miss on it.
                continue
        return CacheEntry(
            vendor=vendor,
            ref=ref,
            commit_hash=revision,
            mapping_digest=digest,
            cached_at=utc_now(),
            files=tuple(checksums),
            positions=tuple(positions),
        )

    def save(self, entry: CacheEntry) -> None:
        try:
            write_json(self.entry_path(entry.vendor, entry.ref), entry.to_dict())
        except OSError as e:
            raise VendorCacheError(
                f"Failed to write cache record: {e}", vendor=entry.vendor, ref=entry.ref
            ) from e

    def delete(self, vendor: str, ref: str) -> None:
        try:
            self.entry_path(vendor, ref).unlink(missing_ok=True)
        except OSError as e:
            raise VendorCacheError(f"Failed to delete cache record: {e}", vendor=vendor, ref=ref) from e


__all__ = ["MAX_CACHE_FILES", "VendorCache", "file_checksum", "mapping_digest", "utc_now"]
