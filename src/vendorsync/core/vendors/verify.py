"""Offline drift detection against the lock file.

Compares what is on disk with the file hashes and position hashes
recorded at sync time. Nothing is fetched: a vendored tree can be
checked in CI without network access.
"""
from __future__ import annotations

import hashlib
import logging
import os
from dataclasses import replace
from pathlib import Path
from typing import Iterable

from vendorsync.core.vendors.cache import VendorCache, file_checksum
from vendorsync.core.vendors.copier import split_destination
from vendorsync.core.vendors.exceptions import BinaryContentError, CacheCorruptionError, PositionSpecError
from vendorsync.core.vendors.extract import content_hash, extract, normalize_newlines
from vendorsync.core.vendors.models import FileStatus, LockEntry, PositionLock, VendorSpec, VerifyReport
from vendorsync.core.vendors.positions import parse_path_position

logger = logging.getLogger(__name__)


class DriftVerifier:
    """Checks vendored files in ``repo_root`` against lock entries.

    Args:
        repo_root: Project root
        cache: Used for lock entries written without file hashes
    """

    def __init__(self, repo_root: Path, cache: VendorCache | None = None) -> None:
        self.repo_root = Path(repo_root)
        self.cache = cache or VendorCache(self.repo_root)

    def verify(self, entries: Iterable[LockEntry], vendors: Iterable[VendorSpec] = ()) -> VerifyReport:
        """Report every locked file and position, plus unknown files in vendored directories."""
        entries = list(entries)
        expected = self._expected_files(entries)
        statuses = [self._check_file(path, vendor, digest) for path, (vendor, digest) in sorted(expected.items())]

        position_files: set[str] = set()
        for entry in entries:
            for position in entry.positions:
                dest_file, _ = parse_path_position(position.destination)
                position_files.add(dest_file)
                statuses.append(self._check_position(entry, position, expected))

        known = set(expected) | position_files
        statuses.extend(self._added_files(vendors, known))
        return VerifyReport(files=tuple(statuses))

    def _expected_files(self, entries: list[LockEntry]) -> dict[str, tuple[str, str]]:
        expected: dict[str, tuple[str, str]] = {}
        for entry in entries:
            hashes = entry.file_hashes or self._cached_hashes(entry)
            for path, digest in hashes.items():
                expected[path] = (entry.name, digest)
        return expected

    def _cached_hashes(self, entry: LockEntry) -> dict[str, str]:
        try:
            record = self.cache.load(entry.name, entry.ref)
        except CacheCorruptionError as e:
            logger.warning("Ignoring cache for %s@%s: %s", entry.name, entry.ref, e)
            return {}
        if record is None or record.commit_hash != entry.commit_hash:
            return {}
        return {f.path: f.sha256 for f in record.files}

    def _check_file(self, path: str, vendor: str, expected: str) -> FileStatus:
        try:
            actual = file_checksum(self.repo_root / path)
        except FileNotFoundError:
            return FileStatus(path, "deleted", vendor=vendor, expected_hash=expected)
        status = "verified" if actual == expected else "modified"
        return FileStatus(path, status, vendor=vendor, expected_hash=expected, actual_hash=actual)

    def _check_position(
        self,
        entry: LockEntry,
        position: PositionLock,
        expected: dict[str, tuple[str, str]],
    ) -> FileStatus:
        dest_file, dest_pos = parse_path_position(position.destination)
        status = FileStatus(
            position.destination,
            "verified",
            kind="position",
            vendor=entry.name,
            expected_hash=position.source_hash,
        )
        try:
            content = (self.repo_root / dest_file).read_bytes()
        except FileNotFoundError:
            return replace(status, status="deleted")

        # An untouched file still holds exactly what was placed.
        locked = expected.get(dest_file)
        if locked is not None and hashlib.sha256(content).hexdigest() == locked[1]:
            return replace(status, actual_hash=position.source_hash)

        if dest_pos is None:
            actual = content_hash(normalize_newlines(content))
        else:
            try:
                _, actual = extract(content, dest_pos)
            except (PositionSpecError, BinaryContentError) as e:
                logger.debug("Cannot extract %s: %s", position.destination, e)
                return replace(status, status="modified")
        if actual != position.source_hash:
            return replace(status, status="modified", actual_hash=actual)
        return replace(status, actual_hash=actual)

    def _added_files(self, vendors: Iterable[VendorSpec], known: set[str]) -> list[FileStatus]:
        added: list[FileStatus] = []
        seen: set[str] = set()
        for vendor in vendors:
            for spec in vendor.specs:
                for mapping in spec.mappings:
                    dest_file, dest_pos = split_destination(mapping, spec, vendor.name)
                    directory = self.repo_root / dest_file
                    if dest_pos is not None or not directory.is_dir():
                        continue
                    for dirpath, dirnames, filenames in os.walk(directory):
                        dirnames.sort()
                        for name in sorted(filenames):
                            rel = (Path(dirpath) / name).relative_to(self.repo_root).as_posix()
                            if rel in known or rel in seen:
                                continue
                            seen.add(rel)
                            added.append(
                                FileStatus(rel, "added", actual_hash=file_checksum(self.repo_root / rel))
                            )
        return added


__all__ = ["DriftVerifier"]
