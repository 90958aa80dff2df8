"""Apply a ref's path mappings from a fetched tree to the project.

A mapping copies a whole file, a whole directory, or (when either side
carries a position suffix) a line/column range spliced into the
destination file.
"""
from __future__ import annotations

import fnmatch
import hashlib
import logging
import os
import posixpath
import re
import shutil
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Iterable, Mapping, Sequence

from vendorsync.core.utils.io import write_bytes
from vendorsync.core.vendors.exceptions import (
    BinaryContentError,
    CopyError,
    PathNotFoundError,
    PositionSpecError,
    VendorConfigError,
)
from vendorsync.core.vendors.extract import extract, is_binary, normalize_newlines, place_file
from vendorsync.core.vendors.models import PathMapping, PositionLock, PositionSpec, RefSpec, VendorSpec
from vendorsync.core.vendors.positions import format_path_position, parse_path_position

logger = logging.getLogger(__name__)

_DRIVE_RE = re.compile(r"^[A-Za-z]:")


def clean_source_path(path: str, ref: str) -> str:
    """Strip a GitHub-style ``blob/<ref>/`` or ``tree/<ref>/`` prefix."""
    for prefix in (f"blob/{ref}/", f"tree/{ref}/"):
        if prefix in path:
            path = path.replace(prefix, "", 1)
    return path


def _match_segments(parts: Sequence[str], pattern: Sequence[str]) -> bool:
    if not pattern:
        return not parts
    head, rest = pattern[0], pattern[1:]
    if head == "**":
        return any(_match_segments(parts[i:], rest) for i in range(len(parts) + 1))
    return bool(parts) and fnmatch.fnmatchcase(parts[0], head) and _match_segments(parts[1:], rest)


def matches_exclude(rel_path: str, patterns: Iterable[str]) -> bool:
    """Whether ``rel_path`` matches any gitignore-style glob in ``patterns``.

    ``*`` and ``?`` stay within one path segment; ``**`` spans any number of
    segments, so ``docs/**`` matches everything under ``docs``.
    """
    parts = rel_path.replace("\\", "/").strip("/").split("/")
    for pattern in patterns:
        segments = [s for s in pattern.replace("\\", "/").strip("/").split("/") if s]
        if segments and _match_segments(parts, segments):
            return True
    return False


def auto_destination(source_file: str, default_target: str, vendor_name: str) -> str:
    """Destination for a mapping whose ``to`` is empty or ``.``."""
    base = posixpath.basename(source_file.rstrip("/"))
    if base in ("", ".", "/"):
        return vendor_name or "."
    if default_target:
        return posixpath.join(default_target, base)
    return base


def validate_dest_path(path: str) -> None:
    """Reject destinations that could write outside the project."""
    if "\0" in path:
        raise VendorConfigError("Invalid destination path: null bytes are not allowed")
    if path.startswith(("/", "\\")) or _DRIVE_RE.match(path) or os.path.isabs(path):
        raise VendorConfigError(f"Invalid destination path: {path} (absolute paths are not allowed)")
    if ".." in PurePosixPath(path.replace("\\", "/")).parts:
        raise VendorConfigError(f"Invalid destination path: {path} (path traversal is not allowed)")


def validate_vendor_name(name: str) -> None:
    if not name:
        raise VendorConfigError("Vendor name must not be empty")
    if "\0" in name:
        raise VendorConfigError(f"Invalid vendor name {name!r}: null bytes are not allowed")
    if "/" in name or "\\" in name:
        raise VendorConfigError(f"Invalid vendor name {name!r}: path separators are not allowed")
    if ".." in name:
        raise VendorConfigError(f"Invalid vendor name {name!r}: path traversal sequences are not allowed")


def split_destination(
    mapping: PathMapping, spec: RefSpec, vendor_name: str
) -> tuple[str, PositionSpec | None]:
    """Resolve a mapping's destination file and position (auto-naming included)."""
    dest = mapping.destination
    if dest in ("", "."):
        source_file, _ = parse_path_position(clean_source_path(mapping.source, spec.ref))
        return auto_destination(source_file, spec.default_target, vendor_name), None
    return parse_path_position(dest)


def normalize_destination(mapping: PathMapping, spec: RefSpec, vendor_name: str) -> str:
    """Destination path without position, normalized for comparisons."""
    dest_file, _ = split_destination(mapping, spec, vendor_name)
    return posixpath.normpath(dest_file.replace("\\", "/"))


@dataclass
class CopyStats:
    """What applying one ref's mappings did."""

    files_copied: int = 0
    dirs_created: int = 0
    written: list[str] = field(default_factory=list)
    positions: list[PositionLock] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add_written(self, rel: str) -> None:
        if rel not in self.written:
            self.written.append(rel)


class MappingCopier:
    """Copies mappings from a fetched working tree into ``repo_root``.

    ``known_hashes`` (project-relative path -> sha256 from the lock file)
    lets the copier tell upstream changes from hand edits: a file that
    still matches its recorded hash is overwritten without a warning.
    """

    def __init__(self, repo_root: Path, known_hashes: Mapping[str, str] | None = None) -> None:
        self.repo_root = Path(repo_root)
        self.known_hashes = dict(known_hashes or {})

    def copy_ref(self, worktree: Path, vendor: VendorSpec, spec: RefSpec) -> CopyStats:
        """Apply every mapping of ``spec`` in order; the first failure aborts."""
        stats = CopyStats()
        for mapping in spec.mappings:
            self.copy_mapping(worktree, vendor, spec, mapping, stats)
        return stats

    def copy_mapping(
        self,
        worktree: Path,
        vendor: VendorSpec,
        spec: RefSpec,
        mapping: PathMapping,
        stats: CopyStats,
    ) -> None:
        source_file, source_pos = parse_path_position(clean_source_path(mapping.source, spec.ref))
        dest_file, dest_pos = split_destination(mapping, spec, vendor.name)
        validate_dest_path(dest_file)

        src = self._source_path(worktree, source_file)
        dest = self.repo_root / dest_file

        if source_pos is not None or dest_pos is not None:
            self._copy_position(src, source_file, source_pos, dest, dest_file, dest_pos, stats)
        elif src.is_dir():
            self._copy_dir(src, dest, stats, mapping.exclude)
        elif src.is_file():
            self._copy_file(src, source_file, dest, stats)
        else:
            raise PathNotFoundError(f"Path '{source_file}' not found in {vendor.name}@{spec.ref}")

    def _source_path(self, worktree: Path, source_file: str) -> Path:
        root = Path(worktree).resolve()
        candidate = (root / source_file.lstrip("/")).resolve()
        if not candidate.is_relative_to(root) or candidate == root / ".git" or (root / ".git") in candidate.parents:
            raise VendorConfigError(f"Invalid source path: {source_file} (escapes the repository)")
        return candidate

    def _rel(self, path: Path) -> str:
        return path.relative_to(self.repo_root).as_posix()

    def _ensure_dir(self, path: Path, stats: CopyStats) -> None:
        missing = [p for p in (path, *path.parents) if not p.exists()]
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CopyError(f"Cannot create directory {path}: {e}") from e
        stats.dirs_created += len(missing)

    def _copy_file(self, src: Path, source_file: str, dest: Path, stats: CopyStats) -> None:
        try:
            data = src.read_bytes()
        except OSError as e:
            raise CopyError(f"Cannot read {source_file}: {e}") from e
        if is_binary(data):
            stats.warnings.append(f"{source_file} appears to be a binary file")
        if dest.is_file() and self._rel(dest) not in stats.written:
            existing = dest.read_bytes()
            if (
                normalize_newlines(existing) != normalize_newlines(data)
                and not self._unchanged_since_sync(dest, existing)
            ):
                stats.warnings.append(f"{self._rel(dest)} has local modifications that will be overwritten")
        self._ensure_dir(dest.parent, stats)
        try:
            write_bytes(dest, data)
            shutil.copymode(src, dest)
        except OSError as e:
            raise CopyError(f"Cannot write {self._rel(dest)}: {e}") from e
        stats.files_copied += 1
        stats.add_written(self._rel(dest))

    def _copy_dir(self, src: Path, dest: Path, stats: CopyStats, exclude: Sequence[str] = ()) -> None:
        self._ensure_dir(dest, stats)
        for dirpath, dirnames, filenames in os.walk(src):
            current = Path(dirpath)
            rel_dir = current.relative_to(src)
            dirnames[:] = sorted(
                d for d in dirnames if d != ".git" and not matches_exclude((rel_dir / d).as_posix(), exclude)
            )
            target_dir = dest / rel_dir
            self._ensure_dir(target_dir, stats)
            for name in sorted(filenames):
                item = current / name
                if exclude and matches_exclude((rel_dir / name).as_posix(), exclude):
                    logger.debug("Excluded %s", item.relative_to(src).as_posix())
                    continue
                if item.is_symlink():
                    stats.warnings.append(f"Skipping symlink {item.relative_to(src).as_posix()}")
                    continue
                self._copy_file(item, item.relative_to(src.parent).as_posix(), target_dir / name, stats)

    def _copy_position(
        self,
        src: Path,
        source_file: str,
        source_pos: PositionSpec | None,
        dest: Path,
        dest_file: str,
        dest_pos: PositionSpec | None,
        stats: CopyStats,
    ) -> None:
        try:
            content = src.read_bytes()
        except FileNotFoundError:
            raise PathNotFoundError(f"Path '{source_file}' not found") from None
        except OSError as e:
            raise CopyError(f"Cannot read {source_file}: {e}") from e

        data, digest = extract(content, source_pos or PositionSpec(start_line=1, to_eof=True))

        if self._rel(dest) not in stats.written:
            warning = self._local_modification(dest, dest_pos, data)
            if warning:
                stats.warnings.append(warning)

        self._ensure_dir(dest.parent, stats)
        place_file(dest, data, dest_pos)
        stats.files_copied += 1
        stats.add_written(self._rel(dest))
        stats.positions.append(
            PositionLock(
                source=format_path_position(source_file, source_pos),
                destination=format_path_position(dest_file, dest_pos),
                source_hash=digest,
            )
        )

    def _unchanged_since_sync(self, dest: Path, existing: bytes) -> bool:
        known = self.known_hashes.get(self._rel(dest))
        return known is not None and hashlib.sha256(existing).hexdigest() == known

    def _local_modification(self, dest: Path, dest_pos: PositionSpec | None, incoming: bytes) -> str | None:
        if not dest.is_file():
            return None
        existing = dest.read_bytes()
        if self._unchanged_since_sync(dest, existing):
            return None
        if dest_pos is None:
            if normalize_newlines(existing) != incoming:
                return f"{self._rel(dest)} has local modifications that will be overwritten"
            return None
        try:
            current, _ = extract(existing, dest_pos)
        except (PositionSpecError, BinaryContentError):
            # Range does not exist yet; placement reports the real problem.
            return None
        if current != incoming:
            return f"{self._rel(dest)} has local modifications at {dest_pos.format()} that will be overwritten"
        return None


__all__ = [
    "CopyStats",
    "MappingCopier",
    "auto_destination",
    "clean_source_path",
    "matches_exclude",
    "normalize_destination",
    "split_destination",
    "validate_dest_path",
    "validate_vendor_name",
]
