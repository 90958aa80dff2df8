"""Position-precise extraction and placement.

All arithmetic happens on bytes after CRLF is normalized to LF; columns
are byte offsets. Content is split on ``\\n`` so a trailing newline yields
a final empty line and an empty file is exactly one empty line.

Placing into a CRLF file rewrites it with LF line endings.
"""
from __future__ import annotations

import hashlib
import logging
from pathlib import Path

from vendorsync.core.utils.io import write_bytes
from vendorsync.core.vendors.exceptions import (
    BinaryContentError,
    CopyError,
    PathNotFoundError,
    PositionSpecError,
)
from vendorsync.core.vendors.models import PositionSpec

logger = logging.getLogger(__name__)

BINARY_SCAN_BYTES = 8000


def normalize_newlines(content: bytes) -> bytes:
    """Convert ``\\r\\n`` to ``\\n``; a lone ``\\r`` is left alone."""
    return content.replace(b"\r\n", b"\n")


def is_binary(content: bytes) -> bool:
    """Heuristic used by git itself: a NUL byte near the start of the file."""
    return b"\0" in content[:BINARY_SCAN_BYTES]


def content_hash(content: bytes) -> str:
    return "sha256:" + hashlib.sha256(content).hexdigest()


def _is_char_boundary(line: bytes, index: int) -> bool:
    if index <= 0 or index >= len(line):
        return True
    return (line[index] & 0xC0) != 0x80


def _check_boundary(line: bytes, index: int, spec: PositionSpec) -> None:
    if not _is_char_boundary(line, index):
        raise PositionSpecError(
            f"Position {spec.format()} splits a multi-byte UTF-8 character",
            context={"position": spec.format()},
        )


def _line_bounds(lines: list[bytes], spec: PositionSpec, label: str) -> tuple[int, int]:
    total = len(lines)
    if spec.start_line > total:
        raise PositionSpecError(
            f"{label} line {spec.start_line} does not exist ({total} lines)",
            context={"position": spec.format()},
        )
    end = total if spec.to_eof else spec.last_line
    if end > total:
        raise PositionSpecError(
            f"{label} line {end} does not exist ({total} lines)",
            context={"position": spec.format()},
        )
    return spec.start_line, end


def extract(content: bytes, spec: PositionSpec) -> tuple[bytes, str]:
    """Extract the bytes selected by ``spec``.

    Returns:
        Tuple of (extracted bytes, ``sha256:<hex>`` of those bytes)

    Raises:
        BinaryContentError: If ``content`` looks binary
        PositionSpecError: If the range does not fit the content
    """
    if is_binary(content):
        raise BinaryContentError("Position extraction from binary content is not supported")

    lines = normalize_newlines(content).split(b"\n")
    start, end = _line_bounds(lines, spec, "Source")

    if spec.to_eof or not spec.has_columns:
        data = b"\n".join(lines[start - 1 : end])
        return data, content_hash(data)

    first = lines[start - 1]
    if start == end:
        if spec.start_col > len(first) or spec.end_col > len(first):
            raise PositionSpecError(
                f"Columns {spec.start_col}-{spec.end_col} exceed line {start} length ({len(first)})",
                context={"position": spec.format()},
            )
        _check_boundary(first, spec.start_col - 1, spec)
        _check_boundary(first, spec.end_col, spec)
        data = first[spec.start_col - 1 : spec.end_col]
        return data, content_hash(data)

    if spec.start_col > len(first) + 1:
        raise PositionSpecError(
            f"Start column {spec.start_col} exceeds line {start} length ({len(first)})",
            context={"position": spec.format()},
        )
    last = lines[end - 1]
    if spec.end_col > len(last):
        raise PositionSpecError(
            f"End column {spec.end_col} exceeds line {end} length ({len(last)})",
            context={"position": spec.format()},
        )
    _check_boundary(first, spec.start_col - 1, spec)
    _check_boundary(last, spec.end_col, spec)

    parts = [first[spec.start_col - 1 :], *lines[start : end - 1], last[: spec.end_col]]
    data = b"\n".join(parts)
    return data, content_hash(data)


def place(destination: bytes, insert: bytes, spec: PositionSpec | None) -> bytes:
    """Splice ``insert`` into ``destination`` at ``spec``.

    Without a spec the whole destination is replaced. Everything outside
    the targeted range is preserved.
    """
    if spec is None:
        return insert
    if is_binary(destination):
        raise BinaryContentError("Position placement into binary content is not supported")

    lines = normalize_newlines(destination).split(b"\n")
    start, end = _line_bounds(lines, spec, "Target")

    if spec.to_eof or not spec.has_columns:
        replaced = insert.split(b"\n")
    else:
        first = lines[start - 1]
        last = lines[end - 1]
        if spec.start_col > len(first) + 1:
            raise PositionSpecError(
                f"Target start column {spec.start_col} exceeds line {start} length ({len(first)})",
                context={"position": spec.format()},
            )
        if spec.end_col > len(last):
            raise PositionSpecError(
                f"Target end column {spec.end_col} exceeds line {end} length ({len(last)})",
                context={"position": spec.format()},
            )
        _check_boundary(first, spec.start_col - 1, spec)
        _check_boundary(last, spec.end_col, spec)
        replaced = (first[: spec.start_col - 1] + insert + last[spec.end_col :]).split(b"\n")

    return b"\n".join([*lines[: start - 1], *replaced, *lines[end:]])


def extract_file(path: Path, spec: PositionSpec) -> tuple[bytes, str]:
    """Read ``path`` and extract ``spec`` from it."""
    try:
        content = Path(path).read_bytes()
    except FileNotFoundError:
        raise PathNotFoundError(f"Source file not found: {path}") from None
    except OSError as e:
        raise CopyError(f"Cannot read {path}: {e}") from e
    return extract(content, spec)


def place_file(path: Path, insert: bytes, spec: PositionSpec | None) -> None:
    """Place ``insert`` into the file at ``path`` (atomic write).

    A position-mode placement needs an existing target; a whole-file
    placement creates it.
    """
    path = Path(path)
    if spec is None:
        existing = b""
    else:
        try:
            existing = path.read_bytes()
        except FileNotFoundError:
            raise CopyError(
                f"Target file {path} must exist for placement at {spec.format()}"
            ) from None
    updated = place(existing, insert, spec)
    try:
        write_bytes(path, updated)
    except OSError as e:
        raise CopyError(f"Cannot write {path}: {e}") from e
    logger.debug("Placed %d bytes into %s", len(insert), path)


__all__ = [
    "BINARY_SCAN_BYTES",
    "normalize_newlines",
    "is_binary",
    "content_hash",
    "extract",
    "place",
    "extract_file",
    "place_file",
]
