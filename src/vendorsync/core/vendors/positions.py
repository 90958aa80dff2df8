"""Position grammar for mapping paths.

A mapping path may end with a position suffix selecting a range of the
file. The suffix starts at the first ``:L<digit>``::

    src/util.go:L5            single line
    src/util.go:L5-L20        line range (``L5:L20`` is accepted too)
    src/util.go:L5-EOF        line 5 through end of file
    src/util.go:L5C10:L10C30  byte-column range, end column inclusive
"""
from __future__ import annotations

import re

from vendorsync.core.vendors.exceptions import PositionSpecError
from vendorsync.core.vendors.models import PositionSpec

_SUFFIX_START = re.compile(r":L\d")

_COLUMN_RANGE = re.compile(r"^L(\d+)C(\d+):L(\d+)C(\d+)$")
_LINE_RANGE = re.compile(r"^L(\d+)[-:]L(\d+)$")
_TO_EOF = re.compile(r"^L(\d+)-EOF$")
_SINGLE_LINE = re.compile(r"^L(\d+)$")


def parse_path_position(text: str) -> tuple[str, PositionSpec | None]:
    """Split ``text`` into a path and an optional position.

    Raises:
        PositionSpecError: Empty path, unknown syntax or out-of-range values
    """
    raw = str(text or "")
    match = _SUFFIX_START.search(raw)
    if match is None:
        if not raw.strip():
            raise PositionSpecError("Empty path")
        return raw, None

    path = raw[: match.start()]
    if not path.strip():
        raise PositionSpecError(f"Empty path in '{raw}'")
    return path, parse_position(raw[match.start() + 1 :])


def parse_position(text: str) -> PositionSpec:
    """Parse a bare position string such as ``L5-L20``."""
    m = _COLUMN_RANGE.match(text)
    if m:
        if int(m.group(2)) < 1 or int(m.group(4)) < 1:
            raise PositionSpecError(
                f"Invalid position '{text}': columns start at 1", context={"position": text}
            )
        spec = PositionSpec(
            start_line=int(m.group(1)),
            start_col=int(m.group(2)),
            end_line=int(m.group(3)),
            end_col=int(m.group(4)),
        )
    elif (m := _LINE_RANGE.match(text)) is not None:
        spec = PositionSpec(start_line=int(m.group(1)), end_line=int(m.group(2)))
    elif (m := _TO_EOF.match(text)) is not None:
        spec = PositionSpec(start_line=int(m.group(1)), to_eof=True)
    elif (m := _SINGLE_LINE.match(text)) is not None:
        spec = PositionSpec(start_line=int(m.group(1)))
    else:
        raise PositionSpecError(f"Invalid position '{text}'", context={"position": text})

    _validate(spec, text)
    return spec


def _validate(spec: PositionSpec, text: str) -> None:
    ctx = {"position": text}
    if spec.start_line < 1:
        raise PositionSpecError(f"Invalid position '{text}': line numbers start at 1", context=ctx)
    if spec.end_line and spec.end_line < spec.start_line:
        raise PositionSpecError(
            f"Invalid position '{text}': end line {spec.end_line} is before start line {spec.start_line}",
            context=ctx,
        )
    if spec.has_columns:
        if spec.start_col < 1 or spec.end_col < 1:
            raise PositionSpecError(f"Invalid position '{text}': columns start at 1", context=ctx)
        if spec.last_line == spec.start_line and spec.end_col < spec.start_col:
            raise PositionSpecError(
                f"Invalid position '{text}': end column {spec.end_col} is before start column {spec.start_col}",
                context=ctx,
            )


def format_path_position(path: str, spec: PositionSpec | None) -> str:
    """Inverse of :func:`parse_path_position`."""
    if spec is None:
        return path
    return f"{path}:{spec.format()}"


__all__ = ["parse_path_position", "parse_position", "format_path_position"]
