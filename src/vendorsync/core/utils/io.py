"""Core I/O utilities for vendorsync.

Single source of truth for safe file access patterns:
- Atomic writes with fsync and advisory locks
- Text, bytes, JSON and YAML read/write operations
- Directory management utilities
"""
from __future__ import annotations

import fcntl
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, IO, Optional, Union

import yaml

PathLike = Union[str, Path]


def ensure_parent_dir(path: Path) -> None:
    """Ensure the parent directory for ``path`` exists."""
    Path(path).parent.mkdir(parents=True, exist_ok=True)


def atomic_write(
    path: Path,
    write_fn: Callable[[IO[Any]], None],
    *,
    binary: bool = False,
    encoding: str = "utf-8",
) -> None:
    """Write to ``path`` atomically using a temp file + fsync + rename.

    - Parent directory is created if missing
    - Data is written to a temporary file in the same directory
    - File is fsync'd, unlocked, then atomically replaced
    - Any leftover temp file is cleaned up on failure

    Args:
        path: Target file path
        write_fn: Callable that writes content to the file object
        binary: Open the temp file in binary mode
        encoding: Text encoding when ``binary`` is False
    """
    path = Path(path)
    ensure_parent_dir(path)

    tmp_path: Optional[Path] = None
    try:
        with tempfile.NamedTemporaryFile(
            "wb" if binary else "w",
            encoding=None if binary else encoding,
            dir=str(path.parent),
            prefix=f".{path.name}.",
            delete=False,
        ) as f:
            tmp_path = Path(f.name)
            fcntl.flock(f.fileno(), fcntl.LOCK_EX)
            write_fn(f)
            f.flush()
            os.fsync(f.fileno())
            fcntl.flock(f.fileno(), fcntl.LOCK_UN)

        if path.exists():
            # Keep the permissions of the file being replaced.
            os.chmod(tmp_path, path.stat().st_mode & 0o7777)
        else:
            os.chmod(tmp_path, 0o644)
        os.replace(str(tmp_path), str(path))
    finally:
        if tmp_path is not None and tmp_path.exists():
            try:
                tmp_path.unlink()
            except OSError:
                pass


def write_text(path: PathLike, content: str) -> None:
    """Atomically write UTF-8 text to ``path``."""

    def _writer(f: IO[Any]) -> None:
        f.write(content)

    atomic_write(Path(path), _writer)


def write_bytes(path: PathLike, content: bytes) -> None:
    """Atomically write raw bytes to ``path``."""

    def _writer(f: IO[Any]) -> None:
        f.write(content)

    atomic_write(Path(path), _writer, binary=True)


def read_json(path: PathLike) -> Any:
    """Read a JSON file.

    Raises:
        FileNotFoundError: If the file does not exist
        json.JSONDecodeError: If the content is not valid JSON
    """
    with open(path, "r", encoding="utf-8") as f:
        fcntl.flock(f.fileno(), fcntl.LOCK_SH)
        try:
            return json.load(f)
        finally:
            fcntl.flock(f.fileno(), fcntl.LOCK_UN)


def write_json(path: PathLike, data: Any) -> None:
    """Atomically write JSON with stable indentation and a trailing newline."""

    def _writer(f: IO[Any]) -> None:
        json.dump(data, f, indent=2, sort_keys=False)
        f.write("\n")

    atomic_write(Path(path), _writer)


def read_yaml(path: PathLike, default: Any = None, raise_on_error: bool = False) -> Any:
    """Read YAML with error handling.

    Returns default if file is missing or invalid, unless raise_on_error is True.
    """
    path = Path(path)
    if not path.exists():
        if raise_on_error:
            raise FileNotFoundError(f"File not found: {path}")
        return default

    try:
        with open(path, "r", encoding="utf-8") as f:
            fcntl.flock(f.fileno(), fcntl.LOCK_SH)
            data = yaml.safe_load(f)
            fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        return data if data is not None else default
    except (OSError, yaml.YAMLError):
        if raise_on_error:
            raise
        return default


def write_yaml(path: PathLike, data: Any) -> None:
    """Atomically write YAML data to ``path``.

    Key order is preserved; callers sort their collections before writing
    so that repeated writes of the same data are byte-identical.
    """

    def _writer(f: IO[Any]) -> None:
        yaml.safe_dump(
            data,
            f,
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )

    atomic_write(Path(path), _writer)


__all__ = [
    "PathLike",
    "ensure_parent_dir",
    "atomic_write",
    "write_text",
    "write_bytes",
    "read_json",
    "write_json",
    "read_yaml",
    "write_yaml",
]
