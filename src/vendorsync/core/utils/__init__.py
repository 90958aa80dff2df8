"""Utility helpers for vendorsync core.

- io: File I/O operations (atomic writes, JSON, YAML, locking)
- subprocess: Subprocess execution with timeouts and cancellation
- logging: Logging setup for the command line
"""
from __future__ import annotations

from .io import (
    atomic_write,
    read_json,
    read_yaml,
    write_bytes,
    write_json,
    write_text,
    write_yaml,
)
from .subprocess import run_command, terminate_process_tree

__all__ = [
    "atomic_write",
    "read_json",
    "read_yaml",
    "write_bytes",
    "write_json",
    "write_text",
    "write_yaml",
    "run_command",
    "terminate_process_tree",
]
