"""User-interaction sink for sync progress.

The engine never prints. It tells a :class:`SyncReporter` what is
happening and the caller decides where that goes: log records by
default, the terminal for the CLI.
"""
from __future__ import annotations

import logging
import threading
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class SyncReporter(Protocol):
    def progress(self, message: str) -> None: ...

    def success(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...


class LoggingReporter:
    """Reporter that forwards everything to the ``logging`` module."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self.log = log or logger

    def progress(self, message: str) -> None:
        self.log.info(message)

    def success(self, message: str) -> None:
        self.log.info(message)

    def warning(self, message: str) -> None:
        self.log.warning(message)


class RecordingReporter:
    """Reporter that keeps every message; safe to share between workers."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.messages: list[tuple[str, str]] = []

    def _add(self, level: str, message: str) -> None:
        with self._lock:
            self.messages.append((level, message))

    def progress(self, message: str) -> None:
        self._add("progress", message)

    def success(self, message: str) -> None:
        self._add("success", message)

    def warning(self, message: str) -> None:
        self._add("warning", message)

    @property
    def warnings(self) -> list[str]:
        with self._lock:
            return [m for level, m in self.messages if level == "warning"]


__all__ = ["SyncReporter", "LoggingReporter", "RecordingReporter"]
