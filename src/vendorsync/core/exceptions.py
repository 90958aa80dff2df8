from __future__ import annotations

from typing import Any, Dict, Mapping


class VendorsyncError(Exception):
    """Base exception for vendorsync."""

    context: Dict[str, Any]

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        if context is not None:
            # Store a shallow copy to avoid accidental mutation.
            self.context = dict(context)
        else:
            self.context = {}

    def to_json_error(self) -> Dict[str, Any]:
        """Return a JSON-serializable error payload."""
        return {
            "message": str(self),
            "code": self.__class__.__name__,
            "context": self.context,
        }


class CommandError(VendorsyncError, RuntimeError):
    """Raised when an external command cannot be run to completion."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        VendorsyncError.__init__(self, message, context=context)
        RuntimeError.__init__(self, message)


class CommandCancelledError(CommandError):
    """Raised when a running command is killed because its caller cancelled."""


__all__ = [
    "VendorsyncError",
    "CommandError",
    "CommandCancelledError",
]
