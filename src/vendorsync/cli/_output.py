"""CLI output formatting.

Consistent output for every vendorsync command, in JSON or text mode,
plus the terminal reporter used while a sync runs.
"""
from __future__ import annotations

import json
import sys
from typing import Any, Dict, Optional, TextIO


class OutputFormatter:
    """Unified output formatter for CLI commands."""

    def __init__(self, json_mode: bool = False, indent: int = 2):
        self.json_mode = json_mode
        self.indent = indent

    def error(
        self,
        error: Exception,
        message: Optional[str] = None,
        *,
        error_code: str = "error",
    ) -> None:
        """Output an error to stderr.

        In JSON mode errors that know how to serialize themselves
        (``to_json_error``) contribute their kind and context.
        """
        msg = message or str(error)
        if self.json_mode:
            output: Dict[str, Any] = {"error": error_code, "message": msg}
            to_json = getattr(error, "to_json_error", None)
            if callable(to_json):
                output["detail"] = to_json()
            print(json.dumps(output, indent=self.indent, default=str), file=sys.stderr)
        else:
            print(f"Error: {msg}", file=sys.stderr)

    def json_output(self, data: Any) -> None:
        print(json.dumps(data, indent=self.indent, default=str))

    def text(self, message: str) -> None:
        print(message)


class ConsoleReporter:
    """Prints sync progress for humans.

    Progress and success lines go to stdout, warnings to stderr. In quiet
    mode (JSON output) only warnings are printed.
    """

    def __init__(self, quiet: bool = False, stream: TextIO | None = None) -> None:
        self.quiet = quiet
        self.stream = stream

    def progress(self, message: str) -> None:
        if not self.quiet:
            print(f"  {message}", file=self.stream or sys.stdout, flush=True)

    def success(self, message: str) -> None:
        if not self.quiet:
            print(f"✓ {message}", file=self.stream or sys.stdout, flush=True)

    def warning(self, message: str) -> None:
        print(f"Warning: {message}", file=sys.stderr, flush=True)


__all__ = ["OutputFormatter", "ConsoleReporter"]
