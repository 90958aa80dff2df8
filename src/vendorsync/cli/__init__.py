"""
vendorsync CLI package.

Provides the command-line interface with auto-discovery of commands
from ``cli/commands/``.

Framework utilities for building CLI commands:
- _output: Output formatting (JSON/text modes) and the console reporter
- _args: Common argument registration helpers
- _utils: Shared CLI utilities
"""
from ._output import ConsoleReporter, OutputFormatter
from ._args import (
    add_json_flag,
    add_repo_root_flag,
    add_run_args,
    add_selection_args,
    add_standard_flags,
    add_verbose_flag,
)
from ._utils import find_project_root, get_repo_root


def main(argv=None) -> int:
    from ._dispatcher import main as _main

    return _main(argv)


__all__ = [
    # Output formatting
    "OutputFormatter",
    "ConsoleReporter",
    # Argument helpers
    "add_json_flag",
    "add_repo_root_flag",
    "add_run_args",
    "add_selection_args",
    "add_standard_flags",
    "add_verbose_flag",
    # Utilities
    "find_project_root",
    "get_repo_root",
    # Entry point
    "main",
]
