"""Common argument registration helpers for CLI commands."""
from __future__ import annotations

import argparse


def add_json_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON",
    )


def add_repo_root_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--repo-root",
        type=str,
        help="Override repository root path",
    )


def add_verbose_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output (debug logging, git commands)",
    )


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid worker count: {value!r}") from None
    if number < 1:
        raise argparse.ArgumentTypeError("worker count must be at least 1")
    return number


def add_selection_args(parser: argparse.ArgumentParser) -> None:
    """Vendor name positional and ``--group`` filter."""
    parser.add_argument(
        "name",
        nargs="?",
        help="Vendor name (all vendors if omitted)",
    )
    parser.add_argument(
        "--group",
        "-g",
        help="Only vendors tagged with this group",
    )


def add_run_args(parser: argparse.ArgumentParser) -> None:
    """Execution flags shared by ``sync`` and ``update``."""
    parser.add_argument(
        "--parallel",
        action="store_true",
        default=None,
        help="Sync vendors concurrently",
    )
    parser.add_argument(
        "--workers",
        type=_positive_int,
        help="Worker count for --parallel (default: CPU count, max 8)",
    )
    parser.add_argument(
        "--dry-run",
        "-n",
        action="store_true",
        help="Show what would be done without making changes",
    )


def add_standard_flags(parser: argparse.ArgumentParser) -> None:
    add_json_flag(parser)
    add_repo_root_flag(parser)
    add_verbose_flag(parser)


__all__ = [
    "add_json_flag",
    "add_repo_root_flag",
    "add_verbose_flag",
    "add_selection_args",
    "add_run_args",
    "add_standard_flags",
]
