"""
vendorsync update command.

SUMMARY: Re-resolve refs to their latest revisions and re-sync
"""
from __future__ import annotations

import argparse

from vendorsync.cli import add_run_args, add_selection_args, add_standard_flags
from vendorsync.cli.commands.sync import run

SUMMARY = "Re-resolve refs to their latest revisions and re-sync"


def register_args(parser: argparse.ArgumentParser) -> None:
    """Register command-specific arguments."""
    add_selection_args(parser)
    add_run_args(parser)
    add_standard_flags(parser)


def main(args: argparse.Namespace) -> int:
    """Update vendors to the latest revision of each ref, ignoring lock and cache."""
    return run(args, update=True)


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    register_args(parser)
    parsed = parser.parse_args()
    exit(main(parsed))
