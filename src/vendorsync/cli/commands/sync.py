"""
vendorsync sync command.

SUMMARY: Sync vendored files to their locked revisions
"""
from __future__ import annotations

import argparse

from vendorsync.cli import (
    ConsoleReporter,
    OutputFormatter,
    add_run_args,
    add_selection_args,
    add_standard_flags,
    get_repo_root,
)
from vendorsync.cli._report import render_report

SUMMARY = "Sync vendored files to their locked revisions"


def register_args(parser: argparse.ArgumentParser) -> None:
    """Register command-specific arguments."""
    add_selection_args(parser)
    parser.add_argument(
        "--force",
        action="store_true",
        help="Ignore the lock file and cache; re-fetch every ref",
    )
    parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Ignore the incremental cache but honour locked revisions",
    )
    add_run_args(parser)
    add_standard_flags(parser)


def run(args: argparse.Namespace, *, update: bool = False) -> int:
    """Shared body of ``sync`` and ``update``."""
    from vendorsync.core.vendors.sync import VendorSyncManager

    formatter = OutputFormatter(json_mode=getattr(args, "json", False))

    try:
        repo_root = get_repo_root(args)
        manager = VendorSyncManager(
            repo_root,
            reporter=ConsoleReporter(quiet=formatter.json_mode),
            verbose=True if getattr(args, "verbose", False) else None,
        )
        options = dict(parallel=args.parallel, workers=args.workers, dry_run=args.dry_run)
        try:
            if update:
                report = manager.update(args.name, args.group, **options)
            else:
                report = manager.sync(
                    args.name,
                    args.group,
                    force=args.force,
                    no_cache=args.no_cache,
                    **options,
                )
        except KeyboardInterrupt:
            manager.cancel()
            formatter.error(KeyboardInterrupt(), "Interrupted", error_code="cancelled")
            return 130
        return render_report(formatter, report, verb="Updated" if update else "Synced")

    except Exception as e:
        formatter.error(e, error_code="vendor_update_error" if update else "vendor_sync_error")
        return 1


def main(args: argparse.Namespace) -> int:
    """Sync vendors."""
    return run(args)


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    register_args(parser)
    parsed = parser.parse_args()
    exit(main(parsed))
