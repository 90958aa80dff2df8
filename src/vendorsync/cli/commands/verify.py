"""
vendorsync verify command.

SUMMARY: Check vendored files against the lock file (offline)
"""
from __future__ import annotations

import argparse

from vendorsync.cli import OutputFormatter, add_selection_args, add_standard_flags, get_repo_root

SUMMARY = "Check vendored files against the lock file (offline)"


def register_args(parser: argparse.ArgumentParser) -> None:
    """Register command-specific arguments."""
    add_selection_args(parser)
    add_standard_flags(parser)


def main(args: argparse.Namespace) -> int:
    """Report modified, deleted and added vendored files."""
    from vendorsync.core.vendors.sync import VendorSyncManager

    formatter = OutputFormatter(json_mode=getattr(args, "json", False))

    try:
        manager = VendorSyncManager(get_repo_root(args))
        report = manager.verify(args.name, args.group)

        if formatter.json_mode:
            formatter.json_output(report.to_dict())
            return 0 if report.success else 1

        if not report.files:
            formatter.text("Nothing to verify (no locked vendors).")
            return 0
        for item in report.files:
            if item.status == "verified":
                continue
            owner = f" ({item.vendor})" if item.vendor else ""
            formatter.text(f"  {item.status.upper():9} {item.path}{owner}")
        summary = ", ".join(
            f"{report.count(status)} {status}" for status in ("verified", "modified", "deleted", "added")
        )
        formatter.text(f"{report.result}: {summary}")
        return 0 if report.success else 1

    except Exception as e:
        formatter.error(e, error_code="vendor_verify_error")
        return 1


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    register_args(parser)
    parsed = parser.parse_args()
    exit(main(parsed))
