"""
vendorsync validate command.

SUMMARY: Check the configuration and report destination conflicts
"""
from __future__ import annotations

import argparse

from vendorsync.cli import OutputFormatter, add_json_flag, add_repo_root_flag, add_verbose_flag, get_repo_root

SUMMARY = "Check the configuration and report destination conflicts"


def register_args(parser: argparse.ArgumentParser) -> None:
    """Register command-specific arguments."""
    add_json_flag(parser)
    add_repo_root_flag(parser)
    add_verbose_flag(parser)


def main(args: argparse.Namespace) -> int:
    """Validate vendor configuration."""
    from vendorsync.core.vendors.config import VendorConfig
    from vendorsync.core.vendors.conflicts import find_conflicts

    formatter = OutputFormatter(json_mode=getattr(args, "json", False))

    try:
        config = VendorConfig(get_repo_root(args))
        vendors = config.get_vendors()
        conflicts = find_conflicts(vendors)

        if formatter.json_mode:
            formatter.json_output(
                {
                    "valid": not conflicts,
                    "vendors": len(vendors),
                    "conflicts": [c.to_dict() for c in conflicts],
                }
            )
        elif conflicts:
            formatter.text(f"Found {len(conflicts)} conflict(s):")
            for conflict in conflicts:
                formatter.text(f"  [{conflict.kind}] {conflict.describe()}")
        else:
            formatter.text(f"Configuration OK ({len(vendors)} vendor(s), no conflicts).")

        return 1 if conflicts else 0

    except Exception as e:
        formatter.error(e, error_code="vendor_validate_error")
        return 1


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    register_args(parser)
    parsed = parser.parse_args()
    exit(main(parsed))
