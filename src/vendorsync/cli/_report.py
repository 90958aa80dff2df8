"""Rendering of sync reports shared by ``sync`` and ``update``."""
from __future__ import annotations

from vendorsync.cli._output import OutputFormatter
from vendorsync.core.vendors.models import SyncReport


def render_report(formatter: OutputFormatter, report: SyncReport, verb: str = "Synced") -> int:
    """Print ``report`` and return the process exit code."""
    if formatter.json_mode:
        formatter.json_output(report.to_dict())
        return 0 if report.success else 1

    if not report.results:
        formatter.text("No vendors configured.")
        return 0

    if report.dry_run:
        formatter.text(f"Dry run: {len(report.results)} vendor(s) would be synced; nothing was changed.")
        return 0

    ok = sum(1 for r in report.results if r.success)
    formatter.text("")
    formatter.text(f"{verb} {ok}/{len(report.results)} vendor(s):")
    for result in report.results:
        status = "OK" if result.success else "FAILED"
        formatter.text(f"  {result.vendor_name}: {status}")
        for outcome in result.refs:
            commit = outcome.commit_hash[:12] if outcome.commit_hash else "-"
            detail = "cached" if outcome.cache_hit else f"{outcome.files_copied} file(s)"
            formatter.text(f"    {outcome.ref} @ {commit} ({detail})")
        if result.error is not None:
            phase = result.error.phase
            where = f" [{phase}]" if phase else ""
            formatter.text(f"    Error{where}: {result.error}")

    return 0 if report.success else 1


__all__ = ["render_report"]
