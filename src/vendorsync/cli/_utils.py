"""Shared CLI utilities."""
from __future__ import annotations

import argparse
from pathlib import Path


def find_project_root(start: Path) -> Path:
    """Nearest directory at or above ``start`` holding ``.vendorsync`` or ``.git``.

    Falls back to ``start`` itself.
    """
    start = start.resolve()
    for candidate in (start, *start.parents):
        if (candidate / ".vendorsync").is_dir():
            return candidate
    for candidate in (start, *start.parents):
        if (candidate / ".git").exists():
            return candidate
    return start


def get_repo_root(args: argparse.Namespace) -> Path:
    """Repository root from ``--repo-root`` or auto-detected from the cwd."""
    if getattr(args, "repo_root", None):
        return Path(args.repo_root).resolve()
    return find_project_root(Path.cwd())


__all__ = ["find_project_root", "get_repo_root"]
