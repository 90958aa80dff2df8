"""Shared fixtures for vendorsync tests."""
from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Callable

import pytest

from helpers.fake_git import FakeRemote
from helpers.git_repo import TestGitRepo


@pytest.fixture
def git_repo(tmp_path: Path) -> TestGitRepo:
    """An upstream repository on disk, reachable through a file:// URL."""
    return TestGitRepo(tmp_path / "upstream")


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """Empty project that vendors into itself."""
    root = tmp_path / "project"
    (root / ".vendorsync").mkdir(parents=True)
    return root


@pytest.fixture
def write_config(project_root: Path) -> Callable[[str], Path]:
    """Write ``.vendorsync/vendors.yaml`` from a dedented YAML string."""

    def _write(content: str) -> Path:
        path = project_root / ".vendorsync" / "vendors.yaml"
        path.write_text(textwrap.dedent(content), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def fake_remote() -> FakeRemote:
    return FakeRemote()
