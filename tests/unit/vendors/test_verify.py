"""Tests for offline drift detection."""
from __future__ import annotations

from pathlib import Path

import yaml

REV_1 = "1" * 40

CONFIG = """
vendors:
  - name: lib
    url: https://example.com/lib.git
    specs:
      - ref: main
        mapping:
          - from: pkg
            to: vendor/pkg
          - from: "src.go:L1-L2"
            to: "vendor/util.go:L2-L3"
"""


def synced_project(project_root: Path, write_config, fake_remote):
    from vendorsync.core.vendors.reporting import RecordingReporter
    from vendorsync.core.vendors.sync import VendorSyncManager

    fake_remote.publish(
        "main",
        REV_1,
        {"pkg/a.py": "a\n", "pkg/sub/b.py": "b\n", "src.go": "x\ny\nz\n"},
    )
    (project_root / "vendor").mkdir()
    (project_root / "vendor/util.go").write_text("a\nb\nc\nd\n")
    write_config(CONFIG)
    manager = VendorSyncManager(project_root, reporter=RecordingReporter(), git_factory=fake_remote)
    assert manager.sync().success
    return manager


def statuses(report) -> dict[tuple[str, str], str]:
    return {(f.kind, f.path): f.status for f in report.files}


class TestVerify:
    """Comparing the project with the lock file."""

    def test_clean_sync_passes(self, project_root: Path, write_config, fake_remote) -> None:
        manager = synced_project(project_root, write_config, fake_remote)
        fetches = fake_remote.fetch_calls

        report = manager.verify()

        assert report.result == "PASS"
        assert statuses(report) == {
            ("file", "vendor/pkg/a.py"): "verified",
            ("file", "vendor/pkg/sub/b.py"): "verified",
            ("file", "vendor/util.go"): "verified",
            ("position", "vendor/util.go:L2-L3"): "verified",
        }
        assert fake_remote.fetch_calls == fetches
        assert fake_remote.count("ls_remote") == 1  # only the sync

    def test_modified_and_deleted_files_fail(self, project_root: Path, write_config, fake_remote) -> None:
        manager = synced_project(project_root, write_config, fake_remote)
        (project_root / "vendor/pkg/a.py").write_text("edited\n")
        (project_root / "vendor/pkg/sub/b.py").unlink()

        report = manager.verify()

        assert report.result == "FAIL"
        assert not report.success
        found = statuses(report)
        assert found[("file", "vendor/pkg/a.py")] == "modified"
        assert found[("file", "vendor/pkg/sub/b.py")] == "deleted"
        deleted = next(f for f in report.files if f.status == "deleted")
        assert deleted.vendor == "lib"
        assert deleted.actual_hash is None

    def test_added_file_in_vendored_directory_warns(self, project_root: Path, write_config, fake_remote) -> None:
        manager = synced_project(project_root, write_config, fake_remote)
        (project_root / "vendor/pkg/extra.py").write_text("mine\n")

        report = manager.verify()

        assert report.result == "WARN"
        assert report.success
        [added] = [f for f in report.files if f.status == "added"]
        assert added.path == "vendor/pkg/extra.py"
        assert added.vendor is None

    def test_edit_outside_position_keeps_range_verified(
        self, project_root: Path, write_config, fake_remote
    ) -> None:
        manager = synced_project(project_root, write_config, fake_remote)
        util = project_root / "vendor/util.go"
        assert util.read_text() == "a\nx\ny\nd\n"
        util.write_text("a\nx\ny\nD\n")

        found = statuses(manager.verify())

        assert found[("file", "vendor/util.go")] == "modified"
        assert found[("position", "vendor/util.go:L2-L3")] == "verified"

    def test_edit_inside_position_is_drift(self, project_root: Path, write_config, fake_remote) -> None:
        manager = synced_project(project_root, write_config, fake_remote)
        (project_root / "vendor/util.go").write_text("a\nx\nchanged\nd\n")

        report = manager.verify()

        assert statuses(report)[("position", "vendor/util.go:L2-L3")] == "modified"
        assert report.result == "FAIL"

    def test_lock_without_hashes_falls_back_to_cache(self, project_root: Path, write_config, fake_remote) -> None:
        manager = synced_project(project_root, write_config, fake_remote)
        lock_path = project_root / ".vendorsync" / "vendors.lock.yaml"
        data = yaml.safe_load(lock_path.read_text())
        for entry in data["vendors"]:
            entry.pop("file_hashes", None)
            entry.pop("positions", None)
        lock_path.write_text(yaml.safe_dump(data))
        (project_root / "vendor/pkg/a.py").write_text("edited\n")

        found = statuses(manager.verify())

        assert found[("file", "vendor/pkg/a.py")] == "modified"
        assert found[("file", "vendor/pkg/sub/b.py")] == "verified"

    def test_nothing_locked(self, project_root: Path, write_config) -> None:
        from vendorsync.core.vendors.sync import VendorSyncManager

        write_config(CONFIG)

        report = VendorSyncManager(project_root).verify()

        assert report.files == ()
        assert report.result == "PASS"
