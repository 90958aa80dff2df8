"""Tests for VendorSyncManager (selection, conflict gate, aggregation)."""
from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import pytest
import yaml

if TYPE_CHECKING:
    from helpers.git_repo import TestGitRepo

REV_1 = "1" * 40
REV_2 = "2" * 40


def manager(project_root: Path, fake_remote=None):
    from vendorsync.core.vendors.reporting import RecordingReporter
    from vendorsync.core.vendors.sync import VendorSyncManager

    kwargs = {"git_factory": fake_remote} if fake_remote is not None else {}
    return VendorSyncManager(project_root, reporter=RecordingReporter(), **kwargs)


def read_lock(project_root: Path) -> dict:
    return yaml.safe_load((project_root / ".vendorsync" / "vendors.lock.yaml").read_text())


TWO_VENDORS = """
vendors:
  - name: alpha
    url: https://example.com/alpha.git
    groups: [core]
    specs:
      - ref: main
        mapping:
          - from: a.txt
            to: vendor/alpha/a.txt
  - name: beta
    url: https://example.com/beta.git
    specs:
      - ref: main
        mapping:
          - from: b.txt
            to: vendor/beta/b.txt
"""


class TestSync:
    """End-to-end sync through the manager with an in-memory remote."""

    def test_sync_writes_files_and_lock(self, project_root: Path, write_config, fake_remote) -> None:
        fake_remote.publish("main", REV_1, {"a.txt": "a\n", "b.txt": "b\n"})
        write_config(TWO_VENDORS)

        report = manager(project_root, fake_remote).sync()

        assert report.success
        assert [r.vendor_name for r in report.results] == ["alpha", "beta"]
        assert (project_root / "vendor/alpha/a.txt").read_text() == "a\n"
        lock = read_lock(project_root)
        assert [(v["name"], v["commit_hash"]) for v in lock["vendors"]] == [("alpha", REV_1), ("beta", REV_1)]
        assert list(lock["vendors"][0]["file_hashes"]) == ["vendor/alpha/a.txt"]

    def test_second_sync_is_served_from_cache(self, project_root: Path, write_config, fake_remote) -> None:
        fake_remote.publish("main", REV_1, {"a.txt": "a\n", "b.txt": "b\n"})
        write_config(TWO_VENDORS)
        manager(project_root, fake_remote).sync()
        lock_before = (project_root / ".vendorsync" / "vendors.lock.yaml").read_bytes()
        fetches = fake_remote.fetch_calls

        report = manager(project_root, fake_remote).sync()

        assert report.success
        assert all(o.cache_hit for r in report.results for o in r.refs)
        assert fake_remote.fetch_calls == fetches
        assert (project_root / ".vendorsync" / "vendors.lock.yaml").read_bytes() == lock_before

    def test_sync_honours_lock_and_update_moves_it(self, project_root: Path, write_config, fake_remote) -> None:
        fake_remote.publish("main", REV_1, {"a.txt": "1\n", "b.txt": "b\n"})
        write_config(TWO_VENDORS)
        manager(project_root, fake_remote).sync()

        # Upstream moves on; the old commit stays reachable.
        fake_remote.publish("main", REV_2, {"a.txt": "2\n", "b.txt": "b\n"})
        (project_root / "vendor/alpha/a.txt").unlink()
        manager(project_root, fake_remote).sync("alpha")
        assert (project_root / "vendor/alpha/a.txt").read_text() == "1\n"

        report = manager(project_root, fake_remote).update("alpha")

        assert report.success
        assert (project_root / "vendor/alpha/a.txt").read_text() == "2\n"
        commits = {v["name"]: v["commit_hash"] for v in read_lock(project_root)["vendors"]}
        assert commits == {"alpha": REV_2, "beta": REV_1}

    def test_group_selection(self, project_root: Path, write_config, fake_remote) -> None:
        fake_remote.publish("main", REV_1, {"a.txt": "a\n", "b.txt": "b\n"})
        write_config(TWO_VENDORS)

        report = manager(project_root, fake_remote).sync(group="core")

        assert [r.vendor_name for r in report.results] == ["alpha"]
        assert not (project_root / "vendor/beta").exists()

    def test_failed_vendor_keeps_previous_lock_entry(self, project_root: Path, write_config, fake_remote) -> None:
        fake_remote.publish("main", REV_1, {"a.txt": "a\n", "b.txt": "b\n"})
        write_config(TWO_VENDORS)
        manager(project_root, fake_remote).sync()

        fake_remote.publish("main", REV_2, {"a.txt": "a2\n"})  # b.txt removed upstream
        report = manager(project_root, fake_remote).update()

        assert not report.success
        assert set(report.errors) == {"beta"}
        commits = {v["name"]: v["commit_hash"] for v in read_lock(project_root)["vendors"]}
        assert commits == {"alpha": REV_2, "beta": REV_1}

    def test_parallel_sync_matches_sequential(self, tmp_path: Path, fake_remote) -> None:
        import textwrap

        fake_remote.publish("main", REV_1, {f"f{i}.txt": f"{i}\n" for i in range(5)})
        config = "vendors:\n" + "".join(
            textwrap.dedent(
                f"""\
                - name: v{i}
                  url: https://example.com/v{i}.git
                  specs:
                    - ref: main
                      mapping:
                        - from: f{i}.txt
                          to: out/v{i}.txt
                """
            )
            for i in range(5)
        )
        outputs = {}
        for mode, parallel in (("seq", False), ("par", True)):
            root = tmp_path / mode
            (root / ".vendorsync").mkdir(parents=True)
            (root / ".vendorsync" / "vendors.yaml").write_text(config)
            report = manager(root, fake_remote).sync(parallel=parallel, workers=2)
            assert report.success
            assert [r.vendor_name for r in report.results] == [f"v{i}" for i in range(5)]
            outputs[mode] = sorted(p.relative_to(root).as_posix() for p in (root / "out").iterdir())

        assert outputs["seq"] == outputs["par"]

    def test_dry_run_changes_nothing(self, project_root: Path, write_config, fake_remote) -> None:
        fake_remote.publish("main", REV_1, {"a.txt": "a\n", "b.txt": "b\n"})
        write_config(TWO_VENDORS)

        report = manager(project_root, fake_remote).sync(dry_run=True)

        assert report.dry_run
        assert fake_remote.calls == []
        assert not (project_root / "vendor").exists()
        assert not (project_root / ".vendorsync" / "vendors.lock.yaml").exists()

    def test_removed_vendor_is_pruned_from_lock(self, project_root: Path, write_config, fake_remote) -> None:
        from vendorsync.core.vendors.cache import VendorCache

        fake_remote.publish("main", REV_1, {"a.txt": "a\n", "b.txt": "b\n"})
        write_config(TWO_VENDORS)
        manager(project_root, fake_remote).sync()

        write_config(TWO_VENDORS.split("  - name: beta")[0])
        manager(project_root, fake_remote).sync()

        assert [v["name"] for v in read_lock(project_root)["vendors"]] == ["alpha"]
        assert VendorCache(project_root).load("beta", "main") is None


CONFLICTING = """
vendors:
  - name: A
    url: https://example.com/a.git
    specs: [{ref: main, mapping: [{from: a.go, to: lib/a.go}]}]
  - name: B
    url: https://example.com/b.git
    specs: [{ref: main, mapping: [{from: b.go, to: lib/a.go}]}]
  - name: C
    url: https://example.com/c.git
    specs: [{ref: main, mapping: [{from: pkg, to: lib}]}]
"""


class TestConflictGate:
    """Overlapping destinations block parallel runs."""

    def test_parallel_sync_refuses_conflicts(self, project_root: Path, write_config, fake_remote) -> None:
        from vendorsync.core.vendors.exceptions import ConflictError

        write_config(CONFLICTING)

        with pytest.raises(ConflictError) as exc_info:
            manager(project_root, fake_remote).sync(parallel=True)

        assert len(exc_info.value.conflicts) == 3
        assert fake_remote.calls == []

    def test_sequential_sync_warns(self, project_root: Path, write_config, fake_remote) -> None:
        fake_remote.publish("main", REV_1, {"a.go": "a\n", "b.go": "b\n", "pkg/c.go": "c\n"})
        write_config(CONFLICTING)
        m = manager(project_root, fake_remote)

        report = m.sync(parallel=False)

        assert report.success
        assert sum("Conflict" in w for w in m.reporter.warnings) == 3

    def test_validate_conflicts(self, project_root: Path, write_config) -> None:
        write_config(CONFLICTING)

        assert len(manager(project_root).validate_conflicts()) == 3


class TestStaleRevision:
    """A locked commit that vanished upstream (real git)."""

    def test_stale_lock_fails_with_stale_revision(
        self, project_root: Path, write_config, git_repo: TestGitRepo
    ) -> None:
        from vendorsync.core.vendors.exceptions import ErrorKind

        git_repo.write("a.txt", "a\n")
        git_repo.commit("initial")
        write_config(
            f"""
            vendors:
              - name: lib
                url: {git_repo.url}
                specs: [{{ref: main, mapping: [{{from: a.txt, to: vendor/a.txt}}]}}]
            """
        )
        gone = "deadbeef" * 5
        lock_text = (
            "schema_version: '1.0'\n"
            f"vendors:\n- name: lib\n  ref: main\n  commit_hash: {gone}\n  updated: '2024-01-01T00:00:00Z'\n"
        )
        (project_root / ".vendorsync" / "vendors.lock.yaml").write_text(lock_text)

        report = manager(project_root).sync()

        error = report.errors["lib"]
        assert error.kind is ErrorKind.STALE_REVISION
        assert error.phase == "fetch"
        assert read_lock(project_root)["vendors"][0]["commit_hash"] == gone
        assert not (project_root / "vendor/a.txt").exists()

    def test_update_recovers_from_stale_lock(
        self, project_root: Path, write_config, git_repo: TestGitRepo
    ) -> None:
        git_repo.write("a.txt", "a\n")
        head = git_repo.commit("initial")
        write_config(
            f"""
            vendors:
              - name: lib
                url: {git_repo.url}
                specs: [{{ref: main, mapping: [{{from: a.txt, to: vendor/a.txt}}]}}]
            """
        )
        (project_root / ".vendorsync" / "vendors.lock.yaml").write_text(
            "schema_version: '1.0'\nvendors:\n- {name: lib, ref: main, commit_hash: " + "0" * 40 + "}\n"
        )

        report = manager(project_root).update()

        assert report.success
        assert read_lock(project_root)["vendors"][0]["commit_hash"] == head
        assert (project_root / "vendor/a.txt").read_text() == "a\n"


class TestSharedDestination:
    """Two vendors mapping into the same file."""

    SHARED = """
    vendors:
      - name: A
        url: https://example.com/a.git
        specs: [{ref: main, mapping: [{from: shared.go, to: lib/shared.go}]}]
      - name: B
        url: https://example.com/b.git
        specs: [{ref: main, mapping: [{from: shared.go, to: lib/shared.go}]}]
    """

    def test_one_record_and_parallel_refused(self, project_root: Path, write_config, fake_remote) -> None:
        from vendorsync.core.vendors.exceptions import ConflictError, ErrorKind

        write_config(self.SHARED)
        m = manager(project_root, fake_remote)

        [record] = m.validate_conflicts()
        assert (record.path, record.kind) == ("lib/shared.go", "exact")

        with pytest.raises(ConflictError) as exc_info:
            m.sync(parallel=True)
        assert exc_info.value.kind is ErrorKind.INPUT
        assert not (project_root / "lib").exists()


class TestCacheAcrossLockLoss:
    """Cache hits still produce complete lock entries."""

    def test_deleted_lock_is_rebuilt_with_positions(self, project_root: Path, write_config, fake_remote) -> None:
        fake_remote.publish("main", REV_1, {"a.go": "one\ntwo\nthree\n"})
        write_config(
            """
            vendors:
              - name: lib
                url: https://example.com/lib.git
                specs: [{ref: main, mapping: [{from: "a.go:L2-L3", to: vendor/a.go}]}]
            """
        )
        manager(project_root, fake_remote).sync()
        lock_path = project_root / ".vendorsync" / "vendors.lock.yaml"
        original = read_lock(project_root)["vendors"][0]["positions"]
        lock_path.unlink()
        fetches = fake_remote.fetch_calls

        report = manager(project_root, fake_remote).sync()

        assert report.results[0].refs[0].cache_hit is True
        assert fake_remote.fetch_calls == fetches
        assert read_lock(project_root)["vendors"][0]["positions"] == original
        assert original[0]["from"] == "a.go:L2-L3"


class TestAnnotatedTag:
    """Unlocked refs naming annotated tags (real git)."""

    def test_second_sync_is_a_cache_hit(self, project_root: Path, write_config, git_repo: TestGitRepo) -> None:
        git_repo.write("a.txt", "a\n")
        head = git_repo.commit("initial")
        git_repo.tag("v1.0.0", annotated=True)
        write_config(
            f"""
            vendors:
              - name: lib
                url: {git_repo.url}
                specs: [{{ref: v1.0.0, mapping: [{{from: a.txt, to: vendor/a.txt}}]}}]
            """
        )
        manager(project_root).sync()
        (project_root / ".vendorsync" / "vendors.lock.yaml").unlink()

        report = manager(project_root).sync()

        [outcome] = report.results[0].refs
        assert outcome.cache_hit is True
        assert outcome.commit_hash == head
