"""Tests for the vendor lock file."""
from __future__ import annotations

from pathlib import Path

import pytest
import yaml


def entry(name: str, ref: str = "main", commit: str = "c" * 40, **kwargs):
    from vendorsync.core.vendors.models import LockEntry

    return LockEntry(name=name, ref=ref, commit_hash=commit, updated="2024-01-01T00:00:00Z", **kwargs)


class TestVendorLock:
    """Loading and saving vendors.lock.yaml."""

    def test_missing_lock_is_empty(self, project_root: Path) -> None:
        from vendorsync.core.vendors.lock import VendorLock

        lock = VendorLock(project_root)
        lock.load()

        assert lock.get_entries() == []

    def test_entries_are_sorted_and_saves_are_byte_identical(self, project_root: Path) -> None:
        from vendorsync.core.vendors.lock import VendorLock
        from vendorsync.core.vendors.models import PositionLock

        lock = VendorLock(project_root)
        lock.add_entry(entry("zeta", file_hashes={"b.txt": "2", "a.txt": "1"}))
        lock.add_entry(entry("alpha", ref="v2"))
        lock.add_entry(
            entry(
                "alpha",
                ref="v1",
                license="MIT",
                positions=(PositionLock("src/a.go:L1-L3", "vendor/a.go:L5", "sha256:abc"),),
            )
        )
        lock.save()
        first = lock.lock_path.read_bytes()

        reloaded = VendorLock(project_root)
        reloaded.load()
        reloaded.save()

        assert reloaded.lock_path.read_bytes() == first
        data = yaml.safe_load(first)
        assert data["schema_version"] == "1.0"
        assert [(v["name"], v["ref"]) for v in data["vendors"]] == [
            ("alpha", "v1"),
            ("alpha", "v2"),
            ("zeta", "main"),
        ]
        assert list(data["vendors"][2]["file_hashes"]) == ["a.txt", "b.txt"]
        assert data["vendors"][0]["positions"][0] == {
            "from": "src/a.go:L1-L3",
            "to": "vendor/a.go:L5",
            "source_hash": "sha256:abc",
        }

    def test_retain_drops_unconfigured_entries(self, project_root: Path) -> None:
        from vendorsync.core.vendors.lock import VendorLock

        lock = VendorLock(project_root)
        lock.add_entry(entry("a"))
        lock.add_entry(entry("b"))
        lock.retain({("a", "main")})

        assert [e.name for e in lock.get_entries()] == ["a"]

    def test_newer_major_version_is_rejected(self, project_root: Path) -> None:
        from vendorsync.core.vendors.exceptions import VendorLockError
        from vendorsync.core.vendors.lock import VendorLock

        lock = VendorLock(project_root)
        lock.lock_path.write_text("schema_version: '2.0'\nvendors: []\n")

        with pytest.raises(VendorLockError):
            lock.load()

    def test_newer_minor_version_loads(self, project_root: Path) -> None:
        from vendorsync.core.vendors.lock import VendorLock

        lock = VendorLock(project_root)
        lock.lock_path.write_text(
            "schema_version: '1.7'\nvendors:\n  - {name: a, ref: main, commit_hash: abc, extra: 1}\n"
        )
        lock.load()

        assert lock.get_entry("a", "main").commit_hash == "abc"

    def test_malformed_entry_is_rejected(self, project_root: Path) -> None:
        from vendorsync.core.vendors.exceptions import VendorLockError
        from vendorsync.core.vendors.lock import VendorLock

        lock = VendorLock(project_root)
        lock.lock_path.write_text("schema_version: '1.0'\nvendors:\n  - {name: a}\n")

        with pytest.raises(VendorLockError):
            lock.load()


class TestEntryFromOutcome:
    """Turning a finished ref into a lock entry."""

    def test_updated_is_preserved_when_nothing_changed(self) -> None:
        from vendorsync.core.vendors.lock import entry_from_outcome
        from vendorsync.core.vendors.models import RefOutcome, VendorSpec

        vendor = VendorSpec(name="a", url="https://x/a.git", license="MIT")
        previous = entry("a", file_hashes={"x": "1"})
        outcome = RefOutcome(ref="main", commit_hash="c" * 40, file_hashes={"x": "1"})

        result = entry_from_outcome(vendor, outcome, previous)

        assert result.updated == previous.updated
        assert result.license == "MIT"

    def test_updated_changes_with_revision(self) -> None:
        from vendorsync.core.vendors.lock import entry_from_outcome
        from vendorsync.core.vendors.models import RefOutcome, VendorSpec

        vendor = VendorSpec(name="a", url="https://x/a.git")
        outcome = RefOutcome(ref="main", commit_hash="d" * 40)

        result = entry_from_outcome(vendor, outcome, entry("a"))

        assert result.updated != "2024-01-01T00:00:00Z"
        assert result.commit_hash == "d" * 40
