"""Tests for the incremental sync cache."""
from __future__ import annotations

from pathlib import Path

import pytest

REV_A = "a" * 40
REV_B = "b" * 40


def make_cache(project_root: Path, files: dict[str, str]):
    from vendorsync.core.vendors.cache import VendorCache

    for rel, content in files.items():
        path = project_root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    cache = VendorCache(project_root)
    cache.save(cache.build("lib", "main", REV_A, "digest", files))
    return cache


class TestCanSkip:
    """Skip decisions made from cache records."""

    def test_matching_revision_digest_and_files_skips(self, project_root: Path) -> None:
        cache = make_cache(project_root, {"vendor/a.txt": "a\n"})

        assert cache.can_skip("lib", "main", REV_A, "digest") is True

    def test_different_revision_never_skips(self, project_root: Path) -> None:
        cache = make_cache(project_root, {"vendor/a.txt": "a\n"})

        assert cache.can_skip("lib", "main", REV_B, "digest") is False

    def test_changed_mappings_do_not_skip(self, project_root: Path) -> None:
        cache = make_cache(project_root, {"vendor/a.txt": "a\n"})

        assert cache.can_skip("lib", "main", REV_A, "other") is False

    def test_modified_file_does_not_skip(self, project_root: Path) -> None:
        cache = make_cache(project_root, {"vendor/a.txt": "a\n"})
        (project_root / "vendor/a.txt").write_text("edited\n", encoding="utf-8")

        assert cache.can_skip("lib", "main", REV_A, "digest") is False

    def test_deleted_file_does_not_skip(self, project_root: Path) -> None:
        cache = make_cache(project_root, {"vendor/a.txt": "a\n"})
        (project_root / "vendor/a.txt").unlink()

        assert cache.can_skip("lib", "main", REV_A, "digest") is False

    def test_missing_record_or_revision_does_not_skip(self, project_root: Path) -> None:
        from vendorsync.core.vendors.cache import VendorCache

        cache = VendorCache(project_root)

        assert cache.can_skip("lib", "main", REV_A, "digest") is False
        assert cache.can_skip("lib", "main", None, "digest") is False

    def test_corrupt_record_is_a_miss_not_an_error(self, project_root: Path) -> None:
        cache = make_cache(project_root, {"vendor/a.txt": "a\n"})
        cache.entry_path("lib", "main").write_text("{not json", encoding="utf-8")

        assert cache.can_skip("lib", "main", REV_A, "digest") is False


class TestCacheRecords:
    """Loading, building and persisting records."""

    def test_load_corrupt_record_raises(self, project_root: Path) -> None:
        from vendorsync.core.vendors.exceptions import CacheCorruptionError, ErrorKind

        cache = make_cache(project_root, {"vendor/a.txt": "a\n"})
        cache.entry_path("lib", "main").write_text("[]", encoding="utf-8")

        with pytest.raises(CacheCorruptionError) as exc_info:
            cache.load("lib", "main")
        assert exc_info.value.kind is ErrorKind.CACHE

    def test_keys_with_slashes_do_not_collide(self, project_root: Path) -> None:
        from vendorsync.core.vendors.cache import VendorCache

        cache = VendorCache(project_root)

        assert cache.entry_path("lib", "feature/x") != cache.entry_path("lib", "feature_x")
        assert cache.entry_path("lib", "feature/x").parent == cache.cache_dir

    def test_build_caps_file_count(self, project_root: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        from vendorsync.core.vendors import cache as cache_module

        monkeypatch.setattr(cache_module, "MAX_CACHE_FILES", 3)
        files = {f"vendor/{i}.txt": str(i) for i in range(5)}
        for rel, content in files.items():
            path = project_root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")

        entry = cache_module.VendorCache(project_root).build("lib", "main", REV_A, "d", files)

        assert [f.path for f in entry.files] == ["vendor/0.txt", "vendor/1.txt", "vendor/2.txt"]

    def test_mapping_digest_tracks_mappings(self) -> None:
        from vendorsync.core.vendors.cache import mapping_digest
        from vendorsync.core.vendors.models import PathMapping, RefSpec

        a = RefSpec(ref="main", mappings=(PathMapping("src/a.go", "vendor/a.go"),))
        b = RefSpec(ref="main", mappings=(PathMapping("src/a.go:L1-L5", "vendor/a.go"),))

        assert mapping_digest(a) == mapping_digest(a)
        assert mapping_digest(a) != mapping_digest(b)

    def test_delete_removes_record(self, project_root: Path) -> None:
        cache = make_cache(project_root, {"vendor/a.txt": "a\n"})

        cache.delete("lib", "main")

        assert cache.load("lib", "main") is None
