"""Vendor lock file management.

The lock file (.vendorsync/vendors.lock.yaml) records, per vendor and
ref, the resolved revision and the hashes of everything that was
written. Output is sorted so repeated saves are byte-identical.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

import yaml

from vendorsync.core.utils.io import read_yaml, write_yaml
from vendorsync.core.vendors.cache import utc_now
from vendorsync.core.vendors.config import CONFIG_DIR
from vendorsync.core.vendors.exceptions import VendorLockError
from vendorsync.core.vendors.models import LockEntry, RefOutcome, VendorSpec

logger = logging.getLogger(__name__)

LOCK_FILENAME = "vendors.lock.yaml"
SCHEMA_VERSION = "1.0"


def _parse_version(value: str) -> tuple[int, int]:
    try:
        major, _, minor = str(value).partition(".")
        return int(major), int(minor or 0)
    except ValueError:
        raise VendorLockError(f"Invalid lock file schema_version '{value}'") from None


def entry_from_outcome(
    vendor: VendorSpec,
    outcome: RefOutcome,
    previous: LockEntry | None = None,
) -> LockEntry:
    """Build the lock entry for a completed ref.

    ``updated`` is carried over from ``previous`` when neither the
    revision nor the file hashes changed.
    """
    unchanged = (
        previous is not None
        and previous.commit_hash == outcome.commit_hash
        and previous.file_hashes == outcome.file_hashes
    )
    return LockEntry(
        name=vendor.name,
        ref=outcome.ref,
        commit_hash=outcome.commit_hash,
        license=vendor.license,
        updated=previous.updated if unchanged and previous else utc_now(),
        file_hashes=dict(outcome.file_hashes),
        positions=outcome.positions,
    )


class VendorLock:
    """Manages the vendor lock file.

    A missing lock file is a valid, empty lock.
    """

    def __init__(self, repo_root: Path) -> None:
        self.repo_root = Path(repo_root)
        self._entries: dict[tuple[str, str], LockEntry] = {}

    @property
    def lock_path(self) -> Path:
        """Path to vendors.lock.yaml file."""
        return self.repo_root / CONFIG_DIR / LOCK_FILENAME

    def load(self) -> None:
        """Load the lock file, replacing any entries in memory.

        Raises:
            VendorLockError: Unreadable file, bad entries or a newer major schema
        """
        self._entries = {}
        try:
            data = read_yaml(self.lock_path, default={}, raise_on_error=True) if self.lock_path.exists() else {}
        except (OSError, yaml.YAMLError) as e:
            raise VendorLockError(f"Cannot read {self.lock_path}: {e}") from e
        if not isinstance(data, dict):
            raise VendorLockError(f"{self.lock_path} must contain a mapping")
        if not data:
            return

        version = str(data.get("schema_version") or SCHEMA_VERSION)
        major, minor = _parse_version(version)
        current_major, current_minor = _parse_version(SCHEMA_VERSION)
        if major > current_major:
            raise VendorLockError(
                f"Lock file schema_version {version} is newer than supported ({SCHEMA_VERSION}); "
                "upgrade vendorsync",
                context={"schema_version": version},
            )
        if major == current_major and minor > current_minor:
            logger.warning(
                "Lock file schema_version %s is newer than %s; unknown fields will be dropped on save",
                version,
                SCHEMA_VERSION,
            )

        for item in data.get("vendors") or []:
            try:
                entry = LockEntry.from_dict(item)
            except (ValueError, KeyError, TypeError, AttributeError) as e:
                raise VendorLockError(f"Invalid lock entry in {self.lock_path}: {e}") from e
            self._entries[entry.key] = entry

    def add_entry(self, entry: LockEntry) -> None:
        self._entries[entry.key] = entry

    def get_entry(self, name: str, ref: str) -> LockEntry | None:
        return self._entries.get((name, ref))

    def entries_for(self, name: str) -> list[LockEntry]:
        return [e for key, e in sorted(self._entries.items()) if key[0] == name]

    def get_entries(self) -> list[LockEntry]:
        """All entries sorted by (name, ref)."""
        return [self._entries[k] for k in sorted(self._entries)]

    def retain(self, keys: Iterable[tuple[str, str]]) -> None:
        """Drop entries whose (name, ref) is not in ``keys``."""
        keep = set(keys)
        self._entries = {k: v for k, v in self._entries.items() if k in keep}

    def render(self) -> dict:
        return {
            "schema_version": SCHEMA_VERSION,
            "vendors": [entry.to_dict() for entry in self.get_entries()],
        }

    def save(self) -> None:
        """Atomically write the lock file, entries sorted by (name, ref)."""
        try:
            write_yaml(self.lock_path, self.render())
        except OSError as e:
            raise VendorLockError(f"Failed to write {self.lock_path}: {e}") from e


__all__ = ["LOCK_FILENAME", "SCHEMA_VERSION", "VendorLock", "entry_from_outcome"]
