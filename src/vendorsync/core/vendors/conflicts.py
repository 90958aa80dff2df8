"""Detect vendors that would write the same destination.

Pure function over the configuration: no filesystem or network access.
"""
from __future__ import annotations

import posixpath
from typing import Iterable

from vendorsync.core.vendors.copier import normalize_destination
from vendorsync.core.vendors.exceptions import PositionSpecError
from vendorsync.core.vendors.models import ConflictOwner, ConflictRecord, VendorSpec

EXACT = "exact"
OVERLAP = "overlap"


def is_subpath(parent: str, child: str) -> bool:
    """Whether ``child`` lies strictly inside ``parent`` (normalized posix paths)."""
    if parent in (".", ""):
        return child not in (".", "")
    return child.startswith(parent.rstrip("/") + "/")


def _destinations(vendors: Iterable[VendorSpec]) -> list[tuple[str, ConflictOwner]]:
    out: list[tuple[str, ConflictOwner]] = []
    for vendor in vendors:
        for spec in vendor.specs:
            for mapping in spec.mappings:
                try:
                    dest = normalize_destination(mapping, spec, vendor.name)
                except PositionSpecError:
                    # Malformed mappings fail on their own during sync.
                    continue
                owner = ConflictOwner(vendor=vendor.name, ref=spec.ref, mapping=mapping.source)
                out.append((dest, owner))
    return out


def _sort_key(owner: ConflictOwner) -> tuple[str, str, str]:
    return (owner.vendor, owner.ref, owner.mapping)


def find_conflicts(vendors: Iterable[VendorSpec]) -> list[ConflictRecord]:
    """Every cross-vendor pair writing the same path or nested paths.

    Mappings of the same vendor never conflict with each other: they run
    sequentially inside one job, in declaration order.
    """
    entries = _destinations(vendors)
    records: set[ConflictRecord] = set()

    for i, (path_a, owner_a) in enumerate(entries):
        for path_b, owner_b in entries[i + 1 :]:
            if owner_a.vendor == owner_b.vendor:
                continue
            if path_a == path_b:
                kind, path = EXACT, path_a
            elif is_subpath(path_a, path_b):
                kind, path = OVERLAP, path_b
            elif is_subpath(path_b, path_a):
                kind, path = OVERLAP, path_a
            else:
                continue
            first, second = sorted((owner_a, owner_b), key=_sort_key)
            records.add(ConflictRecord(path=posixpath.normpath(path), kind=kind, first=first, second=second))

    return sorted(records, key=lambda r: (r.path, r.kind, _sort_key(r.first), _sort_key(r.second)))


__all__ = ["EXACT", "OVERLAP", "find_conflicts", "is_subpath"]
