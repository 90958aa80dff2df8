"""Vendor sync manager.

High-level entry point for sync, update, drift verification and conflict
validation. Jobs only return results; this module is the single place
that writes the cache records and the lock file, after every job has
finished.
"""
from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional

from vendorsync.core.vendors.cache import VendorCache
from vendorsync.core.vendors.config import VendorConfig
from vendorsync.core.vendors.conflicts import find_conflicts
from vendorsync.core.vendors.copier import split_destination
from vendorsync.core.vendors.exceptions import ConflictError, SyncCancelledError, VendorCacheError
from vendorsync.core.vendors.executor import ParallelExecutor
from vendorsync.core.vendors.fetch import FetchStrategy, GitFactory
from vendorsync.core.vendors.git import GitClient
from vendorsync.core.vendors.hooks import HookRunner
from vendorsync.core.vendors.lock import VendorLock, entry_from_outcome
from vendorsync.core.vendors.models import (
    ConflictRecord,
    LockEntry,
    RefOutcome,
    SyncJob,
    SyncReport,
    SyncResult,
    VendorSpec,
    VerifyReport,
)
from vendorsync.core.vendors.orchestrator import SyncOrchestrator
from vendorsync.core.vendors.positions import format_path_position
from vendorsync.core.vendors.reporting import LoggingReporter, SyncReporter
from vendorsync.core.vendors.verify import DriftVerifier

logger = logging.getLogger(__name__)


class VendorSyncManager:
    """Manages vendor synchronization operations.

    Coordinates config loading, the conflict gate, job execution and the
    final cache/lock aggregation.

    Args:
        repo_root: Project root containing ``.vendorsync/``
        reporter: Where progress and warnings go (default: logging)
        git_factory: Builds git clients; tests inject fakes here
        verbose: Log git commands at INFO (overrides ``settings.verbose``)
    """

    def __init__(
        self,
        repo_root: Path,
        *,
        reporter: Optional[SyncReporter] = None,
        git_factory: GitFactory = GitClient,
        verbose: bool | None = None,
    ) -> None:
        self.repo_root = Path(repo_root)
        self.config = VendorConfig(self.repo_root)
        self.lock = VendorLock(self.repo_root)
        self.cache = VendorCache(self.repo_root)
        self.reporter = reporter or LoggingReporter()
        self.git_factory = git_factory
        self.verbose = verbose
        self._cancel_event = threading.Event()

    def cancel(self) -> None:
        """Stop the running sync: pending jobs are skipped, running commands killed."""
        self._cancel_event.set()

    def validate_conflicts(self) -> list[ConflictRecord]:
        return find_conflicts(self.config.get_vendors())

    def verify(self, vendor: str | None = None, group: str | None = None) -> VerifyReport:
        """Compare vendored files with the lock file, without network access.

        Raises:
            VendorNotFoundError: Unknown ``vendor``
            GroupNotFoundError: Unknown ``group``
            VendorLockError: The lock file cannot be read
        """
        selected = self.config.select(vendor, group)
        self.lock.load()
        names = {v.name for v in selected}
        entries = [e for e in self.lock.get_entries() if e.name in names]
        return DriftVerifier(self.repo_root, self.cache).verify(entries, selected)

    def update(
        self,
        vendor: str | None = None,
        group: str | None = None,
        *,
        parallel: bool | None = None,
        workers: int | None = None,
        dry_run: bool = False,
    ) -> SyncReport:
        """Re-resolve every selected ref to its latest revision."""
        return self.sync(
            vendor,
            group,
            force=True,
            no_cache=True,
            parallel=parallel,
            workers=workers,
            dry_run=dry_run,
        )

    def sync(
        self,
        vendor: str | None = None,
        group: str | None = None,
        *,
        force: bool = False,
        no_cache: bool = False,
        parallel: bool | None = None,
        workers: int | None = None,
        dry_run: bool = False,
    ) -> SyncReport:
        """Sync the selected vendors.

        Raises:
            VendorNotFoundError: Unknown ``vendor``
            GroupNotFoundError: Unknown ``group``
            VendorConfigError: Invalid configuration
            ConflictError: Destinations collide and ``parallel`` is set
            VendorLockError: The lock file cannot be read or written
        """
        selected = self.config.select(vendor, group)
        settings = self.config.settings
        if parallel is None:
            parallel = settings.parallel
        if workers is None:
            workers = settings.workers

        self.lock.load()

        conflicts = find_conflicts(selected)
        if conflicts:
            if parallel and len(selected) > 1:
                raise ConflictError(
                    "Vendors write overlapping destinations; refusing to sync in parallel:\n"
                    + "\n".join(f"- {c.describe()}" for c in conflicts),
                    conflicts=conflicts,
                )
            for conflict in conflicts:
                self.reporter.warning(f"Conflict: {conflict.describe()} (last vendor in config wins)")

        jobs = [self._job(v, force=force, no_cache=no_cache) for v in selected]
        if dry_run:
            return self._plan(jobs)

        orchestrator = self._orchestrator()
        if parallel and len(jobs) > 1:
            executor = ParallelExecutor(workers, cancel_event=self._cancel_event)
            results, _ = executor.run(jobs, orchestrator.run)
            order = {v.name: i for i, v in enumerate(selected)}
            results.sort(key=lambda r: order[r.vendor_name])
        else:
            results = []
            for job in jobs:
                if self._cancel_event.is_set():
                    results.append(
                        SyncResult(
                            vendor_name=job.vendor.name,
                            error=SyncCancelledError("Sync cancelled before start", vendor=job.vendor.name),
                        )
                    )
                    continue
                results.append(orchestrator.run(job))

        entries = self._aggregate(selected, results)
        return SyncReport(results=tuple(results), lock_entries=tuple(entries))

    def _job(self, vendor: VendorSpec, *, force: bool, no_cache: bool) -> SyncJob:
        previous = {e.ref: e for e in self.lock.entries_for(vendor.name)}
        return SyncJob(
            vendor=vendor,
            locked_refs={} if force else {ref: e.commit_hash for ref, e in previous.items()},
            force=force,
            no_cache=no_cache,
            previous=previous,
        )

    def _orchestrator(self) -> SyncOrchestrator:
        settings = self.config.settings
        verbose = settings.verbose if self.verbose is None else self.verbose
        fetcher = FetchStrategy(
            git_factory=self.git_factory,
            timeout=settings.git_timeout_seconds,
            verbose=verbose,
            cancel_event=self._cancel_event,
        )
        hooks = HookRunner(
            self.repo_root,
            timeout=settings.hook_timeout_seconds,
            cancel_event=self._cancel_event,
        )
        return SyncOrchestrator(
            self.repo_root,
            fetcher=fetcher,
            cache=self.cache,
            hooks=hooks,
            reporter=self.reporter,
            cancel_event=self._cancel_event,
        )

    def _plan(self, jobs: list[SyncJob]) -> SyncReport:
        """Describe what a sync would do without touching disk or network."""
        results: list[SyncResult] = []
        for job in jobs:
            vendor = job.vendor
            outcomes: list[RefOutcome] = []
            for spec in vendor.specs:
                pinned = job.locked_refs.get(spec.ref, "")
                at = f"locked {pinned[:7]}" if pinned else "latest"
                self.reporter.progress(f"[dry-run] {vendor.name}@{spec.ref} ({at})")
                for mapping in spec.mappings:
                    dest_file, dest_pos = split_destination(mapping, spec, vendor.name)
                    self.reporter.progress(
                        f"[dry-run]   {mapping.source} -> {format_path_position(dest_file, dest_pos)}"
                    )
                outcomes.append(RefOutcome(ref=spec.ref, commit_hash=pinned))
            results.append(SyncResult(vendor_name=vendor.name, refs=tuple(outcomes)))
        return SyncReport(results=tuple(results), dry_run=True)

    def _aggregate(self, selected: list[VendorSpec], results: list[SyncResult]) -> list[LockEntry]:
        """Merge job results into the cache and the lock file.

        Cache records are written for every completed ref. Lock entries are
        replaced only for vendors whose job succeeded; a failed vendor keeps
        what the lock already had.
        """
        by_name = {v.name: v for v in selected}
        written: list[LockEntry] = []

        for result in results:
            vendor = by_name[result.vendor_name]
            for outcome in result.refs:
                if outcome.cache_entry is None:
                    continue
                try:
                    self.cache.save(outcome.cache_entry)
                except VendorCacheError as e:
                    logger.warning("Could not update cache for %s@%s: %s", vendor.name, outcome.ref, e)

            if not result.success:
                continue
            for outcome in result.refs:
                entry = entry_from_outcome(vendor, outcome, self.lock.get_entry(vendor.name, outcome.ref))
                self.lock.add_entry(entry)
                written.append(entry)

        configured = {(v.name, s.ref) for v in self.config.get_vendors() for s in v.specs}
        for name, ref in {e.key for e in self.lock.get_entries()} - configured:
            try:
                self.cache.delete(name, ref)
            except VendorCacheError as e:
                logger.warning("Could not remove stale cache record for %s@%s: %s", name, ref, e)
        self.lock.retain(configured)
        self.lock.save()
        return sorted(written, key=lambda e: e.key)


__all__ = ["VendorSyncManager"]
