"""Per-vendor sync state machine.

For every ref of a vendor::

    Pending -> CacheCheck -> {Skip | Fetching} -> Extracting -> Hooking -> {Done | Failed}

The pre-sync hook runs once before the first ref and the post-sync hook
once after the last, whether or not the refs were served from cache.
Failures never escape :meth:`SyncOrchestrator.run`; they come back as
``SyncResult.error`` annotated with vendor, ref and phase.
"""
from __future__ import annotations

import logging
import shutil
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from vendorsync.core.vendors.cache import VendorCache, file_checksum, mapping_digest
from vendorsync.core.vendors.copier import MappingCopier
from vendorsync.core.vendors.exceptions import (
    CopyError,
    FetchError,
    HookError,
    SyncCancelledError,
    SyncPhase,
    VendorCacheError,
    VendorError,
)
from vendorsync.core.vendors.fetch import FetchStrategy, create_temp_dir
from vendorsync.core.vendors.hooks import HookRunner
from vendorsync.core.vendors.models import (
    HookContext,
    RefOutcome,
    RefSpec,
    SyncJob,
    SyncResult,
)
from vendorsync.core.vendors.redaction import redact_url_credentials
from vendorsync.core.vendors.reporting import LoggingReporter, SyncReporter

logger = logging.getLogger(__name__)

# Error type for failures that do not raise a VendorError themselves.
_PHASE_ERRORS: dict[SyncPhase, type[VendorError]] = {
    SyncPhase.PRE_SYNC: HookError,
    SyncPhase.CACHE_CHECK: VendorCacheError,
    SyncPhase.FETCH: FetchError,
    SyncPhase.EXTRACT: CopyError,
    SyncPhase.POST_SYNC: HookError,
}


@dataclass
class _JobState:
    ref: str | None = None
    phase: SyncPhase = SyncPhase.PRE_SYNC
    temp_dir: Path | None = None
    fetches: int = 0


class SyncOrchestrator:
    """Runs one :class:`SyncJob` to completion.

    Safe to share between worker threads: all per-job state lives in
    :meth:`run`.
    """

    def __init__(
        self,
        repo_root: Path,
        *,
        fetcher: FetchStrategy,
        cache: VendorCache,
        hooks: HookRunner,
        reporter: Optional[SyncReporter] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        self.repo_root = Path(repo_root)
        self.fetcher = fetcher
        self.cache = cache
        self.hooks = hooks
        self.reporter = reporter or LoggingReporter()
        self.cancel_event = cancel_event or threading.Event()

    def run(self, job: SyncJob) -> SyncResult:
        vendor = job.vendor
        state = _JobState()
        outcomes: list[RefOutcome] = []
        warnings: list[str] = []
        error: VendorError | None = None

        try:
            self._check_cancelled()
            first_ref = vendor.specs[0].ref if vendor.specs else ""
            self.hooks.run_pre_sync(vendor, self._hook_context(job, first_ref, "", outcomes))

            for spec in vendor.specs:
                self._check_cancelled()
                outcomes.append(self._sync_ref(job, spec, state, warnings))

            state.phase = SyncPhase.POST_SYNC
            self._check_cancelled()
            last = outcomes[-1] if outcomes else None
            self.hooks.run_post_sync(
                vendor,
                self._hook_context(
                    job,
                    last.ref if last else first_ref,
                    last.commit_hash if last else "",
                    outcomes,
                ),
            )
        except VendorError as e:
            error = e.with_context(vendor=vendor.name, ref=state.ref, phase=state.phase)
        except OSError as e:
            error = CopyError(str(e)).with_context(vendor=vendor.name, ref=state.ref, phase=state.phase)
        except Exception as e:
            logger.debug("Unexpected failure syncing %s", vendor.name, exc_info=True)
            error = _PHASE_ERRORS[state.phase](f"{type(e).__name__}: {e}").with_context(
                vendor=vendor.name, ref=state.ref, phase=state.phase
            )
            error.__cause__ = e
        finally:
            if state.temp_dir is not None:
                shutil.rmtree(state.temp_dir, ignore_errors=True)

        if error is not None:
            self.reporter.warning(f"{vendor.name}: {error}")
        else:
            copied = sum(o.files_copied for o in outcomes)
            self.reporter.success(f"{vendor.name}: synced ({copied} file(s) copied)")

        return SyncResult(
            vendor_name=vendor.name,
            refs=tuple(outcomes),
            warnings=tuple(warnings),
            error=error,
        )

    def _sync_ref(self, job: SyncJob, spec: RefSpec, state: _JobState, warnings: list[str]) -> RefOutcome:
        vendor = job.vendor
        state.ref = spec.ref
        state.phase = SyncPhase.CACHE_CHECK
        digest = mapping_digest(spec)
        pinned = None if job.force else job.locked_refs.get(spec.ref)

        if not (job.force or job.no_cache):
            revision = pinned or self._resolve_remote(vendor.url, spec.ref)
            if revision and self.cache.can_skip(vendor.name, spec.ref, revision, digest):
                return self._cached_outcome(job, spec, revision, digest)

        state.phase = SyncPhase.FETCH
        self.reporter.progress(f"{vendor.name}@{spec.ref}: fetching")
        if state.temp_dir is None:
            state.temp_dir = create_temp_dir()
        worktree = state.temp_dir / f"ref-{state.fetches}"
        state.fetches += 1
        _, revision = self.fetcher.fetch(vendor.url, spec.ref, worktree, pinned=pinned)

        self._check_cancelled()
        state.phase = SyncPhase.EXTRACT
        copier = MappingCopier(self.repo_root, known_hashes=job.known_hashes)
        stats = copier.copy_ref(worktree, vendor, spec)
        for message in stats.warnings:
            warnings.append(message)
            self.reporter.warning(f"{vendor.name}@{spec.ref}: {message}")

        file_hashes = {rel: file_checksum(self.repo_root / rel) for rel in sorted(stats.written)}
        return RefOutcome(
            ref=spec.ref,
            commit_hash=revision,
            files_copied=stats.files_copied,
            dirs_created=stats.dirs_created,
            cache_hit=False,
            positions=tuple(stats.positions),
            file_hashes=file_hashes,
            cache_entry=self.cache.build(
                vendor.name, spec.ref, revision, digest, stats.written, positions=stats.positions
            ),
        )

    def _cached_outcome(self, job: SyncJob, spec: RefSpec, revision: str, digest: str) -> RefOutcome:
        vendor = job.vendor
        self.reporter.progress(f"{vendor.name}@{spec.ref}: up to date at {revision[:7]}")
        previous_entry = self.cache.load(vendor.name, spec.ref)
        paths = [f.path for f in previous_entry.files] if previous_entry else []
        positions = previous_entry.positions if previous_entry else ()
        previous_lock = job.previous.get(spec.ref)
        if not positions and previous_lock and previous_lock.commit_hash == revision:
            # Records written before positions were cached.
            positions = previous_lock.positions
        entry = self.cache.build(vendor.name, spec.ref, revision, digest, paths, positions=positions)

        return RefOutcome(
            ref=spec.ref,
            commit_hash=revision,
            cache_hit=True,
            positions=positions,
            file_hashes={f.path: f.sha256 for f in entry.files},
            cache_entry=entry,
        )

    def _resolve_remote(self, url: str, ref: str) -> str | None:
        try:
            return self.fetcher.resolve_remote(url, ref)
        except SyncCancelledError:
            raise
        except VendorError as e:
            logger.debug("Could not resolve %s@%s remotely, treating as cache miss: %s",
                         redact_url_credentials(url), ref, e)
            return None

    def _hook_context(self, job: SyncJob, ref: str, commit: str, outcomes: list[RefOutcome]) -> HookContext:
        return HookContext(
            vendor=job.vendor.name,
            url=job.vendor.url,
            ref=ref,
            commit=commit,
            root=str(self.repo_root),
            files_copied=sum(o.files_copied for o in outcomes),
            dirs_created=sum(o.dirs_created for o in outcomes),
        )

    def _check_cancelled(self) -> None:
        if self.cancel_event.is_set():
            raise SyncCancelledError("Sync cancelled")


__all__ = ["SyncOrchestrator"]
