"""Bounded worker pool for vendor sync jobs.

Jobs never share mutable state: each returns a :class:`SyncResult` and
the caller merges them once the pool has drained.
"""
from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Callable, Optional, Sequence

from vendorsync.core.vendors.exceptions import SyncCancelledError, VendorError
from vendorsync.core.vendors.models import SyncJob, SyncResult

logger = logging.getLogger(__name__)

MAX_DEFAULT_WORKERS = 8

# KeyboardInterrupt is only seen between waits.
_WAIT_SECONDS = 0.1


def default_workers(job_count: int, requested: int | None = None) -> int:
    """Worker count: ``requested`` or the CPU count capped at 8, never more than jobs."""
    if requested is not None and requested > 0:
        workers = requested
    else:
        workers = min(os.cpu_count() or 1, MAX_DEFAULT_WORKERS)
    return max(1, min(workers, job_count))


class ParallelExecutor:
    """Runs sync jobs on a thread pool.

    Args:
        workers: Requested worker count (None = CPU count capped at 8)
        cancel_event: Shared with the orchestrator and every subprocess
    """

    def __init__(self, workers: int | None = None, cancel_event: Optional[threading.Event] = None) -> None:
        self.workers = workers
        self.cancel_event = cancel_event or threading.Event()

    def cancel(self) -> None:
        self.cancel_event.set()

    def run(
        self,
        jobs: Sequence[SyncJob],
        fn: Callable[[SyncJob], SyncResult],
    ) -> tuple[list[SyncResult], VendorError | None]:
        """Run every job; return results in completion order and the first error.

        Already-dispatched jobs always complete. Jobs that have not started
        when :meth:`cancel` is called return a cancelled result. An interrupt
        while waiting cancels the run and is re-raised.
        """
        if not jobs:
            return [], None

        workers = default_workers(len(jobs), self.workers)
        logger.debug("Running %d job(s) on %d worker(s)", len(jobs), workers)

        results: list[SyncResult] = []
        first_error: VendorError | None = None

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="vendorsync") as pool:
            pending: dict[Future[SyncResult], SyncJob] = {
                pool.submit(self._guarded, fn, job): job for job in jobs
            }
            try:
                while pending:
                    done, _ = wait(pending, timeout=_WAIT_SECONDS, return_when=FIRST_COMPLETED)
                    for future in done:
                        pending.pop(future)
                        result = future.result()
                        results.append(result)
                        if result.error is not None and first_error is None:
                            first_error = result.error
            except BaseException:
                # Running jobs see the event and kill their commands; queued ones never start.
                self.cancel_event.set()
                pool.shutdown(wait=False, cancel_futures=True)
                raise

        return results, first_error

    def _guarded(self, fn: Callable[[SyncJob], SyncResult], job: SyncJob) -> SyncResult:
        if self.cancel_event.is_set():
            return SyncResult(
                vendor_name=job.vendor.name,
                error=SyncCancelledError("Sync cancelled before start", vendor=job.vendor.name),
            )
        try:
            return fn(job)
        except VendorError as e:
            return SyncResult(vendor_name=job.vendor.name, error=e.with_context(vendor=job.vendor.name))
        except Exception as e:
            logger.debug("Job for %s raised", job.vendor.name, exc_info=True)
            error = VendorError(f"{type(e).__name__}: {e}", vendor=job.vendor.name)
            error.__cause__ = e
            return SyncResult(vendor_name=job.vendor.name, error=error)


__all__ = ["MAX_DEFAULT_WORKERS", "ParallelExecutor", "default_workers"]
