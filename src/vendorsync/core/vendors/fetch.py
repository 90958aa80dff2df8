"""Fetch strategy: produce a working tree at an exact revision.

Shallow first (``--depth 1`` of just the requested ref), full fetch as
fallback. A pinned revision that is missing even after the full fetch
is a :class:`StalePinnedRevisionError`, never a generic fetch failure.
"""
from __future__ import annotations

import logging
import tempfile
import threading
from pathlib import Path
from typing import Callable, Optional

from vendorsync.core.vendors.exceptions import (
    FetchError,
    GitCommandError,
    StalePinnedRevisionError,
)
from vendorsync.core.vendors.git import DEFAULT_GIT_TIMEOUT_SECONDS, GitClient
from vendorsync.core.vendors.redaction import redact_url_credentials

logger = logging.getLogger(__name__)

TEMP_DIR_PREFIX = "vendorsync-"

GitFactory = Callable[..., GitClient]


def create_temp_dir() -> Path:
    """Create an exclusive temporary directory for one sync job."""
    return Path(tempfile.mkdtemp(prefix=TEMP_DIR_PREFIX))


class FetchStrategy:
    """Fetch a ref (or pinned revision) into a fresh repository.

    Args:
        git_factory: Builds the git client for a directory; tests pass a fake
        timeout: Per-command git timeout in seconds
        verbose: Forwarded to every git client
        cancel_event: Forwarded to every git client
    """

    def __init__(
        self,
        *,
        git_factory: GitFactory = GitClient,
        timeout: float = DEFAULT_GIT_TIMEOUT_SECONDS,
        verbose: bool = False,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        self.git_factory = git_factory
        self.timeout = timeout
        self.verbose = verbose
        self.cancel_event = cancel_event

    def client(self, path: Path) -> GitClient:
        return self.git_factory(
            path,
            timeout=self.timeout,
            verbose=self.verbose,
            cancel_event=self.cancel_event,
        )

    def resolve_remote(self, url: str, ref: str) -> str | None:
        """Resolve ``ref`` on the remote without fetching (``git ls-remote``)."""
        return self.client(Path(".")).ls_remote(url, ref)

    def fetch(self, url: str, ref: str, dest: Path, *, pinned: str | None = None) -> tuple[GitClient, str]:
        """Fetch into ``dest`` and check out the resolved revision.

        Returns:
            Tuple of (git client bound to ``dest``, checked-out revision)

        Raises:
            FetchError: The ref could not be fetched or resolved
            StalePinnedRevisionError: ``pinned`` is unreachable after a full fetch
        """
        safe_url = redact_url_credentials(url)
        git = self.client(dest)
        git.init()
        git.add_remote("origin", url)

        full = False
        try:
            git.fetch(ref, depth=1)
        except GitCommandError as e:
            logger.debug("Shallow fetch of %s@%s failed, trying full fetch: %s", safe_url, ref, e)
            full = self._fetch_all(git, safe_url, ref)

        if pinned:
            if not git.has_commit(pinned):
                if not full:
                    logger.debug("Revision %s not in shallow history of %s, fetching all", pinned[:12], safe_url)
                    full = self._fetch_all(git, safe_url, ref)
                if not git.has_commit(pinned):
                    raise StalePinnedRevisionError(pinned, ref=ref)
            revision = pinned
        else:
            revision = self._resolve_fetched(git, ref, full)
            if revision is None:
                raise FetchError(f"Ref '{ref}' not found in {safe_url}", ref=ref)

        git.checkout(revision)
        # Expands abbreviated pins to the full revision.
        revision = git.head()
        logger.debug("Checked out %s@%s at %s", safe_url, ref, revision[:12])
        return git, revision

    def _fetch_all(self, git: GitClient, safe_url: str, ref: str) -> bool:
        try:
            git.fetch_all()
        except GitCommandError as e:
            raise FetchError(
                f"Failed to fetch {safe_url}: {e}",
                ref=ref,
                context={"url": safe_url},
            ) from e
        return True

    def _resolve_fetched(self, git: GitClient, ref: str, full: bool) -> str | None:
        candidates = [] if full else ["FETCH_HEAD"]
        candidates += [f"refs/remotes/origin/{ref}", f"refs/tags/{ref}", ref]
        for candidate in candidates:
            revision = git.resolve(candidate)
            if revision:
                return revision
        return None


__all__ = ["TEMP_DIR_PREFIX", "FetchStrategy", "create_temp_dir"]
