"""Thin git client used by the fetch strategy.

Every invocation goes through :func:`run_command` so it honours the
configured timeout and the job's cancellation event. Failures surface as
:class:`GitCommandError` with credentials redacted from argv and output.
"""
from __future__ import annotations

import logging
import os
import re
import subprocess
import threading
from pathlib import Path
from typing import Optional

from vendorsync.core.exceptions import CommandCancelledError
from vendorsync.core.utils.subprocess import run_command
from vendorsync.core.vendors.exceptions import GitCommandError, SyncCancelledError
from vendorsync.core.vendors.redaction import redact_git_args, redact_text_credentials

logger = logging.getLogger(__name__)

DEFAULT_GIT_TIMEOUT_SECONDS = 600.0

_FULL_SHA_RE = re.compile(r"^[0-9a-f]{40}([0-9a-f]{24})?$")


def is_full_revision(ref: str) -> bool:
    return bool(_FULL_SHA_RE.match(ref))


class GitClient:
    """Runs git inside one working directory.

    Args:
        path: Repository directory (may not exist yet before :meth:`init`)
        timeout: Per-command timeout in seconds
        verbose: Log each git argv at INFO instead of DEBUG
        cancel_event: Shared cancellation flag forwarded to every command
    """

    def __init__(
        self,
        path: Path,
        *,
        timeout: float = DEFAULT_GIT_TIMEOUT_SECONDS,
        verbose: bool = False,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        self.path = Path(path)
        self.timeout = timeout
        self.verbose = verbose
        self.cancel_event = cancel_event

    # ------------------------------------------------------------------
    # Repository setup
    # ------------------------------------------------------------------
    def init(self) -> None:
        self.path.mkdir(parents=True, exist_ok=True)
        self._run(["init", "--quiet"])

    def add_remote(self, name: str, url: str) -> None:
        self._run(["remote", "add", name, "--", url])

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------
    def fetch(self, ref: str, depth: int | None = 1) -> None:
        """Fetch a single ref from ``origin`` (shallow when ``depth`` is set)."""
        args = ["fetch", "--quiet", "--no-tags"]
        if depth:
            args.append(f"--depth={depth}")
        self._run([*args, "origin", ref])

    def fetch_all(self) -> None:
        """Fetch every branch and tag, converting a shallow clone to a full one."""
        args = ["fetch", "--quiet", "--tags"]
        if self.is_shallow():
            args.append("--unshallow")
        self._run([*args, "origin", "+refs/heads/*:refs/remotes/origin/*"])

    def is_shallow(self) -> bool:
        result = self._run(["rev-parse", "--is-shallow-repository"], check=False)
        return result.returncode == 0 and result.stdout.strip() == "true"

    # ------------------------------------------------------------------
    # Revisions
    # ------------------------------------------------------------------
    def has_commit(self, rev: str) -> bool:
        result = self._run(["cat-file", "-e", f"{rev}^{{commit}}"], check=False)
        return result.returncode == 0

    def resolve(self, ref: str) -> str | None:
        """Resolve ``ref`` to a commit id, or None when it does not exist."""
        result = self._run(["rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"], check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def checkout(self, rev: str) -> None:
        self._run(["checkout", "--quiet", "--force", "--detach", rev])

    def head(self) -> str:
        return self._run(["rev-parse", "HEAD"]).stdout.strip()

    def ls_remote(self, url: str, ref: str) -> str | None:
        """Resolve ``ref`` on the remote without fetching.

        Branches win over tags; annotated tags are peeled. A full
        revision id is returned as-is.
        """
        if is_full_revision(ref):
            return ref
        # Patterns match on the tail, so the peeled entry needs its own pattern.
        result = self._run(["ls-remote", "--", url, ref, f"{ref}^{{}}"], cwd=None)
        found: dict[str, str] = {}
        for line in result.stdout.splitlines():
            parts = line.split("\t", 1)
            if len(parts) == 2:
                found[parts[1].strip()] = parts[0].strip()
        for name in (f"refs/heads/{ref}", f"refs/tags/{ref}^{{}}", f"refs/tags/{ref}", ref):
            if name in found:
                return found[name]
        return None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _run(
        self,
        args: list[str],
        *,
        cwd: Path | None | str = "",
        check: bool = True,
    ) -> subprocess.CompletedProcess:
        workdir = self.path if cwd == "" else cwd
        safe_cmd = "git " + " ".join(redact_git_args(args))
        logger.log(logging.INFO if self.verbose else logging.DEBUG, "Running %s", safe_cmd)

        env = os.environ.copy()
        env["GIT_TERMINAL_PROMPT"] = "0"
        try:
            result = run_command(
                ["git", *args],
                cwd=workdir,
                env=env,
                timeout=self.timeout,
                cancel_event=self.cancel_event,
            )
        except CommandCancelledError as e:
            raise SyncCancelledError(f"Cancelled while running {safe_cmd}") from e
        except subprocess.TimeoutExpired as e:
            raise GitCommandError(
                f"Git command timed out after {self.timeout:g}s: {safe_cmd}",
                context={"command": safe_cmd, "timed_out": True},
            ) from e
        except OSError as e:
            raise GitCommandError(f"Unable to run git: {e}", context={"command": safe_cmd}) from e

        if check and result.returncode != 0:
            safe_output = redact_text_credentials((result.stderr or result.stdout or "").strip())
            raise GitCommandError(
                f"Git command failed: {safe_cmd}\n{safe_output}".rstrip(),
                context={"command": safe_cmd, "returncode": result.returncode},
            )
        return result


__all__ = ["DEFAULT_GIT_TIMEOUT_SECONDS", "GitClient", "is_full_revision"]
