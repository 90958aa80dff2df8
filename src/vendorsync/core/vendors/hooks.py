"""Pre/post-sync hook execution.

Hooks are shell snippets run with ``sh -c`` from the project root. They
see the current environment plus ``VENDORSYNC_*`` variables describing
the sync.
"""
from __future__ import annotations

import logging
import os
import subprocess
import threading
from pathlib import Path
from typing import Optional

from vendorsync.core.exceptions import CommandCancelledError
from vendorsync.core.utils.subprocess import run_command
from vendorsync.core.vendors.exceptions import HookError, SyncCancelledError, SyncPhase
from vendorsync.core.vendors.models import HookContext, VendorSpec
from vendorsync.core.vendors.redaction import redact_text_credentials, redact_url_credentials, sanitize_env_value

logger = logging.getLogger(__name__)

DEFAULT_HOOK_TIMEOUT_SECONDS = 300.0

_OUTPUT_TAIL = 2000


def hook_environment(ctx: HookContext, base: Optional[dict[str, str]] = None) -> dict[str, str]:
    """Environment for a hook: ``base`` (default: ``os.environ``) plus context."""
    env = dict(os.environ if base is None else base)
    values = {
        "VENDORSYNC_NAME": ctx.vendor,
        "VENDORSYNC_URL": redact_url_credentials(ctx.url),
        "VENDORSYNC_REF": ctx.ref,
        "VENDORSYNC_COMMIT": ctx.commit,
        "VENDORSYNC_ROOT": ctx.root,
        "VENDORSYNC_FILES_COPIED": ctx.files_copied,
        "VENDORSYNC_DIRS_CREATED": ctx.dirs_created,
    }
    for key, value in values.items():
        env[key] = sanitize_env_value(value)
    return env


class HookRunner:
    """Runs a vendor's hooks with a timeout and cancellation support."""

    def __init__(
        self,
        repo_root: Path,
        *,
        timeout: float = DEFAULT_HOOK_TIMEOUT_SECONDS,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        self.repo_root = Path(repo_root)
        self.timeout = timeout
        self.cancel_event = cancel_event

    def run_pre_sync(self, vendor: VendorSpec, ctx: HookContext) -> None:
        if vendor.hooks.pre_sync:
            self._run(vendor.hooks.pre_sync, ctx, SyncPhase.PRE_SYNC)

    def run_post_sync(self, vendor: VendorSpec, ctx: HookContext) -> None:
        if vendor.hooks.post_sync:
            self._run(vendor.hooks.post_sync, ctx, SyncPhase.POST_SYNC)

    def _run(self, command: str, ctx: HookContext, phase: SyncPhase) -> None:
        label = phase.value.replace("_", "-")
        logger.debug("Running %s hook for %s: %s", label, ctx.vendor, command)
        try:
            result = run_command(
                ["sh", "-c", command],
                cwd=self.repo_root,
                env=hook_environment(ctx),
                timeout=self.timeout,
                cancel_event=self.cancel_event,
            )
        except CommandCancelledError as e:
            raise SyncCancelledError(
                f"{label} hook cancelled", vendor=ctx.vendor, ref=ctx.ref, phase=phase
            ) from e
        except subprocess.TimeoutExpired as e:
            raise HookError(
                f"{label} hook timed out after {self.timeout:g}s",
                command=command,
                timed_out=True,
                vendor=ctx.vendor,
                ref=ctx.ref,
                phase=phase,
            ) from e
        except OSError as e:
            raise HookError(
                f"{label} hook could not be started: {e}",
                command=command,
                vendor=ctx.vendor,
                ref=ctx.ref,
                phase=phase,
            ) from e

        if result.stdout:
            logger.debug("%s hook output for %s:\n%s", label, ctx.vendor, result.stdout.rstrip())
        if result.returncode != 0:
            output = redact_text_credentials((result.stderr or result.stdout or "").strip())[-_OUTPUT_TAIL:]
            message = f"{label} hook failed with exit code {result.returncode}"
            if output:
                message = f"{message}: {output}"
            raise HookError(
                message,
                command=command,
                returncode=result.returncode,
                vendor=ctx.vendor,
                ref=ctx.ref,
                phase=phase,
            )


__all__ = ["DEFAULT_HOOK_TIMEOUT_SECONDS", "HookRunner", "hook_environment"]
