"""Subprocess helpers with timeouts, cancellation and process-tree cleanup.

Every external command (git, hook shells) runs through :func:`run_command`:

- No ``shell=True``; callers pass an argv list
- Each command runs in its own process group
- On timeout or cancellation the whole process tree is terminated
"""
from __future__ import annotations

import logging
import os
import signal
import subprocess
import threading
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

import psutil

from vendorsync.core.exceptions import CommandCancelledError

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 0.1


def _popen_process_group_kwargs() -> dict[str, Any]:
    if os.name == "posix":
        return {"start_new_session": True}
    if os.name == "nt":
        creationflags = getattr(subprocess, "CREATE_NEW_PROCESS_GROUP", None)
        if isinstance(creationflags, int):
            return {"creationflags": creationflags}
    return {}


def _descendants(pid: int) -> list[psutil.Process]:
    try:
        return psutil.Process(pid).children(recursive=True)
    except (psutil.NoSuchProcess, psutil.ZombieProcess, psutil.AccessDenied):
        return []


def terminate_process_tree(proc: subprocess.Popen[Any]) -> None:
    """Terminate ``proc`` and everything it spawned.

    The process group is signalled first (SIGTERM, then SIGKILL); children
    that left the group are swept up via psutil.
    """
    if proc.poll() is not None:
        return

    children = _descendants(proc.pid)

    if os.name == "posix":
        try:
            os.killpg(proc.pid, signal.SIGTERM)
        except (ProcessLookupError, PermissionError):
            proc.terminate()
        try:
            proc.wait(timeout=0.2)
        except subprocess.TimeoutExpired:
            try:
                os.killpg(proc.pid, signal.SIGKILL)
            except (ProcessLookupError, PermissionError):
                proc.kill()
    else:
        proc.kill()

    for child in children:
        try:
            child.kill()
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            pass
    psutil.wait_procs(children, timeout=0.5)

    try:
        proc.wait(timeout=0.5)
    except subprocess.TimeoutExpired:
        logger.warning("Process %s did not exit after SIGKILL", proc.pid)


def run_command(
    argv: Sequence[str],
    *,
    cwd: Optional[Path | str] = None,
    env: Optional[Mapping[str, str]] = None,
    timeout: Optional[float] = None,
    cancel_event: Optional[threading.Event] = None,
    check: bool = False,
) -> subprocess.CompletedProcess:
    """Run ``argv`` capturing text output.

    Args:
        argv: Command and arguments
        cwd: Working directory
        env: Full environment for the child (defaults to the current one)
        timeout: Seconds before the process tree is killed (None = no limit)
        cancel_event: When set, the process tree is killed and
            :class:`CommandCancelledError` is raised
        check: Raise ``CalledProcessError`` on non-zero exit

    Raises:
        subprocess.TimeoutExpired: When the command exceeds ``timeout``
        CommandCancelledError: When ``cancel_event`` is set while running
        subprocess.CalledProcessError: When ``check`` is True and exit is non-zero
    """
    args = [str(a) for a in argv]
    if cancel_event is not None and cancel_event.is_set():
        raise CommandCancelledError(f"Cancelled before running {args[0]}", context={"command": args[0]})

    proc = subprocess.Popen(
        args,
        cwd=str(cwd) if cwd is not None else None,
        env=dict(env) if env is not None else None,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        encoding="utf-8",
        errors="replace",
        **_popen_process_group_kwargs(),
    )

    try:
        stdout, stderr = _wait(proc, args, timeout, cancel_event)
    except BaseException:
        # The child runs in its own session and never sees SIGINT.
        terminate_process_tree(proc)
        raise

    completed = subprocess.CompletedProcess(args, proc.returncode, stdout=stdout, stderr=stderr)
    if check and completed.returncode != 0:
        raise subprocess.CalledProcessError(completed.returncode, args, output=stdout, stderr=stderr)
    return completed


def _wait(
    proc: subprocess.Popen[str],
    args: list[str],
    timeout: Optional[float],
    cancel_event: Optional[threading.Event],
) -> tuple[str, str]:
    waited = 0.0
    while True:
        step = POLL_INTERVAL_SECONDS
        if timeout is not None:
            step = max(min(step, timeout - waited), 0.001)
        try:
            return proc.communicate(timeout=step)
        except subprocess.TimeoutExpired:
            waited += step
        if cancel_event is not None and cancel_event.is_set():
            terminate_process_tree(proc)
            proc.communicate()
            raise CommandCancelledError(f"Cancelled while running {args[0]}", context={"command": args[0]})
        if timeout is not None and waited >= timeout:
            terminate_process_tree(proc)
            stdout, stderr = proc.communicate()
            raise subprocess.TimeoutExpired(args, timeout, output=stdout, stderr=stderr)


__all__ = ["run_command", "terminate_process_tree"]
