"""
Run one shell command string with a hard deadline.

When the ``timeout`` utility is on PATH the command is composed as
``timeout <n> sh -c <command>``. Exit code 124 means the deadline hit only
once ``timeout_sec`` has elapsed; an earlier 124 is the command's own status.
A deadline on our side (a short grace above ``timeout_sec`` when wrapped)
SIGKILLs the whole process group either way, so a child that ignores
SIGTERM or a host without ``timeout`` still cannot hang the caller.
"""

from __future__ import annotations

import contextlib
import logging
import os
import shutil
import signal
import subprocess
import time
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Optional

from .errors import LaunchFailedError

logger = logging.getLogger(__name__)

SHELL = "sh"
TIMEOUT_EXIT_CODE = 124
KILL_GRACE_SEC = 2


@dataclass(frozen=True)
class CommandResult:
    command: str
    exit_code: Optional[int]  # None when the process died from a signal
    stdout: str
    stderr: str
    timed_out: bool = False
    signal: Optional[int] = None
    duration_sec: float = 0.0
    launch_error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and not self.timed_out and self.launch_error is None

    def status_text(self) -> str:
        if self.launch_error is not None:
            return f"launch failed: {self.launch_error}"
        if self.timed_out:
            return "killed (timeout)"
        if self.signal is not None:
            return f"killed by signal {self.signal} (exit code unknown)"
        if self.exit_code is None:
            return "exit code unknown"
        return f"exit code {self.exit_code}"


@lru_cache(maxsize=1)
def timeout_utility() -> Optional[str]:
    path = shutil.which("timeout")
    if path is None:
        logger.debug("'timeout' utility not found; relying on in-process deadline")
    return path


def build_argv(command: str, timeout_sec: int, wrapper: Optional[str]) -> List[str]:
    argv = [SHELL, "-c", command]
    if wrapper and timeout_sec > 0:
        argv = [wrapper, str(timeout_sec)] + argv
    return argv


def _kill_group(proc: subprocess.Popen) -> None:
    if hasattr(os, "killpg"):
        with contextlib.suppress(ProcessLookupError, PermissionError):
            os.killpg(proc.pid, signal.SIGKILL)
    else:
        with contextlib.suppress(OSError):
            proc.kill()


def run_shell_command(command: str, timeout_sec: int) -> CommandResult:
    wrapper = timeout_utility()
    argv = build_argv(command, timeout_sec, wrapper)
    deadline: Optional[float] = None
    if timeout_sec > 0:
        deadline = timeout_sec + (KILL_GRACE_SEC if wrapper else 0)

    logger.debug("running %r (timeout=%ss, wrapper=%s)", command, timeout_sec, wrapper)
    t0 = time.monotonic()
    try:
        proc = subprocess.Popen(
            argv,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            errors="replace",
            start_new_session=True,  # own process group, killable as a whole
        )
    except OSError as exc:
        raise LaunchFailedError(command, str(exc)) from exc

    timed_out = False
    try:
        stdout, stderr = proc.communicate(timeout=deadline)
    except subprocess.TimeoutExpired:
        timed_out = True
        _kill_group(proc)
        stdout, stderr = proc.communicate()

    code = proc.returncode
    elapsed = time.monotonic() - t0
    # a command can exit 124 on its own; only count it once the deadline has passed
    if wrapper and timeout_sec > 0 and code == TIMEOUT_EXIT_CODE and elapsed >= timeout_sec:
        timed_out = True

    exit_code: Optional[int] = code
    sig: Optional[int] = None
    if code is None or code < 0:
        exit_code = None
        sig = -code if code is not None else None

    return CommandResult(
        command=command,
        exit_code=exit_code,
        stdout=stdout or "",
        stderr=stderr or "",
        timed_out=timed_out,
        signal=sig,
        duration_sec=round(elapsed, 3),
    )
