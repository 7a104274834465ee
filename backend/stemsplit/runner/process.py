"""
Run an external command with both output streams drained concurrently.
Never raises: missing executables, spawn errors, timeouts and cancellation are reported on ToolInvocation.
"""

import os
import shlex
import signal
import subprocess
import threading
import time
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import IO

from stemsplit.console import log

LineHandler = Callable[[str], None]

# How often the wait loop checks the deadline and the cancel event
_POLL_SEC = 0.1


@dataclass(frozen=True)
class ToolInvocation:
    command: str
    arguments: str
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False
    cancelled: bool = False
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and self.error is None


def _build_argv(command: str | Sequence[str], args: str | Sequence[str] | None) -> list[str]:
    argv = shlex.split(command) if isinstance(command, str) else list(command)
    if isinstance(args, str):
        argv += shlex.split(args)
    elif args:
        argv += [str(a) for a in args]
    return argv


def _drain(stream: IO[str], on_line: LineHandler | None) -> str:
    """Read a stream to EOF, calling on_line per line. Returns the full captured text."""
    captured: list[str] = []
    handler = on_line
    # Text mode uses universal newlines, so tqdm's "\r" redraws arrive as separate lines
    for raw in stream:
        captured.append(raw)
        line = raw.rstrip("\r\n")
        if handler is None or not line:
            continue
        try:
            handler(line)
        except Exception as e:
            # Keep draining so the child never blocks on a full pipe
            log(f"Line handler failed, ignoring further lines: {e}")
            handler = None
    stream.close()
    return "".join(captured)


def kill_process_tree(proc: subprocess.Popen) -> None:
    """Force-kill proc and everything it spawned."""
    if proc.poll() is not None:
        return
    try:
        if os.name == "posix":
            # Started with start_new_session=True, so its pid is the process-group id
            os.killpg(proc.pid, signal.SIGKILL)
        else:
            subprocess.run(
                ["taskkill", "/F", "/T", "/PID", str(proc.pid)],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                check=False,
            )
    except (ProcessLookupError, PermissionError, OSError) as e:
        log(f"Process-tree kill failed ({e}); killing pid {proc.pid} only")
        try:
            proc.kill()
        except ProcessLookupError:
            pass


def _wait(proc: subprocess.Popen, timeout: float | None, cancel_event: threading.Event | None) -> str:
    """Wait for exit. Returns 'exited', 'timeout' or 'cancelled'."""
    deadline = time.monotonic() + timeout if timeout else None
    while True:
        if cancel_event is not None and cancel_event.is_set():
            return "cancelled"
        step = _POLL_SEC
        if deadline is not None:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return "timeout"
            step = min(step, remaining)
        try:
            proc.wait(timeout=step)
            return "exited"
        except subprocess.TimeoutExpired:
            continue


def run_process(
    command: str | Sequence[str],
    args: str | Sequence[str] | None = None,
    *,
    on_stdout: LineHandler | None = None,
    on_stderr: LineHandler | None = None,
    timeout: float | None = None,
    cancel_event: threading.Event | None = None,
    cwd: str | os.PathLike | None = None,
) -> ToolInvocation:
    """
    Spawn command + args, stream stdout/stderr lines to the handlers as they arrive, wait for exit.
    On timeout or cancellation the whole process tree is killed and exit_code is -1.
    """
    argv = _build_argv(command, args)
    name = argv[0] if argv else ""
    arguments = shlex.join(argv[1:])
    if not argv:
        return ToolInvocation(command=name, arguments=arguments, exit_code=-1, error="Empty command")

    try:
        proc = subprocess.Popen(
            argv,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            bufsize=1,
            cwd=cwd,
            start_new_session=os.name == "posix",
        )
    except FileNotFoundError:
        return ToolInvocation(command=name, arguments=arguments, exit_code=-1, error=f"Executable not found: {name}")
    except OSError as e:
        return ToolInvocation(command=name, arguments=arguments, exit_code=-1, error=f"Failed to start {name}: {e}")

    # Two readers: draining one stream at a time can deadlock when the other pipe fills up
    with ThreadPoolExecutor(max_workers=2, thread_name_prefix="stemsplit-io") as pool:
        out_future = pool.submit(_drain, proc.stdout, on_stdout)
        err_future = pool.submit(_drain, proc.stderr, on_stderr)
        status = _wait(proc, timeout, cancel_event)
        if status != "exited":
            kill_process_tree(proc)
            proc.wait()
        stdout = out_future.result()
        stderr = err_future.result()

    if status == "timeout":
        return ToolInvocation(
            command=name, arguments=arguments, exit_code=-1, stdout=stdout, stderr=stderr,
            timed_out=True, error=f"Process timed out after {timeout:g}s",
        )
    if status == "cancelled":
        return ToolInvocation(
            command=name, arguments=arguments, exit_code=-1, stdout=stdout, stderr=stderr,
            cancelled=True, error="Process cancelled",
        )
    return ToolInvocation(command=name, arguments=arguments, exit_code=proc.returncode, stdout=stdout, stderr=stderr)
