"""
Stem separation pipeline: validate, probe the tool, run it, locate its output, copy stems out, clean up.
Runs demucs as a subprocess in a fresh temp directory per request.
Never raises: every failure comes back as SeparationResult(success=False, error=...).
"""

import queue
import shutil
import tempfile
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path

from stemsplit import config
from stemsplit.audio import validate_input_file
from stemsplit.console import log
from stemsplit.errors import (
    CopyFailedError,
    NoOutputFoundError,
    ProcessFailureError,
    SeparationCancelledError,
    SeparationError,
    ToolUnavailableError,
)
from stemsplit.models import ProgressEvent, SeparationRequest, SeparationResult, StemKind
from stemsplit.progress import ProgressParser, ProgressStrategy
from stemsplit.runner import ToolInvocation, run_process
from stemsplit.stems.locate import locate_stems
from stemsplit.stems.postprocess import post_process_stems
from stemsplit.stems.tool import (
    INSTALL_GUIDANCE,
    ToolSpec,
    build_tool_arguments,
    check_tool_installation,
    expected_stages,
)

ProgressCallback = Callable[[ProgressEvent], None]
Emit = Callable[[ProgressEvent], None]

_STOP = object()


class _EventPump:
    """
    Deliver events to the caller's callback, in order, on a dedicated thread.
    The queue is unbounded so the stderr reader never waits for a slow consumer.
    """

    def __init__(self, callback: ProgressCallback | None):
        self._callback = callback
        self._queue: queue.SimpleQueue = queue.SimpleQueue()
        self._thread: threading.Thread | None = None
        if callback is not None:
            self._thread = threading.Thread(target=self._run, name="stemsplit-events", daemon=True)
            self._thread.start()

    def emit(self, event: ProgressEvent) -> None:
        if self._thread is not None:
            self._queue.put(event)

    def _run(self) -> None:
        while True:
            event = self._queue.get()
            if event is _STOP:
                return
            try:
                self._callback(event)
            except Exception as e:
                log(f"Progress callback failed: {e}")

    def close(self) -> None:
        """Flush remaining events, then stop the delivery thread."""
        if self._thread is not None:
            self._queue.put(_STOP)
            self._thread.join()
            self._thread = None


@contextmanager
def _workspace(temp_root: str | Path | None, emit: Emit, warnings: list[str]) -> Iterator[Path]:
    """Fresh temp dir for one request; removed on every exit path. Removal errors are reported, not raised."""
    if temp_root is not None:
        Path(temp_root).mkdir(parents=True, exist_ok=True)
    path = Path(tempfile.mkdtemp(prefix="stemsplit_", dir=temp_root))
    try:
        yield path
    finally:
        try:
            shutil.rmtree(path)
        except OSError as e:
            msg = f"Could not remove temp directory {path}: {e}"
            log(f"Warning: {msg}")
            warnings.append(msg)
            emit(ProgressEvent.info(f"Warning: {msg}"))


def _check_invocation(invocation: ToolInvocation, tool: ToolSpec) -> None:
    if invocation.cancelled:
        raise SeparationCancelledError("Separation cancelled")
    if invocation.timed_out:
        raise ProcessFailureError(f"{tool.name} {invocation.error}:\n{invocation.stderr}", invocation)
    if invocation.error:
        raise ProcessFailureError(f"Could not run {tool.name}: {invocation.error}", invocation)
    if invocation.exit_code != 0:
        raise ProcessFailureError(
            f"{tool.name} failed with exit code {invocation.exit_code}:\n{invocation.stderr}", invocation
        )


def _exit_code(error: SeparationError) -> int | None:
    """Exit code of the tool run behind a ProcessFailureError, if it actually exited."""
    if isinstance(error, ProcessFailureError) and error.invocation is not None and error.invocation.error is None:
        return error.invocation.exit_code
    return None


def _run_pipeline(
    request: SeparationRequest,
    emit: Emit,
    tool: ToolSpec,
    cancel_event: threading.Event | None,
    timeout: float | None,
    temp_root: str | Path | None,
    strategy: ProgressStrategy | None,
    warnings: list[str],
) -> tuple[Path, dict[StemKind, Path]]:
    validate_input_file(request.input_file)

    emit(ProgressEvent.info(f"Checking {tool.name} installation..."))
    status = check_tool_installation(tool)
    if not status.installed:
        raise ToolUnavailableError(INSTALL_GUIDANCE)
    emit(ProgressEvent.info(f"Using {tool.name} {status.version or 'unknown version'}"))

    final_dir = request.final_output_dir
    track_name = request.track_name
    stages = expected_stages(request.model)

    with _workspace(temp_root, emit, warnings) as work_dir:
        args = build_tool_arguments(request, work_dir)
        emit(ProgressEvent.info(f"Starting separation with model: {request.model}"))
        emit(ProgressEvent.info(f"Extracting {len(stages)} stems: {', '.join(stages)}"))

        parser = ProgressParser(stages, strategy=strategy)

        def on_stderr(line: str) -> None:
            for event in parser.feed(line):
                emit(event)

        invocation = run_process(
            tool.command, args, on_stderr=on_stderr, timeout=timeout, cancel_event=cancel_event
        )
        for event in parser.finish():
            emit(event)
        _check_invocation(invocation, tool)

        stems = locate_stems(work_dir, request.model, track_name, request.extension)
        if not stems:
            raise NoOutputFoundError("No stem files were generated. Check the output directory.")

        emit(ProgressEvent.info("Saving stem files..."))
        try:
            report = post_process_stems(stems, final_dir, track_name, emit)
        except OSError as e:
            raise CopyFailedError(f"Could not create output directory {final_dir}: {e}") from e
        for failure in report.failures:
            warnings.append(f"Failed to copy {failure.stage}: {failure.reason}")
        if not report.stems:
            raise CopyFailedError(f"None of the {len(stems)} stem files could be copied to {final_dir}")

    emit(ProgressEvent.info(f"Separation complete! {len(report.stems)} stems extracted."))
    return final_dir, report.stems


def separate_into_stems(
    request: SeparationRequest,
    on_progress: ProgressCallback | None = None,
    *,
    tool: ToolSpec | None = None,
    cancel_event: threading.Event | None = None,
    timeout: float | None = None,
    temp_root: str | Path | None = None,
    strategy: ProgressStrategy | None = None,
) -> SeparationResult:
    """
    Separate request.input_file into stems named <track>_<stage>.<ext> in the output directory.
    on_progress receives ProgressEvents in order on a background thread; all are delivered before this returns.
    Set cancel_event (or pass timeout) to kill the tool's process tree; the temp directory is still removed.
    strategy overrides how console lines are read, for tool versions with a different progress format.
    """
    started = time.monotonic()
    tool = tool or ToolSpec()
    timeout = timeout if timeout is not None else config.SEPARATION_TIMEOUT_SEC
    temp_root = temp_root if temp_root is not None else config.TEMP_ROOT
    pump = _EventPump(on_progress)
    warnings: list[str] = []
    try:
        output_dir, stems = _run_pipeline(request, pump.emit, tool, cancel_event, timeout, temp_root, strategy, warnings)
    except SeparationError as e:
        log(f"Separation failed: {e}")
        return SeparationResult.failed(
            str(e), time.monotonic() - started, warnings, error_type=type(e).__name__, exit_code=_exit_code(e)
        )
    except Exception as e:
        log(f"Unexpected error during separation: {e!r}")
        return SeparationResult.failed(
            f"Unexpected error during separation: {e}", time.monotonic() - started, warnings,
            error_type=type(e).__name__,
        )
    finally:
        pump.close()
    return SeparationResult.succeeded(output_dir, stems, time.monotonic() - started, warnings)
