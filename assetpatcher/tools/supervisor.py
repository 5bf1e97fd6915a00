"""Run the external tool as a child process and supervise it to completion.

Standard output is consumed line by line. Each line is forwarded to the
progress reporter together with a coarse progress estimate: the number of
lines containing the completion marker divided by a fixed estimate of the
total units of work, clamped to 1.0. Cancellation is polled once per line,
so its latency depends on how often the tool prints.
"""

from __future__ import annotations

import os
import subprocess
from pathlib import Path
from threading import Event, Thread
from typing import IO, List, Optional, Sequence, Union

from assetpatcher.core.logger import setup_logger
from assetpatcher.core.models import ProcessExitSummary, ProcessRun, ProgressEvent
from assetpatcher.core.progress import NullProgressReporter, ProgressReporter

logger = setup_logger(__name__)

DEFAULT_EXPORT_MARKER = "Exporting"
# Rough count of "Exporting" lines for a mid-sized game, about three minutes of work
DEFAULT_ESTIMATED_TOTAL = 5624
STDERR_JOIN_TIMEOUT = 5.0


class RunError(Exception):
    """Base class for failures of a supervised run."""

    pass


class ProcessStartError(RunError):
    """The executable could not be launched."""

    pass


class RunCancelled(RunError):
    """The run was cancelled and the child process terminated."""

    pass


class NonZeroExit(RunError):
    """The child process exited with a nonzero code."""

    def __init__(self, exit_code: int, stderr_text: str, name: str = "AssetRipper"):
        self.exit_code = exit_code
        self.stderr_text = stderr_text
        super().__init__(f"{name} failed to run with exit code {exit_code}. Error: {stderr_text or 'No error output'}")


def estimate_progress(completed_units: int, estimated_total: int) -> float:
    """Fraction of work done. The estimate can be exceeded, so clamp to 1.0."""
    return min(completed_units / estimated_total, 1.0)


def _creation_flags() -> int:
    # No console window for the child on Windows
    if os.name == "nt":
        return subprocess.CREATE_NO_WINDOW
    return 0


def _drain(stream: IO[str], sink: List[str]) -> None:
    for chunk in iter(stream.readline, ""):
        sink.append(chunk)


def run_process(
    executable: Union[str, Path],
    args: Sequence[Union[str, Path]],
    reporter: Optional[ProgressReporter] = None,
    cancel_flag: Optional[Event] = None,
    marker: str = DEFAULT_EXPORT_MARKER,
    estimated_total: int = DEFAULT_ESTIMATED_TOTAL,
    name: str = "AssetRipper",
) -> ProcessExitSummary:
    """Launch ``executable`` with ``args`` and supervise it until it exits.

    The reporter task is cleared on every exit path.

    Raises:
        ProcessStartError: the executable could not be started
        RunCancelled: the reporter or ``cancel_flag`` requested cancellation
        NonZeroExit: the process exited with a nonzero code
    """
    if estimated_total <= 0:
        raise ValueError(f"estimated_total must be positive, got {estimated_total}")

    reporter = reporter or NullProgressReporter()
    run = ProcessRun(executable=Path(executable), args=[str(a) for a in args])
    marker_lower = marker.lower()

    logger.info(f"Running {name}: {' '.join(run.command)}")
    reporter.begin_task(f"Running {name}")
    try:
        try:
            process = subprocess.Popen(
                run.command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
                creationflags=_creation_flags(),
            )
        except OSError as e:
            raise ProcessStartError(f"Failed to start {name} at \"{run.executable}\": {e}") from e

        # Drained on a helper thread so a full stderr pipe can't stall the child
        stderr_chunks: List[str] = []
        stderr_thread = Thread(target=_drain, args=(process.stderr, stderr_chunks), daemon=True, name="StderrDrain")
        stderr_thread.start()

        try:
            for raw_line in process.stdout:
                line = raw_line.rstrip("\r\n")
                run.lines_processed += 1
                logger.debug(f"[{name}] {line}")

                if marker_lower and marker_lower in line.lower():
                    run.completed_units += 1
                fraction = estimate_progress(run.completed_units, estimated_total)

                run.last_event = ProgressEvent(line, fraction, bool(reporter.update_task(line, fraction)))
                if run.last_event.cancel_requested or (cancel_flag is not None and cancel_flag.is_set()):
                    run.cancelled = True
                    process.kill()
                    reporter.update_task(f"{name} cancelled", fraction)
                    logger.warning(f"{name} manually cancelled!")
                    break

            run.exit_code = process.wait()
        finally:
            if process.poll() is None:
                process.kill()
                process.wait()
            # A leftover grandchild can hold stderr open after the tool exits
            stderr_thread.join(timeout=STDERR_JOIN_TIMEOUT)
            process.stdout.close()
            if stderr_thread.is_alive():
                logger.warning(f"{name} stderr still open after exit, continuing without the rest of it")
            else:
                process.stderr.close()

        run.stderr_text = "".join(stderr_chunks).strip()
    finally:
        reporter.clear_task()

    if run.cancelled:
        reached = run.last_event.fraction if run.last_event is not None else 0.0
        raise RunCancelled(f"{name} was cancelled after {run.lines_processed} line(s) of output at {reached:.0%}")

    if run.exit_code != 0:
        logger.error(f"{name} exited with code {run.exit_code}: {run.stderr_text or 'No error output'}")
        raise NonZeroExit(run.exit_code, run.stderr_text, name)

    logger.info(f"{name} finished: {run.lines_processed} lines, {run.completed_units} exports")
    return ProcessExitSummary(
        exit_code=run.exit_code,
        lines_processed=run.lines_processed,
        completed_units=run.completed_units,
    )
