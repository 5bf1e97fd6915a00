"""Data structures shared across acquisition, supervision and pipeline steps."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional


@dataclass(frozen=True)
class ToolInstallation:
    """The external tool on disk.

    A directory without the executable is a partial installation and counts
    as absent.
    """
    install_dir: Path
    executable: Path

    @property
    def is_present(self) -> bool:
        return self.install_dir.is_dir() and self.executable.is_file()


@dataclass
class DownloadTask:
    """An in-flight archive fetch. The temp path never outlives the task."""
    source_url: str
    temp_path: Path
    destination_dir: Path
    progress: float = 0.0


@dataclass
class ProcessRun:
    """One supervised execution of the external tool."""
    executable: Path
    args: List[str]
    completed_units: int = 0
    lines_processed: int = 0
    stderr_text: str = ""
    exit_code: Optional[int] = None  # set once the process has exited
    cancelled: bool = False
    last_event: Optional[ProgressEvent] = None

    @property
    def command(self) -> List[str]:
        return [str(self.executable), *self.args]


@dataclass(frozen=True)
class ProcessExitSummary:
    exit_code: int
    lines_processed: int
    completed_units: int


@dataclass(frozen=True)
class ProgressEvent:
    """One progress update together with whether it asked to cancel."""
    label: str
    fraction: Optional[float]
    cancel_requested: bool = False


class StepResult(Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    RESTART_HOST = "restart_host"


@dataclass(frozen=True)
class StepOutcome:
    """Result of running one pipeline step, with the cause attached on failure."""
    result: StepResult
    cause: str = ""
    error: Optional[BaseException] = field(default=None, compare=False)

    @classmethod
    def success(cls) -> "StepOutcome":
        return cls(StepResult.SUCCESS)

    @classmethod
    def failure(cls, cause: str, error: Optional[BaseException] = None) -> "StepOutcome":
        return cls(StepResult.FAILURE, cause, error)

    @classmethod
    def restart_host(cls, cause: str = "") -> "StepOutcome":
        return cls(StepResult.RESTART_HOST, cause)

    @property
    def ok(self) -> bool:
        return self.result == StepResult.SUCCESS
