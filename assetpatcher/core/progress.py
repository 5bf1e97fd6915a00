"""Progress reporting capability consumed by fetch and run stages.

The host supplies an implementation; ``update_task`` doubles as the
cancellation query and returns True when the operator asked to cancel.
"""

from __future__ import annotations

from threading import Event
from typing import Optional, Protocol

from tqdm import tqdm

from assetpatcher.core.logger import setup_logger

logger = setup_logger(__name__)


class ProgressReporter(Protocol):
    def begin_task(self, title: str) -> None: ...

    def update_task(self, label: str, fraction: Optional[float]) -> bool: ...

    def clear_task(self) -> None: ...


class NullProgressReporter:
    """Reporter that discards updates and never cancels."""

    def begin_task(self, title: str) -> None:
        pass

    def update_task(self, label: str, fraction: Optional[float]) -> bool:
        return False

    def clear_task(self) -> None:
        pass


class TqdmProgressReporter:
    """Console progress bar. Cancellation is driven by ``cancel_flag``."""

    def __init__(self, cancel_flag: Optional[Event] = None, label_width: int = 60):
        self.cancel_flag = cancel_flag or Event()
        self.label_width = label_width
        self._pbar: Optional[tqdm] = None

    def begin_task(self, title: str) -> None:
        self.clear_task()
        self._pbar = tqdm(total=100, desc=title, unit="%", leave=False)

    def update_task(self, label: str, fraction: Optional[float]) -> bool:
        if self._pbar is None:
            self.begin_task("Working")
        pbar = self._pbar
        if label:
            pbar.set_postfix_str(label[: self.label_width], refresh=False)
        if fraction is not None:
            pbar.n = round(max(0.0, min(fraction, 1.0)) * 100, 1)
        pbar.refresh()
        return self.cancel_flag.is_set()

    def clear_task(self) -> None:
        if self._pbar is not None:
            self._pbar.close()
            self._pbar = None
