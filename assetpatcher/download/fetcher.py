"""Fetch a remote archive and unpack it into a destination directory.

The archive is streamed to a temporary file inside TMP_DIR, checked, then
extracted. The temporary file is removed on every path out of
``fetch_archive``; failing to remove it is logged and never changes the
result of the fetch.
"""

from __future__ import annotations

import uuid
import zipfile
from pathlib import Path
from threading import Event
from typing import List, Optional

from assetpatcher.config import env
from assetpatcher.core.logger import setup_logger
from assetpatcher.core.models import DownloadTask
from assetpatcher.core.progress import NullProgressReporter, ProgressReporter
from assetpatcher.download.archive import ArchiveExtractionError, extract_archive
from assetpatcher.download.http import download_to_file

logger = setup_logger(__name__)


class FetchError(Exception):
    """Base class for failures while acquiring an archive."""

    pass


class DownloadIncomplete(FetchError):
    """The downloaded artifact is missing or empty."""

    pass


class ExtractionFailed(FetchError):
    """The archive is corrupt or the destination is not writable."""

    pass


class FetchCancelled(FetchError):
    """The operator cancelled the download."""

    pass


class CleanupFailed(Exception):
    """The temporary archive could not be removed. Never fatal."""

    pass


def _temp_archive_path(destination_dir: Path) -> Path:
    tmp_dir = env.TMP_DIR
    tmp_dir.mkdir(parents=True, exist_ok=True)
    return tmp_dir / f"{destination_dir.name or 'archive'}.{uuid.uuid4().hex[:8]}.temp.zip"


def _has_content(path: Path) -> bool:
    try:
        return path.is_file() and path.stat().st_size > 0
    except OSError:
        return False


def remove_temp_archive(path: Path) -> None:
    """Delete a temporary archive, raising CleanupFailed if it cannot be removed."""
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        raise CleanupFailed(f"Failed to delete \"{path}\": {e}") from e


def fetch_archive(
    source_url: str,
    destination_dir: Path,
    reporter: Optional[ProgressReporter] = None,
    cancel_flag: Optional[Event] = None,
) -> List[Path]:
    """Download ``source_url`` and extract it into ``destination_dir``.

    Progress is forwarded to ``reporter`` as a fraction of bytes received, or
    None while the total size is unknown. Returns the extracted files.

    Raises:
        DownloadIncomplete: nothing usable was downloaded
        ExtractionFailed: the archive could not be unpacked
        FetchCancelled: cancellation was requested during the download
    """
    reporter = reporter or NullProgressReporter()
    cancel_flag = cancel_flag if cancel_flag is not None else Event()
    label = f"Downloading from {source_url}"
    task: Optional[DownloadTask] = None

    def _on_progress(fraction: Optional[float]) -> None:
        if fraction is not None:
            task.progress = fraction
        if reporter.update_task(label, fraction):
            cancel_flag.set()

    try:
        try:
            task = DownloadTask(
                source_url=source_url,
                temp_path=_temp_archive_path(destination_dir),
                destination_dir=destination_dir,
            )
            if reporter.update_task(label, 0.0):
                cancel_flag.set()
            completed = download_to_file(source_url, task.temp_path, _on_progress, cancel_flag)
        except OSError as e:
            raise DownloadIncomplete(f"Could not write temporary archive for {source_url}: {e}") from e

        if cancel_flag.is_set():
            raise FetchCancelled(f"Download of {source_url} was cancelled at {task.progress:.0%}")

        # If the archive isn't there, something went wrong
        if not completed or not _has_content(task.temp_path):
            raise DownloadIncomplete(f"Failed to download {source_url} (stopped at {task.progress:.0%})")

        if not zipfile.is_zipfile(task.temp_path):
            raise ExtractionFailed(f"Downloaded file from {source_url} is not a ZIP archive")

        reporter.update_task(f"Extracting to {destination_dir}", None)
        try:
            destination_dir.mkdir(parents=True, exist_ok=True)
            files = extract_archive(task.temp_path, destination_dir)
        except (ArchiveExtractionError, OSError) as e:
            logger.error(f"Failed to extract \"{task.temp_path}\" to \"{destination_dir}\": {e}")
            raise ExtractionFailed(f"Failed to extract archive from {source_url}: {e}") from e

        task.progress = 1.0
        logger.info(f"Fetched {source_url} into {destination_dir} ({len(files)} files)")
        return files

    finally:
        if task is not None:
            try:
                remove_temp_archive(task.temp_path)
            except CleanupFailed as e:
                logger.warning(str(e))
