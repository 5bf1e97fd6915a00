"""Make sure the external tool is installed, fetching it when missing."""

from __future__ import annotations

from threading import Event
from typing import Optional

from assetpatcher.core.logger import setup_logger
from assetpatcher.core.models import ToolInstallation
from assetpatcher.core.progress import ProgressReporter
from assetpatcher.download.fetcher import FetchError, fetch_archive

logger = setup_logger(__name__)


class InstallationIncomplete(FetchError):
    """The fetch reported success but the executable is still missing."""

    pass


def ensure_installed(
    installation: ToolInstallation,
    source_url: Optional[str],
    reporter: Optional[ProgressReporter] = None,
    cancel_flag: Optional[Event] = None,
) -> bool:
    """Install the tool into ``installation.install_dir`` unless already present.

    Returns True when a fetch was performed, False when the existing
    installation was reused. A directory without the executable is treated
    as absent and fetched again.
    """
    if installation.is_present:
        logger.debug(f"Tool already installed at {installation.install_dir}")
        return False

    if installation.install_dir.is_dir():
        logger.warning(
            f"Partial installation at {installation.install_dir}: "
            f"{installation.executable.name} missing, fetching again"
        )

    if not source_url:
        raise FetchError(f"Tool is not installed at {installation.install_dir} and no download URL is configured")

    logger.info(f"Installing tool from {source_url} into {installation.install_dir}")
    fetch_archive(source_url, installation.install_dir, reporter, cancel_flag)

    if not installation.executable.is_file():
        raise InstallationIncomplete(
            f"Archive from {source_url} did not contain {installation.executable.name} "
            f"(expected at {installation.executable})"
        )

    return True
