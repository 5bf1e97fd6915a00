"""HTTP download with retry and progress support, streamed straight to disk."""

import random
import time
from pathlib import Path
from threading import Event
from typing import Callable, Optional
from urllib.parse import urlparse
from urllib.request import url2pathname

import requests
from tqdm import tqdm

from assetpatcher import __version__
from assetpatcher.core.logger import setup_logger

logger = setup_logger(__name__)

# Network settings
REQUEST_TIMEOUT = (5, 30)  # (connect, read)
MAX_DOWNLOAD_RETRIES = 3
CHUNK_SIZE = 64 * 1024

RETRYABLE_CODES = (429, 500, 502, 503, 504)
CONNECTION_ERRORS = (requests.exceptions.ConnectionError, requests.exceptions.Timeout,
                     requests.exceptions.SSLError, requests.exceptions.ChunkedEncodingError)
DOWNLOAD_HEADERS = {
    'User-Agent': f'assetpatcher/{__version__}',
    'Accept': 'application/zip,application/octet-stream,*/*;q=0.8',
}

# Fraction in [0, 1], or None when the total size is unknown
ProgressCallback = Callable[[Optional[float]], None]


def _backoff_delay(attempt: int, base: float = 0.5, cap: float = 8.0) -> float:
    """Exponential backoff with jitter."""
    return min(cap, base * (2 ** (attempt - 1))) + random.random() * base


def _get_status_code(e: Exception) -> Optional[int]:
    """Extract HTTP status code from an exception, or None if not applicable."""
    if isinstance(e, requests.exceptions.HTTPError) and e.response is not None:
        return e.response.status_code
    return None


def _is_retryable_error(e: Exception) -> bool:
    """Check if error is retryable (connection error or retryable HTTP status)."""
    if isinstance(e, CONNECTION_ERRORS):
        return True
    status = _get_status_code(e)
    return status is not None and status in RETRYABLE_CODES


def is_local_source(url: str) -> bool:
    """True for file:// URLs and plain filesystem paths (including Windows drive paths)."""
    scheme = urlparse(url).scheme.lower()
    return scheme in ("", "file") or len(scheme) == 1


def local_source_path(url: str) -> Path:
    parsed = urlparse(url)
    if parsed.scheme.lower() != "file":
        return Path(url)
    raw = parsed.path if parsed.netloc in ("", "localhost") else f"//{parsed.netloc}{parsed.path}"
    return Path(url2pathname(raw))


def _copy_local(
    source: Path,
    dest_path: Path,
    progress_callback: Optional[ProgressCallback],
    cancel_flag: Optional[Event],
) -> bool:
    if not source.is_file():
        logger.warning(f"Local source not found: {source}")
        return False

    total_size = source.stat().st_size
    copied = 0
    logger.info(f"Copying local archive: {source}")
    with open(source, "rb") as src, open(dest_path, "wb") as dst, \
            tqdm(total=total_size, unit='B', unit_scale=True, desc='Copying') as pbar:
        while True:
            chunk = src.read(CHUNK_SIZE)
            if not chunk:
                break
            dst.write(chunk)
            copied += len(chunk)
            pbar.update(len(chunk))
            if progress_callback:
                progress_callback(copied / total_size if total_size > 0 else None)
            if cancel_flag and cancel_flag.is_set():
                logger.info(f"Copy cancelled after {copied} bytes: {source}")
                return False

    logger.debug(f"Copy completed: {copied} bytes")
    return True


def download_to_file(
    url: str,
    dest_path: Path,
    progress_callback: Optional[ProgressCallback] = None,
    cancel_flag: Optional[Event] = None,
) -> bool:
    """Stream ``url`` into ``dest_path`` with automatic retry.

    Returns False when the download failed or was cancelled; the caller owns
    ``dest_path`` and is responsible for removing partial content.
    """
    if is_local_source(url):
        return _copy_local(local_source_path(url), dest_path, progress_callback, cancel_flag)

    attempt = 0
    while attempt < MAX_DOWNLOAD_RETRIES:
        if cancel_flag and cancel_flag.is_set():
            return False

        bytes_downloaded = 0
        try:
            logger.info(f"Downloading: {url} (attempt {attempt + 1}/{MAX_DOWNLOAD_RETRIES})")
            response = requests.get(url, stream=True, timeout=REQUEST_TIMEOUT, headers=DOWNLOAD_HEADERS)
            try:
                response.raise_for_status()

                total_size = int(response.headers.get('content-length') or 0)
                with open(dest_path, "wb") as f, \
                        tqdm(total=total_size or None, unit='B', unit_scale=True, desc='Downloading') as pbar:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if not chunk:
                            continue
                        f.write(chunk)
                        bytes_downloaded += len(chunk)
                        pbar.update(len(chunk))
                        if progress_callback:
                            progress_callback(bytes_downloaded / total_size if total_size > 0 else None)
                        if cancel_flag and cancel_flag.is_set():
                            logger.info(f"Download cancelled after {bytes_downloaded} bytes: {url}")
                            return False
            finally:
                response.close()

            logger.debug(f"Download completed: {bytes_downloaded} bytes")
            return True

        except requests.exceptions.RequestException as e:
            status = _get_status_code(e)

            # Non-retryable errors
            if status in (401, 403, 404):
                logger.warning(f"Download failed ({status}): {url}")
                return False

            if not _is_retryable_error(e):
                logger.warning(f"Download error: {type(e).__name__}: {e}")
                return False

            attempt += 1
            if attempt < MAX_DOWNLOAD_RETRIES:
                logger.warning(f"Retry {attempt}/{MAX_DOWNLOAD_RETRIES} for {url}: {type(e).__name__}: {e}")
                time.sleep(_backoff_delay(attempt))

    logger.error(f"Download failed after {MAX_DOWNLOAD_RETRIES} attempts: {url}")
    return False
