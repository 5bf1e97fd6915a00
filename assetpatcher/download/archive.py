"""Archive extraction for downloaded tool releases."""

import os
import stat
import zipfile
from pathlib import Path, PurePosixPath
from typing import List

from assetpatcher.core.logger import setup_logger

logger = setup_logger(__name__)


class ArchiveExtractionError(Exception):
    """Raised when archive extraction fails."""

    pass


class PasswordProtectedError(ArchiveExtractionError):
    """Raised when archive requires a password."""

    pass


class CorruptedArchiveError(ArchiveExtractionError):
    """Raised when archive is corrupted."""

    pass


class UnsafeArchiveError(ArchiveExtractionError):
    """Raised when an archive member would land outside the output directory."""

    pass


def _member_target(member_name: str, output_dir: Path) -> Path:
    # Archives built on Windows may use backslashes
    member = PurePosixPath(member_name.replace("\\", "/"))
    if "\x00" in member_name or member.is_absolute() or ".." in member.parts:
        raise UnsafeArchiveError(f"Unsafe path in archive: {member_name!r}")
    if member.parts and member.parts[0].endswith(":"):
        raise UnsafeArchiveError(f"Drive-qualified path in archive: {member_name!r}")

    target = output_dir.joinpath(*member.parts)
    try:
        target.resolve().relative_to(output_dir.resolve())
    except ValueError:
        raise UnsafeArchiveError(f"Path traversal attempt blocked: {member_name!r}")
    return target


def _restore_mode(info: zipfile.ZipInfo, target: Path) -> None:
    """Keep the executable bit of members packed on POSIX systems."""
    if os.name != "posix":
        return
    mode = (info.external_attr >> 16) & 0o777
    if mode & stat.S_IXUSR:
        target.chmod(target.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


def extract_archive(archive_path: Path, output_dir: Path) -> List[Path]:
    """Extract a ZIP archive into ``output_dir``, keeping its directory layout.

    Returns the extracted file paths. Every member is validated before
    anything is written.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    extracted_files: List[Path] = []

    try:
        with zipfile.ZipFile(archive_path, "r") as zf:
            members = zf.infolist()
            for info in members:
                if info.flag_bits & 0x1:  # Encrypted flag
                    raise PasswordProtectedError("ZIP archive is password protected")

            bad_file = zf.testzip()
            if bad_file:
                raise CorruptedArchiveError(f"Corrupted file in archive: {bad_file}")

            targets = [(info, _member_target(info.filename, output_dir)) for info in members]

            for info, target in targets:
                if info.is_dir():
                    target.mkdir(parents=True, exist_ok=True)
                    continue
                target.parent.mkdir(parents=True, exist_ok=True)
                with zf.open(info) as src, open(target, "wb") as dst:
                    while True:
                        chunk = src.read(1024 * 1024)
                        if not chunk:
                            break
                        dst.write(chunk)
                _restore_mode(info, target)
                extracted_files.append(target)

    except zipfile.BadZipFile as e:
        raise CorruptedArchiveError(f"Invalid or corrupted ZIP: {e}")
    except PermissionError as e:
        raise ArchiveExtractionError(f"Permission denied: {e}")
    except OSError as e:
        raise ArchiveExtractionError(f"Failed to write archive contents: {e}")

    logger.debug(f"Extracted {len(extracted_files)} file(s) from {archive_path.name} into {output_dir}")
    return extracted_files
