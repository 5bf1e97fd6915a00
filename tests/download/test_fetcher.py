"""Tests for fetching and unpacking a tool archive.

The temporary archive must be gone after every fetch, successful or not.
"""

import zipfile
from unittest.mock import MagicMock, patch

import pytest
import requests

from assetpatcher.download.fetcher import (
    CleanupFailed,
    DownloadIncomplete,
    ExtractionFailed,
    FetchCancelled,
    fetch_archive,
)


class RecordingReporter:
    def __init__(self, cancel_on_update=False):
        self.updates = []
        self.cancel_on_update = cancel_on_update

    def begin_task(self, title):
        pass

    def update_task(self, label, fraction):
        self.updates.append((label, fraction))
        return self.cancel_on_update

    def clear_task(self):
        pass


def _make_zip(path, members):
    with zipfile.ZipFile(path, "w") as zf:
        for name, data in members.items():
            zf.writestr(name, data)
    return path


def _leftovers(tmp_dir):
    return list(tmp_dir.iterdir()) if tmp_dir.exists() else []


class TestFetchArchive:
    def test_extracts_local_archive(self, tmp_path, isolated_dirs):
        archive = _make_zip(tmp_path / "Release.zip", {"AssetRipper": b"bin", "data/a.dat": b"a"})
        dest = tmp_path / "AssetRipper"
        reporter = RecordingReporter()

        files = fetch_archive(str(archive), dest, reporter)

        assert (dest / "AssetRipper").read_bytes() == b"bin"
        assert (dest / "data" / "a.dat").exists()
        assert len(files) == 2
        assert _leftovers(isolated_dirs["tmp"]) == []
        # Source archive is never touched
        assert archive.exists()
        fractions = [f for _, f in reporter.updates if f is not None]
        assert fractions[0] == 0.0
        assert fractions[-1] == 1.0

    def test_extracts_remote_archive(self, tmp_path, isolated_dirs):
        archive = _make_zip(tmp_path / "Release.zip", {"AssetRipper": b"bin"})
        data = archive.read_bytes()
        response = MagicMock()
        response.headers = {"content-length": str(len(data))}
        response.iter_content.return_value = [data]
        response.raise_for_status.return_value = None
        dest = tmp_path / "installed"

        with patch("assetpatcher.download.http.requests.get", return_value=response):
            fetch_archive("https://example.com/Release.zip", dest)

        assert (dest / "AssetRipper").read_bytes() == b"bin"
        assert _leftovers(isolated_dirs["tmp"]) == []

    def test_corrupt_archive_is_cleaned_up(self, tmp_path, isolated_dirs):
        bogus = tmp_path / "Release.zip"
        bogus.write_bytes(b"PK\x03\x04 definitely not a real archive")

        with pytest.raises(ExtractionFailed):
            fetch_archive(str(bogus), tmp_path / "dest")

        assert _leftovers(isolated_dirs["tmp"]) == []

    def test_extraction_failure_is_cleaned_up(self, tmp_path, isolated_dirs):
        archive = _make_zip(tmp_path / "Release.zip", {"../escape.txt": b"x"})

        with pytest.raises(ExtractionFailed):
            fetch_archive(str(archive), tmp_path / "dest")

        assert _leftovers(isolated_dirs["tmp"]) == []

    def test_empty_download(self, tmp_path, isolated_dirs):
        empty = tmp_path / "Release.zip"
        empty.write_bytes(b"")

        with pytest.raises(DownloadIncomplete):
            fetch_archive(str(empty), tmp_path / "dest")

        assert _leftovers(isolated_dirs["tmp"]) == []
        assert not (tmp_path / "dest").exists()

    def test_partial_download_reports_how_far_it_got(self, tmp_path, isolated_dirs):
        def _stalled_download(url, dest_path, progress_callback=None, cancel_flag=None):
            dest_path.write_bytes(b"PK")
            progress_callback(0.4)
            return False

        with patch("assetpatcher.download.fetcher.download_to_file", side_effect=_stalled_download):
            with pytest.raises(DownloadIncomplete, match="stopped at 40%"):
                fetch_archive("https://example.com/Release.zip", tmp_path / "out", RecordingReporter())

        assert _leftovers(isolated_dirs["tmp"]) == []

    def test_missing_source(self, tmp_path, isolated_dirs):
        with pytest.raises(DownloadIncomplete):
            fetch_archive(str(tmp_path / "missing.zip"), tmp_path / "dest")

        assert _leftovers(isolated_dirs["tmp"]) == []

    def test_http_failure(self, tmp_path, isolated_dirs):
        response = MagicMock()
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(response=MagicMock(status_code=404))

        with patch("assetpatcher.download.http.requests.get", return_value=response):
            with pytest.raises(DownloadIncomplete):
                fetch_archive("https://example.com/Release.zip", tmp_path / "dest")

        assert _leftovers(isolated_dirs["tmp"]) == []

    def test_cancel_from_reporter(self, tmp_path, isolated_dirs):
        archive = _make_zip(tmp_path / "Release.zip", {"AssetRipper": b"bin"})

        with pytest.raises(FetchCancelled):
            fetch_archive(str(archive), tmp_path / "dest", RecordingReporter(cancel_on_update=True))

        assert not (tmp_path / "dest").exists()
        assert _leftovers(isolated_dirs["tmp"]) == []

    def test_cleanup_failure_is_not_fatal(self, tmp_path):
        archive = _make_zip(tmp_path / "Release.zip", {"AssetRipper": b"bin"})

        with patch("assetpatcher.download.fetcher.remove_temp_archive",
                   side_effect=CleanupFailed("locked")) as mock_remove:
            files = fetch_archive(str(archive), tmp_path / "dest")

        mock_remove.assert_called_once()
        assert files == [tmp_path / "dest" / "AssetRipper"]

    def test_cleanup_failure_does_not_mask_fetch_error(self, tmp_path):
        with patch("assetpatcher.download.fetcher.remove_temp_archive", side_effect=CleanupFailed("locked")):
            with pytest.raises(DownloadIncomplete):
                fetch_archive(str(tmp_path / "missing.zip"), tmp_path / "dest")
