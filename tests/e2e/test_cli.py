"""Tests for the console entry point."""

import zipfile
from unittest.mock import patch

import pytest

from assetpatcher.config.settings import AssetRipperSettings
from assetpatcher.core.models import ProcessExitSummary
from assetpatcher.main import EXIT_FAILURE, EXIT_OK, EXIT_RESTART, main, parse_arguments


@pytest.fixture
def settings(tmp_path):
    game = tmp_path / "Game_Data"
    game.mkdir()
    install = tmp_path / "AssetRipper"
    return AssetRipperSettings(
        folder_path=install,
        exe_path=install / "AssetRipper.Tools.SystemTester",
        download_url=None,
        input_path=game,
        output_path=tmp_path / "Output",
        config_path=tmp_path / "ar.json",
        project_assets_path=tmp_path / "Project" / "Assets",
    )


@pytest.fixture(autouse=True)
def no_signal_handler():
    with patch("assetpatcher.main._install_cancel_handler"):
        yield


def _run(argv, settings):
    with patch("assetpatcher.main.AssetRipperSettings.from_config", return_value=settings):
        return main(argv)


class TestParseArguments:
    def test_command_required(self):
        with pytest.raises(SystemExit):
            parse_arguments([])

    def test_run_with_resume(self):
        args = parse_arguments(["--output", "/out", "run", "--resume"])
        assert args.command == "run"
        assert args.resume is True
        assert str(args.output) == "/out"


class TestMain:
    def test_install_from_local_archive(self, settings, tmp_path):
        archive = tmp_path / "Release.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr("AssetRipper.Tools.SystemTester", b"bin")

        assert _run(["--download-url", str(archive), "install"], settings) == EXIT_OK
        assert settings.exe_path.exists()

    def test_install_without_url_fails(self, settings):
        assert _run(["install"], settings) == EXIT_FAILURE

    def test_ripper_command(self, settings):
        settings.folder_path.mkdir()
        settings.exe_path.write_bytes(b"bin")

        with patch("assetpatcher.steps.asset_ripper.run_process",
                   return_value=ProcessExitSummary(0, 1, 1)) as mock_run:
            assert _run(["ripper"], settings) == EXIT_OK

        mock_run.assert_called_once()

    def test_run_requests_restart_after_copy(self, settings):
        settings.folder_path.mkdir()
        settings.exe_path.write_bytes(b"bin")

        def _fake_export(*args, **kwargs):
            scripts = settings.output_export_assets_path / "Scripts" / "Assembly-CSharp"
            scripts.mkdir(parents=True)
            (scripts / "Player.cs").write_text("class Player {}")
            return ProcessExitSummary(0, 1, 1)

        settings.script_folders_to_copy = ["Assembly-CSharp"]
        with patch("assetpatcher.steps.asset_ripper.run_process", side_effect=_fake_export):
            assert _run(["run"], settings) == EXIT_RESTART

        assert (settings.project_assets_path / "Scripts" / "Assembly-CSharp" / "Player.cs").exists()

    def test_game_folder_override_missing_fails(self, settings, tmp_path):
        settings.input_path = None
        with patch("assetpatcher.steps.asset_ripper.run_process") as mock_run:
            assert _run(["ripper"], settings) == EXIT_FAILURE
        mock_run.assert_not_called()
