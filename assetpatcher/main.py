"""Console entry point for the patcher pipeline."""

from __future__ import annotations

import argparse
import signal
import sys
from pathlib import Path
from threading import Event
from typing import List, Optional

from assetpatcher import __version__
from assetpatcher.config.settings import AssetRipperSettings
from assetpatcher.core.logger import setup_logger
from assetpatcher.core.models import StepResult
from assetpatcher.core.progress import TqdmProgressReporter
from assetpatcher.download.fetcher import FetchError
from assetpatcher.pipeline import run_pipeline
from assetpatcher.steps import AssetRipperStep, CopyExplicitScriptFolderStep, PatcherStep
from assetpatcher.tools.acquisition import ensure_installed

logger = setup_logger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_RESTART = 3


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="assetpatcher",
        description="Download, run and post-process AssetRipper exports",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--game-folder", type=Path, help="Game data folder (overrides GAME_FOLDER_PATH)")
    parser.add_argument("--output", type=Path, help="Output folder (overrides ASSET_RIPPER_OUTPUT_DIR)")
    parser.add_argument("--download-url", help="Release archive URL (overrides ASSET_RIPPER_DOWNLOAD_URL)")

    subparsers = parser.add_subparsers(dest="command", required=True)
    run_parser = subparsers.add_parser("run", help="Run the whole pipeline")
    run_parser.add_argument("--resume", action="store_true", help="Continue after a host restart")
    subparsers.add_parser("ripper", help="Only install and run AssetRipper")
    subparsers.add_parser("install", help="Only make sure AssetRipper is installed")

    return parser.parse_args(argv)


def _load_settings(args: argparse.Namespace) -> AssetRipperSettings:
    settings = AssetRipperSettings.from_config()
    if args.game_folder:
        settings.input_path = args.game_folder
    if args.output:
        settings.output_path = args.output
    if args.download_url:
        settings.download_url = args.download_url
    return settings


def _install_cancel_handler(cancel_flag: Event) -> None:
    def _handler(signum, frame):
        if cancel_flag.is_set():
            raise KeyboardInterrupt
        logger.warning("Cancellation requested, press Ctrl-C again to abort")
        cancel_flag.set()

    signal.signal(signal.SIGINT, _handler)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_arguments(argv)
    settings = _load_settings(args)
    cancel_flag = Event()
    reporter = TqdmProgressReporter(cancel_flag)
    _install_cancel_handler(cancel_flag)

    if args.command == "install":
        installation = settings.installation
        if installation is None:
            logger.error("AssetRipper exe path was not set")
            return EXIT_FAILURE
        reporter.begin_task("Checking AssetRipper Dependencies")
        try:
            ensure_installed(installation, settings.download_url, reporter, cancel_flag)
        except FetchError as e:
            logger.error(f"Install failed: {e}")
            return EXIT_FAILURE
        finally:
            reporter.clear_task()
        logger.info(f"AssetRipper is installed at {installation.executable}")
        return EXIT_OK

    ripper_step = AssetRipperStep(settings, reporter, cancel_flag)
    if args.command == "ripper":
        outcome = ripper_step.run()
    else:
        steps: List[PatcherStep] = [ripper_step, CopyExplicitScriptFolderStep(settings)]
        outcome = run_pipeline(steps, resume=args.resume)
    if outcome.result == StepResult.SUCCESS:
        return EXIT_OK
    if outcome.result == StepResult.RESTART_HOST:
        logger.info("Restart the host and run again with --resume")
        return EXIT_RESTART
    logger.error(outcome.cause)
    return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
