"""Pipeline step that installs AssetRipper if needed and runs it.

Stages: validate configuration, save the run configuration, fetch the tool
when missing, wipe the output folder, run the tool. The progress indicator
is cleared after the fetch and run stages whatever their outcome, and every
failure comes back as a ``Failure`` outcome naming the stage.
"""

from __future__ import annotations

import shutil
from threading import Event
from typing import Optional

from assetpatcher.config.settings import AssetRipperSettings
from assetpatcher.core.logger import setup_logger
from assetpatcher.core.models import StepOutcome
from assetpatcher.core.progress import NullProgressReporter, ProgressReporter
from assetpatcher.download.fetcher import FetchError
from assetpatcher.steps.base import ConfigurationMissing, PatcherStep, require
from assetpatcher.tools.acquisition import ensure_installed
from assetpatcher.tools.supervisor import NonZeroExit, RunCancelled, RunError, run_process

logger = setup_logger(__name__)


class AssetRipperStep(PatcherStep):
    name = "asset_ripper"

    def __init__(
        self,
        settings: Optional[AssetRipperSettings] = None,
        reporter: Optional[ProgressReporter] = None,
        cancel_flag: Optional[Event] = None,
    ):
        self._settings = settings
        self.reporter = reporter or NullProgressReporter()
        self.cancel_flag = cancel_flag if cancel_flag is not None else Event()

    @property
    def settings(self) -> AssetRipperSettings:
        if self._settings is None:
            self._settings = AssetRipperSettings.from_config()
        return self._settings

    def run(self) -> StepOutcome:
        settings = self.settings

        try:
            exe_path = require(settings.exe_path, "AssetRipper exe path")
            input_path = require(settings.input_path, "Input path")
            output_path = require(settings.output_path, "Output path")
            config_path = require(settings.config_path, "Config path")
        except ConfigurationMissing as e:
            logger.error(str(e))
            return StepOutcome.failure(f"Validation failed: {e}", e)
        if settings.estimated_exports <= 0:
            logger.error(f"Estimated exports must be positive, got {settings.estimated_exports}")
            return StepOutcome.failure(
                f"Validation failed: estimated exports must be positive, got {settings.estimated_exports}"
            )

        try:
            settings.save_to_config()
        except OSError as e:
            logger.error(f"Could not write run configuration to {config_path}: {e}")
            return StepOutcome.failure(f"Preparation failed: could not write {config_path}: {e}", e)

        # Download AssetRipper if we don't already have it
        self.reporter.begin_task("Checking AssetRipper Dependencies")
        try:
            ensure_installed(settings.installation, settings.download_url, self.reporter, self.cancel_flag)
        except FetchError as e:
            logger.error(f"Fetching AssetRipper failed: {e}")
            return StepOutcome.failure(f"Fetch failed: {e}", e)
        except Exception as e:
            logger.error_trace(f"Unexpected error while fetching AssetRipper: {e}")
            return StepOutcome.failure(f"Unexpected error during fetch: {e}", e)
        finally:
            self.reporter.clear_task()

        # Clear the previous output
        try:
            if output_path.exists():
                shutil.rmtree(output_path)
            output_path.mkdir(parents=True)
        except OSError as e:
            logger.error(f"Could not reset output folder {output_path}: {e}")
            return StepOutcome.failure(f"Preparation failed: could not reset {output_path}: {e}", e)

        logger.info(f"Running AssetRipper at \"{exe_path}\" with \"{input_path}\" and outputting into \"{output_path}\"")
        logger.info(f"Using settings from \"{config_path}\"")
        try:
            summary = run_process(
                exe_path,
                [config_path, output_path, input_path],
                reporter=self.reporter,
                cancel_flag=self.cancel_flag,
                marker=settings.export_marker,
                estimated_total=settings.estimated_exports,
            )
        except RunCancelled as e:
            return StepOutcome.failure(f"Run cancelled: {e}", e)
        except NonZeroExit as e:
            return StepOutcome.failure(
                f"Run failed: AssetRipper exited with code {e.exit_code}: {e.stderr_text or 'No error output'}", e
            )
        except RunError as e:
            logger.error(str(e))
            return StepOutcome.failure(f"Run failed: {e}", e)
        except Exception as e:
            logger.error_trace(f"Error running AssetRipper: {e}")
            return StepOutcome.failure(f"Unexpected error during run: {e}", e)
        finally:
            self.reporter.clear_task()

        logger.info(f"AssetRipper exported {summary.completed_units} asset(s) into {output_path}")
        return StepOutcome.success()
