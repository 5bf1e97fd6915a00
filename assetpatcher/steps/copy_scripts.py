"""Copy exported script assemblies into the project verbatim."""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Optional

from assetpatcher.config.settings import AssetRipperSettings
from assetpatcher.core.logger import setup_logger
from assetpatcher.core.models import StepOutcome
from assetpatcher.steps.base import PatcherStep

logger = setup_logger(__name__)

GENERATED_PREFIXES = ("UnitySourceGeneratedAssemblyMonoScriptTypes", "__")


def _is_generated(file_path: Path) -> bool:
    return file_path.name.startswith(GENERATED_PREFIXES)


def copy_script_folder(from_folder: Path, to_folder: Path) -> int:
    """Replace ``to_folder`` with the non-generated files of ``from_folder``."""
    # Trim the generated Properties folder
    properties_folder = from_folder / "Properties"
    if properties_folder.is_dir():
        shutil.rmtree(properties_folder)

    if to_folder.exists():
        try:
            shutil.rmtree(to_folder)
        except OSError as e:
            logger.error(f"Failed to delete {to_folder}: {e}")

    copied = 0
    to_folder.mkdir(parents=True, exist_ok=True)
    for file_path in sorted(from_folder.rglob("*")):
        if not file_path.is_file() or _is_generated(file_path):
            continue
        target_path = to_folder / file_path.relative_to(from_folder)
        target_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(file_path, target_path)
        copied += 1
    return copied


class CopyExplicitScriptFolderStep(PatcherStep):
    name = "copy_explicit_script_folders"

    def __init__(self, settings: Optional[AssetRipperSettings] = None):
        self._settings = settings

    @property
    def settings(self) -> AssetRipperSettings:
        if self._settings is None:
            self._settings = AssetRipperSettings.from_config()
        return self._settings

    def run(self) -> StepOutcome:
        settings = self.settings

        scripts_folder = settings.folder_mapping("Scripts")
        if not scripts_folder:
            logger.error("Could not find \"Scripts\" folder mapping")
            return StepOutcome.success()

        exported_assets = settings.output_export_assets_path
        if exported_assets is None or settings.project_assets_path is None:
            return StepOutcome.failure("Validation failed: output path and project assets path must be set")

        for folder_name in settings.script_folders_to_copy:
            from_folder = exported_assets / "Scripts" / folder_name
            to_folder = settings.project_assets_path / scripts_folder / folder_name
            if not from_folder.is_dir():
                logger.error(f"Exported script folder not found: {from_folder}")
                return StepOutcome.failure(f"Copy failed: {from_folder} does not exist")

            try:
                copied = copy_script_folder(from_folder, to_folder)
            except OSError as e:
                logger.error(f"Failed to copy from {from_folder} to {to_folder}: {e}")
                return StepOutcome.failure(f"Copy failed: {from_folder} -> {to_folder}: {e}", e)
            logger.info(f"Copied {copied} file(s) from {from_folder} to {to_folder}")

        # The host has to reload to pick up the new scripts
        return StepOutcome.restart_host("Copied script folders require a host restart")
