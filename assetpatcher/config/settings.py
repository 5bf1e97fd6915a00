"""Settings registration and the resolved AssetRipper configuration."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from assetpatcher.config import env
from assetpatcher.core.logger import setup_logger
from assetpatcher.core.models import ToolInstallation
from assetpatcher.core.settings_registry import (
    MultiSelectField,
    NumberField,
    TextField,
    register_settings,
)

logger = setup_logger(__name__)

EXE_NAME = "AssetRipper.Tools.SystemTester.exe" if os.name == "nt" else "AssetRipper.Tools.SystemTester"
DEFAULT_DOWNLOAD_URL = "https://github.com/nomnomab/AssetRipper/releases/latest/download/Release.zip"


@register_settings("general", "General", order=0)
def general_settings():
    return [
        TextField(
            key="GAME_FOLDER_PATH",
            label="Game Folder",
            description="Folder containing the game data AssetRipper reads from.",
            required=True,
        ),
        TextField(
            key="PROJECT_ASSETS_PATH",
            label="Project Assets Folder",
            description="Assets folder of the project that receives copied scripts.",
        ),
        MultiSelectField(
            key="SCRIPT_DLL_FOLDERS_TO_COPY",
            label="Script Folders To Copy",
            description="Exported script assemblies copied into the project as-is.",
        ),
    ]


@register_settings("asset_ripper", "AssetRipper", order=10)
def asset_ripper_settings():
    return [
        TextField(
            key="ASSET_RIPPER_FOLDER",
            label="Installation Folder",
            description="Where AssetRipper is installed. Downloaded here when missing.",
            default="./AssetRipper",
        ),
        TextField(
            key="ASSET_RIPPER_EXE",
            label="Executable",
            description=f"Defaults to {EXE_NAME} inside the installation folder.",
        ),
        TextField(
            key="ASSET_RIPPER_DOWNLOAD_URL",
            label="Download URL",
            description="Release archive to fetch. Accepts http(s), file:// URLs and local paths.",
            default=DEFAULT_DOWNLOAD_URL,
        ),
        TextField(
            key="ASSET_RIPPER_OUTPUT_DIR",
            label="Output Folder",
            description="Wiped and recreated before every run.",
            default="./AssetRipperOutput",
        ),
        TextField(
            key="ASSET_RIPPER_CONFIG_PATH",
            label="Run Configuration File",
            description="JSON file AssetRipper reads its export options from.",
        ),
        TextField(
            key="ASSET_RIPPER_EXPORT_MARKER",
            label="Export Marker",
            description="Output lines containing this text (any case) count as one exported asset.",
            default="Exporting",
        ),
        NumberField(
            key="ASSET_RIPPER_ESTIMATED_EXPORTS",
            label="Estimated Exports",
            description="Rough total used for the progress bar. Progress stops at 100% if exceeded.",
            default=5624,
            min_value=1,
        ),
        TextField(
            key="ASSET_RIPPER_SCRIPTS_FOLDER",
            label="Scripts Folder Mapping",
            description="Project folder scripts are mapped into. Empty excludes scripts.",
            default="Scripts",
        ),
        TextField(
            key="ASSET_RIPPER_SCRIPT_CONTENT_LEVEL",
            label="Script Content Level",
            default="Level2",
        ),
        TextField(
            key="ASSET_RIPPER_SCRIPT_EXPORT_MODE",
            label="Script Export Mode",
            default="Decompiled",
        ),
        TextField(
            key="ASSET_RIPPER_IMAGE_EXPORT_FORMAT",
            label="Image Export Format",
            default="Png",
        ),
    ]


@register_settings("pipeline", "Pipeline", order=90)
def pipeline_settings():
    return [
        NumberField(
            key="RESUME_STEP",
            label="Resume Step",
            description="Index of the step to continue from after a host restart.",
            default=0,
            env_supported=False,
        ),
    ]


def _optional_path(value: Any) -> Optional[Path]:
    if value is None or str(value).strip() == "":
        return None
    return Path(str(value)).expanduser()


@dataclass
class AssetRipperSettings:
    """Resolved paths and options for one AssetRipper run."""
    folder_path: Optional[Path]
    exe_path: Optional[Path]
    download_url: Optional[str]
    input_path: Optional[Path]
    output_path: Optional[Path]
    config_path: Optional[Path]
    export_marker: str = "Exporting"
    estimated_exports: int = 5624
    scripts_folder: Optional[str] = "Scripts"
    export_options: Dict[str, Any] = field(default_factory=dict)
    project_assets_path: Optional[Path] = None
    script_folders_to_copy: List[str] = field(default_factory=list)

    @classmethod
    def from_config(cls, cfg=None) -> "AssetRipperSettings":
        if cfg is None:
            from assetpatcher.core.config import config as cfg

        folder_path = _optional_path(cfg.get("ASSET_RIPPER_FOLDER"))
        exe_path = _optional_path(cfg.get("ASSET_RIPPER_EXE"))
        if exe_path is None and folder_path is not None:
            exe_path = folder_path / EXE_NAME

        config_path = _optional_path(cfg.get("ASSET_RIPPER_CONFIG_PATH"))
        if config_path is None:
            config_path = env.CONFIG_DIR / "asset_ripper_run.json"

        return cls(
            folder_path=folder_path,
            exe_path=exe_path,
            download_url=cfg.get("ASSET_RIPPER_DOWNLOAD_URL") or None,
            input_path=_optional_path(cfg.get("GAME_FOLDER_PATH")),
            output_path=_optional_path(cfg.get("ASSET_RIPPER_OUTPUT_DIR")),
            config_path=config_path,
            export_marker=cfg.get("ASSET_RIPPER_EXPORT_MARKER", "Exporting"),
            estimated_exports=int(cfg.get("ASSET_RIPPER_ESTIMATED_EXPORTS", 5624)),
            scripts_folder=cfg.get("ASSET_RIPPER_SCRIPTS_FOLDER") or None,
            export_options={
                "ScriptContentLevel": cfg.get("ASSET_RIPPER_SCRIPT_CONTENT_LEVEL", "Level2"),
                "ScriptExportMode": cfg.get("ASSET_RIPPER_SCRIPT_EXPORT_MODE", "Decompiled"),
                "ImageExportFormat": cfg.get("ASSET_RIPPER_IMAGE_EXPORT_FORMAT", "Png"),
            },
            project_assets_path=_optional_path(cfg.get("PROJECT_ASSETS_PATH")),
            script_folders_to_copy=list(cfg.get("SCRIPT_DLL_FOLDERS_TO_COPY", [])),
        )

    @property
    def installation(self) -> Optional[ToolInstallation]:
        if self.exe_path is None:
            return None
        return ToolInstallation(install_dir=self.folder_path or self.exe_path.parent, executable=self.exe_path)

    @property
    def output_export_assets_path(self) -> Optional[Path]:
        if self.output_path is None:
            return None
        return self.output_path / "ExportedProject" / "Assets"

    def folder_mapping(self, name: str) -> Optional[str]:
        """Project folder an exported asset folder maps into, or None if excluded."""
        if name == "Scripts":
            return self.scripts_folder
        return name

    def run_config(self) -> Dict[str, Any]:
        return {
            **self.export_options,
            "FolderMappings": {"Scripts": self.scripts_folder},
        }

    def save_to_config(self) -> Path:
        """Write the run configuration the tool reads at startup."""
        if self.config_path is None:
            raise ValueError("Run configuration path is not set")
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, "w") as f:
            json.dump(self.run_config(), f, indent=2)
        logger.debug(f"Saved AssetRipper run configuration to {self.config_path}")
        return self.config_path
