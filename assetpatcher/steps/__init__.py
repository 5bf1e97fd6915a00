from .asset_ripper import AssetRipperStep
from .base import ConfigurationMissing, PatcherStep
from .copy_scripts import CopyExplicitScriptFolderStep

__all__ = [
    "AssetRipperStep",
    "ConfigurationMissing",
    "CopyExplicitScriptFolderStep",
    "PatcherStep",
]
