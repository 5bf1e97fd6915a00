"""Acquire and supervise AssetRipper as a step of the project patcher pipeline."""

__version__ = "0.3.0"
