"""Bootstrap configuration read from environment variables.

These values are needed before the settings registry is available
(where config files live, where logs go, where temp downloads are staged).
"""

import os
from pathlib import Path


def string_to_bool(s: str) -> bool:
    return s.lower() in ["true", "yes", "1", "y", "on"]


def _path_from_env(key: str, default: str) -> Path:
    return Path(os.getenv(key, default)).expanduser()


CONFIG_DIR = _path_from_env("CONFIG_DIR", "./config")
LOG_DIR = _path_from_env("LOG_DIR", "./logs")
# Working area: temporary downloads are colocated here
TMP_DIR = _path_from_env("TMP_DIR", "./tmp")

DEBUG = string_to_bool(os.getenv("DEBUG", "false"))
ENABLE_LOGGING = string_to_bool(os.getenv("ENABLE_LOGGING", "false"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG" if DEBUG else "INFO").upper()
