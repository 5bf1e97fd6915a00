"""Live configuration values resolved through the settings registry."""

from threading import Lock
from typing import Any, Dict

from assetpatcher.core.logger import setup_logger

logger = setup_logger(__name__)


class Config:
    """Cached view of every registered setting (ENV > config file > default)."""

    def __init__(self) -> None:
        self._values: Dict[str, Any] = {}
        self._loaded = False
        self._lock = Lock()

    def _load(self) -> None:
        # Importing the settings module registers the tabs
        import assetpatcher.config.settings  # noqa: F401
        from assetpatcher.core.settings_registry import get_all_settings_tabs, get_setting_value

        values: Dict[str, Any] = {}
        for tab in get_all_settings_tabs():
            for settings_field in tab.fields:
                values[settings_field.key] = get_setting_value(settings_field, tab.name)

        self._values = values
        self._loaded = True
        logger.debug(f"Loaded {len(values)} settings")

    def refresh(self) -> None:
        """Re-read every setting from ENV and config files."""
        with self._lock:
            self._load()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            if not self._loaded:
                self._load()
            value = self._values.get(key)
        return default if value is None else value

    def __getattr__(self, key: str) -> Any:
        if key.startswith("_"):
            raise AttributeError(key)
        if not self._loaded:
            self.refresh()
        if key not in self._values:
            raise AttributeError(f"Unknown setting: {key}")
        return self._values[key]


config = Config()
