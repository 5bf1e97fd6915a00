"""Settings registry with config file persistence."""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Dict, List, Optional, Union

from assetpatcher.core.logger import setup_logger

logger = setup_logger(__name__)


@dataclass
class FieldBase:
    """Base class for all settings fields."""
    key: str                              # Environment variable / config key
    label: str                            # Display label
    description: str = ""                 # Help text
    default: Any = None                   # Default value if not set
    required: bool = False                # Whether field must have a value
    env_var: Optional[str] = None         # Override env var name (defaults to key)
    env_supported: bool = True            # Whether this setting can be set via ENV var

    def get_env_var_name(self) -> str:
        """Get the environment variable name for this field."""
        return self.env_var or self.key


@dataclass
class TextField(FieldBase):
    """Single-line text value (paths, URLs)."""
    pass


@dataclass
class NumberField(FieldBase):
    """Numeric value, bounded by min_value/max_value when set."""
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    default: float = 0


@dataclass
class MultiSelectField(FieldBase):
    """List of strings. From ENV as a comma separated list."""
    default: List[str] = field(default_factory=list)


SettingsField = Union[TextField, NumberField, MultiSelectField]


@dataclass
class SettingsTab:
    """A named group of settings persisted to one config file."""
    name: str
    display_name: str
    fields: List[SettingsField] = field(default_factory=list)
    order: int = 100


_SETTINGS_REGISTRY: Dict[str, SettingsTab] = {}
_REGISTRY_LOCK = Lock()


def register_settings(name: str, display_name: str, order: int = 100):
    def decorator(func: Callable[[], List[SettingsField]]):
        with _REGISTRY_LOCK:
            fields = func()
            _SETTINGS_REGISTRY[name] = SettingsTab(
                name=name,
                display_name=display_name,
                fields=fields,
                order=order,
            )
            logger.debug(f"Registered settings tab: {name} ({len(fields)} fields)")
        return func
    return decorator


def get_all_settings_tabs() -> List[SettingsTab]:
    """Get all registered settings tabs, sorted by order."""
    return sorted(_SETTINGS_REGISTRY.values(), key=lambda t: (t.order, t.name))


def _get_config_dir() -> Path:
    from assetpatcher.config import env
    return Path(env.CONFIG_DIR)


def _get_config_file_path(tab_name: str) -> Path:
    return _get_config_dir() / f"{tab_name}.json"


def load_config_file(tab_name: str) -> Dict[str, Any]:
    config_path = _get_config_file_path(tab_name)

    if not config_path.exists():
        return {}

    try:
        with open(config_path, 'r') as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON in config file {config_path}: {e}")
        return {}


def save_config_file(tab_name: str, values: Dict[str, Any]) -> bool:
    try:
        config_path = _get_config_file_path(tab_name)
        config_path.parent.mkdir(parents=True, exist_ok=True)

        # Load existing config and merge
        existing = load_config_file(tab_name)
        existing.update(values)

        with open(config_path, 'w') as f:
            json.dump(existing, f, indent=2)

        logger.debug(f"Saved settings to {config_path}")
        return True
    except (OSError, TypeError) as e:
        logger.error(f"Error saving config file for {tab_name}: {e}")
        return False


def get_setting_value(field: SettingsField, tab_name: str) -> Any:
    # 1. Check environment variable (if supported for this field)
    if field.env_supported:
        env_value = os.environ.get(field.get_env_var_name())
        if env_value is not None:
            return _parse_env_value(env_value, field)

    # 2. Check config file
    config = load_config_file(tab_name)
    if field.key in config:
        if isinstance(field, NumberField):
            return _coerce_number(config[field.key], field)
        return config[field.key]

    # 3. Return default
    return field.default


def _coerce_number(value: Any, field: NumberField) -> Any:
    """Convert to int/float within the field's bounds, or fall back to the default."""
    try:
        if isinstance(value, str):
            number = float(value) if '.' in value else int(value)
        elif isinstance(value, (int, float)) and not isinstance(value, bool):
            number = value
        else:
            raise ValueError(f"not a number: {value!r}")
    except ValueError:
        logger.warning(f"Invalid number for {field.key}: {value!r}, using default")
        return field.default

    if field.min_value is not None and number < field.min_value:
        logger.warning(f"{field.key}={number} is below the minimum of {field.min_value}, using default")
        return field.default
    if field.max_value is not None and number > field.max_value:
        logger.warning(f"{field.key}={number} is above the maximum of {field.max_value}, using default")
        return field.default
    return number


def _parse_env_value(value: str, field: SettingsField) -> Any:
    """Parse an environment variable value to the appropriate type."""
    if isinstance(field, NumberField):
        return _coerce_number(value.strip(), field)
    elif isinstance(field, MultiSelectField):
        return [v.strip() for v in value.split(',') if v.strip()]
    else:
        return value
