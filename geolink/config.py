"""Configuration for GeoLink.

Settings are a nested dictionary addressed with dotted keys
(``"zonal.mode"``). User values from YAML or JSON files are merged over the
defaults below.
"""

import copy
import json
import logging
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from geolink.utils.errors import DataValidationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: dict[str, Any] = {
    "join": {
        "n_jobs": 1,
        "how": "left",
    },
    "zonal": {
        "mode": "center",
        "drop_nodata": True,
    },
    "network": {
        "method": "louvain",
        "seed": 42,
        "resolution": 1.0,
        "weight": "weight",
    },
}

_MISSING = object()


def _merge(base: dict, override: dict) -> dict:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigManager:
    """Nested settings with dotted-key access.

    Example:
        >>> config = ConfigManager({"zonal": {"mode": "overlap"}})
        >>> config.get("zonal.mode")
        'overlap'
        >>> config.get("network.method")
        'louvain'
    """

    def __init__(self, values: Optional[dict] = None, use_defaults: bool = True):
        """Initialize ConfigManager.

        Args:
            values: User settings, merged over the defaults.
            use_defaults: Start from ``DEFAULT_CONFIG``, default True.
        """
        base = DEFAULT_CONFIG if use_defaults else {}
        self._values = _merge(base, values or {})

    def get(self, key: str, default: Any = None) -> Any:
        """Value at a dotted key, or ``default`` if any part is missing."""
        node: Any = self._values
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return copy.deepcopy(node)

    def set(self, key: str, value: Any) -> None:
        """Set the value at a dotted key, creating sections as needed."""
        parts = key.split(".")
        node = self._values
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[parts[-1]] = value

    def __contains__(self, key: str) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def __getitem__(self, key: str) -> Any:
        value = self.get(key, _MISSING)
        if value is _MISSING:
            raise KeyError(key)
        return value

    def update(self, values: dict) -> None:
        """Merge a nested dictionary of settings into this one."""
        self._values = _merge(self._values, values)

    def to_dict(self) -> dict:
        return copy.deepcopy(self._values)

    def __repr__(self) -> str:
        """String representation."""
        return f"ConfigManager(sections={sorted(self._values)})"


def load_config(path: Union[str, Path], use_defaults: bool = True) -> ConfigManager:
    """Load settings from a YAML or JSON file.

    Args:
        path: File path (.yaml, .yml or .json).
        use_defaults: Merge over ``DEFAULT_CONFIG``, default True.

    Returns:
        ConfigManager.

    Raises:
        FileNotFoundError: If the file does not exist.
        DataValidationError: If the format is unsupported or the file does
            not hold a mapping.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    suffix = path.suffix.lower()
    with open(path) as f:
        if suffix in (".yaml", ".yml"):
            values = yaml.safe_load(f)
        elif suffix == ".json":
            values = json.load(f)
        else:
            raise DataValidationError(
                f"Unsupported config file format: {suffix}",
                suggestion="Use .yaml, .yml, or .json",
            )

    if values is None:
        values = {}
    if not isinstance(values, dict):
        raise DataValidationError(
            f"Config file {path} must hold a mapping, got {type(values).__name__}"
        )

    logger.info(f"Loaded config from {path}")
    return ConfigManager(values, use_defaults=use_defaults)


_default_config: Optional[ConfigManager] = None


def get_config() -> ConfigManager:
    """Process-wide default configuration."""
    global _default_config
    if _default_config is None:
        _default_config = ConfigManager()
    return _default_config


def get_config_value(key: str, default: Any = None, config: Optional[ConfigManager] = None) -> Any:
    """Value at ``key`` from ``config``, falling back to the default config."""
    return (config or get_config()).get(key, default)
