"""Configuration loader for the money board defaults."""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict

# Configuration directory
CONFIG_DIR = Path(__file__).parent


def load_config(config_name: str) -> Dict[str, Any]:
    """Load a configuration file by name.

    Args:
        config_name: Name of the config file (without .json extension)

    Returns:
        Dictionary containing the configuration

    Raises:
        FileNotFoundError: If the configuration file doesn't exist
        json.JSONDecodeError: If the configuration file is invalid JSON

    Example:
        >>> config = load_config('money')
        >>> config['forecast']['weekly_baseline']
        350
    """
    config_path = CONFIG_DIR / f"{config_name}.json"

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        return json.load(f)


@lru_cache(maxsize=1)
def _cached_money_config() -> str:
    return json.dumps(load_config('money'))


def get_money_config() -> Dict[str, Any]:
    """Get the money board configuration.

    A fresh copy is returned on every call, so callers may mutate it.

    Returns:
        Configuration dictionary with default buckets, income sources,
        forecast settings and side-income stream defaults
    """
    return json.loads(_cached_money_config())


def get_config_value(config_name: str, *keys: str, default: Any = None) -> Any:
    """Get a nested configuration value by key path.

    Args:
        config_name: Name of the config file
        *keys: Path to the nested value (e.g., 'forecast', 'weekly_baseline')
        default: Default value if key path doesn't exist

    Returns:
        The configuration value at the specified path, or default if not found

    Example:
        >>> get_config_value('money', 'forecast', 'plan_weeks')
        4
    """
    try:
        config = get_money_config() if config_name == 'money' else load_config(config_name)
        value = config
        for key in keys:
            value = value[key]
        return value
    except (KeyError, TypeError, FileNotFoundError):
        return default
