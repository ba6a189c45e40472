"""
Configuration loading for the policy reconciler.

Configuration is a YAML file merged over built-in defaults.
"""

import copy
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


logger = logging.getLogger(__name__)

DEFAULT_CONFIG: Dict[str, Any] = {
    "engine": {
        "scope": "machine",
        "max_workers": 1,
        "verify_writes": True,
        "provider_timeout": 30,
    },
    "reporting": {
        "output_dir": None,
        "formats": ["json"],
    },
    "catalog": {
        "extra_definitions": [],
    },
    "logging": {
        "level": "INFO",
    },
}


def merge_config(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into a copy of base."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from file or use defaults.

    Args:
        config_path: Path to a YAML configuration file (optional)

    Returns:
        Dict[str, Any]: Defaults merged with the file's settings
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    if not config_path:
        return config

    path = Path(config_path)
    if not path.exists():
        logger.warning("Configuration file %s not found, using defaults", path)
        return config

    try:
        with open(path, 'r', encoding='utf-8') as f:
            user_config = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Failed to load configuration %s, using defaults: %s", path, e)
        return config

    if not isinstance(user_config, dict):
        logger.warning("Configuration %s is not a mapping, using defaults", path)
        return config

    return merge_config(config, user_config)
