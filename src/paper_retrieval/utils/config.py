"""Centralized configuration loading."""

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

_config_cache: Optional[dict] = None
_CONFIG_FILENAME = "configs/config.yaml"

# Environment variables that override values from the YAML file.
_ENV_OVERRIDES = {
    "OPENALEX_EMAIL": ("providers", "openalex", "email"),
    "CROSSREF_EMAIL": ("providers", "crossref", "email"),
    "PRIMARY_PAPER_PROVIDER": ("search", "primary_provider"),
}


def find_project_root() -> Path:
    """Walk up from this file to find the directory containing configs/."""
    current = Path(__file__).resolve().parent
    for _ in range(10):  # safety limit
        if (current / "configs").is_dir():
            return current
        current = current.parent
    # Fallback: assume CWD
    return Path.cwd()


def _apply_env_overrides(config: dict) -> dict:
    for env_name, path in _ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if not value:
            continue
        node = config
        for key in path[:-1]:
            child = node.get(key)
            if not isinstance(child, dict):
                child = {}
                node[key] = child
            node = child
        node[path[-1]] = value
        logger.debug(f"Config {'.'.join(path)} overridden from ${env_name}")
    return config


def load_config(config_path: Optional[str] = None, *, use_cache: bool = True) -> dict:
    """Load and cache the YAML configuration.

    Args:
        config_path: Override path. If None, auto-discovers configs/config.yaml.
        use_cache: If True (default), returns cached result on subsequent calls.
    """
    global _config_cache
    if use_cache and _config_cache is not None and config_path is None:
        return _config_cache

    if config_path:
        path = Path(config_path)
    else:
        path = find_project_root() / _CONFIG_FILENAME

    if not path.exists():
        logger.debug(f"Config file not found: {path}")
        result = {}
    else:
        try:
            with path.open("r", encoding="utf-8") as f:
                result = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Failed to load config from {path}: {e}")
            result = {}

    result = _apply_env_overrides(result)

    if config_path is None:
        _config_cache = result
    return result


def get_section(config: dict, *keys: str, default: Any = None) -> Any:
    """Read a nested config value, tolerating missing or null sections."""
    node: Any = config
    for key in keys:
        if not isinstance(node, dict):
            return default
        node = node.get(key)
        if node is None:
            return default
    return node


def clear_config_cache():
    """Clear the cached config (useful for testing)."""
    global _config_cache
    _config_cache = None
