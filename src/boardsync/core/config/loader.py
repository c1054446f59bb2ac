"""
Configuration loading with multi-layer merging.

Implements the configuration precedence chain:
    defaults < user config < project config < env vars
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from boardsync.core.tasks.models import TaskStatus

from .models import BoardsyncConfig

logger = logging.getLogger(__name__)

# Global cache to avoid reloading config multiple times per session
_config_cache: BoardsyncConfig | None = None


def get_xdg_config_home() -> Path:
    """
    Get XDG config home directory.

    Returns:
        Path to config directory (defaults to ~/.config)
    """
    if xdg_home := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_home)
    return Path.home() / ".config"


def get_user_config_path() -> Path:
    """
    Get path to user configuration file.

    Returns:
        Path to ~/.config/boardsync/config.json (or XDG equivalent)
    """
    return get_xdg_config_home() / "boardsync" / "config.json"


def get_project_config_path(cwd: Path | None = None) -> Path:
    """
    Get path to project configuration file.

    Args:
        cwd: Working directory to search from (defaults to current directory)

    Returns:
        Path to .boardsync.json in the project root
    """
    if cwd is None:
        cwd = Path.cwd()
    return cwd / ".boardsync.json"


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Values in `override` take precedence over values in `base`.
    Nested dicts are merged, not replaced.

    Example:
        >>> base = {"a": 1, "b": {"x": 10, "y": 20}}
        >>> override = {"b": {"y": 30, "z": 40}, "c": 3}
        >>> deep_merge(base, override)
        {'a': 1, 'b': {'x': 10, 'y': 30, 'z': 40}, 'c': 3}
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def load_json_file(path: Path) -> dict[str, Any] | None:
    """
    Load a JSON file, returning None if it doesn't exist or is invalid.

    Args:
        path: Path to JSON file

    Returns:
        Parsed JSON as dict, or None if file doesn't exist or can't be parsed
    """
    if not path.exists():
        return None

    try:
        with path.open() as f:
            data = json.load(f)
            if isinstance(data, dict):
                return data
            return None
    except (json.JSONDecodeError, OSError) as e:
        # Config system should be resilient; keep going with other layers
        logger.warning("Failed to parse config at %s: %s", path, e)
        return None


def _set(result: dict[str, Any], section: str, key: str, value: Any) -> None:
    current = result.get(section)
    # Sections may be given as shorthand scalars (e.g. "azure_devops": "org")
    result[section] = {**current, key: value} if isinstance(current, dict) else {key: value}


def apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Env vars have the highest precedence and override all config files.

    Supported env vars:
        BOARDSYNC_DATA_DIR - overrides storage.data_dir
        BOARDSYNC_BACKEND - overrides storage.backend
        BOARDSYNC_MAX_WORKERS - overrides sync.max_workers
        BOARDSYNC_DEFAULT_STATUS - overrides sync.default_status
        BOARDSYNC_ADO_ORG - overrides azure_devops.organization

    Args:
        config_dict: Configuration dictionary to override

    Returns:
        Configuration dictionary with env var overrides applied
    """
    result = config_dict.copy()

    if data_dir := os.environ.get("BOARDSYNC_DATA_DIR"):
        _set(result, "storage", "data_dir", data_dir)

    if backend := os.environ.get("BOARDSYNC_BACKEND"):
        _set(result, "storage", "backend", backend.lower())

    if workers_str := os.environ.get("BOARDSYNC_MAX_WORKERS"):
        try:
            workers = int(workers_str)
            if workers < 1:
                logger.warning("BOARDSYNC_MAX_WORKERS must be >= 1, got %d, ignoring", workers)
            else:
                _set(result, "sync", "max_workers", workers)
        except ValueError:
            logger.warning("Invalid BOARDSYNC_MAX_WORKERS value '%s', ignoring", workers_str)

    if status_str := os.environ.get("BOARDSYNC_DEFAULT_STATUS"):
        try:
            _set(result, "sync", "default_status", TaskStatus(status_str.lower()).value)
        except ValueError:
            logger.warning("Invalid BOARDSYNC_DEFAULT_STATUS value '%s', ignoring", status_str)

    if org := os.environ.get("BOARDSYNC_ADO_ORG"):
        _set(result, "azure_devops", "organization", org)

    return result


def get_default_config() -> dict[str, Any]:
    """
    Get hardcoded default configuration.

    Returns:
        Dictionary with default configuration values
    """
    return {
        "storage": {"data_dir": ".boardsync", "backend": "json"},
        "sync": {"max_workers": 4, "default_status": TaskStatus.BACKLOG.value},
    }


def load_config(project_dir: Path | None = None, use_cache: bool = True) -> BoardsyncConfig:
    """
    Load configuration with multi-layer merging.

    Configuration precedence (highest to lowest):
        1. Environment variables (BOARDSYNC_*)
        2. Project config (.boardsync.json)
        3. User config (~/.config/boardsync/config.json)
        4. Hardcoded defaults

    Args:
        project_dir: Project directory to load .boardsync.json from (defaults to cwd)
        use_cache: If True, return cached config from previous load

    Returns:
        Validated BoardsyncConfig instance

    Raises:
        ValidationError: If the merged config fails Pydantic validation
    """
    global _config_cache

    if use_cache and _config_cache is not None:
        return _config_cache

    merged = get_default_config()

    if user_config := load_json_file(get_user_config_path()):
        merged = deep_merge(merged, user_config)

    if project_config := load_json_file(get_project_config_path(project_dir)):
        merged = deep_merge(merged, project_config)

    merged = apply_env_overrides(merged)

    config = BoardsyncConfig(**merged)
    _config_cache = config

    return config


def clear_cache() -> None:
    """
    Clear the cached configuration.

    Useful for testing or when config files change during execution.
    """
    global _config_cache
    _config_cache = None
