"""
Layered .env loading for credentials.

Tokens (GITHUB_TOKEN, AZURE_DEVOPS_PAT) usually live in .env files rather
than in the shell. Files are read with python-dotenv and applied with this
precedence:

    process environment > project .env.local > project .env > user .env

The user file is ~/.config/boardsync/.env (or under $XDG_CONFIG_HOME).
Variables already exported in the process are never overwritten.
"""

import logging
import os
from pathlib import Path

from dotenv import dotenv_values

logger = logging.getLogger(__name__)


def user_env_path() -> Path:
    """Path of the per-user .env file."""
    xdg_home = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg_home) if xdg_home else Path.home() / ".config"
    return base / "boardsync" / ".env"


def project_env_paths(project_dir: Path) -> list[Path]:
    """Project .env files, lowest precedence first."""
    return [project_dir / ".env", project_dir / ".env.local"]


def read_env_files(paths: list[Path]) -> dict[str, str]:
    """
    Merge .env files; later files win. Missing files are skipped.

    Keys without a value (a bare ``KEY`` line) are ignored.
    """
    merged: dict[str, str] = {}
    for path in paths:
        if not path.is_file():
            continue
        values = {k: v for k, v in dotenv_values(path).items() if v is not None}
        logger.debug("Loaded %d variables from %s", len(values), path)
        merged.update(values)
    return merged


def load_layered_env(
    project_dir: Path | None = None,
    user_paths: list[Path] | None = None,
    project_paths: list[Path] | None = None,
) -> dict[str, str]:
    """
    Load user and project .env files into os.environ.

    Args:
        project_dir: Directory holding the project .env files (defaults to cwd)
        user_paths: Override the user .env locations
        project_paths: Override the project .env locations

    Returns:
        The variables that were set by this call
    """
    project_dir = project_dir or Path.cwd()
    paths = list(user_paths if user_paths is not None else [user_env_path()])
    paths += project_paths if project_paths is not None else project_env_paths(project_dir)

    applied: dict[str, str] = {}
    for key, value in read_env_files(paths).items():
        if key in os.environ:
            continue
        os.environ[key] = value
        applied[key] = value
    return applied
