"""Environment file loading.

Template URLs and timeouts are often kept in ``.env`` files next to the
site rather than in ``.sitesync.json``. Files are read with python-dotenv
and layered as:

  os.environ (pre-existing) > project .env > user .env

Values already exported in the shell are never replaced.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable

from dotenv import dotenv_values

logger = logging.getLogger(__name__)


def read_env_file(path: Path) -> dict[str, str]:
    """Read one .env file, dropping keys without values. Missing files read as empty."""
    if not path.exists():
        return {}
    return {str(k): str(v) for k, v in dotenv_values(path).items() if k and v is not None}


def default_user_env_paths() -> list[Path]:
    xdg_home = Path(os.environ.get("XDG_CONFIG_HOME", str(Path.home() / ".config")))
    return [xdg_home / "sitesync" / ".env"]


def load_layered_env(
    *,
    project_dir: Path | None = None,
    user_env_paths: Iterable[Path] | None = None,
    project_env_paths: Iterable[Path] | None = None,
) -> dict[str, str]:
    """Load user and project .env files into ``os.environ``.

    Args:
        project_dir: base directory for project env paths (defaults to cwd)
        user_env_paths: explicit user env file paths
        project_env_paths: explicit project env file paths

    Returns:
        The keys this call set, mapped to the values it set them to.
    """
    project_dir = project_dir or Path.cwd()
    if user_env_paths is None:
        user_env_paths = default_user_env_paths()
    if project_env_paths is None:
        project_env_paths = [project_dir / ".env", project_dir / ".env.local"]

    applied: dict[str, str] = {}

    for path in user_env_paths:
        for key, value in read_env_file(Path(path)).items():
            if key not in os.environ:
                applied[key] = value

    # Project files may replace user values but not the shell's
    for path in project_env_paths:
        for key, value in read_env_file(Path(path)).items():
            if key not in os.environ:
                applied[key] = value

    os.environ.update(applied)
    if applied:
        logger.debug("Loaded %d variable(s) from .env files", len(applied))
    return applied
