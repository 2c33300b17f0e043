"""
Layered configuration for sitesync.

Sources, lowest to highest priority:
    built-in defaults
    ~/.config/sitesync/config.json (or $XDG_CONFIG_HOME/sitesync/config.json)
    .sitesync.json in the site root
    SITESYNC_* environment variables
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from .models import SiteSyncConfig

logger = logging.getLogger(__name__)

PROJECT_CONFIG_NAME = ".sitesync.json"

_FALSE_WORDS = ("false", "0", "no")

# One load per process unless clear_cache() is called
_config_cache: SiteSyncConfig | None = None


def get_xdg_config_home() -> Path:
    """Base directory for user config, honouring $XDG_CONFIG_HOME."""
    configured = os.environ.get("XDG_CONFIG_HOME")
    return Path(configured) if configured else Path.home() / ".config"


def get_user_config_path() -> Path:
    return get_xdg_config_home() / "sitesync" / "config.json"


def get_project_config_path(project_dir: Path | None = None) -> Path:
    """The site's own ``.sitesync.json`` (project_dir defaults to cwd)."""
    return (project_dir or Path.cwd()) / PROJECT_CONFIG_NAME


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Return a copy of ``base`` with ``override`` laid over it.

    Sections present in both are merged key by key; any other value in
    ``override`` replaces the one in ``base``. Neither input is modified.

    Example:
        >>> deep_merge({"template": {"branch": "main"}}, {"template": {"url": "x"}})
        {'template': {'branch': 'main', 'url': 'x'}}
    """
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def load_json_file(path: Path) -> dict[str, Any] | None:
    """
    Read one config layer.

    A missing file is silently skipped. Unreadable JSON, or JSON whose top
    level is not an object, is skipped with a warning.
    """
    if not path.exists():
        return None

    try:
        data = json.loads(path.read_text())
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Failed to parse config at %s: %s", path, e)
        return None

    if not isinstance(data, dict):
        logger.warning("Ignoring config at %s: top level is not an object", path)
        return None
    return data


def _parse_timeout(raw: str) -> float | None:
    try:
        timeout = float(raw)
    except ValueError:
        logger.warning("Invalid SITESYNC_GIT_TIMEOUT value '%s', ignoring", raw)
        return None
    if timeout < 1:
        logger.warning("SITESYNC_GIT_TIMEOUT must be >= 1, got %s, ignoring", raw)
        return None
    return timeout


def apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Lay SITESYNC_* environment variables over a config dict.

    ============================  ======================
    Variable                      Setting
    ============================  ======================
    SITESYNC_TEMPLATE_URL         template.url
    SITESYNC_TEMPLATE_BRANCH      template.branch
    SITESYNC_REMOTE_NAME          template.remote_name
    SITESYNC_GIT_TIMEOUT          git.timeout_seconds
    SITESYNC_REQUIRE_CLEAN        sync.require_clean
    ============================  ======================

    Invalid values are logged and skipped. The input dict is not modified.
    """
    overrides: dict[str, dict[str, Any]] = {}

    for var, section, key in (
        ("SITESYNC_TEMPLATE_URL", "template", "url"),
        ("SITESYNC_TEMPLATE_BRANCH", "template", "branch"),
        ("SITESYNC_REMOTE_NAME", "template", "remote_name"),
    ):
        if value := os.environ.get(var):
            overrides.setdefault(section, {})[key] = value

    if raw_timeout := os.environ.get("SITESYNC_GIT_TIMEOUT"):
        timeout = _parse_timeout(raw_timeout)
        if timeout is not None:
            overrides.setdefault("git", {})["timeout_seconds"] = timeout

    if raw_clean := os.environ.get("SITESYNC_REQUIRE_CLEAN"):
        overrides.setdefault("sync", {})["require_clean"] = raw_clean.lower() not in _FALSE_WORDS

    return deep_merge(config_dict, overrides)


def get_default_config() -> dict[str, Any]:
    """Built-in settings every other layer is merged onto."""
    return {
        "template": {"remote_name": "template", "branch": "main", "local_ref": "HEAD"},
        "git": {"executable": "git", "timeout_seconds": None},
        "sync": {"require_clean": True, "auto_abort_on_error": True},
    }


def load_config(project_dir: Path | None = None, use_cache: bool = True) -> SiteSyncConfig:
    """
    Build the effective configuration for a site.

    Args:
        project_dir: Site root holding ``.sitesync.json`` (defaults to cwd)
        use_cache: Reuse the config from an earlier call in this process

    Raises:
        ValidationError: If the merged layers do not validate
    """
    global _config_cache

    if use_cache and _config_cache is not None:
        return _config_cache

    merged = get_default_config()
    for path in (get_user_config_path(), get_project_config_path(project_dir)):
        layer = load_json_file(path)
        if layer:
            logger.debug("Applying config layer %s", path)
            merged = deep_merge(merged, layer)

    _config_cache = SiteSyncConfig(**apply_env_overrides(merged))
    return _config_cache


def clear_cache() -> None:
    """Forget the cached config so the next load_config() rereads every layer."""
    global _config_cache
    _config_cache = None
