"""Configuration management with XDG paths and precedence resolution.

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.fetchcache/`` on macOS and Windows.  See :func:`get_config_dir`,
  :func:`get_cache_dir` and :func:`get_data_dir`.
* **Global config** -- a single :class:`~fetchcache.models.GlobalConfig`
  JSON file (cache settings, output format), written atomically with
  :func:`~fetchcache.filesystem.atomic_write`.
* **Precedence resolution** -- :func:`resolve_config` layers environment
  variables and the project-local ``fetchcache.json`` over the global file.
  A loader reads the result once when it is created.
"""

from __future__ import annotations

import json
import os
import platform
from pathlib import Path
from typing import Any, Optional

from fetchcache.exceptions import ConfigError
from fetchcache.filesystem import atomic_write
from fetchcache.models import GlobalConfig

_APP_NAME = "fetchcache"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "fetchcache.json"

# Environment variable -> CacheConfig field.
_ENV_OVERRIDES = {
    "FETCHCACHE_EXPIRATION": "expiration_seconds",
    "FETCHCACHE_MAX_REQUESTS": "max_requests",
    "FETCHCACHE_TIMEOUT": "request_timeout",
    "FETCHCACHE_DIRECTORY": "directory",
    "FETCHCACHE_METADATA_KEY": "metadata_key",
}

# kind -> (XDG variable, default under $HOME, sub-directory of ~/.fetchcache)
_DIRS = {
    "config": ("XDG_CONFIG_HOME", (".config",), None),
    "cache": ("XDG_CACHE_HOME", (".cache",), "cache"),
    "data": ("XDG_DATA_HOME", (".local", "share"), "logs"),
}


# --- Directories ---


def _is_xdg_platform() -> bool:
    """Return True if the platform follows the XDG Base Directory spec (Linux/BSD)."""
    system = platform.system()
    return system == "Linux" or system.endswith("BSD")


def _app_dir(kind: str) -> Path:
    env_var, home_segments, fallback = _DIRS[kind]
    if _is_xdg_platform():
        base = os.environ.get(env_var) or Path.home().joinpath(*home_segments)
        path = Path(base) / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
        if fallback:
            path = path / fallback
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    """Directory of ``config.json``, created if necessary.

    ``$XDG_CONFIG_HOME/fetchcache/`` (default ``~/.config/fetchcache/``) on
    Linux/BSD, ``~/.fetchcache/`` elsewhere.
    """
    return _app_dir("config")


def get_cache_dir() -> Path:
    """Directory holding the metadata database and downloaded files.

    Everything in it may be deleted at any time; entries are simply
    downloaded again.  ``$XDG_CACHE_HOME/fetchcache/`` on Linux/BSD,
    ``~/.fetchcache/cache/`` elsewhere.
    """
    return _app_dir("cache")


def get_data_dir() -> Path:
    """Directory for crash logs.

    ``$XDG_DATA_HOME/fetchcache/`` on Linux/BSD, ``~/.fetchcache/logs/``
    elsewhere.
    """
    return _app_dir("data")


# --- Config files ---


def _read_json(path: Path, label: str) -> Optional[Any]:
    if not path.is_file():
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except ValueError as exc:
        raise ConfigError(f"Invalid {label} at {path}: {exc}") from exc


def _global_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the user's global configuration.

    Returns:
        The stored :class:`~fetchcache.models.GlobalConfig`, or defaults
        when no file exists.

    Raises:
        ConfigError: If the file holds invalid JSON or fails validation.
    """
    path = _global_config_path()
    data = _read_json(path, "global config")
    if data is None:
        return GlobalConfig()
    try:
        return GlobalConfig.model_validate(data)
    except ValueError as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically."""
    text = json.dumps(config.model_dump(mode="json"), indent=2) + "\n"
    atomic_write(_global_config_path(), text.encode("utf-8"))


def load_project_config() -> Optional[dict[str, Any]]:
    """Load ``./fetchcache.json``, which has the same shape as the global file.

    Raises:
        ConfigError: If the file exists but holds invalid JSON.
    """
    return _read_json(Path.cwd() / _PROJECT_CONFIG_FILENAME, "project config")


# --- Precedence resolution ---


def _merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in overlay.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def resolve_config(cli_format: Optional[str] = None) -> GlobalConfig:
    """Resolve the effective config.

    Precedence (high to low):
        1. CLI flags (``cli_format``)
        2. Environment variables (``FETCHCACHE_EXPIRATION``,
           ``FETCHCACHE_MAX_REQUESTS``, ``FETCHCACHE_TIMEOUT``,
           ``FETCHCACHE_DIRECTORY``, ``FETCHCACHE_METADATA_KEY``)
        3. Project config (``./fetchcache.json``)
        4. User config (``~/.config/fetchcache/config.json``)
        5. Defaults

    Raises:
        ConfigError: If any layer holds an invalid value.
    """
    data = load_global_config().model_dump(mode="json")

    project = load_project_config()
    if isinstance(project, dict):
        data = _merge(data, project)

    cache_overrides = {
        field: os.environ[env_var]
        for env_var, field in _ENV_OVERRIDES.items()
        if os.environ.get(env_var)
    }
    if cache_overrides:
        data = _merge(data, {"cache": cache_overrides})

    if cli_format is not None:
        data = _merge(data, {"output": {"format": cli_format}})

    try:
        return GlobalConfig.model_validate(data)
    except ValueError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
