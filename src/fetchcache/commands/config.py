"""Config commands -- view and modify global configuration.

Provides the ``fetchcache config`` sub-command group for reading, updating
and resetting the user's global configuration file
(:class:`~fetchcache.models.GlobalConfig`).  Settings control the cache
expiration, download concurrency, request timeout and output format.
"""

from __future__ import annotations

from typing import Any

import typer

from fetchcache.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)


def _parent_of(data: dict[str, Any], key: str) -> tuple[dict[str, Any], str]:
    """Walk a dotted *key* and return the mapping holding its last segment."""
    *path, leaf = key.split(".")
    target = data
    for segment in path:
        target = target.get(segment)
        if not isinstance(target, dict):
            raise KeyError(f"Invalid config key: {key}")
    if leaf not in target:
        raise KeyError(f"Unknown config key: {key}")
    return target, leaf


def _coerce(current: Any, value: str) -> Any:
    """Convert *value* to the type of the field's *current* value."""
    if isinstance(current, bool):
        return value.lower() in ("true", "1", "yes")
    if isinstance(current, (int, float)):
        return type(current)(value)
    return value


@config_app.command("show")
def config_show(
    effective: bool = typer.Option(
        False, "--effective", "-e", help="Show the config after env/project overrides."
    ),
) -> None:
    """Show the stored (or, with ``--effective``, the resolved) configuration.

    Example::

        fetchcache config show
        fetchcache --json config show --effective
    """
    from fetchcache.config import get_config_dir, load_global_config, resolve_config

    config = resolve_config() if effective else load_global_config()
    info(f"Config directory: {get_config_dir()}")
    format_response(config.model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Config key (dot notation, e.g., 'cache.max_requests')."
    ),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a configuration value.

    The value is coerced to the existing field's type and the result is
    validated against :class:`~fetchcache.models.GlobalConfig` before
    saving.  Exits with code 2 on an unknown key, a value of the wrong
    type or a failed validation.

    Example::

        fetchcache config set cache.expiration_seconds 600
        fetchcache config set cache.max_requests 4
    """
    from fetchcache.config import load_global_config, save_global_config
    from fetchcache.models import GlobalConfig

    data = load_global_config().model_dump(mode="json")
    try:
        target, leaf = _parent_of(data, key)
    except KeyError as exc:
        error(exc.args[0])
        raise typer.Exit(code=2) from None

    current = target[leaf]
    try:
        target[leaf] = _coerce(current, value)
    except ValueError:
        error(f"Expected {type(current).__name__} for {key}, got: {value}")
        raise typer.Exit(code=2) from None

    try:
        new_config = GlobalConfig.model_validate(data)
    except ValueError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=2) from None

    save_global_config(new_config)
    success(f"Set {key} = {target[leaf]}")


@config_app.command("reset")
def config_reset(
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation."),
) -> None:
    """Reset configuration to defaults, asking first unless ``--force``."""
    from fetchcache.config import save_global_config
    from fetchcache.models import GlobalConfig

    if not force and not typer.confirm("Reset all config to defaults?"):
        info("Cancelled.")
        raise typer.Exit()

    save_global_config(GlobalConfig())
    success("Configuration reset to defaults.")
