"""Typer application and CLI entry point for fetchcache.

Registers the cache commands (``download``, ``list``, ``invalidate``,
``sweep``) and the ``config`` sub-application on a single Typer app.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``.  It installs a SIGINT handler and invokes the app.
A :class:`~fetchcache.exceptions.FetchCacheError` exits with its
``exit_code``; any other exception writes a crash log under the data
directory and exits with :data:`~fetchcache.exit_codes.EXIT_GENERIC_FAILURE`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any

import typer

from fetchcache import __version__
from fetchcache.commands.cache import (
    download_command,
    invalidate_command,
    list_command,
    sweep_command,
)
from fetchcache.commands.config import config_app
from fetchcache.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="fetchcache",
    help="Download URLs through a deduplicating local cache.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

app.command("download")(download_command)
app.command("list")(list_command)
app.command("invalidate")(invalidate_command)
app.command("sweep")(sweep_command)
app.add_typer(config_app, name="config", help="Configuration management.")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"fetchcache {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Installs the global :class:`~fetchcache.output.OutputManager`.  The
    format comes from ``--json``/``--plain`` when given, otherwise from
    ``output.format`` in the effective configuration.  A broken config
    file only produces a warning here so that ``config reset`` still runs.
    """
    from fetchcache.config import resolve_config
    from fetchcache.exceptions import ConfigError
    from fetchcache.output import OutputFormat, OutputManager, set_output, warning

    cli_format = "json" if json_output else "plain" if plain_output else None
    problem = None
    try:
        configured = resolve_config(cli_format).output.format
    except ConfigError as exc:
        configured, problem = cli_format or "auto", str(exc)

    try:
        fmt = OutputFormat(configured)
    except ValueError:
        fmt = OutputFormat.AUTO

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))
    if problem:
        warning(problem)


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from fetchcache.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``fetchcache`` console script.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from fetchcache.exceptions import FetchCacheError
        from fetchcache.output import error

        if isinstance(exc, FetchCacheError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
