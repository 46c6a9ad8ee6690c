"""Output formatting and diagnostics with strict stdout/stderr discipline.

Follows `clig.dev <https://clig.dev/>`_ conventions:

* **stdout** -- primary data only (download results, entry listings,
  configuration dumps).
* **stderr** -- all diagnostics: transfer progress, status lines, warnings,
  errors and the loader's debug trace.
* **TTY detection** -- Rich formatting when stdout is an interactive
  terminal, plain text when piped.
* **Colour control** -- respects ``NO_COLOR``, ``TERM=dumb`` and the
  ``--no-color`` CLI flag.

The loader and transport report through the module-level :func:`debug`
helper, which only prints when verbose mode is on.  The CLI installs a
configured :class:`OutputManager` with :func:`set_output`; library users
get a default manager with debug output off.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table


class OutputFormat(str, Enum):
    """Supported output formats.

    ``AUTO`` resolves to ``RICH`` on an interactive TTY with colour enabled,
    otherwise to ``PLAIN``.
    """

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Routes data to stdout and diagnostics to stderr.

    Args:
        format: Desired output format.  ``AUTO`` resolves from TTY detection.
        no_color: Disable all colour and Rich markup.
        quiet: Suppress status and progress lines on stderr.
        verbose: Print the debug trace on stderr.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose

        if format == OutputFormat.AUTO:
            rich_ok = _is_tty() and not self._no_color
            format = OutputFormat.RICH if rich_ok else OutputFormat.PLAIN
        self._format = format

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=(format == OutputFormat.RICH),
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        """The resolved output format."""
        return self._format

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    # ------------------------------------------------------------------ #
    # Data output (stdout)
    # ------------------------------------------------------------------ #

    def print_data(self, text: str) -> None:
        """Print raw text to stdout."""
        print(text, file=sys.stdout, flush=True)

    def format_response(self, data: Any) -> None:
        """Render a JSON-compatible value to stdout in the active format.

        Plain mode prints ``key<TAB>value`` lines for mappings and the
        ``str()`` of anything else.
        """
        if self._format == OutputFormat.PLAIN:
            if not isinstance(data, dict):
                self.print_data(str(data))
                return
            for key, value in data.items():
                self.print_data(f"{key}\t{value}")
            return

        text = json.dumps(data, indent=2, ensure_ascii=False, default=str)
        if self._format == OutputFormat.JSON:
            self.print_data(text)
        else:
            self._stdout.print(Syntax(text, "json", theme="monokai", word_wrap=True))

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Print tabular data to stdout.

        * **Rich mode** -- styled :class:`~rich.table.Table` with *title*.
        * **JSON mode** -- array of objects keyed by header names.
        * **Plain mode** -- tab-separated values with a header line.
        """
        if self._format == OutputFormat.JSON:
            records = [dict(zip(headers, row)) for row in rows]
            self.print_data(json.dumps(records, indent=2, ensure_ascii=False))
            return

        if self._format == OutputFormat.PLAIN:
            for line in [headers, *rows]:
                self.print_data("\t".join(line))
            return

        table = Table(title=title, show_header=True, header_style="bold cyan")
        for header in headers:
            table.add_column(header)
        for row in rows:
            table.add_row(*row)
        self._stdout.print(table)

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        """Status line.  Suppressed by ``--quiet``."""
        if not self._quiet:
            self._emit(message, message)

    def success(self, message: str) -> None:
        """Green status line.  Suppressed by ``--quiet``."""
        if not self._quiet:
            self._emit(message, f"[green]{message}[/green]")

    def warning(self, message: str) -> None:
        """Yellow warning.  Always shown."""
        self._emit(f"Warning: {message}", f"[yellow]Warning:[/yellow] {message}")

    def error(self, message: str) -> None:
        """Bold-red error.  Always shown."""
        self._emit(f"Error: {message}", f"[bold red]Error:[/bold red] {message}")

    def debug(self, message: str) -> None:
        """Loader trace line, only shown with ``--verbose``."""
        if self._verbose:
            self._emit(f"[debug] {message}", f"[dim]\\[debug] {message}[/dim]")

    def progress(self, message: str) -> None:
        """Transfer progress line, only on a TTY.  Suppressed by ``--quiet``."""
        if not self._quiet and _is_tty():
            self._emit(message, f"[dim]{message}[/dim]")

    def _emit(self, plain: str, markup: str) -> None:
        if self._no_color:
            print(plain, file=sys.stderr, flush=True)
        else:
            self._stderr.print(markup)


# ------------------------------------------------------------------ #
# Module-level helpers
# ------------------------------------------------------------------ #


def _is_tty() -> bool:
    """Check if stdout is a TTY."""
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """True when ``NO_COLOR`` is set (any value) or ``TERM=dumb``."""
    return os.environ.get("NO_COLOR") is not None or os.environ.get("TERM") == "dumb"


# ------------------------------------------------------------------ #
# Global output instance
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the global :class:`OutputManager`, creating a default lazily."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    """Install *output* as the global :class:`OutputManager`."""
    global _output
    _output = output


def reset_output() -> None:
    """Drop the global :class:`OutputManager` (used between tests)."""
    global _output
    _output = None


# ------------------------------------------------------------------ #
# Convenience functions that use the global instance
# ------------------------------------------------------------------ #


def format_response(data: Any) -> None:
    get_output().format_response(data)


def print_table(
    headers: list[str],
    rows: list[list[str]],
    title: Optional[str] = None,
) -> None:
    get_output().print_table(headers, rows, title)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def error(message: str) -> None:
    get_output().error(message)


def warning(message: str) -> None:
    get_output().warning(message)


def debug(message: str) -> None:
    get_output().debug(message)
