"""Tests for the output formatting system.

Covers:
- OutputFormat resolution (auto -> rich/plain based on TTY)
- NO_COLOR / TERM=dumb color disabling
- stdout vs stderr discipline
- Quiet and verbose modes
- print_table in all three modes
- Global instance management
"""

from __future__ import annotations

import json

import pytest

from fetchcache import output as output_module
from fetchcache.output import (
    OutputFormat,
    OutputManager,
    _should_disable_color,
    get_output,
    reset_output,
    set_output,
)


# ------------------------------------------------------------------ #
# Fixtures
# ------------------------------------------------------------------ #


@pytest.fixture(autouse=True)
def _reset_global_output():
    """Ensure the global output instance is reset between tests."""
    reset_output()
    yield
    reset_output()


@pytest.fixture()
def non_tty(monkeypatch):
    """Patch stdout.isatty() to return False."""
    monkeypatch.setattr("fetchcache.output._is_tty", lambda: False)


@pytest.fixture()
def tty(monkeypatch):
    """Patch stdout.isatty() to return True."""
    monkeypatch.setattr("fetchcache.output._is_tty", lambda: True)


# ------------------------------------------------------------------ #
# OutputFormat resolution
# ------------------------------------------------------------------ #


class TestOutputFormatResolution:
    def test_auto_resolves_to_plain_when_not_tty(self, non_tty):
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.PLAIN

    def test_auto_resolves_to_rich_when_tty(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.RICH

    def test_auto_resolves_to_plain_when_tty_but_no_color(self, tty):
        mgr = OutputManager(format=OutputFormat.AUTO, no_color=True)
        assert mgr.format == OutputFormat.PLAIN

    def test_explicit_json_stays_json(self, tty):
        assert OutputManager(format=OutputFormat.JSON).format == OutputFormat.JSON


class TestColorDisabling:
    def test_no_color_env_disables_color(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "")
        assert _should_disable_color() is True

    def test_term_dumb_disables_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _should_disable_color() is True

    def test_normal_term_keeps_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm-256color")
        assert _should_disable_color() is False


# ------------------------------------------------------------------ #
# stdout / stderr discipline
# ------------------------------------------------------------------ #


class TestStdoutStderrDiscipline:
    def test_print_data_goes_to_stdout(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).print_data("payload")
        captured = capfd.readouterr()
        assert "payload" in captured.out
        assert captured.err == ""

    def test_diagnostics_go_to_stderr(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.info("info msg")
        mgr.success("done msg")
        mgr.warning("careful")
        mgr.error("broken")
        captured = capfd.readouterr()
        assert captured.out == ""
        assert "info msg" in captured.err
        assert "done msg" in captured.err
        assert "Warning: careful" in captured.err
        assert "Error: broken" in captured.err


class TestQuietMode:
    def test_quiet_suppresses_info_and_success(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        mgr.info("hidden")
        mgr.success("hidden too")
        assert capfd.readouterr().err == ""

    def test_quiet_keeps_errors(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        mgr.error("still shown")
        assert "still shown" in capfd.readouterr().err

    def test_quiet_suppresses_progress(self, capfd, tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        mgr.progress("10/20 bytes")
        assert capfd.readouterr().err == ""


class TestVerboseMode:
    def test_debug_hidden_by_default(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).debug("trace")
        assert capfd.readouterr().err == ""

    def test_debug_prefix_with_verbose(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, verbose=True)
        mgr.debug("Downloading https://example.com/a")
        assert "[debug] Downloading https://example.com/a" in capfd.readouterr().err


class TestProgress:
    def test_progress_shown_in_tty(self, capfd, tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).progress("5/10 bytes")
        assert "5/10 bytes" in capfd.readouterr().err

    def test_progress_hidden_when_not_tty(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).progress("5/10 bytes")
        assert capfd.readouterr().err == ""


# ------------------------------------------------------------------ #
# Data formats
# ------------------------------------------------------------------ #


class TestFormatResponse:
    def test_dict_as_json(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON).format_response({"cache": {"max_requests": 10}})
        assert json.loads(capfd.readouterr().out) == {"cache": {"max_requests": 10}}

    def test_dict_as_key_value(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).format_response({"a": 1})
        assert capfd.readouterr().out == "a\t1\n"

    def test_rich_produces_output(self, capfd, non_tty):
        OutputManager(format=OutputFormat.RICH, no_color=True).format_response({"a": 1})
        assert '"a"' in capfd.readouterr().out


class TestPrintTable:
    HEADERS = ["URL", "Status"]
    ROWS = [["https://example.com/a", "cached"], ["https://example.com/b", "failed"]]

    def test_table_json_mode(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON).print_table(self.HEADERS, self.ROWS)
        records = json.loads(capfd.readouterr().out)
        assert records[1] == {"URL": "https://example.com/b", "Status": "failed"}

    def test_table_plain_mode(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.print_table(self.HEADERS, self.ROWS, title="ignored")
        lines = capfd.readouterr().out.splitlines()
        assert lines == [
            "URL\tStatus",
            "https://example.com/a\tcached",
            "https://example.com/b\tfailed",
        ]

    def test_table_rich_mode(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.RICH, no_color=True)
        mgr.print_table(self.HEADERS, self.ROWS, title="Downloads")
        out = capfd.readouterr().out
        assert "Downloads" in out
        assert "cached" in out


# ------------------------------------------------------------------ #
# Global instance
# ------------------------------------------------------------------ #


class TestGlobalInstance:
    def test_get_output_creates_default(self):
        mgr = get_output()
        assert isinstance(mgr, OutputManager)
        assert get_output() is mgr

    def test_set_output_overrides(self):
        custom = OutputManager(format=OutputFormat.JSON)
        set_output(custom)
        assert get_output() is custom

    def test_convenience_functions_use_global(self, capfd, non_tty):
        set_output(OutputManager(format=OutputFormat.PLAIN, no_color=True, verbose=True))
        output_module.info("via module")
        output_module.debug("traced")
        err = capfd.readouterr().err
        assert "via module" in err
        assert "[debug] traced" in err
