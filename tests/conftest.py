"""Shared test fixtures for fetchcache.

Provides an in-memory fake transport, a controllable clock, loader
factories backed by ``tmp_path``, isolated XDG configuration, and output
state management.  These fixtures are discovered by pytest automatically.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable

import pytest

from fetchcache.context import LoaderContext
from fetchcache.dispatch import DispatchQueue
from fetchcache.filesystem import CacheDirectory
from fetchcache.future import Future
from fetchcache.loader import FileLoader, create_loader
from fetchcache.models import CacheConfig
from fetchcache.output import OutputFormat, OutputManager, reset_output, set_output
from fetchcache.store import MetadataStore


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Install a quiet, colourless output manager and reset it afterwards."""
    set_output(OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True))
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Clock and transport doubles
# ---------------------------------------------------------------------------


class FakeClock:
    """Epoch-millisecond clock that only moves when told to."""

    def __init__(self, now: int = 1_700_000_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeTransport:
    """Transport double whose downloads are settled by the test.

    Every :meth:`fetch` call is recorded in :attr:`calls` and its future
    is kept in :attr:`futures` so the test can notify, resolve or reject it.
    """

    def __init__(self, online: bool = True) -> None:
        self.online = online
        self.calls: list[str] = []
        self.futures: dict[str, list[Future]] = {}
        self.closed = False

    def fetch(self, url: str) -> Future:
        future = Future()
        self.calls.append(url)
        self.futures.setdefault(url, []).append(future)
        return future

    def last(self, url: str) -> Future:
        return self.futures[url][-1]

    def in_flight(self) -> int:
        return sum(1 for fs in self.futures.values() for f in fs if f.is_pending())

    async def aclose(self) -> None:
        self.closed = True


async def _wait_until(predicate: Callable[[], bool], turns: int = 200) -> None:
    """Yield to the event loop until *predicate* holds (or fail)."""
    for _ in range(turns):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


async def _spin(turns: int = 50) -> None:
    """Let scheduled callbacks run for a number of loop turns."""
    for _ in range(turns):
        await asyncio.sleep(0)


@pytest.fixture
def wait_until():
    """Async helper: yield to the loop until a predicate holds."""
    return _wait_until


@pytest.fixture
def spin():
    """Async helper: let scheduled callbacks run for some loop turns."""
    return _spin


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


# ---------------------------------------------------------------------------
# Loader and context factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_context(tmp_path: Path, clock: FakeClock):
    """Factory for a :class:`LoaderContext` rooted in ``tmp_path``."""
    stores: list[MetadataStore] = []

    def _make(**config: Any) -> LoaderContext:
        cache_config = CacheConfig(**config)
        store = MetadataStore(tmp_path / "metadata")
        stores.append(store)
        context = LoaderContext(
            config=cache_config,
            store=store,
            files=CacheDirectory(tmp_path / cache_config.directory),
            queue=DispatchQueue(cache_config.max_requests),
            clock=clock,
        )
        context.load()
        return context

    yield _make
    for store in stores:
        store.close()


@pytest.fixture
def make_loader(tmp_path: Path, clock: FakeClock, transport: FakeTransport):
    """Factory for a :class:`FileLoader` using the fake transport and clock."""
    loaders: list[FileLoader] = []

    def _make(**config: Any) -> FileLoader:
        loader = create_loader(
            CacheConfig(**config),
            cache_dir=tmp_path,
            transport=transport,
            clock=clock,
        )
        loaders.append(loader)
        return loader

    yield _make
    for loader in loaders:
        loader.close()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Points XDG_CONFIG_HOME, XDG_CACHE_HOME and XDG_DATA_HOME at
    subdirectories of tmp_path, clears FETCHCACHE_* variables and changes
    the working directory to tmp_path.
    """
    monkeypatch.setattr("fetchcache.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in [
        "FETCHCACHE_EXPIRATION",
        "FETCHCACHE_MAX_REQUESTS",
        "FETCHCACHE_TIMEOUT",
        "FETCHCACHE_DIRECTORY",
        "FETCHCACHE_METADATA_KEY",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
