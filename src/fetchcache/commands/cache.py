"""Cache commands -- download, list, invalidate and sweep cached files.

Each command builds a :class:`~fetchcache.loader.FileLoader` from the
resolved configuration (see :func:`~fetchcache.config.resolve_config`),
runs one operation, and closes the loader again.
"""

from __future__ import annotations

import asyncio
from datetime import datetime

import typer

from fetchcache.exceptions import FetchCacheError
from fetchcache.loader import FileLoader, create_loader
from fetchcache.output import error, get_output, info, print_table, success, warning
from fetchcache.transport import Progress


def _make_loader() -> FileLoader:
    """Build a loader from the effective configuration."""
    from fetchcache.config import resolve_config

    return create_loader(resolve_config().cache)


def _format_timestamp(ms: int) -> str:
    if not ms:
        return "never"
    return datetime.fromtimestamp(ms / 1000).strftime("%Y-%m-%d %H:%M:%S")


def _report_progress(progress: Progress) -> None:
    total = progress.total if progress.total is not None else "?"
    get_output().progress(f"{progress.url}: {progress.received}/{total} bytes")


async def _download_all(
    loader: FileLoader, urls: list[str]
) -> list[tuple[str, object]]:
    async def one(url: str) -> object:
        try:
            return await loader.download(url).progress(_report_progress)
        except FetchCacheError as exc:
            return exc

    try:
        results = await asyncio.gather(*(one(url) for url in urls))
    finally:
        await loader.aclose()
    return list(zip(urls, results))


def download_command(
    urls: list[str] = typer.Argument(help="URLs to download."),
    refresh: bool = typer.Option(
        False, "--refresh", "-r", help="Invalidate cached copies first."
    ),
) -> None:
    """Download URLs into the cache, reusing fresh cached copies.

    Prints one row per URL with its status (``downloaded``, ``cached`` or
    ``failed``) and local path.  Exits with the error's exit code when any
    download fails.

    Example::

        fetchcache download https://example.com/a.png https://example.com/b.png
    """
    loader = _make_loader()
    if refresh:
        for url in urls:
            loader.invalidate(url)

    results = asyncio.run(_download_all(loader, urls))

    rows: list[list[str]] = []
    failures: list[FetchCacheError] = []
    for url, result in results:
        if isinstance(result, FetchCacheError):
            failures.append(result)
            error(str(result))
            rows.append([url, "failed", ""])
        else:
            status = "downloaded" if result.just_downloaded else "cached"
            rows.append([url, status, result.path])

    print_table(["URL", "Status", "Path"], rows, title="Downloads")
    if failures:
        raise typer.Exit(code=failures[0].exit_code)


def list_command() -> None:
    """List every cached entry with its freshness and fingerprint."""
    loader = _make_loader()
    try:
        rows = [
            [
                entry.key,
                "expired" if entry.expired() else ("cached" if entry.is_cached else "missing"),
                _format_timestamp(entry.last_used_at),
                entry.md5 or "",
                entry.path,
            ]
            for entry in loader.entries()
        ]
    finally:
        loader.close()

    if not rows:
        info("Cache is empty.")
        return
    missing = sum(1 for row in rows if row[1] == "missing")
    if missing:
        warning(
            f"{missing} cached file(s) missing from disk; "
            "they will be downloaded again."
        )
    print_table(["Key", "State", "Last used", "MD5", "Path"], rows, title="Cache")


def invalidate_command(
    url: str = typer.Argument(help="URL whose cached copy should be invalidated."),
) -> None:
    """Mark a URL as expired so the next download fetches it again."""
    loader = _make_loader()
    try:
        entry = loader.invalidate(url)
    finally:
        loader.close()
    success(f"Invalidated {url} ({entry.key})")


def sweep_command(
    force: bool = typer.Option(
        False, "--force", "-f", help="Remove every entry, not only expired ones."
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", "-n", help="Only list what would be removed."
    ),
) -> None:
    """Remove expired cache entries (all entries with ``--force``)."""
    loader = _make_loader()
    try:
        if dry_run:
            keys = [e.key for e in loader.entries() if force or e.expired()]
            for key in keys:
                info(f"Would remove {key}")
            return
        keys = loader.sweep(force=force)
    finally:
        loader.close()
    success(f"Removed {len(keys)} cache entr{'y' if len(keys) == 1 else 'ies'}.")
