"""fetchcache -- a deduplicating, concurrency-bounded download cache.

Give it a URL and it serves the locally cached file, joins a download
already in flight for the same URL, or schedules a new download under a
global concurrency limit.  Every request returns a
:class:`~fetchcache.future.Future` resolving to a
:class:`~fetchcache.entry.CacheEntry`::

    loader = create_loader()
    entry = await loader.download("https://example.com/logo.png")
    print(entry.path)

Modules:
    future: Settle-once futures with chaining and progress.
    dispatch: FIFO admission bounded by ``max_requests``.
    entry: Per-URL cache entries.
    loader: Download orchestration and garbage collection.
    transport: httpx-based streaming GET transport.
    store: diskcache-backed metadata persistence.
    config: XDG-aware configuration resolution.
    app: Typer CLI entry point.
"""

__version__ = "0.1.0"

from fetchcache.callbacks import DownloadOptions
from fetchcache.entry import CacheEntry
from fetchcache.exceptions import (
    FetchCacheError,
    OfflineError,
    RejectionError,
    TransportError,
    WriteVerificationError,
)
from fetchcache.future import Future, FutureState
from fetchcache.loader import FileLoader, create_loader
from fetchcache.transport import HttpTransport, Progress

__all__ = [
    "CacheEntry",
    "DownloadOptions",
    "FetchCacheError",
    "FileLoader",
    "Future",
    "FutureState",
    "HttpTransport",
    "OfflineError",
    "Progress",
    "RejectionError",
    "TransportError",
    "WriteVerificationError",
    "create_loader",
]
