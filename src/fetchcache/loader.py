"""Download orchestration: cache hits, joins, offline failures and fetches.

:class:`FileLoader` is the public entry point.  For each call to
:meth:`~FileLoader.download` it picks, in order:

1. **Join** -- a download for the same key is in flight: return that
   download's future, so concurrent callers share one network request.
2. **Cache hit** -- the entry is cached and not expired: refresh its
   last-used time and return an already fulfilled future.
3. **Offline** -- the transport reports no connectivity: return an
   already rejected future carrying
   :class:`~fetchcache.exceptions.OfflineError`.
4. **Fetch** -- register the download as in flight, wait for a dispatch
   slot, fetch through the transport, write and verify the file, then
   persist the entry.  The in-flight record and the slot are released
   before the caller's future settles, on success and on failure alike.

Transport progress is forwarded to every caller joined on the download.

:meth:`~FileLoader.sweep` (alias ``gc``) removes expired entries.  It never
runs implicitly.

Example::

    loader = create_loader(load_global_config().cache)
    entry = await loader.download("https://example.com/logo.png")
    print(entry.path, entry.just_downloaded)
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional, Union

from fetchcache.callbacks import DownloadOptions, attach_callbacks
from fetchcache.context import LoaderContext, epoch_ms
from fetchcache.dispatch import DispatchQueue
from fetchcache.entry import CacheEntry
from fetchcache.exceptions import OfflineError, WriteVerificationError
from fetchcache.filesystem import CacheDirectory
from fetchcache.future import Future, rejected, resolved
from fetchcache.models import CacheConfig
from fetchcache.output import get_output
from fetchcache.store import MetadataStore
from fetchcache.transport import HttpTransport, Transport


class FileLoader:
    """Deduplicating, concurrency-bounded download cache.

    Args:
        context: Shared state (metadata, in-flight table, dispatch queue,
            storage collaborators).
        transport: Object providing ``online`` and ``fetch(url)``.
    """

    def __init__(self, context: LoaderContext, transport: Transport) -> None:
        self._context = context
        self._transport = transport

    @property
    def context(self) -> LoaderContext:
        return self._context

    @property
    def transport(self) -> Transport:
        return self._transport

    # ------------------------------------------------------------------ #
    # Entries
    # ------------------------------------------------------------------ #

    def entry_for(self, url: str) -> CacheEntry:
        """Build the :class:`~fetchcache.entry.CacheEntry` for *url*."""
        return CacheEntry.from_url(url, self._context)

    def entries(self) -> list[CacheEntry]:
        """Return an entry for every key in the metadata."""
        return [CacheEntry(key, self._context) for key in list(self._context.metadata)]

    def invalidate(self, url: str) -> CacheEntry:
        """Force the next :meth:`download` of *url* to fetch again."""
        entry = self.entry_for(url)
        entry.expired(invalidate=True)
        get_output().debug(f"Invalidated {url}: {entry.key}")
        return entry

    # ------------------------------------------------------------------ #
    # Downloading
    # ------------------------------------------------------------------ #

    def download(self, request: Union[str, DownloadOptions]) -> Future:
        """Return a future for the cached file at a URL.

        Args:
            request: A URL string, or :class:`~fetchcache.callbacks.DownloadOptions`
                whose callbacks are subscribed to the returned future.

        Returns:
            A :class:`~fetchcache.future.Future` fulfilled with the
            :class:`~fetchcache.entry.CacheEntry`, or rejected with
            :class:`~fetchcache.exceptions.OfflineError`,
            :class:`~fetchcache.exceptions.TransportError` or
            :class:`~fetchcache.exceptions.WriteVerificationError`.
        """
        options = DownloadOptions.coerce(request)
        url = options.url
        entry = self.entry_for(url)
        output = get_output()

        in_flight = self._context.pending.get(entry.key)
        if in_flight is not None:
            output.debug(f"Pending {url}: {entry}")
            return attach_callbacks(in_flight, options)

        if entry.is_cached and not entry.expired():
            entry.update_last_used_at().save()
            output.debug(f"Cached {url}: {entry}")
            return attach_callbacks(resolved(entry), options)

        if not self._transport.online:
            output.debug(f"Offline, not downloading {url}")
            return attach_callbacks(rejected(OfflineError(url)), options)

        return attach_callbacks(self._start_download(url, entry), options)

    def _start_download(self, url: str, entry: CacheEntry) -> Future:
        result = Future()
        # Registered before asking for a slot so queued requests are joined too.
        self._context.pending[entry.key] = result
        entry.pending = True

        (
            self._context.queue.request_slot()
            .then(lambda _: self._fetch(url, entry))
            .then(lambda data: self._store(url, entry, data))
            .finally_(lambda: self._finish(entry))
            .then(result.resolve, result.reject, result.notify)
        )
        return result

    def _fetch(self, url: str, entry: CacheEntry) -> Future:
        get_output().debug(f"Downloading {url}: {entry}")
        return self._transport.fetch(url)

    def _store(self, url: str, entry: CacheEntry, data: bytes) -> CacheEntry:
        if not entry.write(data):
            raise WriteVerificationError(f"Failed to save data from {url}: {entry}")
        entry.just_downloaded = True
        entry.update_last_used_at().save()
        return entry

    def _finish(self, entry: CacheEntry) -> None:
        self._context.pending.pop(entry.key, None)
        entry.pending = False
        self._context.queue.release_slot()

    # ------------------------------------------------------------------ #
    # Garbage collection
    # ------------------------------------------------------------------ #

    def sweep(self, force: bool = False) -> list[str]:
        """Expunge expired entries, or every entry when *force* is set.

        Returns:
            The keys that were expunged.
        """
        expunged: list[str] = []
        for key in list(self._context.metadata):
            entry = CacheEntry(key, self._context)
            if force or entry.expired():
                entry.expunge()
                expunged.append(key)
                get_output().debug(f"Expunged {key}")
        return expunged

    gc = sweep

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def close(self) -> None:
        """Close the metadata store."""
        self._context.store.close()

    async def aclose(self) -> None:
        """Close the transport (if closable) and the metadata store."""
        aclose = getattr(self._transport, "aclose", None)
        if aclose is not None:
            await aclose()
        self.close()


def create_loader(
    config: Optional[CacheConfig] = None,
    cache_dir: Optional[Union[str, Path]] = None,
    transport: Optional[Transport] = None,
    clock: Callable[[], int] = epoch_ms,
) -> FileLoader:
    """Build a :class:`FileLoader` with disk-backed collaborators.

    Metadata lives in ``<cache_dir>/metadata`` and files in
    ``<cache_dir>/<config.directory>``; both are created if missing.

    Args:
        config: Cache settings.  Defaults to :class:`~fetchcache.models.CacheConfig`.
        cache_dir: Base directory.  Defaults to
            :func:`~fetchcache.config.get_cache_dir`.
        transport: Transport to use.  Defaults to an :class:`HttpTransport`
            with the configured timeout.
        clock: Epoch-millisecond clock, replaceable in tests.

    Returns:
        A ready :class:`FileLoader` with metadata loaded.
    """
    config = config or CacheConfig()
    if cache_dir is None:
        from fetchcache.config import get_cache_dir

        cache_dir = get_cache_dir()
    base = Path(cache_dir)

    context = LoaderContext(
        config=config,
        store=MetadataStore(base / "metadata"),
        files=CacheDirectory(base / config.directory),
        queue=DispatchQueue(config.max_requests),
        clock=clock,
    )
    context.load()

    if transport is None:
        transport = HttpTransport(timeout=config.request_timeout)
    return FileLoader(context, transport)
