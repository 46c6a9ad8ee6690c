"""Callback-style download requests layered over futures.

Callers who prefer callbacks to futures pass a :class:`DownloadOptions`
instead of a bare URL::

    loader.download(DownloadOptions(
        url="https://example.com/image.png",
        onload=lambda entry: show(entry.path),
        onerror=lambda exc: log(exc),
        ondatastream=lambda progress: bar.update(progress.received),
    ))

:func:`attach_callbacks` turns those fields into a single
:meth:`~fetchcache.future.Future.then` subscription.  A failed download
then reaches ``onerror`` instead of raising at the call site.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from fetchcache.future import Future


@dataclass
class DownloadOptions:
    """A download request with optional callbacks.

    Attributes:
        url: The URL to download.
        onload: Called with the :class:`~fetchcache.entry.CacheEntry`.
        onerror: Called with the rejection reason.
        ondatastream: Called with each :class:`~fetchcache.transport.Progress`.
    """

    url: str
    onload: Optional[Callable[[Any], Any]] = None
    onerror: Optional[Callable[[Any], Any]] = None
    ondatastream: Optional[Callable[[Any], Any]] = None

    @property
    def has_callbacks(self) -> bool:
        return any((self.onload, self.onerror, self.ondatastream))

    @classmethod
    def coerce(cls, request: Union[str, DownloadOptions]) -> DownloadOptions:
        """Normalise a bare URL or an options record into options."""
        if isinstance(request, DownloadOptions):
            return request
        if isinstance(request, str):
            return cls(url=request)
        raise TypeError(
            f"Expected a URL string or DownloadOptions, got {type(request).__name__}"
        )


def attach_callbacks(future: Future, options: DownloadOptions) -> Future:
    """Subscribe the option callbacks to *future*.

    Returns:
        The derived future when callbacks were attached, else *future*.
    """
    if not options.has_callbacks:
        return future
    return future.then(options.onload, options.onerror, options.ondatastream)
