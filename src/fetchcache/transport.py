"""HTTP transport for the loader, built on :class:`httpx.AsyncClient`.

:class:`HttpTransport` issues one streamed GET per call to
:meth:`~HttpTransport.fetch` and reports through a
:class:`~fetchcache.future.Future`:

- **progress** -- a :class:`Progress` notification after every received
  chunk,
- **fulfilment** -- the complete response body as ``bytes``,
- **rejection** -- a :class:`~fetchcache.exceptions.TransportError`
  wrapping the httpx or timeout exception.

The whole transfer is bounded by ``timeout`` seconds.  There is no retry;
a failed download is retried by calling
:meth:`~fetchcache.loader.FileLoader.download` again.

The loader consults :attr:`HttpTransport.online` before dispatching.  It
defaults to ``True`` and is flipped by the host with
:meth:`~HttpTransport.set_online`.

Example::

    async with HttpTransport(timeout=10) as transport:
        body = await transport.fetch("https://example.com/logo.png")
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Optional, Protocol

import httpx

from fetchcache.exceptions import TransportError
from fetchcache.future import Future
from fetchcache.output import get_output


@dataclass(frozen=True)
class Progress:
    """Partial-transfer notification.

    Attributes:
        url: The URL being downloaded.
        received: Bytes received so far.
        total: Expected size from ``Content-Length``, if the server sent one.
    """

    url: str
    received: int
    total: Optional[int] = None

    @property
    def fraction(self) -> Optional[float]:
        """Completed fraction in ``[0, 1]``, or ``None`` when the size is unknown."""
        if not self.total:
            return None
        return min(self.received / self.total, 1.0)


class Transport(Protocol):
    """What the loader needs from a transport."""

    @property
    def online(self) -> bool: ...

    def fetch(self, url: str) -> Future: ...


class HttpTransport:
    """Streaming GET transport.

    Args:
        timeout: Total time allowed for one download, in seconds.
        client: Optional pre-built :class:`httpx.AsyncClient` (e.g. with a
            :class:`httpx.MockTransport`).  When omitted one is created on
            first use and closed by :meth:`aclose`.
        online: Initial connectivity flag.
    """

    def __init__(
        self,
        timeout: float = 10,
        client: Optional[httpx.AsyncClient] = None,
        online: bool = True,
    ) -> None:
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None
        self._online = online
        self._tasks: set[asyncio.Task[None]] = set()

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> HttpTransport:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the httpx client if this transport created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------ #
    # Connectivity
    # ------------------------------------------------------------------ #

    @property
    def online(self) -> bool:
        return self._online

    def set_online(self, online: bool) -> None:
        self._online = online

    # ------------------------------------------------------------------ #
    # Fetching
    # ------------------------------------------------------------------ #

    def fetch(self, url: str) -> Future:
        """Start downloading *url* and return a future for its body.

        Args:
            url: Absolute URL to GET.

        Returns:
            A :class:`~fetchcache.future.Future` fulfilled with the body
            ``bytes``, notified with :class:`Progress` events, or rejected
            with :class:`~fetchcache.exceptions.TransportError`.
        """
        future = Future()
        task = asyncio.ensure_future(self._run(url, future))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return future

    async def _run(self, url: str, future: Future) -> None:
        try:
            body = await asyncio.wait_for(self._stream(url, future), self._timeout)
        except asyncio.TimeoutError as exc:
            future.reject(TransportError(f"GET {url} timed out after {self._timeout}s", exc))
        except httpx.HTTPStatusError as exc:
            future.reject(
                TransportError(f"GET {url} failed: HTTP {exc.response.status_code}", exc)
            )
        except Exception as exc:
            # httpx.InvalidURL and httpx.StreamError are not HTTPError subclasses.
            future.reject(TransportError(f"GET {url} failed: {exc}", exc))
        else:
            future.resolve(body)

    async def _stream(self, url: str, future: Future) -> bytes:
        client = self._get_client()
        chunks: list[bytes] = []
        received = 0
        async with client.stream("GET", url) as response:
            response.raise_for_status()
            total = _content_length(response.headers)
            async for chunk in response.aiter_bytes():
                chunks.append(chunk)
                received += len(chunk)
                future.notify(Progress(url=url, received=received, total=total))
        get_output().debug(f"Received {received} bytes from {url}")
        return b"".join(chunks)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                follow_redirects=True,
            )
        return self._client


def _content_length(headers: Any) -> Optional[int]:
    value = headers.get("content-length")
    try:
        return int(value) if value is not None else None
    except ValueError:
        return None
