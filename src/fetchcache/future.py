"""Settle-once futures with chaining and progress notifications.

This module provides :class:`Future`, a small Promises/A+-style container
that the loader is built on.  It differs from :class:`asyncio.Future` in
the ways the download cache needs:

* **Chaining** -- :meth:`Future.then` returns a new derived future whose
  outcome is the handler's return value (or the raised exception).  A
  handler that returns another future, any object with a callable
  ``then``, or an awaitable is *adopted*: the derived future follows it.
* **Progress** -- :meth:`Future.notify` delivers partial-transfer events
  to subscribers registered with :meth:`Future.progress`.  Subscriptions
  and notifications act on the root of a chain, so every subscriber along
  a chain sees every event.
* **Arbitrary rejection values** -- a future may be rejected with any
  value.  Rejections are never reported as unhandled; they travel down the
  chain until a handler consumes them.

Continuations and progress callbacks are always scheduled with
:meth:`asyncio.AbstractEventLoop.call_soon`, never run synchronously in
the turn that attached them or settled the future.

A future is also awaitable from ``async`` code::

    entry = await loader.download("https://example.com/logo.png")

Example::

    loader.download(url) \\
        .progress(lambda p: print(p.received)) \\
        .get("path") \\
        .then(print, lambda exc: print("failed:", exc))
"""

from __future__ import annotations

import asyncio
import enum
import inspect
from collections.abc import Mapping
from typing import Any, Callable, Generator, Iterable, Optional

from fetchcache.exceptions import RejectionError


class FutureState(str, enum.Enum):
    """Lifecycle states of a :class:`Future`."""

    PENDING = "pending"
    FULFILLED = "fulfilled"
    REJECTED = "rejected"


def _is_thenable(value: Any) -> bool:
    return value is not None and callable(getattr(value, "then", None))


class Future:
    """Single-assignment asynchronous result container.

    A future starts *pending* and moves to *fulfilled* or *rejected* at
    most once, via :meth:`settle`, :meth:`resolve` or :meth:`reject`.
    Settlement stores a tuple of values which is passed positionally to
    the handlers attached with :meth:`then`.

    Args:
        loop: Event loop used to schedule continuations.  Defaults to the
            running loop, so futures are normally created from inside a
            coroutine or a loop callback.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop or asyncio.get_running_loop()
        self._state = FutureState.PENDING
        self._values: tuple[Any, ...] = ()
        self._deferred: list[Callable[[], None]] = []
        self._progress_fns: Optional[list[Callable[[Any], Any]]] = None
        self._source: Optional[Future] = None
        self._task: Optional[asyncio.Future[Any]] = None

    def __repr__(self) -> str:
        return f"<Future {self._state.value} values={self._values!r}>"

    # ------------------------------------------------------------------ #
    # State
    # ------------------------------------------------------------------ #

    @property
    def state(self) -> FutureState:
        """The current :class:`FutureState`."""
        return self._state

    @property
    def values(self) -> tuple[Any, ...]:
        """The settlement values (empty while pending)."""
        return self._values

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    def is_pending(self) -> bool:
        return self._state is FutureState.PENDING

    def is_fulfilled(self) -> bool:
        return self._state is FutureState.FULFILLED

    def is_rejected(self) -> bool:
        return self._state is FutureState.REJECTED

    # ------------------------------------------------------------------ #
    # Settlement
    # ------------------------------------------------------------------ #

    def settle(self, fulfilled: bool, values: Iterable[Any] = ()) -> None:
        """Fulfil or reject the future with *values*.

        Does nothing if the future is already settled.  Continuations
        attached while pending are scheduled for the next loop turn.

        Args:
            fulfilled: ``True`` to fulfil, ``False`` to reject.
            values: Values passed positionally to the matching handlers.
        """
        if self._state is not FutureState.PENDING:
            return
        self._state = FutureState.FULFILLED if fulfilled else FutureState.REJECTED
        self._values = tuple(values)
        deferred, self._deferred = self._deferred, []
        if deferred:
            self._loop.call_soon(_run_all, deferred)

    def resolve(self, value: Any = None) -> None:
        """Fulfil the future with a single value."""
        self.settle(True, (value,))

    def reject(self, reason: Any = None) -> None:
        """Reject the future with a single value (usually an exception)."""
        self.settle(False, (reason,))

    # ------------------------------------------------------------------ #
    # Chaining
    # ------------------------------------------------------------------ #

    def then(
        self,
        on_fulfilled: Optional[Callable[..., Any]] = None,
        on_rejected: Optional[Callable[..., Any]] = None,
        on_progress: Optional[Callable[[Any], Any]] = None,
    ) -> Future:
        """Attach handlers and return a derived future.

        The handler matching the eventual state is called with the
        settlement values in a later loop turn.  Its return value fulfils
        the derived future; an exception it raises rejects the derived
        future with that exception.  When the return value is a thenable
        or an awaitable, the derived future adopts its outcome and
        progress.  A missing handler passes state and values through, so
        ``then(None, handler)`` acts as a catch.

        Args:
            on_fulfilled: Called with the values on fulfilment.
            on_rejected: Called with the values on rejection.
            on_progress: Registered as a progress subscriber.

        Returns:
            A new pending :class:`Future`.
        """
        derived = Future(loop=self._loop)
        derived._source = self

        def call_handler() -> None:
            fulfilled = self._state is FutureState.FULFILLED
            handler = on_fulfilled if fulfilled else on_rejected
            if not callable(handler):
                derived.settle(fulfilled, self._values)
                return
            try:
                derived._adopt(handler(*self._values))
            except Exception as exc:
                derived.reject(exc)

        if self._state is FutureState.PENDING:
            self._deferred.append(call_handler)
        else:
            self._loop.call_soon(call_handler)

        if callable(on_progress):
            self.progress(on_progress)
        return derived

    def fail(self, on_rejected: Callable[..., Any]) -> Future:
        """Same as ``then(None, on_rejected)``."""
        return self.then(None, on_rejected)

    error = fail

    def always(self, fn: Callable[..., Any]) -> Future:
        """Same as ``then(fn, fn)``: *fn* decides the derived outcome either way."""
        return self.then(fn, fn)

    def finally_(self, fn: Callable[[], Any]) -> Future:
        """Run *fn* on settlement while keeping the original outcome.

        *fn* is called without arguments.  The returned future settles
        with this future's values once *fn* has run; if *fn* raises, it
        rejects with the raised exception instead.

        Args:
            fn: Cleanup callable.

        Returns:
            A derived :class:`Future` carrying the original outcome.
        """

        def run(*_values: Any) -> Future:
            fn()
            return self

        return self.then(run, run)

    fin = finally_

    def get(self, name: str) -> Future:
        """Derive a future for ``value[name]`` (mappings) or ``value.name``."""

        def lookup(value: Any) -> Any:
            if isinstance(value, Mapping):
                return value[name]
            return getattr(value, name)

        return self.then(lookup)

    def invoke(self, name: str, *args: Any, **kwargs: Any) -> Future:
        """Derive a future for ``value.name(*args, **kwargs)``."""
        return self.then(lambda value: getattr(value, name)(*args, **kwargs))

    # ------------------------------------------------------------------ #
    # Progress
    # ------------------------------------------------------------------ #

    def progress(self, fn: Callable[[Any], Any]) -> Future:
        """Subscribe *fn* to progress notifications and return ``self``."""
        root = self._root()
        if root._progress_fns is None:
            root._progress_fns = []
        root._progress_fns.append(fn)
        return self

    def notify(self, value: Any) -> Future:
        """Schedule every progress subscriber of the chain with *value*."""
        root = self._root()
        for fn in list(root._progress_fns or ()):
            self._loop.call_soon(fn, value)
        return self

    # ------------------------------------------------------------------ #
    # Awaiting
    # ------------------------------------------------------------------ #

    def __await__(self) -> Generator[Any, None, Any]:
        waiter: asyncio.Future[Any] = self._loop.create_future()

        def fulfilled(*values: Any) -> None:
            if not waiter.done():
                waiter.set_result(values[0] if values else None)

        def rejected(*values: Any) -> None:
            reason = values[0] if values else None
            if not isinstance(reason, BaseException):
                reason = RejectionError(reason)
            if not waiter.done():
                waiter.set_exception(reason)

        self.then(fulfilled, rejected)
        return waiter.__await__()

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _root(self) -> Future:
        node = self
        while node._source is not None:
            node = node._source
        return node

    def _adopt(self, result: Any) -> None:
        """Settle from a handler's return value, following thenables and awaitables."""
        if result is self:
            self.reject(TypeError("A future cannot adopt itself"))
        elif _is_thenable(result):
            # Progress of a future on the same chain already reaches our root.
            on_progress: Optional[Callable[[Any], Any]] = self.notify
            if isinstance(result, Future) and result._root() is self._root():
                on_progress = None
            result.then(
                lambda *values: self.settle(True, values),
                lambda *values: self.settle(False, values),
                on_progress,
            )
        elif inspect.isawaitable(result):
            self._task = asyncio.ensure_future(result, loop=self._loop)
            self._task.add_done_callback(self._settle_from_task)
        else:
            self.settle(True, (result,))

    def _settle_from_task(self, task: asyncio.Future[Any]) -> None:
        if task.cancelled():
            self.reject(asyncio.CancelledError())
            return
        exc = task.exception()
        if exc is not None:
            self.reject(exc)
        else:
            self.resolve(task.result())


def _run_all(callbacks: list[Callable[[], None]]) -> None:
    for callback in callbacks:
        callback()


def resolved(value: Any = None, loop: Optional[asyncio.AbstractEventLoop] = None) -> Future:
    """Return a future already fulfilled with *value*."""
    future = Future(loop=loop)
    future.resolve(value)
    return future


def rejected(reason: Any, loop: Optional[asyncio.AbstractEventLoop] = None) -> Future:
    """Return a future already rejected with *reason*."""
    future = Future(loop=loop)
    future.reject(reason)
    return future
