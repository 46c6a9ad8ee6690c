"""Bounded-concurrency admission for network fetches.

:class:`DispatchQueue` hands out *slots*.  Each fetch asks for one with
:meth:`~DispatchQueue.request_slot` and gives it back with
:meth:`~DispatchQueue.release_slot` when it settles, whatever the outcome.
At most ``max_requests`` slots are held at any time; further requests wait
in FIFO order.

Every request goes through the queue, even when a slot is free at call
time: the ticket is appended and the queue is drained immediately.  This
keeps admission order identical whether or not the limit has been reached.
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Optional

from fetchcache.future import Future


class DispatchQueue:
    """FIFO admission controller.

    Args:
        max_requests: Maximum number of concurrently admitted tickets.
        loop: Event loop for ticket futures.  Defaults to the running loop
            at the time a slot is requested.
    """

    def __init__(
        self,
        max_requests: int = 10,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        if max_requests < 1:
            raise ValueError(f"max_requests must be at least 1, got {max_requests}")
        self._max_requests = max_requests
        self._loop = loop
        self._waiting: deque[Future] = deque()
        self._running = 0

    @property
    def max_requests(self) -> int:
        return self._max_requests

    @property
    def running(self) -> int:
        """Number of admitted tickets whose slot has not been released."""
        return self._running

    @property
    def waiting(self) -> int:
        """Number of tickets waiting for admission."""
        return len(self._waiting)

    def request_slot(self) -> Future:
        """Queue a ticket that fulfils (with ``None``) once admitted.

        Returns:
            The ticket :class:`~fetchcache.future.Future`.
        """
        ticket = Future(loop=self._loop)
        self._waiting.append(ticket)
        self._drain()
        return ticket

    def release_slot(self) -> None:
        """Give back a slot and admit the next waiting ticket, if any."""
        if self._running > 0:
            self._running -= 1
        self._drain()

    def _drain(self) -> None:
        while self._waiting and self._running < self._max_requests:
            ticket = self._waiting.popleft()
            self._running += 1
            ticket.resolve(None)
