"""Shared pacing queue for provider requests.

All calls to the paper-search providers go through one RateLimiter so that
at most one request is in flight and consecutive dispatches are at least
``min_interval`` seconds apart, whichever adapter or feed issued them.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from typing import Any, Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MIN_INTERVAL = 1.0  # 1 request per second


class RateLimiter:
    """FIFO request queue drained by a single worker task."""

    def __init__(
        self,
        min_interval: float = DEFAULT_MIN_INTERVAL,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._queue: deque[tuple[Callable[[], Awaitable[Any]], asyncio.Future]] = deque()
        self._processing = False
        self._last_dispatch: float | None = None
        self._worker: asyncio.Task | None = None

    @property
    def queue_length(self) -> int:
        """Requests waiting to be dispatched (the in-flight one excluded)."""
        return len(self._queue)

    def is_idle(self) -> bool:
        return not self._processing and not self._queue

    async def schedule(self, request: Callable[[], Awaitable[T]]) -> T:
        """
        Queue a request and wait for its result.

        Args:
            request: Zero-argument callable returning an awaitable

        Returns:
            Whatever the request returns; its exception is raised here
            and only here
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future = loop.create_future()
        self._queue.append((request, future))

        # No await between the check and the set: only one drain task
        if not self._processing:
            self._processing = True
            self._worker = loop.create_task(self._drain())

        return await future

    async def _drain(self) -> None:
        try:
            while self._queue:
                if self._last_dispatch is not None:
                    wait = self.min_interval - (self._clock() - self._last_dispatch)
                    if wait > 0:
                        logger.debug(f"Rate limiting: waiting {wait:.3f}s before next request")
                        await self._sleep(wait)

                request, future = self._queue.popleft()
                if future.done():
                    # caller gave up before dispatch
                    continue

                self._last_dispatch = self._clock()
                logger.debug(f"Dispatching request ({len(self._queue)} still queued)")
                try:
                    result = await request()
                except Exception as exc:
                    if not future.done():
                        future.set_exception(exc)
                else:
                    if not future.done():
                        future.set_result(result)
        finally:
            self._processing = False
            self._worker = None
