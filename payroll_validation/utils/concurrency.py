"""Process-wide bounded concurrency limiter for reasoning backend calls."""

import asyncio
import logging
import threading
from collections import deque
from contextlib import asynccontextmanager
from typing import AsyncIterator, Deque, Tuple

logger = logging.getLogger(__name__)


class ConcurrencyLimiter:
    """
    Counting semaphore shared by every session in the process.

    One counter guarded by a threading lock holds the bound, so sessions
    running on different event loops (the synchronous entry point starts a
    loop per call, possibly from several threads) draw from the same pool of
    slots. Waiters queue in FIFO order; a released slot is handed directly to
    the next waiter and its loop is woken with call_soon_threadsafe.

    Attributes:
        max_concurrent: Maximum simultaneous evaluator invocations per process
    """

    def __init__(self, max_concurrent: int):
        if max_concurrent < 1:
            raise ValueError(f"max_concurrent must be >= 1, got {max_concurrent}")
        self.max_concurrent = max_concurrent
        self._lock = threading.Lock()
        self._in_flight = 0
        self._waiters: Deque[Tuple[asyncio.AbstractEventLoop, asyncio.Future]] = deque()

    @property
    def in_flight(self) -> int:
        """Number of slots currently held."""
        with self._lock:
            return self._in_flight

    async def acquire(self) -> None:
        """Wait for a slot. Cancellation while waiting never leaks a slot."""
        loop = asyncio.get_running_loop()
        with self._lock:
            if self._in_flight < self.max_concurrent and not self._waiters:
                self._in_flight += 1
                return
            waiter = (loop, loop.create_future())
            self._waiters.append(waiter)

        logger.debug(f"Concurrency limit {self.max_concurrent} reached; waiting for a slot")
        try:
            await waiter[1]
        except asyncio.CancelledError:
            with self._lock:
                try:
                    self._waiters.remove(waiter)
                    handed_over = False
                except ValueError:
                    handed_over = True
            if handed_over:
                self.release()
            raise

    def release(self) -> None:
        """Return a slot, handing it to the oldest waiter if there is one."""
        with self._lock:
            while self._waiters:
                loop, future = self._waiters.popleft()
                try:
                    loop.call_soon_threadsafe(_wake, future)
                except RuntimeError:
                    # Waiter's loop is closed; try the next one.
                    continue
                return
            if self._in_flight <= 0:
                raise RuntimeError("ConcurrencyLimiter released more often than acquired")
            self._in_flight -= 1

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        """Hold one slot for the duration of the block."""
        await self.acquire()
        try:
            yield
        finally:
            self.release()


def _wake(future: asyncio.Future) -> None:
    if not future.done():
        future.set_result(None)
