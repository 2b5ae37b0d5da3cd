"""Serial dispatch queue for outbound generator calls."""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_Job = Tuple[Callable[[], Awaitable[Any]], "asyncio.Future[Any]"]


class DispatchQueue:
    """Run submitted coroutines one at a time with a minimum gap between starts.

    Jobs start in enqueue order. Each caller only sees the outcome of its own
    job; a failing job does not stop the queue from draining. One instance is
    owned by the application and shared by all request handlers.
    """

    def __init__(
        self,
        min_interval: float = 1.0,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if min_interval < 0:
            raise ValueError("min_interval must be non-negative")
        self.min_interval = min_interval
        self._clock = clock
        self._pending: Optional[asyncio.Queue[_Job]] = None
        self._worker: Optional[asyncio.Task[None]] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._last_start: Optional[float] = None

    @property
    def pending(self) -> int:
        """Number of jobs admitted but not yet started."""
        return self._pending.qsize() if self._pending is not None else 0

    async def enqueue(self, job: Callable[[], Awaitable[T]]) -> T:
        """Admit ``job`` and wait for its result."""
        loop = asyncio.get_running_loop()
        future: asyncio.Future[T] = loop.create_future()
        pending = self._ensure_worker()
        pending.put_nowait((job, future))
        return await future

    async def close(self) -> None:
        """Stop the worker; jobs not yet started are cancelled."""
        worker, self._worker = self._worker, None
        if worker is not None:
            worker.cancel()
            try:
                await worker
            except asyncio.CancelledError:
                pass
        if self._pending is not None:
            while not self._pending.empty():
                _, future = self._pending.get_nowait()
                if not future.done():
                    future.cancel()
        self._pending = None
        self._loop = None

    def _ensure_worker(self) -> "asyncio.Queue[_Job]":
        loop = asyncio.get_running_loop()
        pending = self._pending
        if pending is None or self._loop is not loop:
            # A queue and worker are bound to the loop that created them.
            pending = asyncio.Queue()
            self._loop = loop
            self._pending = pending
            self._worker = None
        if self._worker is None or self._worker.done():
            self._worker = loop.create_task(self._drain(pending))
        return pending

    async def _drain(self, pending: "asyncio.Queue[_Job]") -> None:
        while True:
            job, future = await pending.get()
            try:
                if future.cancelled():
                    continue
                try:
                    await self._wait_for_slot()
                    self._last_start = self._clock()
                    result = await job()
                except asyncio.CancelledError:
                    if not future.done():
                        future.cancel()
                    raise
                except Exception as exc:
                    logger.debug("Dispatched job failed: %s", exc)
                    if not future.done():
                        future.set_exception(exc)
                else:
                    if not future.done():
                        future.set_result(result)
            finally:
                pending.task_done()

    async def _wait_for_slot(self) -> None:
        if self._last_start is None:
            return
        elapsed = self._clock() - self._last_start
        wait = self.min_interval - elapsed
        if wait > 0:
            logger.debug("Waiting %.3fs before next dispatch", wait)
            await asyncio.sleep(wait)
