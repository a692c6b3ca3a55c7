"""Push-to-pull streaming bridge.

Some tools report progress through a callback invoked from inside their own
async call chain (the assistant handler's writer); others are themselves async
generators (the build generator). ``StreamingBridge`` runs either kind of work
as a task and exposes what it enqueues as one async iterator, so the agent loop
can interleave tool progress with its own text in a single stream.

Usage:
    bridge = StreamingBridge()
    async for chunk in bridge.stream(lambda enqueue: tool(args, enqueue)):
        yield chunk
    result = bridge.result
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import AsyncIterator, Awaitable, Callable, Deque, Generic, Optional, TypeVar

T = TypeVar("T")
R = TypeVar("R")

Enqueue = Callable[[T], None]

_UNSET = object()


class StreamingBridge(Generic[T, R]):
    """Unbounded FIFO queue plus a single parked consumer.

    Guarantees:
    - items are delivered in enqueue order
    - an item enqueued before the consumer parks is never lost (the queue is
      drained before parking)
    - every enqueued item is delivered before the work's exception, if any, is raised
    - the work's return value is available as ``result`` once the stream is drained
    """

    def __init__(self) -> None:
        self._queue: Deque[T] = deque()
        self._waiter: Optional[asyncio.Future] = None
        self._done = False
        self._task: Optional[asyncio.Task] = None
        self._result: object = _UNSET

    def enqueue(self, item: T) -> None:
        """Push an item and wake the consumer if it is parked."""
        self._queue.append(item)
        self._wake()

    @property
    def done(self) -> bool:
        return self._done

    @property
    def result(self) -> R:
        if self._result is _UNSET:
            raise RuntimeError("StreamingBridge result is not available until the stream is drained")
        return self._result  # type: ignore[return-value]

    async def stream(self, work: Callable[[Enqueue], Awaitable[R]]) -> AsyncIterator[T]:
        """Run ``work(enqueue)`` concurrently and yield everything it enqueues.

        If the consumer stops early, the underlying task is cancelled.
        """
        if self._task is not None:
            raise RuntimeError("StreamingBridge.stream() can only be used once")

        self._task = asyncio.ensure_future(work(self.enqueue))
        self._task.add_done_callback(self._mark_done)

        try:
            while not self._done or self._queue:
                if self._queue:
                    yield self._queue.popleft()
                    continue

                self._waiter = asyncio.get_running_loop().create_future()
                try:
                    await self._waiter
                finally:
                    self._waiter = None

            self._result = await self._task
        finally:
            if not self._task.done():
                self._task.cancel()

    def _mark_done(self, _task: asyncio.Task) -> None:
        self._done = True
        self._wake()

    def _wake(self) -> None:
        waiter = self._waiter
        if waiter is not None and not waiter.done():
            waiter.set_result(None)
