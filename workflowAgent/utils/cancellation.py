"""Cooperative cancellation for a single turn.

One ``CancellationToken`` is created per turn and handed to every nested call
(model invocation, assistant handler, build generator). Cancelling it stops all
in-flight work that was started through ``guard``, not just the outermost await.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, List, Optional, TypeVar

from .error_handler import TurnCancelledError

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class CancellationToken:
    """Cancellation signal shared by every call made on behalf of one turn."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._children: List["CancellationToken"] = []
        self._parent: Optional["CancellationToken"] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self.reason: Optional[str] = None
        self.timed_out = False

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "Turn was cancelled") -> None:
        """Fire the token (and every child). Idempotent."""
        if self._event.is_set():
            return
        self.reason = reason
        self._event.set()
        self._clear_timer()
        for child in self._children:
            child.cancel(reason)

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise self._error()

    async def wait(self) -> None:
        await self._event.wait()

    def child(self, timeout: Optional[float] = None) -> "CancellationToken":
        """Create a linked token that also fires after ``timeout`` seconds.

        Cancelling the parent cancels the child; cancelling or timing out the
        child leaves the parent untouched.
        """
        child = CancellationToken()
        if self.cancelled:
            child.cancel(self.reason or "Turn was cancelled")
            return child

        self._children.append(child)
        child._parent = self
        if timeout is not None:
            loop = asyncio.get_running_loop()
            child._timer = loop.call_later(timeout, child._expire, timeout)
        return child

    def close(self) -> None:
        """Release a child token once its work has finished.

        Stops the timeout timer and unlinks the child from its parent.
        """
        self._clear_timer()
        if self._parent is not None:
            if self in self._parent._children:
                self._parent._children.remove(self)
            self._parent = None

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the token fires first.

        Raises:
            TurnCancelledError: The token was cancelled before or during the call.
            TimeoutError: The token was a child whose timeout expired.
        """
        if self.cancelled:
            # Close un-started coroutines so they don't warn about never being awaited
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise self._error()

        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()

        if task.done():
            return task.result()

        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        LOGGER.info(f"In-flight call stopped: {self.reason}")
        raise self._error()

    def _expire(self, timeout: float) -> None:
        self.timed_out = True
        self.cancel(f"Operation timed out after {timeout}s")

    def _clear_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _error(self) -> Exception:
        if self.timed_out:
            return TimeoutError(self.reason)
        return TurnCancelledError(self.reason or "Turn was cancelled")
