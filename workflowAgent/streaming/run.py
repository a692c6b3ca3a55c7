"""Async stream with a final outcome.

Async generators can't return a value, so producers yield their outcome as the
last item and ``OutcomeStream`` peels it off: iterating yields only the chunks,
and ``outcome`` is set once the stream is drained.
"""

from __future__ import annotations

from typing import AsyncIterator, Generic, List, Optional, Tuple, Type, TypeVar

T = TypeVar("T")
O = TypeVar("O")


class OutcomeStream(Generic[T, O]):
    def __init__(self, source: AsyncIterator[object], outcome_type: Type[O]):
        self._source = source
        self._outcome_type = outcome_type
        self.outcome: Optional[O] = None

    def __aiter__(self) -> AsyncIterator[T]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[T]:
        try:
            async for item in self._source:
                if isinstance(item, self._outcome_type):
                    self.outcome = item
                else:
                    yield item  # type: ignore[misc]
        finally:
            aclose = getattr(self._source, "aclose", None)
            if aclose is not None:
                await aclose()

    async def collect(self) -> Tuple[List[T], Optional[O]]:
        """Drain the stream; returns every chunk and the outcome."""
        chunks = [chunk async for chunk in self]
        return chunks, self.outcome


__all__ = ["OutcomeStream"]
