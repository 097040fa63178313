from __future__ import annotations

from collections import deque
from typing import Deque, Generic, Iterable, Iterator, TypeVar

T = TypeVar("T")


class WorkQueue(Generic[T]):
    """Double-ended worklist drained from the front.

    ``push_front`` is used for the two halves of a split item so both are retried,
    in order, before anything already waiting behind them.
    """

    def __init__(self, items: Iterable[T] = ()) -> None:
        self._items: Deque[T] = deque(items)

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def pop_front(self) -> T:
        if not self._items:
            raise IndexError("pop from an empty work queue")
        return self._items.popleft()

    def push_back(self, item: T) -> None:
        self._items.append(item)

    def push_front(self, *items: T) -> None:
        for item in reversed(items):
            self._items.appendleft(item)
