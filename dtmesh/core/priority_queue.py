"""Binary min-heap ordered by a caller supplied three-way comparator."""
from __future__ import annotations
from typing import Callable, Generic, List, TypeVar

T = TypeVar('T')

__all__ = ['PriorityQueue']


class PriorityQueue(Generic[T]):
    """Min-heap over a list whose index 0 holds a sentinel.

    With the sentinel a live element at index ``i`` has children ``2i`` and
    ``2i + 1`` and parent ``i // 2``. ``compare(a, b)`` returns a negative
    number, zero or a positive number when ``a`` orders before, equal to or
    after ``b``. Ties come out in no particular order.

    Example:
        >>> q = PriorityQueue(lambda a, b: a - b)
        >>> for x in (5, 1, 3):
        ...     q.insert(x)
        >>> [q.pop_min() for _ in range(len(q))]
        [1, 3, 5]
    """

    def __init__(self, compare: Callable[[T, T], float]):
        self._compare = compare
        self._heap: List = [None]

    def __len__(self):
        return len(self._heap) - 1

    def __bool__(self):
        return len(self._heap) > 1

    def is_empty(self) -> bool:
        return len(self._heap) == 1

    def insert(self, element: T) -> None:
        heap = self._heap
        heap.append(element)
        self._sift_up(len(heap) - 1)

    def peek_min(self) -> T:
        if self.is_empty():
            raise IndexError("peek_min on an empty PriorityQueue")
        return self._heap[1]

    def pop_min(self) -> T:
        """Remove and return the minimum; IndexError on an empty queue."""
        heap = self._heap
        if len(heap) == 1:
            raise IndexError("pop_min on an empty PriorityQueue")
        top = heap[1]
        last = heap.pop()
        if len(heap) > 1:
            heap[1] = last
            self._sift_down(1)
        return top

    def _sift_up(self, i: int) -> None:
        heap = self._heap
        cmp = self._compare
        item = heap[i]
        while i > 1:
            parent = i // 2
            if cmp(item, heap[parent]) >= 0:
                break
            heap[i] = heap[parent]
            i = parent
        heap[i] = item

    def _sift_down(self, i: int) -> None:
        heap = self._heap
        cmp = self._compare
        n = len(heap) - 1
        item = heap[i]
        while True:
            child = 2 * i
            if child > n:
                break
            if child + 1 <= n and cmp(heap[child + 1], heap[child]) < 0:
                child += 1
            if cmp(heap[child], item) >= 0:
                break
            heap[i] = heap[child]
            i = child
        heap[i] = item
