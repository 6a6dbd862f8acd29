"""
Caching Allocator
=================

Recycles deallocated buffers. Arrays handed back through ``deallocate`` are
kept in an LRU pool keyed by their Layout and returned by the next
``allocate`` asking for the same layout, which saves the allocation when many
short-lived collections of the same shape are created and dropped.

Uses cachetools for the LRU bookkeeping; the least recently used layout is
evicted (and its arrays handed to the inner allocator) once ``maxsize``
distinct layouts are pooled.
"""

import logging
from typing import Callable, List, Optional

import numpy as np
from cachetools import LRUCache

from .allocator import Allocator, HeapAllocator
from .layout import Layout, clear_objects


class _PoolCache(LRUCache):
    """LRUCache that reports evicted entries."""

    def __init__(self, maxsize: int, on_evict: Callable):
        super().__init__(maxsize=maxsize)
        self._on_evict = on_evict

    def popitem(self):
        key, value = super().popitem()
        self._on_evict(key, value)
        return key, value


class CachingAllocator(Allocator):
    """
    Allocator that pools released arrays for reuse.

    Pooled arrays have their object references cleared, so caching a buffer
    never keeps old keys or values alive.

    Args:
        maxsize: Number of distinct layouts kept in the pool
        per_layout: Arrays kept per layout; extra ones go to the inner allocator
        inner: Allocator used on a pool miss (default: HeapAllocator)
    """

    def __init__(
        self,
        maxsize: int = 64,
        per_layout: int = 4,
        inner: Optional[Allocator] = None,
    ):
        if per_layout < 1:
            raise ValueError(f"per_layout must be at least 1, got {per_layout}")
        self._inner = inner if inner is not None else HeapAllocator()
        self._per_layout = per_layout
        self._pool = _PoolCache(maxsize, self._evict)
        self.stats = {"hits": 0, "misses": 0, "evictions": 0}

    def _evict(self, layout: Layout, arrays: List[np.ndarray]) -> None:
        self.stats["evictions"] += 1
        logging.debug(f"Evicting {len(arrays)} pooled buffer(s) of {layout.count} entries")
        for array in arrays:
            self._inner.deallocate(array, layout)

    def allocate(self, layout: Layout) -> np.ndarray:
        arrays = self._pool.get(layout)
        if arrays:
            array = arrays.pop()
            if not arrays:
                del self._pool[layout]
            self.stats["hits"] += 1
            return array
        self.stats["misses"] += 1
        return self._inner.allocate(layout)

    def grow(
        self, array: np.ndarray, old_layout: Layout, new_layout: Layout
    ) -> np.ndarray:
        if new_layout.count < old_layout.count:
            raise ValueError(
                f"cannot grow from {old_layout.count} to {new_layout.count} entries"
            )
        new_array = self.allocate(new_layout)
        new_array[: old_layout.count] = array[: old_layout.count]
        self.deallocate(array, old_layout)
        return new_array

    def shrink(
        self, array: np.ndarray, old_layout: Layout, new_layout: Layout
    ) -> np.ndarray:
        if new_layout.count > old_layout.count:
            raise ValueError(
                f"cannot shrink from {old_layout.count} to {new_layout.count} entries"
            )
        new_array = self.allocate(new_layout)
        new_array[:] = array[: new_layout.count]
        self.deallocate(array, old_layout)
        return new_array

    def deallocate(self, array: np.ndarray, layout: Layout) -> None:
        clear_objects(array)
        arrays = self._pool.get(layout)
        if arrays is None:
            self._pool[layout] = [array]
        elif len(arrays) < self._per_layout:
            arrays.append(array)
        else:
            self._inner.deallocate(array, layout)

    def pooled(self) -> int:
        """Number of arrays currently waiting in the pool."""
        return sum(len(arrays) for arrays in self._pool.values())

    def clear(self) -> None:
        """Return every pooled array to the inner allocator."""
        while self._pool:
            self._pool.popitem()

    def __repr__(self) -> str:
        return f"CachingAllocator(pooled={self.pooled()})"
