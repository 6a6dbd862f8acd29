"""
Bounded Allocator
=================

Wraps another allocator with byte accounting and an optional hard limit.
Useful to cap the memory a group of collections may hold, and to observe
how often collections reallocate.
"""

import logging
from typing import Optional

import numpy as np

from ..errors import AllocationFailure
from .allocator import Allocator, HeapAllocator
from .layout import Layout


class BoundedAllocator(Allocator):
    """
    Allocator enforcing a ceiling on the bytes it has handed out.

    A request that would push ``in_use`` past ``limit`` fails with
    AllocationFailure before the inner allocator is consulted, so the caller's
    buffer is never touched by a refused request.

    Usage:
        alloc = BoundedAllocator(limit=4096)
        m = IdentityMap(allocator=alloc)
        alloc.in_use, alloc.peak, alloc.stats["grows"]
    """

    def __init__(self, limit: Optional[int] = None, inner: Optional[Allocator] = None):
        if limit is not None and limit < 0:
            raise ValueError(f"limit must be non-negative, got {limit}")
        self.limit = limit
        self._inner = inner if inner is not None else HeapAllocator()
        self.in_use = 0
        self.peak = 0
        self.stats = {
            "allocations": 0,
            "grows": 0,
            "shrinks": 0,
            "deallocations": 0,
            "failures": 0,
        }

    def _check(self, extra: int) -> None:
        if self.limit is not None and self.in_use + extra > self.limit:
            self.stats["failures"] += 1
            logging.debug(
                f"Refusing {extra} bytes: {self.in_use} of {self.limit} already in use"
            )
            raise AllocationFailure(
                f"allocation of {extra} bytes exceeds limit "
                f"({self.in_use} of {self.limit} bytes in use)"
            )

    def _commit(self, delta: int) -> None:
        self.in_use += delta
        self.peak = max(self.peak, self.in_use)

    def allocate(self, layout: Layout) -> np.ndarray:
        self._check(layout.size)
        array = self._inner.allocate(layout)
        self._commit(layout.size)
        self.stats["allocations"] += 1
        return array

    def grow(
        self, array: np.ndarray, old_layout: Layout, new_layout: Layout
    ) -> np.ndarray:
        self._check(new_layout.size - old_layout.size)
        new_array = self._inner.grow(array, old_layout, new_layout)
        self._commit(new_layout.size - old_layout.size)
        self.stats["grows"] += 1
        return new_array

    def shrink(
        self, array: np.ndarray, old_layout: Layout, new_layout: Layout
    ) -> np.ndarray:
        new_array = self._inner.shrink(array, old_layout, new_layout)
        self._commit(new_layout.size - old_layout.size)
        self.stats["shrinks"] += 1
        return new_array

    def deallocate(self, array: np.ndarray, layout: Layout) -> None:
        if layout.size > self.in_use:
            raise ValueError(
                f"deallocating {layout.size} bytes but only {self.in_use} are in use"
            )
        self._inner.deallocate(array, layout)
        self.in_use -= layout.size
        self.stats["deallocations"] += 1

    def __repr__(self) -> str:
        return f"BoundedAllocator(limit={self.limit}, in_use={self.in_use})"
