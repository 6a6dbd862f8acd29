"""
Allocator capability and the default heap allocator.

Collections never create their buffers directly; they ask an Allocator for
an array matching a Layout and hand it back when done. Swapping the
allocator changes where memory comes from without touching the collection
code.

The process-wide default is a lazily created HeapAllocator:
    - get_default_allocator(): lazy singleton
    - set_default_allocator(): replace it (configuration)
    - _reset_default_allocator(): forget it (testing)
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

import numpy as np

from ..errors import AllocationFailure
from .layout import Layout


class Allocator(ABC):
    """
    Abstract allocation capability.

    Implementations return one-dimensional numpy arrays with exactly
    ``layout.count`` entries of ``layout.dtype``. Any request that cannot be
    satisfied raises AllocationFailure and leaves the input array untouched.
    """

    @abstractmethod
    def allocate(self, layout: Layout) -> np.ndarray:
        """Return a fresh array for ``layout``. Contents are unspecified."""
        pass

    @abstractmethod
    def grow(
        self, array: np.ndarray, old_layout: Layout, new_layout: Layout
    ) -> np.ndarray:
        """Return a larger array holding a copy of the first ``old_layout.count`` entries."""
        pass

    @abstractmethod
    def shrink(
        self, array: np.ndarray, old_layout: Layout, new_layout: Layout
    ) -> np.ndarray:
        """Return a smaller array holding a copy of the first ``new_layout.count`` entries."""
        pass

    @abstractmethod
    def deallocate(self, array: np.ndarray, layout: Layout) -> None:
        """Take back an array previously returned by this allocator."""
        pass


class HeapAllocator(Allocator):
    """Allocator backed by ``numpy.empty``; memory is reclaimed by the interpreter."""

    def allocate(self, layout: Layout) -> np.ndarray:
        try:
            return np.empty(layout.count, dtype=layout.dtype)
        except (MemoryError, ValueError) as e:
            logging.debug(f"Heap allocation of {layout.size} bytes failed: {e}")
            raise AllocationFailure(
                f"unable to allocate {layout.size} bytes for {layout.count} entries"
            ) from e

    def grow(
        self, array: np.ndarray, old_layout: Layout, new_layout: Layout
    ) -> np.ndarray:
        if new_layout.count < old_layout.count:
            raise ValueError(
                f"cannot grow from {old_layout.count} to {new_layout.count} entries"
            )
        new_array = self.allocate(new_layout)
        new_array[: old_layout.count] = array[: old_layout.count]
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
        return new_array

    def deallocate(self, array: np.ndarray, layout: Layout) -> None:
        # Nothing to return; the array is collected once unreferenced.
        pass

    def __repr__(self) -> str:
        return "HeapAllocator()"


_default_allocator: Optional[Allocator] = None


def get_default_allocator() -> Allocator:
    """
    Get or create the default allocator.

    Lazy singleton pattern: creates a HeapAllocator on first access and reuses
    it thereafter. Collections constructed without an explicit allocator use
    whatever this returns at construction time.
    """
    global _default_allocator
    if _default_allocator is None:
        _default_allocator = HeapAllocator()
    return _default_allocator


def set_default_allocator(allocator: Allocator) -> None:
    """Replace the default allocator used by newly constructed collections."""
    global _default_allocator
    if not isinstance(allocator, Allocator):
        raise TypeError(f"expected an Allocator, got {type(allocator).__name__}")
    _default_allocator = allocator


def _reset_default_allocator() -> None:
    """
    Reset the default allocator for testing purposes.

    Existing collections keep the allocator they were built with.
    """
    global _default_allocator
    _default_allocator = None
