"""
Raw Buffer - allocator-backed contiguous storage
===============================================

RawBuffer owns one contiguous numpy array sized for ``capacity`` entries and
knows how to grow, shrink and release it through an Allocator. It does not
know which entries are live; that is the OrderedEngine's job.

Lifecycle:
    - created empty (capacity 0, zero-length sentinel array, nothing allocated)
    - grown/shrunk through the allocator; a failed request leaves it unchanged
    - released exactly once, either explicitly via release() or when the
      buffer is garbage collected (weakref.finalize)
    - into_parts() hands the array to the caller and cancels the release
"""

import logging
import weakref
from dataclasses import dataclass
from typing import Any, NamedTuple, Optional, Tuple

import numpy as np

from .alloc import Allocator, Layout, get_default_allocator


class RawParts(NamedTuple):
    """Everything needed to rebuild a collection: array, length, capacity, allocator."""

    array: np.ndarray
    length: int
    capacity: int
    allocator: Allocator


@dataclass(frozen=True)
class GrowthPolicy:
    """
    Capacity growth used when an insert runs out of room.

    The new capacity is ``max(current * factor, required, minimum)``: geometric
    growth keeps the number of reallocations logarithmic in the number of
    inserts, and never returns less than what was asked for.
    """

    factor: int = 2
    minimum: int = 1

    def __post_init__(self):
        if not isinstance(self.factor, int) or self.factor < 2:
            raise ValueError(f"growth factor must be an int >= 2, got {self.factor!r}")
        if self.minimum < 1:
            raise ValueError(f"minimum capacity must be >= 1, got {self.minimum!r}")

    def next_capacity(self, current: int, required: int) -> int:
        return max(current * self.factor, required, self.minimum)


DEFAULT_GROWTH = GrowthPolicy()


class RawBuffer:
    """
    Contiguous, allocator-backed storage for ``capacity`` entries of ``dtype``.

    The allocator is borrowed: the buffer calls it but does not control its
    lifetime. Contents of the array are never interpreted here.
    """

    __slots__ = ("_dtype", "_allocator", "_array", "_capacity", "_finalizer", "__weakref__")

    def __init__(self, dtype: Any, allocator: Optional[Allocator] = None):
        self._dtype = np.dtype(dtype)
        self._allocator = allocator if allocator is not None else get_default_allocator()
        self._array = np.empty(0, dtype=self._dtype)
        self._capacity = 0
        self._finalizer = None

    @classmethod
    def with_capacity(
        cls, dtype: Any, capacity: int, allocator: Optional[Allocator] = None
    ) -> "RawBuffer":
        """Create a buffer with room for ``capacity`` entries (no allocation when 0)."""
        if capacity < 0:
            raise ValueError(f"capacity must be non-negative, got {capacity}")
        buffer = cls(dtype, allocator)
        if capacity:
            buffer.grow(capacity)
        return buffer

    @classmethod
    def from_parts(
        cls, array: np.ndarray, capacity: int, allocator: Allocator
    ) -> "RawBuffer":
        """
        Take ownership of an array previously produced by ``allocator``.

        No validation is performed: ``array`` must hold exactly ``capacity``
        entries and must not be owned by anything else.
        """
        buffer = cls(array.dtype, allocator)
        if capacity:
            buffer._attach(array, capacity)
        return buffer

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def dtype(self) -> np.dtype:
        return self._dtype

    @property
    def array(self) -> np.ndarray:
        return self._array

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def allocator(self) -> Allocator:
        return self._allocator

    @property
    def layout(self) -> Layout:
        return Layout(self._dtype, self._capacity)

    def is_allocated(self) -> bool:
        return self._capacity > 0

    # ------------------------------------------------------------------
    # Ownership
    # ------------------------------------------------------------------

    def _attach(self, array: np.ndarray, capacity: int) -> None:
        self._array = array
        self._capacity = capacity
        # The callback must not reference self or the buffer never dies.
        self._finalizer = weakref.finalize(
            self, self._allocator.deallocate, array, Layout(self._dtype, capacity)
        )

    def _detach(self) -> None:
        if self._finalizer is not None:
            self._finalizer.detach()
            self._finalizer = None
        self._array = np.empty(0, dtype=self._dtype)
        self._capacity = 0

    def grow(self, new_capacity: int) -> None:
        """
        Reallocate to hold ``new_capacity`` entries, keeping existing contents.

        Raises:
            ValueError: If new_capacity is not larger than the current capacity
            AllocationFailure: If the allocator refuses; the buffer is unchanged
        """
        if new_capacity <= self._capacity:
            raise ValueError(
                f"grow requires a larger capacity ({new_capacity} <= {self._capacity})"
            )
        new_layout = Layout.array(self._dtype, new_capacity)
        if self._capacity == 0:
            array = self._allocator.allocate(new_layout)
        else:
            array = self._allocator.grow(self._array, self.layout, new_layout)
        logging.debug(f"Buffer grew from {self._capacity} to {new_capacity} entries")
        self._detach()
        self._attach(array, new_capacity)

    def shrink(self, new_capacity: int) -> None:
        """
        Reallocate down to ``new_capacity`` entries, keeping the leading ones.

        Shrinking to 0 releases the buffer. On AllocationFailure the buffer is
        unchanged.
        """
        if new_capacity < 0 or new_capacity >= self._capacity:
            raise ValueError(
                f"shrink requires 0 <= {new_capacity} < {self._capacity}"
            )
        if new_capacity == 0:
            self.release()
            return
        new_layout = Layout.array(self._dtype, new_capacity)
        array = self._allocator.shrink(self._array, self.layout, new_layout)
        logging.debug(f"Buffer shrank from {self._capacity} to {new_capacity} entries")
        self._detach()
        self._attach(array, new_capacity)

    def release(self) -> None:
        """Return the array to the allocator. The buffer is empty afterwards."""
        finalizer = self._finalizer
        self._finalizer = None
        self._array = np.empty(0, dtype=self._dtype)
        self._capacity = 0
        if finalizer is not None:
            logging.debug("Buffer released")
            finalizer()

    def into_parts(self) -> Tuple[np.ndarray, int, Allocator]:
        """
        Give up ownership of the array.

        Returns (array, capacity, allocator). The allocator will not be asked to
        deallocate the array by this buffer; the caller is now responsible for
        it. The buffer is left empty.
        """
        array, capacity = self._array, self._capacity
        self._detach()
        return array, capacity, self._allocator

    def __repr__(self) -> str:
        return f"RawBuffer(dtype={self._dtype}, capacity={self._capacity})"
