"""
Buffer layouts.

A Layout is the (dtype, count) pair an allocator is asked to satisfy. The
dtype carries the per-entry size and alignment, the count is the number of
entries, so the byte size of a request is ``count * dtype.itemsize``.
"""

import sys
from dataclasses import dataclass
from typing import Any, Optional

import numpy as np

from ..errors import LayoutError

# Largest byte size a single buffer may span.
MAX_ALLOCATION_SIZE = sys.maxsize


@dataclass(frozen=True)
class Layout:
    """Size and alignment of a contiguous run of ``count`` entries."""

    dtype: np.dtype
    count: int

    @classmethod
    def array(cls, dtype: Any, count: int) -> "Layout":
        """
        Build the layout of ``count`` consecutive entries of ``dtype``.

        Raises:
            ValueError: If count is negative
            LayoutError: If the total size exceeds MAX_ALLOCATION_SIZE
        """
        dtype = np.dtype(dtype)
        if count < 0:
            raise ValueError(f"layout count must be non-negative, got {count}")
        itemsize = dtype.itemsize
        if itemsize and count > MAX_ALLOCATION_SIZE // itemsize:
            raise LayoutError(
                f"unable to create layout for [{dtype}; {count}]: "
                f"size exceeds {MAX_ALLOCATION_SIZE} bytes"
            )
        return cls(dtype, int(count))

    @property
    def size(self) -> int:
        return self.count * self.dtype.itemsize

    @property
    def align(self) -> int:
        return self.dtype.alignment


def object_fields(dtype: np.dtype) -> tuple:
    """Names of the fields of ``dtype`` that hold Python object references."""
    if dtype.names is None:
        return ("",) if dtype.hasobject else ()
    return tuple(name for name in dtype.names if dtype.fields[name][0].hasobject)


def clear_objects(array: np.ndarray, start: int = 0, stop: Optional[int] = None) -> None:
    """
    Drop the object references held in ``array[start:stop]``.

    Numeric fields are left as they are; slots outside the live range are
    never read, only object references need to go so they can be collected.
    """
    if stop is None:
        stop = len(array)
    if start >= stop:
        return
    for name in object_fields(array.dtype):
        if name:
            array[name][start:stop] = None
        else:
            array[start:stop] = None
