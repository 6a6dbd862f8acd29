"""
Test utilities for identmap.

This package contains shared testing utilities to help write
better, more maintainable tests.
"""

from .memory_utils import MemoryTracker, OrderedKey, Payload, assert_released, count_types

__all__ = [
    "assert_released",
    "count_types",
    "MemoryTracker",
    "OrderedKey",
    "Payload",
]
