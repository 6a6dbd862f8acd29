"""
identmap allocators - where collection buffers come from

Classes:
- Layout: (dtype, count) description of a buffer request
- Allocator: abstract allocate/grow/shrink/deallocate capability
- HeapAllocator: numpy-backed default allocator
- BoundedAllocator: byte accounting with an optional hard limit
- CachingAllocator: LRU pool of released buffers for reuse
"""

from .allocator import (
    Allocator,
    HeapAllocator,
    _reset_default_allocator,
    get_default_allocator,
    set_default_allocator,
)
from .bounded import BoundedAllocator
from .caching import CachingAllocator
from .layout import MAX_ALLOCATION_SIZE, Layout, clear_objects, object_fields

__all__ = [
    "Allocator",
    "HeapAllocator",
    "BoundedAllocator",
    "CachingAllocator",
    "Layout",
    "MAX_ALLOCATION_SIZE",
    "clear_objects",
    "object_fields",
    "get_default_allocator",
    "set_default_allocator",
    "_reset_default_allocator",
]
