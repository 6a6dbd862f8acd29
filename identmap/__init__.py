"""
identmap - ordered identity maps and sets over a sorted contiguous buffer

Keys are compared by their own value instead of being hashed: entries are
kept sorted and duplicate-free in one allocator-backed numpy buffer, so
lookups are binary searches, iteration is always in key order, and there
are no hash collisions.
"""

from .alloc import (
    Allocator,
    BoundedAllocator,
    CachingAllocator,
    HeapAllocator,
    Layout,
    get_default_allocator,
    set_default_allocator,
)
from .buffer import DEFAULT_GROWTH, GrowthPolicy, RawBuffer, RawParts
from .engine import OrderedEngine, SearchResult
from .errors import AllocationFailure, DuplicateKey, KeyNotFound, LayoutError
from .identity_map import IdentityMap
from .identity_set import IdentitySet
from .iterators import Drain, IntoIter, ValueSlot

__all__ = [
    # Collections
    "IdentityMap",
    "IdentitySet",
    # Core
    "OrderedEngine",
    "SearchResult",
    "RawBuffer",
    "RawParts",
    "GrowthPolicy",
    "DEFAULT_GROWTH",
    # Allocators
    "Allocator",
    "HeapAllocator",
    "BoundedAllocator",
    "CachingAllocator",
    "Layout",
    "get_default_allocator",
    "set_default_allocator",
    # Iterators
    "Drain",
    "IntoIter",
    "ValueSlot",
    # Exceptions
    "AllocationFailure",
    "LayoutError",
    "DuplicateKey",
    "KeyNotFound",
]
