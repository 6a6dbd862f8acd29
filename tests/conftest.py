"""
Shared pytest fixtures and configuration for identmap tests.
"""

import pytest

from identmap import BoundedAllocator, CachingAllocator, IdentityMap
from identmap.alloc import _reset_default_allocator


@pytest.fixture(autouse=True)
def reset_default_allocator():
    """Reset the default allocator before each test to prevent state leakage."""
    _reset_default_allocator()
    yield
    _reset_default_allocator()


@pytest.fixture
def bounded():
    """Unlimited BoundedAllocator, used for its accounting."""
    return BoundedAllocator()


@pytest.fixture
def caching():
    """Provide a fresh CachingAllocator."""
    return CachingAllocator()


@pytest.fixture
def abc_map():
    """The map built by inserting (3, "c"), (1, "a"), (2, "b") in that order."""
    m = IdentityMap()
    m.insert(3, "c")
    m.insert(1, "a")
    m.insert(2, "b")
    return m
