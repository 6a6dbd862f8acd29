"""
Exceptions raised by identmap collections and allocators.
"""

from typing import Any


class AllocationFailure(MemoryError):
    """Raised when an allocator cannot satisfy an allocate/grow/shrink request."""

    pass


class LayoutError(AllocationFailure):
    """Raised when a requested buffer size cannot be represented."""

    pass


class DuplicateKey(ValueError):
    """Raised when bulk construction finds two entries with equal keys."""

    def __init__(self, key: Any):
        super().__init__(f"duplicate key in bulk construction: {key!r}")
        self.key = key


class KeyNotFound(KeyError):
    """Raised by operations that require the key to be present."""

    def __init__(self, key: Any):
        super().__init__(key)
        self.key = key
