"""
IdentitySet - ordered set over a sorted contiguous buffer.

The same engine as IdentityMap, over single-field entries. Set algebra
merges the two sorted buffers in one linear pass instead of probing.
"""

import operator
from collections.abc import MutableSet, Set
from typing import Any, Callable, Iterable, Iterator, Optional

import numpy as np

from . import setops
from .alloc import Allocator
from .buffer import GrowthPolicy, RawParts
from .engine import OrderedEngine, SearchResult, entry_dtype
from .errors import KeyNotFound
from .interop import entries_equal, format_entries, ordered_hash
from .iterators import Drain, EntryIter, IntoIter, project_key


def _set_dtype(key_dtype: Any) -> np.dtype:
    return entry_dtype(("key", key_dtype))


def _rebuild_set(cls, key_dtype, keys):
    return cls.from_array(keys, key_dtype=key_dtype)


def _single(keys: Iterable) -> Iterator[tuple]:
    return ((key,) for key in keys)


class IdentitySet(MutableSet):
    """
    Ordered set of keys kept sorted in one contiguous buffer.

    Args:
        keys: Optional iterable of keys (duplicates collapse)
        allocator: Allocator for the buffer (default: get_default_allocator())
        capacity: Keys to reserve up front
        key_dtype: numpy dtype of the key field (default: object)
        growth: GrowthPolicy used when inserts run out of room
    """

    __slots__ = ("_engine", "__weakref__")

    def __init__(
        self,
        keys: Optional[Iterable] = None,
        *,
        allocator: Optional[Allocator] = None,
        capacity: int = 0,
        key_dtype: Any = object,
        growth: Optional[GrowthPolicy] = None,
    ):
        self._engine = OrderedEngine(
            _set_dtype(key_dtype), allocator=allocator, capacity=capacity, growth=growth
        )
        if keys is not None:
            self.extend(keys)

    @classmethod
    def _wrap(cls, engine: OrderedEngine) -> "IdentitySet":
        self = cls.__new__(cls)
        self._engine = engine
        return self

    @classmethod
    def _from_iterable(cls, keys: Iterable) -> "IdentitySet":
        return cls(keys)

    @classmethod
    def with_capacity(
        cls, capacity: int, allocator: Optional[Allocator] = None, **kwargs: Any
    ) -> "IdentitySet":
        return cls(capacity=capacity, allocator=allocator, **kwargs)

    @classmethod
    def from_array(
        cls,
        keys: Iterable,
        *,
        allocator: Optional[Allocator] = None,
        key_dtype: Any = object,
        growth: Optional[GrowthPolicy] = None,
    ) -> "IdentitySet":
        """
        Build a set from a literal batch of keys.

        Raises:
            DuplicateKey: If the batch contains the same key twice
        """
        engine = OrderedEngine.bulk_from(_set_dtype(key_dtype), _single(keys), allocator, growth)
        return cls._wrap(engine)

    @classmethod
    def from_raw_parts(
        cls,
        array: np.ndarray,
        length: int,
        capacity: int,
        allocator: Allocator,
        growth: Optional[GrowthPolicy] = None,
    ) -> "IdentitySet":
        """
        Reassemble a set from parts returned by into_raw_parts().

        Unchecked, see IdentityMap.from_raw_parts.
        """
        return cls._wrap(
            OrderedEngine.from_raw_parts(array, length, capacity, allocator, growth)
        )

    def into_raw_parts(self) -> RawParts:
        """Hand the buffer over to the caller; the set is left empty with no capacity."""
        return self._engine.into_raw_parts()

    def _derive(self, keys: Iterable) -> "IdentitySet":
        # keys arrive sorted and unique from a merge
        engine = OrderedEngine.bulk_from(
            self._engine.dtype, _single(keys), self.allocator, self._engine.growth
        )
        return self._wrap(engine)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def capacity(self) -> int:
        return self._engine.capacity

    @property
    def allocator(self) -> Allocator:
        return self._engine.allocator

    @property
    def key_dtype(self) -> np.dtype:
        return self._engine.dtype.fields["key"][0]

    def is_empty(self) -> bool:
        return len(self._engine) == 0

    def __len__(self) -> int:
        return len(self._engine)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def search(self, key: Any) -> SearchResult:
        return self._engine.search(key)

    def get(self, key: Any) -> Any:
        """The stored key equal to ``key``, or None."""
        found, index = self._engine.search(key)
        return self._engine.key(index) if found else None

    def contains(self, key: Any) -> bool:
        return self._engine.search(key).found

    def __contains__(self, key: Any) -> bool:
        # Keys that cannot be stored or compared are simply not members
        try:
            return self._engine.search(key).found
        except TypeError:
            return False

    def first(self) -> Any:
        return self._engine.key(0) if len(self._engine) else None

    def last(self) -> Any:
        n = len(self._engine)
        return self._engine.key(n - 1) if n else None

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def insert(self, key: Any) -> bool:
        """
        Add ``key``.

        Returns True if an equal key was already present (the stored key is
        kept), False if ``key`` was newly added.
        """
        return self._engine.insert((key,)) is not None

    def add(self, key: Any) -> None:
        self._engine.insert((key,))

    def take(self, key: Any) -> Any:
        """Remove and return the stored key equal to ``key``, or None."""
        entry = self._engine.remove(key)
        return None if entry is None else entry[0]

    def remove(self, key: Any) -> None:
        if self._engine.remove(key) is None:
            raise KeyNotFound(key)

    def discard(self, key: Any) -> bool:
        """Remove ``key`` if present; True if something was removed."""
        return self._engine.remove(key) is not None

    def pop(self) -> Any:
        """Remove and return the largest key."""
        entry = self._engine.pop_last()
        if entry is None:
            raise KeyError("pop from an empty set")
        return entry[0]

    def pop_first(self) -> Any:
        entry = self._engine.pop_first()
        return None if entry is None else entry[0]

    def pop_last(self) -> Any:
        entry = self._engine.pop_last()
        return None if entry is None else entry[0]

    def retain(self, predicate: Callable[[Any], bool]) -> None:
        """Keep only the keys for which ``predicate(key)`` is true."""
        self._engine.retain(lambda entry: predicate(entry[0]))

    def extend(self, keys: Iterable) -> None:
        self._engine.extend(_single(keys))

    def update(self, *others: Iterable) -> None:
        for keys in others:
            self.extend(keys)

    def clear(self) -> None:
        self._engine.clear()

    def reserve(self, additional: int) -> None:
        self._engine.reserve(additional)

    def reserve_exact(self, additional: int) -> None:
        self._engine.reserve_exact(additional)

    def shrink_to(self, min_capacity: int) -> None:
        self._engine.shrink_to(min_capacity)

    def shrink_to_fit(self) -> None:
        self._engine.shrink_to_fit()

    # ------------------------------------------------------------------
    # Iteration
    # ------------------------------------------------------------------

    def __iter__(self) -> Iterator[Any]:
        return EntryIter(self._engine, project_key)

    def __reversed__(self) -> Iterator[Any]:
        return EntryIter(self._engine, project_key, reverse=True)

    def drain(self) -> Drain:
        return Drain(self._engine, operator.itemgetter(0))

    def into_iter(self) -> IntoIter:
        return IntoIter(self._engine, operator.itemgetter(0))

    # ------------------------------------------------------------------
    # Set algebra
    # ------------------------------------------------------------------

    def _sorted(self, other: Iterable) -> "IdentitySet":
        if isinstance(other, IdentitySet):
            return other
        return IdentitySet(other, key_dtype=self.key_dtype)

    def union(self, other: Iterable) -> Iterator[Any]:
        """Keys in either set, in order."""
        return setops.union(self, self._sorted(other))

    def intersection(self, other: Iterable) -> Iterator[Any]:
        """Keys in both sets, in order."""
        return setops.intersection(self, self._sorted(other))

    def difference(self, other: Iterable) -> Iterator[Any]:
        """Keys in this set but not in ``other``, in order."""
        return setops.difference(self, self._sorted(other))

    def symmetric_difference(self, other: Iterable) -> Iterator[Any]:
        """Keys in exactly one of the sets, in order."""
        return setops.symmetric_difference(self, self._sorted(other))

    def __or__(self, other: Any) -> "IdentitySet":
        if not isinstance(other, Set):
            return NotImplemented
        return self._derive(self.union(other))

    def __and__(self, other: Any) -> "IdentitySet":
        if not isinstance(other, Set):
            return NotImplemented
        return self._derive(self.intersection(other))

    def __sub__(self, other: Any) -> "IdentitySet":
        if not isinstance(other, Set):
            return NotImplemented
        return self._derive(self.difference(other))

    def __xor__(self, other: Any) -> "IdentitySet":
        if not isinstance(other, Set):
            return NotImplemented
        return self._derive(self.symmetric_difference(other))

    __ror__ = __or__
    __rand__ = __and__
    __rxor__ = __xor__

    # ------------------------------------------------------------------
    # Interop
    # ------------------------------------------------------------------

    def copy(self) -> "IdentitySet":
        return self._wrap(self._engine.copy())

    __copy__ = copy

    def __reduce__(self):
        return (_rebuild_set, (type(self), self.key_dtype, list(self)))

    def content_hash(self) -> int:
        """Hash of the ordered key sequence."""
        return ordered_hash(self)

    def __repr__(self) -> str:
        return format_entries(type(self).__name__, self, repr, "[", "]")

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, IdentitySet):
            return len(self) == len(other) and entries_equal(self, other)
        return Set.__eq__(self, other)

    __hash__ = None
