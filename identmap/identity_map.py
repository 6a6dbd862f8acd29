"""
IdentityMap - ordered map over a sorted contiguous buffer
=========================================================

Keys are compared by their own value (``<`` and ``==``), never hashed and
never compared by object identity. Entries live in one sorted numpy buffer,
so lookups are binary searches and iteration is always in key order.

Example:
    m = IdentityMap()
    m.insert(3, "c")
    m.insert(1, "a")
    m[2] = "b"
    list(m.items())      # [(1, 'a'), (2, 'b'), (3, 'c')]
    m.search(2)          # SearchResult(found=True, index=1)
    m.remove(2)          # 'b'

Construction from a batch:
    IdentityMap(pairs)             # streaming: a later pair overwrites an earlier one
    IdentityMap.from_array(pairs)  # one-shot: equal keys raise DuplicateKey

Keys must be mutually comparable; comparing incompatible keys raises
TypeError before the map is changed, while ``in`` just answers False.
Typed keys must fit their dtype exactly. Float keys must not be NaN.
"""

import operator
from collections.abc import Mapping, MutableMapping
from typing import Any, Callable, Iterator, Optional, Tuple

import numpy as np

from .alloc import Allocator
from .buffer import GrowthPolicy, RawParts
from .engine import OrderedEngine, SearchResult, entry_dtype
from .errors import KeyNotFound
from .interop import compare_entries, entries_equal, format_entries, ordered_hash
from .iterators import (
    Drain,
    EntryIter,
    IntoIter,
    ItemsView,
    KeysView,
    ValueSlot,
    ValuesView,
    project_key,
    project_slot,
)

_MISSING = object()


def _map_dtype(key_dtype: Any, value_dtype: Any) -> np.dtype:
    return entry_dtype(("key", key_dtype), ("value", value_dtype))


def _rebuild_map(cls, key_dtype, value_dtype, entries):
    return cls.from_array(entries, key_dtype=key_dtype, value_dtype=value_dtype)


def _render_pair(entry: Tuple[Any, Any]) -> str:
    return f"{entry[0]!r}: {entry[1]!r}"


class IdentityMap(MutableMapping):
    """
    Ordered map storing (key, value) entries in one sorted buffer.

    Args:
        entries: Optional mapping or iterable of (key, value) pairs
        allocator: Allocator for the buffer (default: get_default_allocator())
        capacity: Entries to reserve up front
        key_dtype: numpy dtype of the key field (default: object)
        value_dtype: numpy dtype of the value field (default: object)
        growth: GrowthPolicy used when inserts run out of room
    """

    __slots__ = ("_engine", "__weakref__")

    def __init__(
        self,
        entries: Any = None,
        *,
        allocator: Optional[Allocator] = None,
        capacity: int = 0,
        key_dtype: Any = object,
        value_dtype: Any = object,
        growth: Optional[GrowthPolicy] = None,
    ):
        self._engine = OrderedEngine(
            _map_dtype(key_dtype, value_dtype),
            allocator=allocator,
            capacity=capacity,
            growth=growth,
        )
        if entries is not None:
            self.extend(entries)

    @classmethod
    def _wrap(cls, engine: OrderedEngine) -> "IdentityMap":
        self = cls.__new__(cls)
        self._engine = engine
        return self

    @classmethod
    def with_capacity(
        cls, capacity: int, allocator: Optional[Allocator] = None, **kwargs: Any
    ) -> "IdentityMap":
        """Create an empty map with room for ``capacity`` entries."""
        return cls(capacity=capacity, allocator=allocator, **kwargs)

    @classmethod
    def from_array(
        cls,
        pairs: Any,
        *,
        allocator: Optional[Allocator] = None,
        key_dtype: Any = object,
        value_dtype: Any = object,
        growth: Optional[GrowthPolicy] = None,
    ) -> "IdentityMap":
        """
        Build a map from a literal batch of pairs.

        Unlike the constructor, which lets a later pair win, a batch containing
        the same key twice is rejected and no map is produced.

        Raises:
            DuplicateKey: If two pairs share a key
        """
        if isinstance(pairs, Mapping):
            pairs = pairs.items()
        engine = OrderedEngine.bulk_from(
            _map_dtype(key_dtype, value_dtype), pairs, allocator, growth
        )
        return cls._wrap(engine)

    @classmethod
    def from_raw_parts(
        cls,
        array: np.ndarray,
        length: int,
        capacity: int,
        allocator: Allocator,
        growth: Optional[GrowthPolicy] = None,
    ) -> "IdentityMap":
        """
        Reassemble a map from parts returned by into_raw_parts().

        Unchecked: the caller guarantees that ``array`` has a (key, value) entry
        dtype, came from ``allocator`` with ``capacity`` entries, holds
        ``length`` live entries sorted by key without duplicates, and is owned
        by nobody else. Otherwise behaviour is undefined.
        """
        return cls._wrap(
            OrderedEngine.from_raw_parts(array, length, capacity, allocator, growth)
        )

    def into_raw_parts(self) -> RawParts:
        """
        Hand the buffer over to the caller as (array, length, capacity, allocator).

        The map is left empty with no capacity and will not release the array.
        """
        return self._engine.into_raw_parts()

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

    @property
    def value_dtype(self) -> np.dtype:
        return self._engine.dtype.fields["value"][0]

    def is_empty(self) -> bool:
        return len(self._engine) == 0

    def __len__(self) -> int:
        return len(self._engine)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def search(self, key: Any) -> SearchResult:
        """Position of ``key``, or where it would be inserted."""
        return self._engine.search(key)

    def __getitem__(self, key: Any) -> Any:
        found, index = self._engine.search(key)
        if not found:
            raise KeyNotFound(key)
        return self._engine.field(index, 1)

    def get(self, key: Any, default: Any = None) -> Any:
        found, index = self._engine.search(key)
        return self._engine.field(index, 1) if found else default

    def get_key_value(self, key: Any) -> Optional[Tuple[Any, Any]]:
        """The stored (key, value) pair for ``key``, or None."""
        found, index = self._engine.search(key)
        return self._engine.entry(index) if found else None

    def get_mut(self, key: Any) -> Optional[ValueSlot]:
        """A writable slot on the value for ``key``, or None if absent."""
        found, index = self._engine.search(key)
        return ValueSlot(self._engine, index) if found else None

    def contains_key(self, key: Any) -> bool:
        return self._engine.search(key).found

    def __contains__(self, key: Any) -> bool:
        # Keys that cannot be stored or compared are simply not members
        try:
            return self._engine.search(key).found
        except TypeError:
            return False

    def first_key_value(self) -> Optional[Tuple[Any, Any]]:
        return self._engine.entry(0) if len(self._engine) else None

    def last_key_value(self) -> Optional[Tuple[Any, Any]]:
        n = len(self._engine)
        return self._engine.entry(n - 1) if n else None

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def insert(self, key: Any, value: Any) -> Any:
        """
        Insert ``value`` under ``key``.

        Returns the previous value if the key was already present (the stored
        key is kept), otherwise None.
        """
        previous = self._engine.insert((key, value))
        return None if previous is None else previous[1]

    def replace(self, key: Any, value: Any) -> Optional[Tuple[Any, Any]]:
        """
        Swap both the stored key and its value for an existing key.

        Returns the previous (key, value), or None (and inserts nothing) if
        the key is absent.
        """
        if not self._engine.search(key).found:
            return None
        return self._engine.insert((key, value), replace_key=True)

    def __setitem__(self, key: Any, value: Any) -> None:
        self._engine.insert((key, value))

    def __delitem__(self, key: Any) -> None:
        if self._engine.remove(key) is None:
            raise KeyNotFound(key)

    def remove(self, key: Any, default: Any = None) -> Any:
        """Remove ``key`` and return its value, or ``default`` if absent."""
        entry = self._engine.remove(key)
        return default if entry is None else entry[1]

    def remove_entry(self, key: Any) -> Optional[Tuple[Any, Any]]:
        """Remove ``key`` and return the stored (key, value), or None."""
        return self._engine.remove(key)

    def pop(self, key: Any, default: Any = _MISSING) -> Any:
        entry = self._engine.remove(key)
        if entry is not None:
            return entry[1]
        if default is _MISSING:
            raise KeyNotFound(key)
        return default

    def popitem(self) -> Tuple[Any, Any]:
        """Remove and return the entry with the largest key."""
        entry = self._engine.pop_last()
        if entry is None:
            raise KeyError("popitem(): map is empty")
        return entry

    def pop_first(self) -> Optional[Tuple[Any, Any]]:
        return self._engine.pop_first()

    def pop_last(self) -> Optional[Tuple[Any, Any]]:
        return self._engine.pop_last()

    def retain(self, predicate: Callable[[Any, Any], bool]) -> None:
        """Keep only the entries for which ``predicate(key, value)`` is true."""
        self._engine.retain(lambda entry: predicate(*entry))

    def extend(self, entries: Any) -> None:
        """Insert every pair; later pairs overwrite earlier ones with equal keys."""
        if isinstance(entries, Mapping):
            entries = entries.items()
        self._engine.extend(entries)

    def append(self, other: "IdentityMap") -> None:
        """
        Move every entry of ``other`` into this map, overwriting equal keys.

        ``other`` is left empty.
        """
        if other is self or not other:
            return
        if self.is_empty() and self._engine.dtype == other._engine.dtype:
            self._engine, other._engine = other._engine, self._engine
            self._engine.invalidate()
            other._engine.invalidate()
            return
        self._engine.extend(other.drain())

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

    def _cursor(self, project: Callable, reverse: bool = False) -> EntryIter:
        return EntryIter(self._engine, project, reverse)

    def __iter__(self) -> Iterator[Any]:
        return self._cursor(project_key)

    def __reversed__(self) -> Iterator[Any]:
        return self._cursor(project_key, reverse=True)

    def keys(self) -> KeysView:
        return KeysView(self)

    def values(self) -> ValuesView:
        return ValuesView(self)

    def items(self) -> ItemsView:
        return ItemsView(self)

    def values_mut(self) -> EntryIter:
        """Writable slots on every value, in key order."""
        return self._cursor(project_slot)

    def iter_mut(self) -> Iterator[Tuple[Any, ValueSlot]]:
        """(key, slot) pairs in key order."""
        return ((slot.key, slot) for slot in self._cursor(project_slot))

    def drain(self) -> Drain:
        """Remove every entry; the returned iterator yields them in key order."""
        return Drain(self._engine)

    def into_iter(self) -> IntoIter:
        """Consume the map's buffer, yielding (key, value) pairs."""
        return IntoIter(self._engine)

    def into_keys(self) -> IntoIter:
        return IntoIter(self._engine, operator.itemgetter(0))

    def into_values(self) -> IntoIter:
        return IntoIter(self._engine, operator.itemgetter(1))

    # ------------------------------------------------------------------
    # Interop
    # ------------------------------------------------------------------

    def copy(self) -> "IdentityMap":
        """Shallow copy into a buffer sized to the current length."""
        return self._wrap(self._engine.copy())

    __copy__ = copy

    def __reduce__(self):
        return (
            _rebuild_map,
            (type(self), self.key_dtype, self.value_dtype, list(self.items())),
        )

    def to_dict(self) -> dict:
        return dict(self.items())

    def content_hash(self) -> int:
        """Hash of the ordered (key, value) sequence."""
        return ordered_hash(self.items())

    def __repr__(self) -> str:
        return format_entries(type(self).__name__, self.items(), _render_pair, "{", "}")

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, IdentityMap):
            return len(self) == len(other) and entries_equal(self.items(), other.items())
        if isinstance(other, Mapping):
            if len(self) != len(other):
                return False
            for key, value in self.items():
                try:
                    if not other[key] == value:
                        return False
                except KeyError:
                    return False
            return True
        return NotImplemented

    __hash__ = None

    def __lt__(self, other: Any) -> bool:
        if not isinstance(other, IdentityMap):
            return NotImplemented
        return compare_entries(self.items(), other.items()) < 0

    def __le__(self, other: Any) -> bool:
        if not isinstance(other, IdentityMap):
            return NotImplemented
        return compare_entries(self.items(), other.items()) <= 0

    def __gt__(self, other: Any) -> bool:
        if not isinstance(other, IdentityMap):
            return NotImplemented
        return compare_entries(self.items(), other.items()) > 0

    def __ge__(self, other: Any) -> bool:
        if not isinstance(other, IdentityMap):
            return NotImplemented
        return compare_entries(self.items(), other.items()) >= 0
