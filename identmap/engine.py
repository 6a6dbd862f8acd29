"""
Ordered Engine - sorted, duplicate-free entries in one contiguous buffer
========================================================================

The engine keeps ``length`` live entries at the front of a RawBuffer, sorted
by key with no two keys equal. Every façade operation (map or set) turns
into one engine call.

Invariants after every public operation:
- Sortedness: keys in [0, length) are strictly increasing
- Uniqueness: no two live keys compare equal
- Initialization: [0, length) are live; [length, capacity) hold no references

Entries are tuples whose first item is the key. The entry dtype is a numpy
structured dtype whose first field is named ``key``; the map adds a
``value`` field, the set has the key alone.

Complexity:
- search: O(log n) comparisons
- insert/remove: O(log n) search plus an O(n) shift of the tail
- growth: amortized O(1) per insert (geometric, see GrowthPolicy)
"""

import operator
from bisect import bisect_left
from typing import Any, Callable, Iterable, List, NamedTuple, Optional, Tuple

import numpy as np

from .alloc import Allocator, clear_objects
from .buffer import DEFAULT_GROWTH, GrowthPolicy, RawBuffer, RawParts
from .errors import DuplicateKey

Entry = Tuple[Any, ...]


class SearchResult(NamedTuple):
    """
    Outcome of a binary search.

    found=True: ``index`` is the position of the equal key.
    found=False: ``index`` is where the key would have to be inserted.
    """

    found: bool
    index: int


def unbox(value: Any) -> Any:
    """Turn numpy scalars read from typed fields back into Python values."""
    if isinstance(value, np.generic):
        return value.item()
    return value


def _same_value(stored: Any, value: Any) -> bool:
    """True when ``stored`` reads back equal to ``value`` (NaN matches NaN)."""
    equal = stored == value
    if isinstance(equal, np.ndarray):
        return bool(equal.all())
    return bool(equal) or (stored != stored and value != value)


def entry_dtype(*fields: Tuple[str, Any]) -> np.dtype:
    """Build a structured entry dtype, e.g. entry_dtype(("key", object), ("value", "f8"))."""
    return np.dtype([(name, np.dtype(kind)) for name, kind in fields])


class OrderedEngine:
    """
    Sorted-buffer storage engine shared by IdentityMap and IdentitySet.

    Usage:
        engine = OrderedEngine(entry_dtype(("key", object), ("value", object)))
        engine.insert((3, "c"))
        engine.insert((1, "a"))
        engine.search(3)         # SearchResult(found=True, index=1)
        engine.remove(1)         # (1, "a")
    """

    __slots__ = (
        "_buffer",
        "_length",
        "_growth",
        "_version",
        "_fields",
        "_casts",
        "_object_keys",
    )

    def __init__(
        self,
        dtype: Any,
        allocator: Optional[Allocator] = None,
        capacity: int = 0,
        growth: Optional[GrowthPolicy] = None,
    ):
        buffer = RawBuffer.with_capacity(dtype, capacity, allocator)
        self._adopt(buffer, 0, growth)

    def _adopt(
        self, buffer: RawBuffer, length: int, growth: Optional[GrowthPolicy]
    ) -> None:
        dtype = buffer.dtype
        if dtype.names is None or dtype.names[0] != "key":
            raise ValueError(f"entry dtype must have 'key' as its first field, got {dtype}")
        self._buffer = buffer
        self._length = length
        self._growth = growth if growth is not None else DEFAULT_GROWTH
        self._version = 0
        # None marks an object field, stored as given.
        self._casts = tuple(
            None if dtype.fields[name][0].hasobject else dtype.fields[name][0]
            for name in dtype.names
        )
        self._object_keys = self._casts[0] is None
        self._refresh()

    def _refresh(self) -> None:
        array = self._buffer.array
        self._fields = tuple(array[name] for name in array.dtype.names)

    # ------------------------------------------------------------------
    # Raw parts
    # ------------------------------------------------------------------

    @classmethod
    def from_raw_parts(
        cls,
        array: np.ndarray,
        length: int,
        capacity: int,
        allocator: Allocator,
        growth: Optional[GrowthPolicy] = None,
    ) -> "OrderedEngine":
        """
        Reassemble an engine from parts produced by into_raw_parts().

        Nothing is checked. The caller guarantees that ``array`` came from
        ``allocator`` with exactly ``capacity`` entries, that the first
        ``length`` entries are sorted by key without duplicates, and that no
        one else owns the array. Breaking any of these leaves every later
        operation undefined.
        """
        engine = cls.__new__(cls)
        engine._adopt(RawBuffer.from_parts(array, capacity, allocator), length, growth)
        return engine

    def into_raw_parts(self) -> RawParts:
        """
        Disassemble into (array, length, capacity, allocator).

        Ownership of the array passes to the caller: it is no longer returned to
        the allocator by this engine. The engine is left empty with no capacity.
        """
        length = self._length
        array, capacity, allocator = self._buffer.into_parts()
        self._length = 0
        self._refresh()
        self._version += 1
        return RawParts(array, length, capacity, allocator)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def dtype(self) -> np.dtype:
        return self._buffer.dtype

    @property
    def allocator(self) -> Allocator:
        return self._buffer.allocator

    @property
    def growth(self) -> GrowthPolicy:
        return self._growth

    @property
    def capacity(self) -> int:
        return self._buffer.capacity

    @property
    def version(self) -> int:
        """Counter bumped by every structural mutation."""
        return self._version

    def invalidate(self) -> None:
        """Bump the version so iterators taken so far stop working."""
        self._version += 1

    def __len__(self) -> int:
        return self._length

    def key(self, index: int) -> Any:
        return unbox(self._fields[0][index])

    def field(self, index: int, position: int) -> Any:
        return unbox(self._fields[position][index])

    def entry(self, index: int) -> Entry:
        return tuple(unbox(view[index]) for view in self._fields)

    def set_field(self, index: int, position: int, value: Any) -> None:
        """Overwrite a non-key field in place. Structure is untouched."""
        if position == 0:
            raise ValueError("keys cannot be modified in place")
        self._fields[position][index] = self._cast(position, value)

    def _cast(self, position: int, value: Any) -> Any:
        dtype = self._casts[position]
        if dtype is None:
            return value
        try:
            cast = np.asarray(value).astype(dtype, casting="same_kind")[()]
        except (TypeError, ValueError) as e:
            raise TypeError(f"cannot store {value!r} in a {dtype} field") from e
        # same_kind still wraps integers and truncates strings
        if not _same_value(unbox(cast), value):
            raise TypeError(f"{value!r} does not fit in a {dtype} field")
        return cast

    def _cast_entry(self, entry: Iterable) -> Entry:
        entry = tuple(entry)
        if len(entry) != len(self._casts):
            raise ValueError(
                f"expected entries of {len(self._casts)} field(s), got {len(entry)}"
            )
        return tuple(self._cast(i, item) for i, item in enumerate(entry))

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def search(self, key: Any) -> SearchResult:
        """Binary search over the live keys."""
        return self._search(self._cast(0, key))

    def _search(self, key: Any) -> SearchResult:
        keys = self._fields[0]
        n = self._length
        if self._object_keys:
            index = bisect_left(keys, key, 0, n)
        else:
            index = int(np.searchsorted(keys[:n], key))
        return SearchResult(index < n and bool(keys[index] == key), index)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def insert(self, entry: Iterable, replace_key: bool = False) -> Optional[Entry]:
        """
        Insert an entry, or update the entry with an equal key.

        If the key is present its non-key fields are overwritten in place (the
        stored key too when ``replace_key``) and the previous entry is
        returned; length and order are unchanged. Otherwise the entry is
        inserted at its sorted position, growing the buffer first if it is
        full, and None is returned.
        """
        entry = self._cast_entry(entry)
        found, index = self._search(entry[0])
        if found:
            previous = self.entry(index)
            start = 0 if replace_key else 1
            for view, item in zip(self._fields[start:], entry[start:]):
                view[index] = item
            return previous
        self._insert_at(index, entry)
        return None

    def _insert_at(self, index: int, entry: Entry) -> None:
        n = self._length
        if n == self._buffer.capacity:
            self._grow_to(n + 1)
        data = self._buffer.array
        if index < n:
            data[index + 1 : n + 1] = data[index:n]
        for view, item in zip(self._fields, entry):
            view[index] = item
        self._length = n + 1
        self._version += 1

    def remove(self, key: Any) -> Optional[Entry]:
        """Remove the entry with ``key`` and return it, or None if absent."""
        found, index = self.search(key)
        if not found:
            return None
        return self.remove_at(index)

    def remove_at(self, index: int) -> Entry:
        """Remove the live entry at ``index`` and return it."""
        n = self._length
        if not 0 <= index < n:
            raise IndexError(f"index {index} out of range for length {n}")
        entry = self.entry(index)
        data = self._buffer.array
        data[index : n - 1] = data[index + 1 : n]
        clear_objects(data, n - 1, n)
        self._length = n - 1
        self._version += 1
        return entry

    def pop_first(self) -> Optional[Entry]:
        return self.remove_at(0) if self._length else None

    def pop_last(self) -> Optional[Entry]:
        return self.remove_at(self._length - 1) if self._length else None

    def retain(self, predicate: Callable[[Entry], bool]) -> None:
        """
        Keep only the entries for which ``predicate(entry)`` is true.

        The predicate sees every entry before anything moves, so an exception
        from it leaves the collection as it was.
        """
        n = self._length
        keep = np.fromiter(
            (bool(predicate(self.entry(i))) for i in range(n)), dtype=bool, count=n
        )
        kept = int(keep.sum())
        if kept == n:
            return
        data = self._buffer.array
        data[:kept] = data[:n][keep]
        clear_objects(data, kept, n)
        self._length = kept
        self._version += 1

    def clear(self) -> None:
        """Drop every live entry. Capacity is kept."""
        clear_objects(self._buffer.array, 0, self._length)
        self._length = 0
        self._version += 1

    def take_all(self) -> List[Entry]:
        """Remove and return every live entry in key order."""
        entries = [self.entry(i) for i in range(self._length)]
        self.clear()
        return entries

    def extend(self, entries: Iterable) -> None:
        """Insert entries one by one; a later entry overwrites an earlier equal key."""
        hint = operator.length_hint(entries)
        if hint:
            self.reserve(hint)
        for entry in entries:
            self.insert(entry)

    # ------------------------------------------------------------------
    # Capacity
    # ------------------------------------------------------------------

    def _grow_to(self, required: int) -> None:
        self._buffer.grow(self._growth.next_capacity(self._buffer.capacity, required))
        self._refresh()
        self._version += 1

    def reserve(self, additional: int) -> None:
        """Make room for at least ``additional`` more entries (amortized growth)."""
        if additional < 0:
            raise ValueError(f"additional must be non-negative, got {additional}")
        required = self._length + additional
        if required > self._buffer.capacity:
            self._grow_to(required)

    def reserve_exact(self, additional: int) -> None:
        """Make room for exactly ``additional`` more entries if there is not enough."""
        if additional < 0:
            raise ValueError(f"additional must be non-negative, got {additional}")
        required = self._length + additional
        if required > self._buffer.capacity:
            self._buffer.grow(required)
            self._refresh()
            self._version += 1

    def shrink_to(self, min_capacity: int) -> None:
        """Reduce capacity to ``max(length, min_capacity)`` if that is smaller."""
        target = max(self._length, min_capacity)
        if target < self._buffer.capacity:
            self._buffer.shrink(target)
            self._refresh()
            self._version += 1

    def shrink_to_fit(self) -> None:
        self.shrink_to(self._length)

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def bulk_from(
        cls,
        dtype: Any,
        entries: Iterable,
        allocator: Optional[Allocator] = None,
        growth: Optional[GrowthPolicy] = None,
    ) -> "OrderedEngine":
        """
        Build an engine from a batch of entries, rejecting duplicate keys.

        The batch is sorted by key and scanned for neighbours with equal keys
        before anything is allocated.

        Raises:
            DuplicateKey: If two entries share a key
        """
        engine = cls(dtype, allocator=allocator, growth=growth)
        items = [engine._cast_entry(entry) for entry in entries]
        items.sort(key=operator.itemgetter(0))
        for previous, current in zip(items, items[1:]):
            if previous[0] == current[0]:
                raise DuplicateKey(unbox(current[0]))
        if items:
            engine.reserve_exact(len(items))
            for index, entry in enumerate(items):
                for view, item in zip(engine._fields, entry):
                    view[index] = item
            engine._length = len(items)
        return engine

    def copy(self) -> "OrderedEngine":
        """Clone the live entries into a new buffer from the same allocator."""
        n = self._length
        clone = type(self)(self.dtype, allocator=self.allocator, capacity=n, growth=self._growth)
        clone._buffer.array[:n] = self._buffer.array[:n]
        clone._length = n
        return clone

    def __repr__(self) -> str:
        return (
            f"OrderedEngine(length={self._length}, capacity={self.capacity}, "
            f"dtype={self.dtype})"
        )
