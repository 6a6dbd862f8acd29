"""
Iterators over ordered collections.

All borrowing iterators (EntryIter, views, ValueSlot) remember the engine's
version when they are created. Any structural mutation of the collection
(insert of a new key, remove, clear, reallocation) bumps the version, and the
next use of a stale iterator raises RuntimeError, the same way dict reports
"changed size during iteration". Updating a value in place is not
structural.

Consuming iterators (Drain, IntoIter) take the entries out of the
collection up front, so they cannot be invalidated.
"""

from collections import abc, deque
from typing import Any, Callable, Iterator

from .alloc import clear_objects
from .buffer import RawBuffer
from .engine import Entry, OrderedEngine, unbox


def project_entry(engine: OrderedEngine, index: int) -> Entry:
    return engine.entry(index)


def project_key(engine: OrderedEngine, index: int) -> Any:
    return engine.key(index)


def project_value(engine: OrderedEngine, index: int) -> Any:
    return engine.field(index, 1)


def project_slot(engine: OrderedEngine, index: int) -> "ValueSlot":
    return ValueSlot(engine, index)


def _stale(kind: str) -> RuntimeError:
    return RuntimeError(f"collection changed structure while {kind} was in use")


class EntryIter:
    """
    Double-ended cursor over the live entries of an engine.

    Walks front-to-back, or back-to-front when ``reverse`` is set;
    ``reversed()`` on a partially consumed iterator walks the remaining range
    the other way.
    """

    __slots__ = ("_engine", "_version", "_front", "_back", "_project", "_reverse")

    def __init__(
        self,
        engine: OrderedEngine,
        project: Callable[[OrderedEngine, int], Any] = project_entry,
        reverse: bool = False,
    ):
        self._engine = engine
        self._version = engine.version
        self._front = 0
        self._back = len(engine)
        self._project = project
        self._reverse = reverse

    def __iter__(self) -> "EntryIter":
        return self

    def __next__(self) -> Any:
        if self._engine.version != self._version:
            raise _stale("an iterator")
        if self._front >= self._back:
            raise StopIteration
        if self._reverse:
            self._back -= 1
            index = self._back
        else:
            index = self._front
            self._front += 1
        return self._project(self._engine, index)

    def __reversed__(self) -> "EntryIter":
        other = EntryIter(self._engine, self._project, not self._reverse)
        other._version = self._version
        other._front = self._front
        other._back = self._back
        return other

    def __length_hint__(self) -> int:
        return self._back - self._front


class ValueSlot:
    """
    Borrowed, writable handle on one live entry's value.

    Valid until the next structural mutation of its collection.
    """

    __slots__ = ("_engine", "_index", "_version")

    def __init__(self, engine: OrderedEngine, index: int):
        self._engine = engine
        self._index = index
        self._version = engine.version

    def _check(self) -> None:
        if self._engine.version != self._version:
            raise _stale("a value slot")

    @property
    def key(self) -> Any:
        self._check()
        return self._engine.key(self._index)

    @property
    def value(self) -> Any:
        self._check()
        return self._engine.field(self._index, 1)

    @value.setter
    def value(self, value: Any) -> None:
        self._check()
        self._engine.set_field(self._index, 1, value)

    def __repr__(self) -> str:
        if self._engine.version != self._version:
            return "ValueSlot(<stale>)"
        return f"ValueSlot({self.key!r}: {self.value!r})"


class KeysView(abc.KeysView):
    """Sorted, reversible view of a map's keys."""

    __slots__ = ()

    def __iter__(self) -> Iterator:
        return self._mapping._cursor(project_key)

    def __reversed__(self) -> Iterator:
        return self._mapping._cursor(project_key, reverse=True)


class ValuesView(abc.ValuesView):
    """Values of a map in key order, reversible."""

    __slots__ = ()

    def __iter__(self) -> Iterator:
        return self._mapping._cursor(project_value)

    def __reversed__(self) -> Iterator:
        return self._mapping._cursor(project_value, reverse=True)


class ItemsView(abc.ItemsView):
    """(key, value) pairs of a map in key order, reversible."""

    __slots__ = ()

    def __iter__(self) -> Iterator:
        return self._mapping._cursor(project_entry)

    def __reversed__(self) -> Iterator:
        return self._mapping._cursor(project_entry, reverse=True)


class Drain:
    """
    Iterator over entries removed from a collection.

    The collection is emptied as soon as the Drain is created, whether or
    not the Drain is consumed; its capacity is kept for reuse.
    """

    __slots__ = ("_entries", "_project")

    def __init__(self, engine: OrderedEngine, project: Callable[[Entry], Any] = tuple):
        self._entries = deque(engine.take_all())
        self._project = project

    def __iter__(self) -> "Drain":
        return self

    def __next__(self) -> Any:
        if not self._entries:
            raise StopIteration
        return self._project(self._entries.popleft())

    def __reversed__(self) -> Iterator:
        while self._entries:
            yield self._project(self._entries.pop())

    def __len__(self) -> int:
        return len(self._entries)


class IntoIter:
    """
    Owning iterator: takes a collection's buffer and yields its entries.

    The source collection is left empty with no capacity. Consumed slots drop
    their references immediately, and the buffer goes back to its allocator
    once the iterator is exhausted or closed (or garbage collected).
    """

    __slots__ = ("_buffer", "_fields", "_front", "_back", "_project")

    def __init__(self, engine: OrderedEngine, project: Callable[[Entry], Any] = tuple):
        array, length, capacity, allocator = engine.into_raw_parts()
        self._buffer = RawBuffer.from_parts(array, capacity, allocator)
        self._fields = tuple(self._buffer.array[name] for name in array.dtype.names)
        self._front = 0
        self._back = length
        self._project = project

    def _take(self, index: int) -> Any:
        entry = tuple(unbox(view[index]) for view in self._fields)
        clear_objects(self._buffer.array, index, index + 1)
        return self._project(entry)

    def __iter__(self) -> "IntoIter":
        return self

    def __next__(self) -> Any:
        if self._front >= self._back:
            self.close()
            raise StopIteration
        index = self._front
        self._front += 1
        return self._take(index)

    def next_back(self) -> Any:
        """Take the entry with the largest remaining key."""
        if self._front >= self._back:
            self.close()
            raise StopIteration
        self._back -= 1
        return self._take(self._back)

    def __reversed__(self) -> Iterator:
        while self._front < self._back:
            yield self.next_back()
        self.close()

    def __length_hint__(self) -> int:
        return self._back - self._front

    def close(self) -> None:
        """Drop the remaining entries and release the buffer."""
        self._front = self._back
        self._fields = ()
        self._buffer.release()
