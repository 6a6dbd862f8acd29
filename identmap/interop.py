"""
Comparison, hashing and formatting over ordered traversals.

These helpers only ever see the sequence of live entries, in key order.
Spare capacity and the allocator never take part, so two collections with
the same contents compare and hash equal however they were built.
"""

from itertools import zip_longest
from typing import Any, Callable, Iterable

_MISSING = object()


def entries_equal(left: Iterable, right: Iterable) -> bool:
    """True when both traversals yield pairwise equal items and end together."""
    for a, b in zip_longest(left, right, fillvalue=_MISSING):
        if a is _MISSING or b is _MISSING or not a == b:
            return False
    return True


def compare_entries(left: Iterable, right: Iterable) -> int:
    """
    Lexicographic three-way comparison of two traversals.

    Returns -1, 0 or 1. A traversal that is a strict prefix of the other
    compares less.
    """
    for a, b in zip_longest(left, right, fillvalue=_MISSING):
        if a is _MISSING:
            return -1
        if b is _MISSING:
            return 1
        if a == b:
            continue
        return -1 if a < b else 1
    return 0


def ordered_hash(entries: Iterable) -> int:
    """Hash of the whole ordered sequence; raises TypeError for unhashable items."""
    return hash(tuple(entries))


def format_entries(
    name: str, entries: Iterable, render: Callable[[Any], str], open_: str, close: str
) -> str:
    body = ", ".join(render(entry) for entry in entries)
    return f"{name}({open_}{body}{close})"
