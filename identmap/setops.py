"""
Set algebra over sorted, duplicate-free key streams.

Each operation is a single linear merge of the two inputs, and yields its
result in sorted order without duplicates, so the output can be written
straight into a new buffer without searching.
"""

from typing import Any, Iterable, Iterator

_MISSING = object()


def _merge(
    left: Iterable, right: Iterable, left_only: bool, both: bool, right_only: bool
) -> Iterator[Any]:
    left = iter(left)
    right = iter(right)
    a = next(left, _MISSING)
    b = next(right, _MISSING)
    while a is not _MISSING and b is not _MISSING:
        if a < b:
            if left_only:
                yield a
            a = next(left, _MISSING)
        elif b < a:
            if right_only:
                yield b
            b = next(right, _MISSING)
        else:
            if both:
                yield a
            a = next(left, _MISSING)
            b = next(right, _MISSING)
    if left_only:
        while a is not _MISSING:
            yield a
            a = next(left, _MISSING)
    if right_only:
        while b is not _MISSING:
            yield b
            b = next(right, _MISSING)


def union(left: Iterable, right: Iterable) -> Iterator[Any]:
    """Keys in either input; equal keys are taken from ``left``."""
    return _merge(left, right, True, True, True)


def intersection(left: Iterable, right: Iterable) -> Iterator[Any]:
    """Keys present in both inputs, taken from ``left``."""
    return _merge(left, right, False, True, False)


def difference(left: Iterable, right: Iterable) -> Iterator[Any]:
    """Keys of ``left`` that are not in ``right``."""
    return _merge(left, right, True, False, False)


def symmetric_difference(left: Iterable, right: Iterable) -> Iterator[Any]:
    """Keys in exactly one of the inputs."""
    return _merge(left, right, True, False, True)
