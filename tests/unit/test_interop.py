"""Unit tests for comparison, hashing and formatting helpers."""

import pytest

from identmap.interop import compare_entries, entries_equal, format_entries, ordered_hash


@pytest.mark.unit
def test_entries_equal_requires_same_length():
    assert entries_equal([1, 2], [1, 2])
    assert not entries_equal([1, 2], [1, 2, 3])
    assert not entries_equal([1, 2, 3], [1, 2])
    assert entries_equal([], [])


@pytest.mark.unit
def test_entries_equal_handles_none_items():
    """None is an ordinary item, not an end marker"""
    assert entries_equal([None], [None])
    assert not entries_equal([None], [])


@pytest.mark.unit
@pytest.mark.parametrize(
    "left,right,expected",
    [
        ([1, 2], [1, 2], 0),
        ([1, 2], [1, 3], -1),
        ([2], [1, 9], 1),
        ([1], [1, 2], -1),
        ([1, 2], [1], 1),
        ([], [], 0),
    ],
)
def test_compare_entries_is_lexicographic(left, right, expected):
    """A strict prefix compares less"""
    assert compare_entries(left, right) == expected


@pytest.mark.unit
def test_compare_entries_propagates_incomparable_items():
    with pytest.raises(TypeError):
        compare_entries([1], ["a"])


@pytest.mark.unit
def test_ordered_hash_depends_on_contents_only():
    assert ordered_hash(iter([(1, "a"), (2, "b")])) == ordered_hash([(1, "a"), (2, "b")])
    assert ordered_hash([1, 2]) != ordered_hash([2, 1])


@pytest.mark.unit
def test_ordered_hash_rejects_unhashable():
    with pytest.raises(TypeError):
        ordered_hash([[1]])


@pytest.mark.unit
def test_format_entries():
    text = format_entries("Thing", [(1, "a"), (2, "b")], lambda e: f"{e[0]!r}: {e[1]!r}", "{", "}")

    assert text == "Thing({1: 'a', 2: 'b'})"
    assert format_entries("Thing", [], repr, "[", "]") == "Thing([])"
