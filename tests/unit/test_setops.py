"""Unit tests for the sorted-merge set algebra."""

import pytest

from identmap.setops import difference, intersection, symmetric_difference, union

LEFT = [1, 3, 5, 7]
RIGHT = [2, 3, 6, 7, 9]


@pytest.mark.unit
@pytest.mark.set
@pytest.mark.parametrize(
    "operation,expected",
    [
        (union, [1, 2, 3, 5, 6, 7, 9]),
        (intersection, [3, 7]),
        (difference, [1, 5]),
        (symmetric_difference, [1, 2, 5, 6, 9]),
    ],
)
def test_merge_results_are_sorted_and_unique(operation, expected):
    """Every operation is a single merge producing sorted output"""
    assert list(operation(LEFT, RIGHT)) == expected


@pytest.mark.unit
@pytest.mark.set
def test_equal_keys_come_from_left():
    """When both sides hold an equal key, the left one is kept"""
    result = list(union([1.0, 2.0], [1, 3]))

    assert result == [1, 2, 3]
    assert type(result[0]) is float
    assert type(list(intersection([2.0], [2]))[0]) is float


@pytest.mark.unit
@pytest.mark.set
def test_empty_inputs():
    assert list(union([], [1, 2])) == [1, 2]
    assert list(intersection([1], [])) == []
    assert list(difference([], [1])) == []
    assert list(symmetric_difference([1], [])) == [1]


@pytest.mark.unit
@pytest.mark.set
def test_merge_is_lazy():
    """Results are produced on demand from the inputs"""
    consumed = []

    def tracked(values):
        for value in values:
            consumed.append(value)
            yield value

    result = union(tracked([1, 4]), tracked([2, 3]))
    assert consumed == []

    assert next(result) == 1
    assert consumed == [1, 2]
