"""
OrderedEngine Test Suite
========================

Tests verify the engine's structural invariants and operations:

- Sortedness: live keys strictly increasing after every operation
- Uniqueness: one live entry per key
- Initialization: vacated slots hold no references
- Atomicity: a failed operation leaves the engine as it was
"""

import numpy as np
import pytest

from identmap import (
    AllocationFailure,
    BoundedAllocator,
    DuplicateKey,
    GrowthPolicy,
    OrderedEngine,
    SearchResult,
)
from identmap.engine import entry_dtype, unbox

PAIR = entry_dtype(("key", object), ("value", object))


def live(engine):
    return [engine.entry(i) for i in range(len(engine))]


def build(*entries, **kwargs):
    engine = OrderedEngine(PAIR, **kwargs)
    for entry in entries:
        engine.insert(entry)
    return engine


# ============================================================================
# Search
# ============================================================================


@pytest.mark.unit
@pytest.mark.engine
class TestSearch:
    def test_empty_engine_reports_insertion_point_zero(self):
        assert OrderedEngine(PAIR).search(5) == SearchResult(False, 0)

    def test_found_key_reports_its_index(self):
        engine = build((1, "a"), (3, "c"), (5, "e"))

        assert engine.search(3) == SearchResult(True, 1)

    @pytest.mark.parametrize("key,index", [(0, 0), (2, 1), (4, 2), (6, 3)])
    def test_missing_key_reports_insertion_point(self, key, index):
        """The insertion point keeps the keys sorted"""
        engine = build((1, "a"), (3, "c"), (5, "e"))

        assert engine.search(key) == SearchResult(False, index)

    def test_search_ignores_spare_capacity(self):
        """Slots past the length are never compared"""
        engine = build((1, "a"), capacity=8)

        assert engine.search(2) == SearchResult(False, 1)

    def test_incomparable_key_raises_type_error(self):
        engine = build((1, "a"))

        with pytest.raises(TypeError):
            engine.search("x")


# ============================================================================
# Insert
# ============================================================================


@pytest.mark.unit
@pytest.mark.engine
class TestInsert:
    def test_insert_keeps_entries_sorted(self):
        engine = build((3, "c"), (1, "a"), (2, "b"))

        assert live(engine) == [(1, "a"), (2, "b"), (3, "c")]

    def test_insert_new_key_returns_none(self):
        assert OrderedEngine(PAIR).insert((1, "a")) is None

    def test_insert_existing_key_returns_previous_entry(self):
        """Overwriting returns the old entry and keeps the length"""
        engine = build((1, "a"))

        previous = engine.insert((1, "z"))

        assert previous == (1, "a")
        assert live(engine) == [(1, "z")]
        assert len(engine) == 1

    def test_overwrite_keeps_stored_key(self):
        """Only the value is replaced unless replace_key is set"""
        engine = build((1.0, "a"))

        engine.insert((1, "b"))
        assert type(engine.key(0)) is float

        engine.insert((1, "c"), replace_key=True)
        assert type(engine.key(0)) is int

    def test_insert_grows_geometrically(self):
        """Capacity doubles from 1 and never shrinks under insert"""
        engine = OrderedEngine(PAIR)
        capacities = []
        for key in range(9):
            engine.insert((key, key))
            capacities.append(engine.capacity)

        assert capacities == [1, 2, 4, 4, 8, 8, 8, 8, 16]

    def test_insert_respects_growth_policy(self):
        engine = OrderedEngine(PAIR, growth=GrowthPolicy(factor=4, minimum=3))
        for key in range(4):
            engine.insert((key, None))

        assert engine.capacity == 12

    def test_insert_bumps_version_only_for_new_keys(self):
        engine = build((1, "a"))
        version = engine.version

        engine.insert((1, "b"))
        assert engine.version == version

        engine.insert((2, "c"))
        assert engine.version > version

    def test_invalidate_bumps_version_without_touching_entries(self):
        engine = build((1, "a"))
        version = engine.version

        engine.invalidate()

        assert engine.version > version
        assert live(engine) == [(1, "a")]

    def test_failed_growth_leaves_engine_unchanged(self):
        """An allocation failure during insert is surfaced without mutation"""
        alloc = BoundedAllocator(limit=PAIR.itemsize * 2)
        engine = build((1, "a"), (3, "c"), allocator=alloc)

        with pytest.raises(AllocationFailure):
            engine.insert((2, "b"))

        assert live(engine) == [(1, "a"), (3, "c")]
        assert engine.capacity == 2

    def test_wrong_arity_is_rejected(self):
        with pytest.raises(ValueError):
            OrderedEngine(PAIR).insert((1,))


# ============================================================================
# Remove
# ============================================================================


@pytest.mark.unit
@pytest.mark.engine
class TestRemove:
    def test_remove_returns_entry_and_closes_gap(self):
        engine = build((1, "a"), (2, "b"), (3, "c"))

        assert engine.remove(2) == (2, "b")
        assert live(engine) == [(1, "a"), (3, "c")]

    def test_remove_missing_key_returns_none(self):
        engine = build((1, "a"))
        version = engine.version

        assert engine.remove(2) is None
        assert engine.version == version

    def test_remove_never_shrinks_capacity(self):
        engine = build((1, "a"), (2, "b"), (3, "c"))
        capacity = engine.capacity

        engine.remove(1)
        engine.remove(2)
        engine.remove(3)

        assert engine.capacity == capacity

    def test_vacated_slot_holds_no_reference(self):
        """The slot past the new length is cleared"""
        engine = build((1, "a"), (2, "b"))

        engine.remove(1)

        assert engine._buffer.array["value"][1] is None
        assert engine._buffer.array["key"][1] is None

    def test_remove_at_out_of_range(self):
        with pytest.raises(IndexError):
            build((1, "a")).remove_at(1)

    def test_pop_first_and_last(self):
        engine = build((1, "a"), (2, "b"), (3, "c"))

        assert engine.pop_first() == (1, "a")
        assert engine.pop_last() == (3, "c")
        assert live(engine) == [(2, "b")]

    def test_pop_from_empty_returns_none(self):
        engine = OrderedEngine(PAIR)

        assert engine.pop_first() is None
        assert engine.pop_last() is None


# ============================================================================
# Bulk construction
# ============================================================================


@pytest.mark.unit
@pytest.mark.engine
class TestBulkFrom:
    def test_sorts_the_batch(self):
        engine = OrderedEngine.bulk_from(PAIR, [(2, "b"), (3, "c"), (1, "a")])

        assert live(engine) == [(1, "a"), (2, "b"), (3, "c")]
        assert engine.capacity == 3

    def test_duplicate_keys_are_rejected(self):
        with pytest.raises(DuplicateKey) as excinfo:
            OrderedEngine.bulk_from(PAIR, [(2, "b"), (1, "a"), (2, "z")])

        assert excinfo.value.key == 2

    def test_rejection_allocates_nothing(self, bounded):
        """No buffer is requested for a rejected batch"""
        with pytest.raises(DuplicateKey):
            OrderedEngine.bulk_from(PAIR, [(1, "a"), (1, "a")], bounded)

        assert bounded.stats["allocations"] == 0

    def test_empty_batch(self):
        engine = OrderedEngine.bulk_from(PAIR, [])

        assert len(engine) == 0
        assert engine.capacity == 0


# ============================================================================
# Capacity management
# ============================================================================


@pytest.mark.unit
@pytest.mark.engine
class TestCapacity:
    def test_reserve_uses_growth_policy(self):
        engine = build((1, "a"), (2, "b"))

        engine.reserve(3)

        assert engine.capacity == 5

    def test_reserve_within_capacity_is_noop(self):
        engine = OrderedEngine(PAIR, capacity=8)
        version = engine.version

        engine.reserve(4)

        assert engine.capacity == 8
        assert engine.version == version

    def test_reserve_exact(self):
        engine = build((1, "a"), (2, "b"))

        engine.reserve_exact(1)

        assert engine.capacity == 3

    def test_reserve_negative_is_rejected(self):
        with pytest.raises(ValueError):
            OrderedEngine(PAIR).reserve(-1)

    def test_shrink_to_keeps_at_least_length(self):
        engine = build((1, "a"), (2, "b"), capacity=10)

        engine.shrink_to(1)

        assert engine.capacity == 2
        assert live(engine) == [(1, "a"), (2, "b")]

    def test_shrink_to_larger_than_capacity_is_noop(self):
        engine = OrderedEngine(PAIR, capacity=4)

        engine.shrink_to(10)

        assert engine.capacity == 4

    def test_shrink_to_fit_on_empty_releases(self, bounded):
        engine = OrderedEngine(PAIR, allocator=bounded, capacity=4)

        engine.shrink_to_fit()

        assert engine.capacity == 0
        assert bounded.in_use == 0

    def test_failed_shrink_keeps_prior_capacity(self):
        class RefusingShrink(BoundedAllocator):
            def shrink(self, array, old_layout, new_layout):
                raise AllocationFailure("no")

        engine = build((1, "a"), allocator=RefusingShrink(), capacity=4)

        with pytest.raises(AllocationFailure):
            engine.shrink_to_fit()

        assert engine.capacity == 4
        assert live(engine) == [(1, "a")]


# ============================================================================
# Bulk mutation
# ============================================================================


@pytest.mark.unit
@pytest.mark.engine
class TestBulkMutation:
    def test_clear_keeps_capacity(self):
        engine = build((1, "a"), (2, "b"))
        capacity = engine.capacity

        engine.clear()

        assert len(engine) == 0
        assert engine.capacity == capacity
        assert engine._buffer.array["value"][0] is None

    def test_retain_is_stable(self):
        engine = build(*[(k, k * 10) for k in range(6)])

        engine.retain(lambda entry: entry[0] % 2 == 0)

        assert live(engine) == [(0, 0), (2, 20), (4, 40)]
        assert engine._buffer.array["key"][3] is None

    def test_retain_failure_leaves_engine_untouched(self):
        engine = build((1, "a"), (2, "b"), (3, "c"))

        def predicate(entry):
            if entry[0] == 3:
                raise RuntimeError("stop")
            return False

        with pytest.raises(RuntimeError):
            engine.retain(predicate)

        assert live(engine) == [(1, "a"), (2, "b"), (3, "c")]

    def test_extend_later_entries_win(self):
        engine = OrderedEngine(PAIR)

        engine.extend([(1, "a"), (2, "b"), (1, "z")])

        assert live(engine) == [(1, "z"), (2, "b")]

    def test_take_all(self):
        engine = build((2, "b"), (1, "a"))

        assert engine.take_all() == [(1, "a"), (2, "b")]
        assert len(engine) == 0

    def test_copy_is_independent(self):
        engine = build((1, "a"), (2, "b"), capacity=10)

        clone = engine.copy()
        clone.insert((3, "c"))

        assert live(engine) == [(1, "a"), (2, "b")]
        assert clone.capacity >= 3
        assert clone.allocator is engine.allocator


# ============================================================================
# Typed fields
# ============================================================================


@pytest.mark.unit
@pytest.mark.engine
class TestTypedFields:
    def test_numeric_keys_are_searched_and_unboxed(self):
        engine = OrderedEngine(entry_dtype(("key", "i8"), ("value", "f8")))
        for key in (30, 10, 20):
            engine.insert((key, key / 10))

        assert engine.search(20) == SearchResult(True, 1)
        entry = engine.entry(0)
        assert entry == (10, 1.0)
        assert type(entry[0]) is int
        assert type(entry[1]) is float

    def test_uncastable_value_is_rejected_before_mutation(self):
        engine = OrderedEngine(entry_dtype(("key", "i8"), ("value", "i8")))
        engine.insert((1, 1))

        with pytest.raises(TypeError):
            engine.insert((2, "two"))
        with pytest.raises(TypeError):
            engine.insert((2.5, 2))

        assert live(engine) == [(1, 1)]

    def test_lossy_casts_are_rejected_before_mutation(self):
        """Values that would wrap or truncate never reach the buffer"""
        ints = OrderedEngine(entry_dtype(("key", "i1"), ("value", "i1")))
        ints.insert((44, 1))
        strings = OrderedEngine(entry_dtype(("key", "U3")))
        strings.insert(("abc",))

        with pytest.raises(TypeError):
            ints.insert((300, 2))
        with pytest.raises(TypeError):
            ints.insert((45, 1000))
        with pytest.raises(TypeError):
            ints.search(-129)
        with pytest.raises(TypeError):
            strings.insert(("abcX",))

        assert live(ints) == [(44, 1)]
        assert live(strings) == [("abc",)]

    def test_bulk_from_does_not_merge_truncated_keys(self):
        with pytest.raises(TypeError):
            OrderedEngine.bulk_from(entry_dtype(("key", "U3")), [("abcX",), ("abcY",)])

    def test_nan_values_fit_float_fields(self):
        engine = OrderedEngine(entry_dtype(("key", "i8"), ("value", "f8")))
        engine.insert((1, float("nan")))

        assert engine.field(0, 1) != engine.field(0, 1)

    def test_keys_cannot_be_set_in_place(self):
        engine = build((1, "a"))

        with pytest.raises(ValueError):
            engine.set_field(0, 0, 2)

    def test_dtype_must_lead_with_key(self):
        with pytest.raises(ValueError):
            OrderedEngine(np.dtype([("value", object), ("key", object)]))

    def test_unbox_passes_python_objects_through(self):
        marker = object()

        assert unbox(marker) is marker
        assert unbox(np.int64(3)) == 3
