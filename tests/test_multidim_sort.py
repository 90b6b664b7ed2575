import math

import numpy as np
import pytest

from arrayrqmc.exceptions import ConfigurationError
from arrayrqmc.markov_chains import MultiDimComparable
from arrayrqmc.multidim_sort import (OneDimSort, SplitSort, BatchSort, BatchSortPow2, HilbertCurveSort,
                                     HilbertCurveBatchSort)

hypothesis = pytest.importorskip("hypothesis")
from hypothesis import given, settings
from hypothesis import strategies as st


class Item(MultiDimComparable):
    def __init__(self, *values, label=None):
        self.values = values
        self.state_dim = len(values)
        self.label = label

    def compare(self, other, coordinate):
        a, b = self.values[coordinate], other.values[coordinate]
        return int(a > b) - int(a < b)

    def unit_point(self):
        return np.array(self.values)


def coords(items, j):
    return [item.values[j] for item in items]


def random_items(n, dim, seed=0):
    values = np.random.default_rng(seed).random((n, dim))
    return [Item(*row, label=i) for i, row in enumerate(values)]


def test_one_dim_sort_is_stable():
    items = [Item(1.0, label='a'), Item(0.0, label='b'), Item(1.0, label='c'), Item(0.0, label='d')]
    OneDimSort(0).sort(items)
    assert [item.label for item in items] == ['b', 'd', 'a', 'c']


@pytest.mark.parametrize("sort", [OneDimSort(0), SplitSort(1), BatchSort(batch_exponents=[1.0]),
                                  BatchSortPow2([1.0]), HilbertCurveSort(1)])
def test_one_dimensional_sorts_are_monotone(sort):
    items = random_items(37, 1, seed=3)
    sort.sort(items)
    values = coords(items, 0)
    assert values == sorted(values)


@pytest.mark.parametrize("sort", [SplitSort(1), BatchSort(batch_numbers=[64]), HilbertCurveSort(1)])
def test_one_dimensional_sorts_on_points(sort):
    points = np.random.default_rng(5).random((64, 3))
    expected = points[np.argsort(points[:, 0])]
    sort.sort_points(points)
    np.testing.assert_array_equal(points, expected)


def test_split_sort_halves():
    items = random_items(8, 2, seed=1)
    SplitSort(2).sort(items)
    assert max(coords(items[:4], 0)) <= min(coords(items[4:], 0))
    for start in (0, 4):
        assert max(coords(items[start:start + 2], 1)) <= min(coords(items[start + 2:start + 4], 1))
    for start in range(0, 8, 2):
        assert items[start].values[0] <= items[start + 1].values[0]


def test_split_sort_odd_size_gives_smaller_first_half():
    items = random_items(5, 2, seed=6)
    SplitSort(2).sort(items)
    assert max(coords(items[:2], 0)) <= min(coords(items[2:], 0))
    assert items[2].values[1] <= min(coords(items[3:], 1))


def test_split_sort_in_one_dimension_sorts_fully():
    points = np.arange(5, dtype=float)[::-1, None] / 5
    SplitSort(1).sort_points(points)
    np.testing.assert_array_equal(points[:, 0], np.arange(5) / 5)


def test_batch_sort_with_fixed_numbers():
    items = random_items(12, 2, seed=2)
    BatchSort(batch_numbers=[3, 4]).sort(items)
    for start in range(0, 12, 4):
        batch = items[start:start + 4]
        assert coords(batch, 1) == sorted(coords(batch, 1))
        if start:
            assert max(coords(items[:start], 0)) <= min(coords(batch, 0))


def test_batch_numbers_product_too_small():
    sort = BatchSort(batch_numbers=[2, 3])
    with pytest.raises(ConfigurationError):
        sort.sort(random_items(7, 2))


@pytest.mark.parametrize("kwargs", [{}, {'batch_numbers': [2], 'batch_exponents': [1.0]},
                                    {'batch_exponents': [0.5, 0.6]}, {'batch_exponents': [1.5, -0.5]},
                                    {'batch_numbers': [2, 0]}])
def test_invalid_batch_configurations(kwargs):
    with pytest.raises(ConfigurationError):
        BatchSort(**kwargs)


@given(
    weights=st.lists(st.floats(min_value=0.0, max_value=1.0, allow_nan=False), min_size=1, max_size=4).filter(
        lambda w: sum(w) > 0.01),
    n=st.integers(min_value=1, max_value=10 ** 6),
)
@settings(max_examples=200)
def test_batch_numbers_cover_all_items(weights, n):
    exponents = [w / sum(weights) for w in weights]
    sort = BatchSort(batch_exponents=exponents)
    numbers = sort.set_batch_numbers(n)
    assert all(nj >= 1 for nj in numbers)
    assert math.prod(numbers) >= n
    for nj, alpha in zip(numbers, exponents):
        if alpha == 0.0:
            assert nj == 1


def test_batch_numbers_follow_exponents():
    sort = BatchSort(batch_exponents=[0.5, 0.5])
    assert sort.set_batch_numbers(100) == [10, 10]
    assert sort.set_batch_numbers(101) == [11, 10]


@given(n=st.integers(min_value=1, max_value=1 << 20))
@settings(max_examples=100)
def test_pow2_bits_add_up(n):
    sort = BatchSortPow2([0.25, 0.5, 0.25])
    numbers = sort.set_batch_numbers(n)
    assert sum(sort.bit_numbers) == (n - 1).bit_length()
    assert numbers == [1 << e for e in sort.bit_numbers]
    assert math.prod(numbers) >= n


def test_pow2_bits_ties_go_to_first_coordinate():
    sort = BatchSortPow2([0.5, 0.5])
    sort.set_batch_numbers(8)
    assert sort.bit_numbers == [2, 1]
    sort.set_batch_numbers(16)
    assert sort.bit_numbers == [2, 2]


def test_hilbert_sort_follows_the_curve():
    points = np.array([[0.75, 0.25], [0.25, 0.75], [0.25, 0.25], [0.75, 0.75]])
    sort = HilbertCurveSort(2, 1)
    sort.sort_points(points)
    np.testing.assert_array_equal(points, [[0.25, 0.25], [0.25, 0.75], [0.75, 0.75], [0.75, 0.25]])
    assert list(sort.index_after_sort) == [2, 1, 3, 0]


def test_hilbert_sort_of_items_uses_unit_points():
    items = [Item(0.75, 0.25, label=0), Item(0.25, 0.75, label=1), Item(0.25, 0.25, label=2)]
    HilbertCurveSort(2, 1).sort(items)
    assert [item.label for item in items] == [2, 1, 0]


def test_hilbert_sort_from_shared_map():
    first = HilbertCurveSort(3, 5)
    second = HilbertCurveSort.from_map(first.hilbert_map)
    assert second.hilbert_map is first.hilbert_map
    assert second.dimension == 3 and second.m == 5


def test_hilbert_sort_keeps_order_inside_a_subcube():
    items = [Item(0.1, 0.1, label=k) for k in range(5)]
    HilbertCurveSort(2, 2).sort(items)
    assert [item.label for item in items] == list(range(5))


def test_sort_of_a_sub_range_leaves_the_rest():
    points = np.random.default_rng(9).random((10, 2))
    original = points.copy()
    SplitSort(2).sort_points(points, 2, 8)
    np.testing.assert_array_equal(points[:2], original[:2])
    np.testing.assert_array_equal(points[8:], original[8:])
    assert sorted(map(tuple, points[2:8])) == sorted(map(tuple, original[2:8]))


@pytest.mark.parametrize("sort", [SplitSort(2), BatchSort(batch_numbers=[2, 2]), HilbertCurveSort(2),
                                  OneDimSort(1)])
def test_sort_dimension_larger_than_state(sort):
    with pytest.raises(ConfigurationError):
        sort.sort(random_items(4, 1))
    with pytest.raises(ConfigurationError):
        sort.sort_points(np.zeros((4, 1)))


def test_hilbert_batch_sort_visits_batches_along_the_curve():
    sort = HilbertCurveBatchSort([0.5, 0.5], m=4)
    points = np.random.default_rng(4).random((16, 2))
    batch_sorted = points.copy()
    BatchSortPow2([0.5, 0.5]).sort_points(batch_sorted)
    sort.sort_points(points)
    order = sort.index_after_sort
    np.testing.assert_array_equal(points, batch_sorted[order])
    assert sorted(order) == list(range(16))
    # batch position i sits at grid cell (i // 4, i % 4)
    cells = np.array([[i >> 2, i & 3] for i in order])
    assert (np.abs(np.diff(cells, axis=0)).sum(axis=1) == 1).all()


@pytest.mark.parametrize("n", [1, 2, 3, 12, 193])
def test_hilbert_batch_sort_takes_any_number_of_items(n):
    sort = HilbertCurveBatchSort([0.5, 0.5])
    items = random_items(n, 2)
    sort.sort(items)
    assert sorted(item.label for item in items) == list(range(n))
    if n > 1:
        assert sorted(sort.index_after_sort) == list(range(n))


def test_hilbert_batch_sort_needs_an_item():
    with pytest.raises(ConfigurationError):
        HilbertCurveBatchSort([0.5, 0.5]).compute_index(0)
