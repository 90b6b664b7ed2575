""" Multivariate sorts of chains (objects ranked coordinate by coordinate) and of points (rows of an array).

Every sort reorders items[start:stop] in place. Sorts on one coordinate are stable, so items that
compare equal keep their relative order.
"""

import logging
import math
from functools import cmp_to_key

import numpy as np

from .exceptions import ConfigurationError
from .hilbert_curve import HilbertCurveMap


__all__ = ['MultiDimSort', 'OneDimSort', 'SplitSort', 'BatchSort', 'BatchSortPow2', 'HilbertCurveSort',
           'HilbertCurveBatchSort']

logger = logging.getLogger(__name__)

EXPONENT_TOLERANCE = 1e-10


def _stop(items, stop):
    return len(items) if stop is None else stop


def _check_state_dim(items, start, stop, dimension):
    if stop - start < 1:
        return
    state_dim = getattr(items[start], 'state_dim', None)
    if state_dim is not None and dimension > state_dim:
        raise ConfigurationError(f"Sort uses {dimension} coordinates but items only have state_dim={state_dim}")


def _check_point_dim(points, dimension):
    assert points.ndim == 2
    if points.shape[1] < dimension:
        raise ConfigurationError(f"Sort uses {dimension} coordinates but points only have {points.shape[1]}")


def _item_sorter(items):
    def sort_block(start, stop, coordinate):
        key = cmp_to_key(lambda a, b: a.compare(b, coordinate))
        items[start:stop] = sorted(items[start:stop], key=key)
    return sort_block


def _point_sorter(points):
    def sort_block(start, stop, coordinate):
        block = points[start:stop]
        points[start:stop] = block[np.argsort(block[:, coordinate], kind='stable')]
    return sort_block


class MultiDimSort:
    def __init__(self, dimension):
        self.dimension = dimension

    def sort(self, items, start=0, stop=None):
        """ sort a list of objects implementing compare(other, coordinate) """
        raise NotImplementedError("Subclass must implement method 'sort'!")

    def sort_points(self, points, start=0, stop=None):
        """ sort the rows of a 2d array, coordinate j being column j """
        raise NotImplementedError("Subclass must implement method 'sort_points'!")

    def __repr__(self):
        return f"{type(self).__name__}(dimension={self.dimension})"


class OneDimSort(MultiDimSort):
    """ sort on a single coordinate """
    def __init__(self, coordinate=0):
        super().__init__(coordinate + 1)
        self.coordinate = coordinate

    def sort(self, items, start=0, stop=None):
        stop = _stop(items, stop)
        _check_state_dim(items, start, stop, self.dimension)
        _item_sorter(items)(start, stop, self.coordinate)

    def sort_points(self, points, start=0, stop=None):
        _check_point_dim(points, self.dimension)
        _point_sorter(points)(start, _stop(points, stop), self.coordinate)


class SplitSort(MultiDimSort):
    """
    Sort on coordinate 0, split in two halves, sort each half on coordinate 1, and so on, cycling through the
    coordinates until the parts have a single element. The first half gets the smaller part when the size is odd.
    """
    def sort(self, items, start=0, stop=None):
        stop = _stop(items, stop)
        _check_state_dim(items, start, stop, self.dimension)
        self._split_sort(_item_sorter(items), start, stop, 0)

    def sort_points(self, points, start=0, stop=None):
        _check_point_dim(points, self.dimension)
        self._split_sort(_point_sorter(points), start, _stop(points, stop), 0)

    def _split_sort(self, sort_block, start, stop, coordinate):
        if stop - start < 2:
            return
        sort_block(start, stop, coordinate)
        mid = (start + stop) // 2
        coordinate = (coordinate + 1) % self.dimension
        self._split_sort(sort_block, start, mid, coordinate)
        self._split_sort(sort_block, mid, stop, coordinate)


class BatchSort(MultiDimSort):
    """
    Sort on coordinate 0, cut into n_0 batches, sort each batch on coordinate 1, cut each into n_1 batches, ...
    The batch numbers are either fixed, or derived from exponents alpha_j summing to one so that n_j is
    about n^alpha_j.
    """
    def __init__(self, batch_numbers=None, batch_exponents=None):
        if (batch_numbers is None) == (batch_exponents is None):
            raise ConfigurationError("BatchSort needs exactly one of batch_numbers or batch_exponents")
        self.nbr_saved = 0
        if batch_numbers is not None:
            batch_numbers = [int(b) for b in batch_numbers]
            if not batch_numbers or min(batch_numbers) < 1:
                raise ConfigurationError(f"Batch numbers must be positive integers, got {batch_numbers}")
            super().__init__(len(batch_numbers))
            self.batch_exponents = None
            self.batch_numbers = batch_numbers
        else:
            batch_exponents = [float(a) for a in batch_exponents]
            if not batch_exponents or min(batch_exponents) < 0.0 or not all(map(math.isfinite, batch_exponents)):
                raise ConfigurationError(f"Batch exponents must be non-negative, got {batch_exponents}")
            if abs(sum(batch_exponents) - 1.0) > EXPONENT_TOLERANCE:
                raise ConfigurationError(f"Batch exponents must sum to 1, got sum {sum(batch_exponents)}")
            super().__init__(len(batch_exponents))
            self.batch_exponents = batch_exponents
            self.batch_numbers = None

    @property
    def batch_product(self):
        return math.prod(self.batch_numbers) if self.batch_numbers is not None else 0

    def set_batch_numbers(self, n):
        """ compute the batch numbers from the exponents for n items, with a product of at least n """
        assert self.batch_exponents is not None
        exponents = self.batch_exponents
        last = max(j for j, alpha in enumerate(exponents) if alpha > 0.0)
        numbers = []
        product = 1
        for j, alpha in enumerate(exponents):
            tail = sum(exponents[j:])
            if alpha <= 0.0 or tail <= 0.0:
                nj = 1
            elif j == last:
                nj = -(-n // product)
            else:
                nj = math.ceil((n / product) ** (alpha / tail))
            nj = max(nj, 1)
            numbers.append(nj)
            product *= nj
        self.batch_numbers = numbers
        self.nbr_saved = n
        logger.debug("batch numbers for n=%d: %s", n, numbers)
        return numbers

    def _prepare(self, n):
        if self.batch_exponents is not None and n != self.nbr_saved:
            self.set_batch_numbers(n)
        if self.batch_product < n:
            raise ConfigurationError(
                f"Product of batch numbers {self.batch_numbers} is {self.batch_product}, smaller than {n} items")

    def sort(self, items, start=0, stop=None):
        stop = _stop(items, stop)
        _check_state_dim(items, start, stop, self.dimension)
        self._batch_sort(_item_sorter(items), start, stop)

    def sort_points(self, points, start=0, stop=None):
        _check_point_dim(points, self.dimension)
        self._batch_sort(_point_sorter(points), start, _stop(points, stop))

    def _batch_sort(self, sort_block, start, stop):
        if stop - start < 2:
            return
        self._prepare(stop - start)
        batches = [(start, stop)]
        for j, nj in enumerate(self.batch_numbers):
            if not batches:
                break
            if nj == 1:
                continue
            sub_batches = []
            for i1, i2 in batches:
                sort_block(i1, i2, j)
                size = -(-(i2 - i1) // nj)
                sub_batches.extend((k, min(k + size, i2)) for k in range(i1, i2, size) if min(k + size, i2) - k > 1)
            batches = sub_batches


class BatchSortPow2(BatchSort):
    """ batch sort where n_j = 2^e_j, the ceil(log2 n) bits being shared out in proportion to the exponents """
    def __init__(self, batch_exponents):
        super().__init__(batch_exponents=batch_exponents)
        self.bit_numbers = None

    def set_batch_numbers(self, n):
        total_bits = (n - 1).bit_length() if n > 1 else 0
        bits = [0] * self.dimension
        for _ in range(total_bits):
            deficits = [alpha * total_bits - e for alpha, e in zip(self.batch_exponents, bits)]
            # max returns the first coordinate among ties
            j = max(range(self.dimension), key=lambda k: deficits[k])
            bits[j] += 1
        self.bit_numbers = bits
        self.batch_numbers = [1 << e for e in bits]
        self.nbr_saved = n
        logger.debug("bit numbers for n=%d: %s", n, bits)
        return self.batch_numbers


class HilbertCurveSort(MultiDimSort):
    """
    Sort by position along the Hilbert curve of the subcube containing each point. Chains are mapped to
    [0,1)^d by their unit_point() method.
    """
    def __init__(self, dimension, m=None, hilbert_map=None):
        super().__init__(dimension)
        self.hilbert_map = HilbertCurveMap(dimension, m) if hilbert_map is None else hilbert_map
        if self.hilbert_map.dimension != dimension:
            raise ConfigurationError(
                f"Hilbert map of dimension {self.hilbert_map.dimension} used for a sort of dimension {dimension}")
        self.index_after_sort = None

    @classmethod
    def from_map(cls, hilbert_map):
        return cls(hilbert_map.dimension, hilbert_map.m, hilbert_map=hilbert_map)

    @property
    def m(self):
        return self.hilbert_map.m

    def _order(self, points):
        order = np.argsort(self.hilbert_map.indices(points), kind='stable')
        self.index_after_sort = order
        return order

    def sort(self, items, start=0, stop=None):
        stop = _stop(items, stop)
        if stop - start < 2:
            return
        _check_state_dim(items, start, stop, self.dimension)
        block = items[start:stop]
        points = np.array([np.asarray(item.unit_point(), dtype=float) for item in block])
        order = self._order(points)
        items[start:stop] = [block[k] for k in order]

    def sort_points(self, points, start=0, stop=None):
        _check_point_dim(points, self.dimension)
        stop = _stop(points, stop)
        if stop - start < 2:
            return
        block = points[start:stop]
        points[start:stop] = block[self._order(block)]


class HilbertCurveBatchSort(MultiDimSort):
    """
    Power of two batch sort, then the batches are visited in the order the Hilbert curve visits the grid of
    batch positions. Any number of items works: item i takes grid position i in mixed radix.
    """
    def __init__(self, batch_exponents, m=None, hilbert_map=None):
        self.batch_sort = BatchSortPow2(batch_exponents)
        super().__init__(self.batch_sort.dimension)
        self.hilbert_map = HilbertCurveMap(self.dimension, m) if hilbert_map is None else hilbert_map
        if self.hilbert_map.dimension != self.dimension:
            raise ConfigurationError(
                f"Hilbert map of dimension {self.hilbert_map.dimension} used for {self.dimension} batch exponents")
        self.nbr_saved_index = 0
        self.index_after_sort = None

    def compute_index(self, n):
        """
        permutation visiting the first n batch positions along the Hilbert curve; the grid has 2^ceil(log2 n)
        cells so every item gets one, the cells past n are left out
        """
        if n < 1:
            raise ConfigurationError(f"HilbertCurveBatchSort needs at least one item, got {n}")
        self.batch_sort.set_batch_numbers(n)
        bits = self.batch_sort.bit_numbers
        m = self.hilbert_map.m
        if max(bits) > m:
            raise ConfigurationError(f"Batch bits {bits} exceed the {m} bits per coordinate of the Hilbert map")
        # position i written in mixed radix, coordinate d-1 holding the least significant digit
        positions = np.arange(n, dtype=np.int64)
        coords = np.zeros((n, self.dimension), dtype=np.int64)
        for j in reversed(range(self.dimension)):
            e = bits[j]
            coords[:, j] = (positions & ((1 << e) - 1)) << (m - e)
            positions = positions >> e
        order = np.argsort(self.hilbert_map.coordinates_to_indices(coords), kind='stable')
        self.index_after_sort = order
        self.nbr_saved_index = n
        return order

    def _order(self, n):
        if n != self.nbr_saved_index:
            self.compute_index(n)
        return self.index_after_sort

    def sort(self, items, start=0, stop=None):
        stop = _stop(items, stop)
        if stop - start < 2:
            return
        order = self._order(stop - start)
        self.batch_sort.sort(items, start, stop)
        block = items[start:stop]
        items[start:stop] = [block[k] for k in order]

    def sort_points(self, points, start=0, stop=None):
        stop = _stop(points, stop)
        if stop - start < 2:
            return
        order = self._order(stop - start)
        self.batch_sort.sort_points(points, start, stop)
        block = points[start:stop]
        points[start:stop] = block[order]
