""" Point sets of nbr_points points in [0,1)^dim, stored as rows of a numpy array """

import numpy as np
from scipy.stats import qmc

from .exceptions import ConfigurationError
from .random_streams import RandomStream
from .settings import DEFAULT_SEED


__all__ = ['PointSet', 'ContainerPointSet', 'SobolPointSet', 'KorobovLattice', 'IIDPointSet',
           'SortedAndCutPointSet', 'PointSetIterator']


class PointSet:
    def __init__(self, points):
        points = np.array(points, dtype=float)
        assert points.ndim == 2
        self.base_points = points
        # current sample, replaced by every randomization
        self.points = points.copy()

    @property
    def nbr_points(self):
        return self.points.shape[0]

    @property
    def dim(self):
        return self.points.shape[1]

    def randomize(self, randomization):
        self.points = randomization.randomize(self)
        assert self.points.shape == self.base_points.shape

    def clear_randomization(self):
        self.points = self.base_points.copy()

    def get_coordinate(self, i, j):
        return float(self.points[i, j])

    def iterator(self):
        return PointSetIterator(self)

    def sort(self, sorter):
        """ reorder the current sample with a multivariate sort of its first sorter.dimension coordinates """
        sorter.sort_points(self.points)

    def sort_by_coordinate(self, j):
        self.points = self.points[np.argsort(self.points[:, j], kind='stable')]

    def __repr__(self):
        return f"{type(self).__name__}(nbr_points={self.nbr_points}, dim={self.dim})"


class ContainerPointSet(PointSet):
    """ point set wrapping an explicit array of points """


class SobolPointSet(PointSet):
    def __init__(self, log2_nbr_points, dim, bits=30):
        self.log2_nbr_points = log2_nbr_points
        self.bits = bits
        gen = qmc.Sobol(dim, scramble=False, bits=bits)
        super().__init__(gen.random_base2(log2_nbr_points))


class KorobovLattice(PointSet):
    """ rank-1 lattice with generating vector (1, a, a^2, ...) mod n """
    def __init__(self, nbr_points, a, dim):
        self.a = a
        gen_vector = np.array([pow(a, j, nbr_points) for j in range(dim)], dtype=np.int64)
        i = np.arange(nbr_points, dtype=np.int64)
        super().__init__((i[:, None] * gen_vector[None, :] % nbr_points) / nbr_points)


class IIDPointSet(PointSet):
    """ independent uniforms, drawn afresh at each randomization: plain Monte Carlo with the same interface """
    def __init__(self, nbr_points, dim, seed=None):
        gen = np.random.default_rng(seed=DEFAULT_SEED if seed is None else seed)
        super().__init__(gen.random((nbr_points, dim)))

    def randomize(self, randomization):
        self.points = randomization.gen.random(self.base_points.shape)


class SortedAndCutPointSet(PointSet):
    """
    Sort the points once on their first sort.dimension coordinates and drop those coordinates.
    Randomizing applies to the underlying point set, the sorted order is kept by point index.
    """
    def __init__(self, point_set, sort):
        k = sort.dimension
        if point_set.dim <= k:
            raise ConfigurationError(f"Cannot cut {k} coordinates from a point set of dimension {point_set.dim}")
        self.point_set = point_set
        self.sort_dim = k
        labelled = np.hstack([point_set.points, np.arange(point_set.nbr_points, dtype=float)[:, None]])
        sort.sort_points(labelled)
        self.order = labelled[:, -1].astype(np.int64)
        super().__init__(point_set.points[self.order, k:])

    def randomize(self, randomization):
        self.point_set.randomize(randomization)
        self.points = self.point_set.points[self.order, self.sort_dim:]


class PointSetIterator(RandomStream):
    """ Walks the current sample of a point set: substream i is point i, its coordinates are the uniforms """
    def __init__(self, point_set):
        self.point_set = point_set
        self.cur_point_index = 0
        self.cur_coord_index = 0

    def _check(self, size=1):
        points = self.point_set.points
        if self.cur_point_index >= points.shape[0]:
            raise ConfigurationError(f"All {points.shape[0]} points of the point set have been used")
        if self.cur_coord_index + size > points.shape[1]:
            raise ConfigurationError(
                f"Point {self.cur_point_index} has only {points.shape[1]} coordinates, "
                f"requested coordinate {self.cur_coord_index + size - 1}")

    def next_double(self):
        self._check()
        u = self.point_set.points[self.cur_point_index, self.cur_coord_index]
        self.cur_coord_index += 1
        return float(u)

    def next_array(self, size):
        self._check(size)
        j = self.cur_coord_index
        self.cur_coord_index += size
        return self.point_set.points[self.cur_point_index, j:j + size].copy()

    def next_point(self):
        """ remaining coordinates of the current point, then move to the next point """
        self._check(0)
        point = self.point_set.points[self.cur_point_index, self.cur_coord_index:].copy()
        self.reset_next_substream()
        return point

    def has_next_point(self):
        return self.cur_point_index < self.point_set.nbr_points

    def reset_start_stream(self):
        self.cur_point_index = 0
        self.cur_coord_index = 0

    def reset_start_substream(self):
        self.cur_coord_index = 0

    def reset_next_substream(self):
        self.cur_point_index += 1
        self.cur_coord_index = 0

    def reset_cur_point_index(self):
        self.reset_start_stream()

    def set_cur_point_index(self, i):
        self.cur_point_index = i
        self.cur_coord_index = 0

    def set_cur_coord_index(self, j):
        self.cur_coord_index = j
