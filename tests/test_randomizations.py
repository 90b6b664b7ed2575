import numpy as np
import pytest

from arrayrqmc.point_sets import SobolPointSet
from arrayrqmc.randomizations import RandomShift, DigitalShift, LinearMatrixScramble


RANDOMIZATIONS = [RandomShift, DigitalShift, LinearMatrixScramble]


@pytest.mark.parametrize("randomization_class", RANDOMIZATIONS)
def test_randomized_points_stay_in_unit_cube(randomization_class):
    point_set = SobolPointSet(8, 4)
    point_set.randomize(randomization_class(seed=11))
    points = point_set.points
    assert points.shape == (256, 4)
    assert ((points >= 0.0) & (points < 1.0)).all()
    assert not np.array_equal(points, point_set.base_points)


@pytest.mark.parametrize("randomization_class", RANDOMIZATIONS)
def test_same_seed_same_sample(randomization_class):
    first, second = SobolPointSet(5, 3), SobolPointSet(5, 3)
    first.randomize(randomization_class(seed=3))
    second.randomize(randomization_class(seed=3))
    np.testing.assert_array_equal(first.points, second.points)


@pytest.mark.parametrize("randomization_class", RANDOMIZATIONS)
def test_consecutive_randomizations_differ(randomization_class):
    point_set = SobolPointSet(5, 2)
    randomization = randomization_class(seed=3)
    point_set.randomize(randomization)
    first = point_set.points.copy()
    point_set.randomize(randomization)
    assert not np.array_equal(first, point_set.points)
    randomization.reset()
    point_set.randomize(randomization)
    np.testing.assert_array_equal(first, point_set.points)


@pytest.mark.parametrize("randomization_class", [DigitalShift, LinearMatrixScramble])
def test_digital_randomizations_keep_one_point_per_interval(randomization_class):
    point_set = SobolPointSet(7, 3)
    point_set.randomize(randomization_class(seed=5))
    for j in range(3):
        cells = np.floor(point_set.points[:, j] * 128).astype(int)
        assert sorted(cells) == list(range(128))


def test_random_shift_keeps_differences_modulo_one():
    point_set = SobolPointSet(4, 2)
    point_set.randomize(RandomShift(seed=2))
    diff = np.remainder(point_set.points - point_set.base_points, 1.0)
    np.testing.assert_allclose(diff, np.broadcast_to(diff[0], diff.shape), atol=1e-12)
