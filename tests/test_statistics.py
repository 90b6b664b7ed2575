import numpy as np
import pytest

from arrayrqmc.statistics import Tally


def test_scalar_observations():
    values = np.random.default_rng(1).normal(size=50)
    tally = Tally('normal')
    for x in values:
        tally.add(x)
    assert tally.nbr_obs == 50
    assert tally.average() == pytest.approx(values.mean())
    assert tally.variance() == pytest.approx(values.var(ddof=1))
    assert tally.standard_deviation() == pytest.approx(values.std(ddof=1))
    center, half_width = tally.confidence_interval_student(0.95)
    assert center == pytest.approx(values.mean())
    assert 0.0 < half_width < 1.0
    assert '95% confidence interval' in tally.format_ci_student(0.95)
    assert 'normal' in tally.report()


def test_vector_observations():
    tally = Tally()
    tally.add([1.0, 2.0])
    tally.add([3.0, 6.0])
    np.testing.assert_allclose(tally.average(), [2.0, 4.0])
    np.testing.assert_allclose(tally.variance(), [2.0, 8.0])
    center, half_width = tally.confidence_interval_student()
    assert half_width.shape == (2,)


def test_init_discards_observations():
    tally = Tally()
    tally.add(1.0)
    assert np.isnan(tally.variance())
    tally.init()
    assert tally.nbr_obs == 0
    assert np.isnan(tally.average())
