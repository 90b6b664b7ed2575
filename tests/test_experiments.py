import matplotlib

matplotlib.use('Agg')

import numpy as np
import pytest

from arrayrqmc.experiments import (monte_carlo_variance, regression_slope, variance_rate, format_variance_rate,
                                   plot_variance_rate)
from arrayrqmc.models import RandomWalkChain
from arrayrqmc.multidim_sort import OneDimSort
from arrayrqmc.point_sets import SobolPointSet
from arrayrqmc.randomizations import DigitalShift


def test_regression_slope():
    assert regression_slope([1, 2, 3], [2, 0, -2]) == pytest.approx(-2.0)
    assert regression_slope([1], [5]) == 0.0


def test_monte_carlo_variance_of_random_walk():
    var_mc = monte_carlo_variance(RandomWalkChain(horizon=5), 5000, seed=1)
    assert var_mc == pytest.approx(5 / 12, rel=0.1)


def test_variance_decreases_faster_than_monte_carlo(tmp_path):
    chain = RandomWalkChain(horizon=3)
    point_sets = [SobolPointSet(k, 2) for k in (5, 7, 9, 11)]
    results, slope = variance_rate(chain, point_sets, DigitalShift(seed=3), OneDimSort(0), 1, None, 20,
                                   var_mc=0.25)
    assert list(results['n']) == [32, 128, 512, 2048]
    assert list(results.columns[:4]) == ['n', 'log2_n', 'average', 'variance']
    assert slope < -1.0
    assert (results['vrf'] > 1.0).all()

    table = format_variance_rate(results, slope, 'walk')
    assert 'Slope' in table and 'walk' in table

    filename = tmp_path / 'variance_rate.png'
    fig = plot_variance_rate(results, 'walk', slope=slope, filename=filename, var_mc=0.25)
    assert filename.exists()
    assert fig.axes[0].get_xlabel() == 'log2(n)'
    assert np.isfinite(results['log2_variance']).all()
