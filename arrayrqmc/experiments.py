""" Variance rate experiments: how fast the Array-RQMC variance decreases with the number of chains """

import logging
from timeit import default_timer

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from tabulate import tabulate

from .array_rqmc import ArrayOfComparableChains
from .random_streams import NumpyStream
from .settings import DEFAULT_SEED
from .statistics import Tally


__all__ = ['monte_carlo_variance', 'regression_slope', 'variance_rate', 'format_variance_rate',
           'plot_variance_rate']

logger = logging.getLogger(__name__)


def monte_carlo_variance(base_chain, nbr_runs, nbr_steps=None, seed=None):
    """ variance of the performance of a single run, estimated from nbr_runs independent runs """
    tally = Tally('MC runs')
    chain = base_chain.clone()
    chain.simulate_runs(nbr_runs, nbr_steps, NumpyStream(DEFAULT_SEED if seed is None else seed), tally)
    return tally.variance()


def regression_slope(x, y):
    """ least squares slope of y against x, 0 with fewer than two points """
    x, y = np.asarray(x, dtype=float), np.asarray(y, dtype=float)
    if x.shape[0] < 2:
        return 0.0
    return float(np.polyfit(x, y, 1)[0])


def variance_rate(base_chain, point_sets, randomization, sort, sort_coord_pts, nbr_steps, nbr_replications,
                  var_mc=None):
    """
    Array-RQMC replicated for each point set, i.e. for increasing numbers of chains n.
    :param var_mc: variance of one MC run, used for the variance reduction factor var_mc / (n * var)
    :return: DataFrame with one row per point set, slope of log2(variance) against log2(n)
    """
    rows = []
    for point_set in point_sets:
        start = default_timer()
        nbr_chains = point_set.nbr_points
        driver = ArrayOfComparableChains(base_chain, point_set, randomization, sort, sort_coord_pts)
        tally = driver.replicate(nbr_chains, nbr_steps, nbr_replications)
        variance = tally.variance()
        rows.append({
            'n': nbr_chains,
            'log2_n': np.log2(nbr_chains),
            'average': tally.average(),
            'variance': variance,
            'log2_variance': np.log2(variance) if variance > 0 else -np.inf,
            'vrf': var_mc / (nbr_chains * variance) if var_mc is not None and variance > 0 else np.nan,
            'seconds': default_timer() - start,
        })
        logger.info("n=%d: variance %g", nbr_chains, variance)
    results = pd.DataFrame(rows)
    finite = np.isfinite(results['log2_variance'])
    slope = regression_slope(results['log2_n'][finite], results['log2_variance'][finite])
    return results, slope


def format_variance_rate(results, slope, label='Array-RQMC'):
    lines = [f"Variance rate for {label}",
             tabulate(results, headers="keys", showindex=False, floatfmt=".6g"),
             f"Slope of log2(variance) against log2(n): {slope:.4f}"]
    return '\n'.join(lines)


def plot_variance_rate(results, label='Array-RQMC', slope=None, filename=None, var_mc=None):
    """ log-log plot of the variance against n, saved to filename when given, shown otherwise """
    fig, ax = plt.subplots()
    ax.plot(results['log2_n'], results['log2_variance'], marker='o', label=label)
    if var_mc is not None:
        ax.plot(results['log2_n'], np.log2(var_mc) - results['log2_n'], linestyle='--', label='MC')
    ax.grid(True)
    ax.legend(loc='best')
    title = "Array-RQMC Variance Rate"
    if slope is not None:
        title += f" (slope {slope:.2f})"
    ax.set_title(title)
    ax.set_xlabel('log2(n)')
    ax.set_ylabel('log2(variance)')
    if filename is not None:
        fig.savefig(filename)
        plt.close(fig)
    else:
        plt.show()
    return fig


if __name__ == '__main__':
    from .models import RandomWalkChain
    from .multidim_sort import OneDimSort, SplitSort
    from .point_sets import SobolPointSet
    from .randomizations import LinearMatrixScramble
    from .settings import configure_logging

    configure_logging()
    chain = RandomWalkChain(horizon=5)
    var_mc = monte_carlo_variance(chain, 10000, seed=0)
    print(f"MC variance of one run: {var_mc:.6f}")
    point_sets = [SobolPointSet(k, 2) for k in range(6, 13)]
    for sort, label in ((OneDimSort(0), 'one dim sort'), (SplitSort(1), 'split sort')):
        results, slope = variance_rate(chain, point_sets, LinearMatrixScramble(seed=1), sort, 1, None, 50,
                                       var_mc=var_mc)
        print(format_variance_rate(results, slope, label))
    plot_variance_rate(results, label, slope=slope, var_mc=var_mc)
