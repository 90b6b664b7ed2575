""" Array-RQMC: n copies of a chain advance together, at each step the running chains are sorted and chain i
takes its uniforms from point i of a freshly randomized n-point set.
"""

import logging
from timeit import default_timer

import numpy as np

from .exceptions import ConfigurationError
from .settings import CI_LEVEL
from .statistics import Tally


__all__ = ['partition_running', 'ArrayOfComparableChains', 'ArrayOfDoubleChains']

logger = logging.getLogger(__name__)


def partition_running(chains, start=0, stop=None):
    """
    Stable partition of chains[start:stop]: running chains first, stopped chains after, relative order kept
    within both groups.
    :return: number of running chains
    """
    stop = len(chains) if stop is None else stop
    block = chains[start:stop]
    running = [mc for mc in block if not mc.has_stopped()]
    stopped = [mc for mc in block if mc.has_stopped()]
    chains[start:stop] = running + stopped
    return len(running)


def _mean(values):
    mean = np.mean(np.asarray(values, dtype=float), axis=0)
    return float(mean) if np.ndim(mean) == 0 else mean


def _prepare_points(point_set, randomization, sort, sort_coord_pts):
    point_set.randomize(randomization)
    if sort_coord_pts > 1:
        point_set.sort(sort)
    elif sort_coord_pts == 1:
        point_set.sort_by_coordinate(0)


class ArrayOfComparableChains:
    def __init__(self, base_chain, point_set=None, randomization=None, sort=None, sort_coord_pts=0):
        """
        :param base_chain: prototype chain, cloned into the array
        :param point_set: n-point set whose point i drives chain i
        :param randomization: applied to the point set before every step
        :param sort: multivariate sort of the chains, and of the points when sort_coord_pts > 1
        :param sort_coord_pts: number of leading coordinates of each point used to sort the points
        """
        self.base_chain = base_chain
        self.point_set = point_set
        self.randomization = randomization
        self.sort = sort
        self.sort_coord_pts = sort_coord_pts
        self.n = 0
        self.chains = []
        self.performances = []

    def __repr__(self):
        return (f"ArrayOfComparableChains(base_chain={self.base_chain!r}, n={self.n}, sort={self.sort!r}, "
                f"sort_coord_pts={self.sort_coord_pts})")

    def make_copies(self, n):
        if n < 1:
            raise ConfigurationError(f"Number of chains must be positive, got {n}")
        self.chains = [self.base_chain.clone() for _ in range(n)]
        self.performances = [0.0] * n
        self.n = n

    def initial_states(self):
        for i, mc in enumerate(self.chains):
            mc.initial_state()
            self.performances[i] = mc.performance()

    def check_configuration(self, point_set, randomization, sort, sort_coord_pts):
        if point_set is None or randomization is None or sort is None:
            raise ConfigurationError("Array-RQMC needs a point set, a randomization and a sort")
        if self.n < 1:
            raise ConfigurationError("No chains allocated, call make_copies first")
        if point_set.nbr_points != self.n:
            raise ConfigurationError(
                f"Point set has {point_set.nbr_points} points for {self.n} chains")
        if sort_coord_pts < 0:
            raise ConfigurationError(f"sort_coord_pts must be non-negative, got {sort_coord_pts}")
        state_dim = getattr(self.base_chain, 'state_dim', None)
        if state_dim is not None and sort.dimension > state_dim:
            raise ConfigurationError(f"Sort of dimension {sort.dimension} for chains of state_dim {state_dim}")
        if sort_coord_pts > 1 and sort_coord_pts != sort.dimension:
            raise ConfigurationError(
                f"Points sorted on {sort_coord_pts} coordinates with a sort of dimension {sort.dimension}")
        dim_per_step = self.base_chain.dim_per_step or 0
        if sort_coord_pts + dim_per_step > point_set.dim:
            raise ConfigurationError(
                f"Points of dimension {point_set.dim} cannot hold {sort_coord_pts} sort coordinates "
                f"and {dim_per_step} coordinates per step")

    def sort_chains(self, sort=None):
        """ sort all n chains, for steps where none has stopped yet """
        sort = self.sort if sort is None else sort
        sort.sort(self.chains, 0, self.n)

    def sort_not_stopped_chains(self, sort=None):
        """ move stopped chains to the end and sort the running ones, returns the number of running chains """
        sort = self.sort if sort is None else sort
        nbr_running = partition_running(self.chains, 0, self.n)
        sort.sort(self.chains, 0, nbr_running)
        return nbr_running

    def _advance_running(self, point_set, sort_coord_pts):
        stream = point_set.iterator()
        stream.reset_start_stream()
        nbr_running = 0
        for i, mc in enumerate(self.chains):
            if not mc.has_stopped():
                stream.set_cur_coord_index(sort_coord_pts)
                mc.advance(stream)
                stream.reset_next_substream()
                if not mc.has_stopped():
                    nbr_running += 1
            self.performances[i] = mc.performance()
        return nbr_running

    def simulate_one_step(self, point_set=None, randomization=None, sort=None, sort_coord_pts=None):
        """ one Array-RQMC step on the current chains, returns the number of chains still running """
        point_set = self.point_set if point_set is None else point_set
        randomization = self.randomization if randomization is None else randomization
        sort = self.sort if sort is None else sort
        sort_coord_pts = self.sort_coord_pts if sort_coord_pts is None else sort_coord_pts
        self.check_configuration(point_set, randomization, sort, sort_coord_pts)
        self.sort_not_stopped_chains(sort)
        _prepare_points(point_set, randomization, sort, sort_coord_pts)
        return self._advance_running(point_set, sort_coord_pts)

    def simulate(self, point_set, randomization, sort, sort_coord_pts, nbr_steps):
        """
        Simulate the n chains from their initial state until they all stop or nbr_steps steps are done.
        :return: average performance of the chains
        """
        self.check_configuration(point_set, randomization, sort, sort_coord_pts)
        self.initial_states()
        nbr_running = self.n
        step = 0
        while (nbr_steps is None or step < nbr_steps) and nbr_running > 0:
            if nbr_running == self.n:
                self.sort_chains(sort)
            else:
                self.sort_not_stopped_chains(sort)
            _prepare_points(point_set, randomization, sort, sort_coord_pts)
            nbr_running = self._advance_running(point_set, sort_coord_pts)
            step += 1
            logger.debug("step %d: %d of %d chains still running", step, nbr_running, self.n)
        return self.calc_mean_perf()

    def run(self, nbr_chains, nbr_steps=None):
        if nbr_chains != self.n:
            self.make_copies(nbr_chains)
        return self.simulate(self.point_set, self.randomization, self.sort, self.sort_coord_pts, nbr_steps)

    def replicate(self, nbr_chains, nbr_steps, nbr_replications, tally=None):
        """ nbr_replications independent runs, each with new randomizations; their averages go to tally """
        tally = Tally('Array-RQMC replicates') if tally is None else tally
        tally.init()
        self.make_copies(nbr_chains)
        for rep in range(nbr_replications):
            mean = self.simulate(self.point_set, self.randomization, self.sort, self.sort_coord_pts, nbr_steps)
            tally.add(mean)
            logger.info("Array-RQMC replicate %d/%d with %d chains: average %s",
                        rep + 1, nbr_replications, nbr_chains, mean)
        return tally

    def calc_mean_perf(self):
        return _mean(self.performances)

    def format_replicates(self, nbr_chains, nbr_steps, nbr_replications, tally=None, level=CI_LEVEL):
        start = default_timer()
        tally = self.replicate(nbr_chains, nbr_steps, nbr_replications, tally)
        elapsed = default_timer() - start
        lines = [f"Array-RQMC simulation with n = {nbr_chains} chains, {nbr_replications} replications",
                 f"Sort: {self.sort!r}, points sorted on {self.sort_coord_pts} coordinates",
                 f"Average:  {tally.average()}",
                 f"Variance * n: {np.asarray(tally.variance()) * nbr_chains}",
                 tally.format_ci_student(level, 3),
                 f"CPU time: {elapsed:.3f} s"]
        return '\n'.join(lines)

    @staticmethod
    def variance_improvement_format(var_rqmc, var_mc, nbr_chains):
        """ variance reduction factor of Array-RQMC with n chains over MC with n runs """
        factor = var_mc / (nbr_chains * var_rqmc)
        return f"Variance ratio: {factor:9.4g}"


class ArrayOfDoubleChains:
    """
    Array-RQMC for MarkovChainDouble without one object per chain: states, stop flags and performances are
    numpy arrays, the transitions are the hooks of the base chain.
    """
    def __init__(self, base_chain, point_set=None, randomization=None, sort_coord_pts=0):
        assert base_chain.state_dim == 1
        self.base_chain = base_chain
        self.point_set = point_set
        self.randomization = randomization
        self.sort_coord_pts = sort_coord_pts
        self.n = 0
        self.states = np.zeros(0)
        self.stopped = np.zeros(0, dtype=bool)
        self.performances = np.zeros(0)

    def make_copies(self, n):
        if n < 1:
            raise ConfigurationError(f"Number of chains must be positive, got {n}")
        self.n = n
        self.states = np.zeros(n)
        self.stopped = np.zeros(n, dtype=bool)
        self.performances = np.zeros(n)

    def initial_states(self):
        state = self.base_chain.initial_state_value()
        self.states.fill(state)
        self.stopped.fill(False)
        self.performances.fill(self.base_chain.performance_of(0, state))

    def sort_chains(self):
        """ running chains first, each group ordered by state """
        order = np.lexsort((self.states, self.stopped))
        self.states = self.states[order]
        self.stopped = self.stopped[order]
        self.performances = self.performances[order]

    def check_configuration(self, point_set, randomization, sort_coord_pts):
        if point_set is None or randomization is None:
            raise ConfigurationError("Array-RQMC needs a point set and a randomization")
        if point_set.nbr_points != self.n:
            raise ConfigurationError(f"Point set has {point_set.nbr_points} points for {self.n} chains")
        if sort_coord_pts not in (0, 1):
            raise ConfigurationError("Points of one dimensional chains are sorted on 0 or 1 coordinate")
        if sort_coord_pts + 1 > point_set.dim:
            raise ConfigurationError(f"Points of dimension {point_set.dim} too small")

    def simulate_one_step(self, step, point_set, randomization, sort_coord_pts=0):
        """ advance every running chain by step number step + 1, return the number still running """
        chain = self.base_chain
        _prepare_points(point_set, randomization, None, sort_coord_pts)
        stream = point_set.iterator()
        stream.reset_start_stream()
        for i in range(self.n):
            if self.stopped[i]:
                continue
            stream.set_cur_coord_index(sort_coord_pts)
            state = chain.next_state(step, self.states[i], stream)
            stream.reset_next_substream()
            self.states[i] = state
            self.performances[i] = chain.performance_of(step + 1, state)
            self.stopped[i] = chain.is_terminal(step + 1, state)
        return self.n - int(self.stopped.sum())

    def simulate(self, point_set, randomization, nbr_steps, sort_coord_pts=0):
        self.check_configuration(point_set, randomization, sort_coord_pts)
        self.initial_states()
        nbr_running = self.n
        step = 0
        while (nbr_steps is None or step < nbr_steps) and nbr_running > 0:
            self.sort_chains()
            nbr_running = self.simulate_one_step(step, point_set, randomization, sort_coord_pts)
            step += 1
            logger.debug("step %d: %d of %d chains still running", step, nbr_running, self.n)
        return self.calc_mean_perf()

    def run(self, nbr_chains, nbr_steps=None):
        if nbr_chains != self.n:
            self.make_copies(nbr_chains)
        return self.simulate(self.point_set, self.randomization, nbr_steps, self.sort_coord_pts)

    def replicate(self, nbr_chains, nbr_steps, nbr_replications, tally=None):
        tally = Tally('Array-RQMC replicates') if tally is None else tally
        tally.init()
        self.make_copies(nbr_chains)
        for rep in range(nbr_replications):
            tally.add(self.simulate(self.point_set, self.randomization, nbr_steps, self.sort_coord_pts))
        logger.info("%d Array-RQMC replicates with %d chains: average %s",
                    nbr_replications, nbr_chains, tally.average())
        return tally

    def calc_mean_perf(self):
        return _mean(self.performances)
