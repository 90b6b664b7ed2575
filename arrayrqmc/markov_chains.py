""" Markov chains simulated step by step from a stream of uniforms.

A chain owns its state, knows when it has stopped and what its performance is. Subclasses implement
initial_state, next_step and performance; advance wraps next_step and refuses to move a stopped chain.
The simulate_* methods give plain Monte Carlo and classical RQMC estimators (one point per trajectory)
to compare Array-RQMC against.
"""

import logging
from copy import deepcopy

import numpy as np

from .exceptions import ChainStoppedError, ConfigurationError
from .random_streams import NumpyStream
from .settings import CI_LEVEL, DEFAULT_SEED
from .statistics import Tally


__all__ = ['MultiDimComparable', 'MarkovChain', 'MarkovChainComparable', 'MarkovChainDouble']

logger = logging.getLogger(__name__)


class MultiDimComparable:
    """ object ranked separately along each of its state_dim coordinates """
    state_dim = 1

    def compare(self, other, coordinate):
        """ return -1, 0 or 1 when self is smaller, equal or larger than other in coordinate """
        raise NotImplementedError("Subclass must implement method 'compare'!")


class MarkovChain:
    # number of uniforms used by one step, None if it varies
    dim_per_step = None

    def __init__(self):
        self.stopped = False
        self.step = 0

    def initial_state(self):
        """ subclasses reset their own state after calling this """
        self.stopped = False
        self.step = 0

    def next_step(self, stream):
        raise NotImplementedError("Subclass must implement method 'next_step'!")

    def performance(self):
        raise NotImplementedError("Subclass must implement method 'performance'!")

    def has_stopped(self):
        return self.stopped

    def advance(self, stream):
        if self.has_stopped():
            raise ChainStoppedError(f"{type(self).__name__} has stopped after {self.step} steps")
        self.next_step(stream)
        self.step += 1

    def clone(self):
        return deepcopy(self)

    def simulate_steps(self, nbr_steps, stream):
        """
        Start from the initial state and advance until the chain stops or nbr_steps steps are done.
        :param nbr_steps: maximal number of steps, None for no limit
        :return: number of steps made
        """
        self.initial_state()
        while (nbr_steps is None or self.step < nbr_steps) and not self.has_stopped():
            self.advance(stream)
        return self.step

    def simulate_runs(self, n, nbr_steps, stream, tally):
        tally.init()
        for _ in range(n):
            self.simulate_steps(nbr_steps, stream)
            tally.add(self.performance())
        return tally

    def simulate_runs_with_substreams(self, n, nbr_steps, stream, tally):
        """ as simulate_runs, run i using substream i of stream """
        tally.init()
        stream.reset_start_stream()
        for _ in range(n):
            self.simulate_steps(nbr_steps, stream)
            tally.add(self.performance())
            stream.reset_next_substream()
        return tally

    def simulate_mc(self, n, nbr_steps=None, seed=None):
        """ average performance over n independent runs """
        tally = Tally('MC runs')
        stream = NumpyStream(DEFAULT_SEED if seed is None else seed)
        self.simulate_runs(n, nbr_steps, stream, tally)
        return tally.average()

    def simulate_rep_mc(self, n, nbr_steps, m, tally=None, seed=None):
        """ m independent replicates of simulate_mc, their averages are added to tally """
        tally = Tally('MC replicates') if tally is None else tally
        tally.init()
        children = np.random.SeedSequence(DEFAULT_SEED if seed is None else seed).spawn(m)
        for child in children:
            tally.add(self.simulate_mc(n, nbr_steps, seed=child))
        return tally

    def simulate_rqmc(self, point_set, m, nbr_steps, randomization, tally=None):
        """
        Classical RQMC: point i of the randomized point set drives the whole trajectory of run i.
        Each of the m replicates adds the average over the point set to tally.
        """
        tally = Tally('RQMC replicates') if tally is None else tally
        tally.init()
        runs = Tally('RQMC runs')
        stream = point_set.iterator()
        for rep in range(m):
            point_set.randomize(randomization)
            self.simulate_runs_with_substreams(point_set.nbr_points, nbr_steps, stream, runs)
            tally.add(runs.average())
            logger.debug("RQMC replicate %d: average %s", rep, runs.average())
        return tally

    def format_results(self, tally, level=CI_LEVEL):
        lines = [f"Average:  {tally.average()}",
                 f"Variance: {tally.variance()}",
                 tally.format_ci_student(level, 3)]
        return '\n'.join(lines)

    def format_results_rqmc(self, tally, nbr_points, level=CI_LEVEL):
        lines = [f"Average:  {tally.average()}",
                 f"Variance * numPoints: {np.asarray(tally.variance()) * nbr_points}",
                 tally.format_ci_student(level, 3)]
        return '\n'.join(lines)

    def __repr__(self):
        return f"{type(self).__name__}(step={self.step}, stopped={self.stopped})"


class MarkovChainComparable(MarkovChain, MultiDimComparable):
    """ chain whose states can be sorted, needed by Array-RQMC """
    def unit_point(self):
        """ state mapped to a point of [0,1)^state_dim, used by Hilbert curve sorts """
        raise NotImplementedError("Subclass must implement method 'unit_point'!")


class MarkovChainDouble(MarkovChainComparable):
    """
    Chain with a single float state. Subclasses give the transition through hooks taking the step number
    and the state, so that ArrayOfDoubleChains can run them on arrays of states without chain objects.
    """
    state_dim = 1
    dim_per_step = 1

    def __init__(self):
        super().__init__()
        self.state = 0.0
        self.perf = 0.0

    def initial_state_value(self):
        raise NotImplementedError("Subclass must implement method 'initial_state_value'!")

    def next_state(self, step, state, stream):
        """ state after step number step + 1, starting from state """
        raise NotImplementedError("Subclass must implement method 'next_state'!")

    def is_terminal(self, step, state):
        return False

    def performance_of(self, step, state):
        raise NotImplementedError("Subclass must implement method 'performance_of'!")

    def initial_state(self):
        super().initial_state()
        self.state = self.initial_state_value()
        self.perf = self.performance_of(0, self.state)

    def next_step(self, stream):
        self.state = self.next_state(self.step, self.state, stream)
        self.perf = self.performance_of(self.step + 1, self.state)
        if self.is_terminal(self.step + 1, self.state):
            self.stopped = True

    def performance(self):
        return self.perf

    def compare(self, other, coordinate):
        if coordinate != 0:
            raise ConfigurationError(f"Sort coordinate {coordinate} out of range for a chain with state_dim=1")
        if self.state < other.state:
            return -1
        if self.state > other.state:
            return 1
        return 0
