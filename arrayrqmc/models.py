""" Example chains used by the demo and the tests """

import numpy as np
from scipy.special import ndtr, ndtri

from .exceptions import ConfigurationError
from .markov_chains import MarkovChainComparable, MarkovChainDouble


__all__ = ['RandomWalkChain', 'AsianCallChain']

# keeps ndtri finite on uniforms equal to 0
TOL = 1e-10
ONE_MINUS_EPS = np.nextafter(1.0, 0.0)


def _to_normal(u):
    return ndtri(0.5 + (1.0 - TOL) * (u - 0.5))


def _clip_unit(p):
    return np.clip(p, 0.0, ONE_MINUS_EPS)


class RandomWalkChain(MarkovChainDouble):
    """ x_{t+1} = x_t + U_t - 1/2, stopped after horizon steps; the performance is the current position """
    def __init__(self, horizon=5, initial=0.0):
        super().__init__()
        assert horizon >= 1
        self.horizon = horizon
        self.initial = initial

    def initial_state_value(self):
        return self.initial

    def next_state(self, step, state, stream):
        return state + stream.next_double() - 0.5

    def is_terminal(self, step, state):
        return step >= self.horizon

    def performance_of(self, step, state):
        return state

    def unit_point(self):
        # the sum of step uniforms has variance step / 12
        scale = np.sqrt(max(self.step, 1) / 12.0)
        return _clip_unit(np.array([ndtr((self.state - self.initial) / scale)]))


class AsianCallChain(MarkovChainComparable):
    """
    Arithmetic average Asian call under geometric Brownian motion, one fixing per step.
    State: (current price, running average of the fixings). Performance: discounted payoff once all
    fixings are known, zero before.
    """
    state_dim = 2
    dim_per_step = 1

    def __init__(self, spot=100.0, strike=100.0, short_rate=0.05, vol=0.2, expiry=1.0, nbr_fixings=12):
        super().__init__()
        self.spot = spot
        self.strike = strike
        self.short_rate = short_rate
        self.vol = vol
        self.expiry = expiry
        self.nbr_fixings = nbr_fixings
        self.dt = expiry / nbr_fixings
        self.drift = (short_rate - 0.5 * vol ** 2) * self.dt
        self.diffusion = vol * np.sqrt(self.dt)
        self.discount = np.exp(-short_rate * expiry)
        self.price = spot
        self.average = spot
        self.payoff = 0.0

    def initial_state(self):
        super().initial_state()
        self.price = self.spot
        self.average = self.spot
        self.payoff = 0.0

    def next_step(self, stream):
        z = _to_normal(stream.next_double())
        self.price *= np.exp(self.drift + self.diffusion * z)
        nbr_fixed = self.step + 1
        self.average += (self.price - self.average) / nbr_fixed
        if nbr_fixed >= self.nbr_fixings:
            self.stopped = True
            self.payoff = self.discount * max(self.average - self.strike, 0.0)

    def performance(self):
        return self.payoff

    def _state(self, coordinate):
        if coordinate not in (0, 1):
            raise ConfigurationError(f"Sort coordinate {coordinate} out of range for a chain with state_dim=2")
        return self.price if coordinate == 0 else self.average

    def compare(self, other, coordinate):
        mine, theirs = self._state(coordinate), other._state(coordinate)
        if mine < theirs:
            return -1
        if mine > theirs:
            return 1
        return 0

    def unit_point(self):
        if self.step == 0:
            return np.array([0.5, 0.5])
        t = self.step * self.dt
        mean = (self.short_rate - 0.5 * self.vol ** 2) * t
        # log of the average is roughly normal with a third of the variance of the log price
        z_price = (np.log(self.price / self.spot) - mean) / (self.vol * np.sqrt(t))
        z_average = (np.log(self.average / self.spot) - 0.5 * mean) / (self.vol * np.sqrt(t / 3.0))
        return _clip_unit(ndtr(np.array([z_price, z_average])))
