""" Accumulator of observations (scalar or vector) with Student confidence intervals """

import numpy as np
from scipy.stats import t as student_t

from .settings import CI_LEVEL


__all__ = ['Tally']


def _as_result(value):
    value = np.asarray(value)
    return float(value) if value.ndim == 0 else value


class Tally:
    def __init__(self, name=''):
        self.name = name
        self._observations = []

    def init(self):
        self._observations = []

    def add(self, x):
        if self._observations:
            assert np.shape(x) == self._observations[0].shape
        self._observations.append(np.array(x, dtype=float))

    @property
    def nbr_obs(self):
        return len(self._observations)

    def observations(self):
        return np.array(self._observations)

    def average(self):
        if not self._observations:
            return np.nan
        return _as_result(np.mean(self._observations, axis=0))

    def variance(self):
        if self.nbr_obs < 2:
            return np.nan
        return _as_result(np.var(self._observations, axis=0, ddof=1))

    def standard_deviation(self):
        return _as_result(np.sqrt(self.variance()))

    def confidence_interval_student(self, level=CI_LEVEL):
        """
        :param level: confidence level of the two sided interval
        :return: (center, half_width) of the Student-t interval for the mean
        """
        assert 0.0 < level < 1.0
        nbr_obs = self.nbr_obs
        if nbr_obs < 2:
            return self.average(), np.nan
        quantile = student_t.ppf(0.5 + 0.5 * level, nbr_obs - 1)
        half_width = quantile * np.asarray(self.standard_deviation()) / np.sqrt(nbr_obs)
        return self.average(), _as_result(half_width)

    def format_ci_student(self, level=CI_LEVEL, digits=3):
        center, half_width = self.confidence_interval_student(level)
        center = np.atleast_1d(center)
        half_width = np.atleast_1d(half_width) * np.ones_like(center)
        intervals = ', '.join(f"[{c - h:.{digits}f}, {c + h:.{digits}f}]" for c, h in zip(center, half_width))
        return f"  {100 * level:.0f}% confidence interval for mean (student): {intervals}"

    def report(self, level=CI_LEVEL, digits=3):
        lines = [f"REPORT on Tally stat. collector ==> {self.name}",
                 f"    num. obs.: {self.nbr_obs}",
                 f"    average:   {np.array2string(np.atleast_1d(self.average()), precision=digits + 3)}",
                 f"    std. dev.: {np.array2string(np.atleast_1d(self.standard_deviation()), precision=digits + 3)}",
                 self.format_ci_student(level, digits)]
        return '\n'.join(lines)

    def __repr__(self):
        return f"Tally(name={self.name!r}, nbr_obs={self.nbr_obs})"
