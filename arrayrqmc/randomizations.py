""" Randomizations of point sets: each call to randomize draws a new independent sample of the base points """

import numpy as np

from .settings import DEFAULT_SEED, DIGITAL_BITS


__all__ = ['PointSetRandomization', 'RandomShift', 'DigitalShift', 'LinearMatrixScramble']


class PointSetRandomization:
    def __init__(self, seed=None):
        self.seed = DEFAULT_SEED if seed is None else seed
        self.gen = np.random.default_rng(seed=self.seed)

    def reset(self):
        """ restart the underlying generator, the next randomizations repeat the previous ones """
        self.gen = np.random.default_rng(seed=self.seed)

    def randomize(self, point_set):
        """ return a randomized copy of point_set.base_points, of the same shape """
        raise NotImplementedError("Subclass must implement method 'randomize'!")


class RandomShift(PointSetRandomization):
    """ Cranley-Patterson rotation: one uniform shift per coordinate, modulo 1 """
    def randomize(self, point_set):
        base = point_set.base_points
        shift = self.gen.random(base.shape[1])
        return np.remainder(base + shift[None, :], 1.0)


def _to_digits(base, bits):
    return np.floor(base * float(1 << bits)).astype(np.int64)


class DigitalShift(PointSetRandomization):
    """ xor of the first bits binary digits of every coordinate with a random digit vector """
    def __init__(self, seed=None, bits=DIGITAL_BITS):
        super().__init__(seed)
        assert 0 < bits < 63
        self.bits = bits

    def randomize(self, point_set):
        base = point_set.base_points
        shift = self.gen.integers(0, 1 << self.bits, size=base.shape[1], dtype=np.int64)
        return (_to_digits(base, self.bits) ^ shift[None, :]) / float(1 << self.bits)


class LinearMatrixScramble(PointSetRandomization):
    """
    Matousek's linear scramble in base 2 followed by a digital shift.
    Digit vector x of each coordinate is mapped to M x + C mod 2, M lower triangular with unit diagonal.
    """
    def __init__(self, seed=None, bits=DIGITAL_BITS):
        super().__init__(seed)
        assert 0 < bits < 63
        self.bits = bits

    def scramble_matrix(self):
        matrix = np.tril(self.gen.integers(0, 2, size=(self.bits, self.bits), dtype=np.int64), k=-1)
        matrix[np.diag_indices(self.bits)] = 1
        shift = self.gen.integers(0, 2, size=self.bits, dtype=np.int64)
        return matrix, shift

    def randomize(self, point_set):
        base = point_set.base_points
        ints = _to_digits(base, self.bits)
        # column k holds digit k+1 after the binary point
        powers = np.arange(self.bits - 1, -1, -1, dtype=np.int64)
        scrambled = np.empty_like(ints)
        for j in range(base.shape[1]):
            matrix, shift = self.scramble_matrix()
            digits = (ints[:, j, None] >> powers[None, :]) & 1
            new_digits = ((digits @ matrix.T) + shift[None, :]) & 1
            scrambled[:, j] = (new_digits << powers[None, :]).sum(axis=1)
        return scrambled / float(1 << self.bits)
