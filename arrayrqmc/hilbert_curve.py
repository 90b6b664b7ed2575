""" Hilbert curve map between subcubes of [0,1)^d and their position along the curve.

The table driven recurrence follows hilbert.c by Spencer W. Thomas (Butz' algorithm).
A map is built once for a pair (d, m) and is never modified afterwards, so one
instance can be shared by any number of sorts.
"""

import numpy as np

from .exceptions import BitWidthError, ConfigurationError


__all__ = ['HilbertCurveMap', 'MAX_INDEX_BITS', 'MAX_TABLE_DIMENSION']

MAX_INDEX_BITS = 63
# the lookup tables have 2^d rows, circshift alone holds d * 2^d entries
MAX_TABLE_DIMENSION = 16


class HilbertCurveMap:
    def __init__(self, dimension, m=None):
        """
        :param dimension: dimension d of the points mapped onto the curve
        :param m: number of bits retained per coordinate, default is floor(63 / d)
        """
        if dimension < 1:
            raise BitWidthError(f"Hilbert curve dimension must be positive, got {dimension}")
        if dimension > MAX_TABLE_DIMENSION:
            raise BitWidthError(
                f"Hilbert curve dimension {dimension} above {MAX_TABLE_DIMENSION}: tables of 2^{dimension} rows")
        if m is None:
            m = MAX_INDEX_BITS // dimension
        if m < 1 or dimension * m > MAX_INDEX_BITS:
            raise BitWidthError(
                f"Cannot retain {m} bits in each of {dimension} coordinates: d*m must be in [1, {MAX_INDEX_BITS}]")
        self.dimension = dimension
        self.m = m
        self.max_length = 1 << dimension  # 2^d
        self._init_tables()

    def _init_tables(self):
        n = self.dimension
        two_n = self.max_length
        words = np.arange(two_n, dtype=np.int64)
        shifts = np.arange(n, dtype=np.int64)

        # bit[b] is the mask of axis b, axis 0 being the most significant bit of a d-bit word
        bit = np.left_shift(1, n - shifts - 1).astype(np.int64)
        bitof = ((words[:, None] & bit[None, :]) != 0).astype(np.uint8)
        # right circular shift of a d-bit word by b bits
        circshift = ((words[:, None] >> shifts[None, :]) | (words[:, None] << (n - shifts)[None, :])) & (two_n - 1)
        parity = (bitof.sum(axis=1) & 1).astype(np.int64)

        # sigma xors every bit with its higher neighbour (gray code); s_to_p is its inverse
        p_to_s = words ^ (words >> 1)
        s_to_p = np.empty_like(p_to_s)
        s_to_p[p_to_s] = words

        # principal position: last axis whose bit differs from the bit of axis d-1, d-1 if none
        differs = bitof != bitof[:, n - 1:n]
        last = n - 1 - np.argmax(differs[:, ::-1], axis=1)
        p_to_j = np.where(differs.any(axis=1), last, n - 1).astype(np.int64)

        for table in (bit, bitof, circshift, parity, p_to_s, s_to_p, p_to_j):
            table.setflags(write=False)
        self.bit = bit
        self.bitof = bitof
        self.circshift = circshift
        self.parity = parity
        self.p_to_s = p_to_s
        self.s_to_p = s_to_p
        self.p_to_j = p_to_j

        # plain python copies for the scalar code path
        self._bit = bit.tolist()
        self._circshift = circshift.tolist()
        self._parity = parity.tolist()
        self._p_to_s = p_to_s.tolist()
        self._s_to_p = s_to_p.tolist()
        self._p_to_j = p_to_j.tolist()

    @property
    def nbr_cubes(self):
        return 1 << (self.dimension * self.m)

    def __repr__(self):
        return f"HilbertCurveMap(dimension={self.dimension}, m={self.m})"

    def point_to_coordinates(self, point):
        """ Integer coordinates of the subcube containing the first d coordinates of point """
        if len(point) < self.dimension:
            raise ConfigurationError(f"Point has {len(point)} coordinates, the Hilbert map needs {self.dimension}")
        scale = 1 << self.m
        coords = []
        for j in range(self.dimension):
            if not 0.0 <= point[j] < 1.0:
                raise ConfigurationError(f"Coordinate {j} of point is {point[j]}, not in [0, 1)")
            coords.append(int(point[j] * scale))
        return coords

    def points_to_coordinates(self, points):
        """ Vectorised point_to_coordinates for an array of shape (nbr_points, >= d) """
        points = np.asarray(points, dtype=float)
        assert points.ndim == 2
        if points.shape[1] < self.dimension:
            raise ConfigurationError(
                f"Points have {points.shape[1]} coordinates, the Hilbert map needs {self.dimension}")
        block = points[:, :self.dimension]
        if block.size and (block.min() < 0.0 or block.max() >= 1.0):
            raise ConfigurationError("Points to be mapped on the Hilbert curve must lie in [0, 1)^d")
        return np.floor(block * float(1 << self.m)).astype(np.int64)

    def coordinates_to_index(self, coords):
        """
        :param coords: integer subcube coordinates, each in [0, 2^m)
        :return: position of the subcube along the Hilbert curve, in [0, 2^(d*m))
        """
        n, m = self.dimension, self.m
        bit, circshift, parity = self._bit, self._circshift, self._parity
        # unpack the coordinates into one d-bit word per level, most significant level first
        alpha = [0] * m
        for b in range(n):
            t = int(coords[b])
            if t < 0 or t >> m:
                raise ConfigurationError(f"Coordinate {b} = {t} does not fit in {m} bits")
            for i in range(m):
                if (t >> (m - 1 - i)) & 1:
                    alpha[i] |= bit[b]

        r = 0
        jsum = 0
        omega = 0
        tau_t = 0
        for i in range(m):
            # omega[i] is omega[i-1] xor tauT[i-1]
            omega ^= tau_t
            sigma_t = alpha[i] ^ omega
            # sigma[i] is the left circular shift of sigmaT[i] by jsum
            sigma = circshift[sigma_t][(n - jsum) % n]
            rho = self._s_to_p[sigma]
            j = self._p_to_j[rho]
            # tau[i] complements the low bit of sigma[i], and bit J[i] if needed to get even parity
            tau = sigma ^ 1
            if parity[tau]:
                tau ^= bit[j]
            tau_t = circshift[tau][jsum]
            jsum = (jsum + j) % n
            r = (r << n) | rho
        return r

    def index_to_coordinates(self, r):
        """
        :param r: position along the Hilbert curve, in [0, 2^(d*m))
        :return: list of the d integer coordinates of the subcube at that position
        """
        n, m = self.dimension, self.m
        r = int(r)
        if r < 0 or r >> (n * m):
            raise ConfigurationError(f"Hilbert index {r} does not fit in {n * m} bits")
        bit, circshift, parity = self._bit, self._circshift, self._parity
        mask = self.max_length - 1
        rho = [(r >> (n * (m - 1 - i))) & mask for i in range(m)]

        alpha = []
        jsum = 0
        omega = 0
        tau_t = 0
        for i in range(m):
            rh = rho[i]
            j = self._p_to_j[rh]
            sigma = self._p_to_s[rh]
            tau = sigma ^ 1
            if parity[tau]:
                tau ^= bit[j]
            # sigmaT and tauT are right circular shifts by the sum of J[0..i-1]
            sigma_t = circshift[sigma][jsum]
            omega ^= tau_t
            tau_t = circshift[tau][jsum]
            jsum = (jsum + j) % n
            alpha.append(omega ^ sigma_t)

        coords = []
        for b in range(n):
            bt = bit[b]
            value = 0
            for i in range(m):
                value = (value << 1) | (1 if alpha[i] & bt else 0)
            coords.append(value)
        return coords

    def coordinates_to_indices(self, coords):
        """ Vectorised coordinates_to_index for an integer array of shape (nbr_points, d) """
        coords = np.asarray(coords, dtype=np.int64)
        assert coords.ndim == 2 and coords.shape[1] == self.dimension
        if coords.size and (coords.min() < 0 or (coords >> self.m).any()):
            raise ConfigurationError(f"Subcube coordinates must lie in [0, 2^{self.m})")
        n, m = self.dimension, self.m
        nbr_points = coords.shape[0]
        r = np.zeros(nbr_points, dtype=np.int64)
        jsum = np.zeros(nbr_points, dtype=np.int64)
        omega = np.zeros(nbr_points, dtype=np.int64)
        tau_t = np.zeros(nbr_points, dtype=np.int64)
        for i in range(m):
            alpha = (((coords >> (m - 1 - i)) & 1) * self.bit[None, :]).sum(axis=1)
            omega = omega ^ tau_t
            sigma = self.circshift[alpha ^ omega, (n - jsum) % n]
            rho = self.s_to_p[sigma]
            j = self.p_to_j[rho]
            tau = sigma ^ 1
            tau = np.where(self.parity[tau] == 1, tau ^ self.bit[j], tau)
            tau_t = self.circshift[tau, jsum]
            jsum = (jsum + j) % n
            r = (r << n) | rho
        return r

    def indices(self, points):
        """ Hilbert indices of an array of points in [0,1)^d, one per row """
        return self.coordinates_to_indices(self.points_to_coordinates(points))
