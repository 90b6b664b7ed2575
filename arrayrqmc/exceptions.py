""" Exceptions raised by the Array-RQMC engine. None of them is meant to be retried. """


__all__ = ['ArrayRQMCError', 'ConfigurationError', 'BitWidthError', 'ChainStoppedError']


class ArrayRQMCError(Exception):
    pass


class ConfigurationError(ArrayRQMCError, ValueError):
    """ Misconfigured experiment: point set size, point dimension, sort coordinates, batch numbers. """


class BitWidthError(ConfigurationError):
    """ Hilbert curve map requested with a number of bits that does not fit a 63-bit index. """


class ChainStoppedError(ArrayRQMCError, RuntimeError):
    """ A chain was asked to advance after it reached its stopping condition. """
