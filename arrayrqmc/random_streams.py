import numpy as np


__all__ = ['RandomStream', 'NumpyStream']


class RandomStream:
    """ Source of uniforms on [0,1) that can be restarted at the beginning of its stream or substreams """
    def next_double(self):
        raise NotImplementedError("Subclass must implement method 'next_double'!")

    def next_array(self, size):
        return np.array([self.next_double() for _ in range(size)])

    def reset_start_stream(self):
        raise NotImplementedError("Subclass must implement method 'reset_start_stream'!")

    def reset_start_substream(self):
        raise NotImplementedError("Subclass must implement method 'reset_start_substream'!")

    def reset_next_substream(self):
        raise NotImplementedError("Subclass must implement method 'reset_next_substream'!")


class NumpyStream(RandomStream):
    def __init__(self, seed=None):
        """
        :param seed: int, None or np.random.SeedSequence; substream k starts at PCG64(seed) jumped k times
        """
        self.seed = seed
        self.seed_seq = seed if isinstance(seed, np.random.SeedSequence) else np.random.SeedSequence(seed)
        self.substream = 0
        self.gen = self._generator(0)

    def _generator(self, substream):
        bit_gen = np.random.PCG64(self.seed_seq)
        if substream:
            bit_gen = bit_gen.jumped(substream)
        return np.random.Generator(bit_gen)

    def next_double(self):
        return float(self.gen.random())

    def next_array(self, size):
        return self.gen.random(size)

    def reset_start_stream(self):
        self.substream = 0
        self.gen = self._generator(0)

    def reset_start_substream(self):
        self.gen = self._generator(self.substream)

    def reset_next_substream(self):
        self.substream += 1
        self.gen = self._generator(self.substream)
