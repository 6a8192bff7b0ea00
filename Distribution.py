import abc
import random


class Distribution(abc.ABC):
    """Inter-transmission time of a sensor's tuples."""

    def __init__(self, rng=None):
        # None until a System binds its seeded generator; module-level random otherwise
        self.rng = rng

    def _random(self):
        return self.rng if self.rng is not None else random

    @abc.abstractmethod
    def next_value(self):
        pass

    @abc.abstractmethod
    def mean_inter_transmit_time(self):
        pass


class DeterministicDistribution(Distribution):
    def __init__(self, value, rng=None):
        super().__init__(rng)
        if value <= 0:
            raise ValueError(f"Inter-transmission time must be positive, got {value}")
        self.value = value

    def next_value(self):
        return self.value

    def mean_inter_transmit_time(self):
        return self.value


class ExponentialDistribution(Distribution):
    """Poisson emission process with the given mean inter-transmission time."""
    def __init__(self, mean, rng=None):
        super().__init__(rng)
        if mean <= 0:
            raise ValueError(f"Mean inter-transmission time must be positive, got {mean}")
        self.mean = mean

    def next_value(self):
        return self._random().expovariate(1.0 / self.mean)

    def mean_inter_transmit_time(self):
        return self.mean


class UniformDistribution(Distribution):
    def __init__(self, min_value, max_value, rng=None):
        super().__init__(rng)
        if min_value < 0 or max_value < min_value:
            raise ValueError(f"Invalid uniform range [{min_value}, {max_value}]")
        self.min_value = min_value
        self.max_value = max_value

    def next_value(self):
        return self._random().uniform(self.min_value, self.max_value)

    def mean_inter_transmit_time(self):
        return (self.min_value + self.max_value) / 2
