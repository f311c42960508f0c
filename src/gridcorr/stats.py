import math
from dataclasses import dataclass
from typing import Iterable


@dataclass(frozen=True)
class Summary:
    n: int
    mean: float
    variance: float
    std: float


class RunningStatistics:
    r"""
    Running mean and variance using the recurrence formulas from Knuth,
    The Art of Computer Programming, Vol 2, 3rd edition, page 232.

    Samples are never stored. A second population can be merged in from its
    summary statistics alone, see :meth:`merge_population`.

    Examples
    --------
    >>> rs = RunningStatistics()
    >>> rs.extend([1.0, 2.0, 3.0])
    >>> rs.mean, rs.variance
    (2.0, 1.0)
    """

    def __init__(self):
        self._n = 0
        self._mean = 0.0
        self._sum_sq = 0.0

    @property
    def n(self) -> int:
        return self._n

    @property
    def mean(self) -> float:
        return self._mean if self._n > 0 else 0.0

    @property
    def variance(self) -> float:
        return self._sum_sq / (self._n - 1) if self._n > 1 else 0.0

    @property
    def std(self) -> float:
        return math.sqrt(self.variance)

    def clear(self):
        self._n = 0
        self._mean = 0.0
        self._sum_sq = 0.0

    def push(self, x: float):
        r"""
        Add one sample and update the mean and sum of squared deviations.

        Parameters
        ----------
        x : float
            Sample value.
        """
        self._n += 1
        if self._n == 1:
            self._mean = x
            self._sum_sq = 0.0
        else:
            old_mean = self._mean
            self._mean = old_mean + (x - old_mean) / self._n
            self._sum_sq = self._sum_sq + (x - old_mean) * (x - self._mean)

    def extend(self, values: Iterable[float]):
        for x in values:
            self.push(x)

    def merge_population(self, n: int, mean: float, std: float):
        r"""
        Combine a second population, given only its size, mean and standard
        deviation, with the samples accumulated so far.

        The combined variance weights each population by its sample count
        (not count minus one), see :meth:`combine_variance`. The stored sum of
        squares is then rescaled with ``n - 1`` so that :attr:`variance` keeps
        its usual divisor.

        Parameters
        ----------
        n : int
            Number of samples in the second population.
        mean : float
            Mean of the second population.
        std : float
            Standard deviation of the second population.
        """
        if n == 0:
            return
        if self._n == 0:
            self._n = n
            self._mean = mean
            self._sum_sq = std**2 * (n - 1)
            return

        mean_ab = self.combine_means(self._n, self.mean, n, mean)
        variance_ab = self.combine_variance(
            self._n, self.mean, self.variance, n, mean, std**2, mean_ab
        )
        self._n += n
        self._mean = mean_ab
        self._sum_sq = variance_ab * (self._n - 1)

    def merge(self, other: "RunningStatistics"):
        self.merge_population(other.n, other.mean, other.std)

    def snapshot(self) -> Summary:
        return Summary(n=self.n, mean=self.mean, variance=self.variance, std=self.std)

    @staticmethod
    def combine_means(na: float, mean_a: float, nb: float, mean_b: float) -> float:
        return (na * mean_a + nb * mean_b) / (na + nb)

    @staticmethod
    def combine_variance(
        na: float,
        mean_a: float,
        variance_a: float,
        nb: float,
        mean_b: float,
        variance_b: float,
        mean_ab: float,
    ) -> float:
        r"""
        Combine the variances of populations A and B.

        ``mean_ab`` must be the combined mean, i.e. the result of
        :meth:`combine_means` for the same populations.
        """
        return na * (variance_a + (mean_a - mean_ab) ** 2) / (na + nb) + nb * (
            variance_b + (mean_b - mean_ab) ** 2
        ) / (na + nb)

    @staticmethod
    def combine_std(
        na: float,
        mean_a: float,
        std_a: float,
        nb: float,
        mean_b: float,
        std_b: float,
        mean_ab: float,
    ) -> float:
        return math.sqrt(
            RunningStatistics.combine_variance(
                na, mean_a, std_a**2, nb, mean_b, std_b**2, mean_ab
            )
        )

    def __repr__(self):
        return f"RunningStatistics(n={self.n}, mean={self.mean}, std={self.std})"
