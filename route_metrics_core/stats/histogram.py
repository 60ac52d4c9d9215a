"""
Streaming histogram for buckets too large to keep as flat arrays.

Values are counted in logarithmic buckets whose upper bound is at most
10**-significant_figures larger than their lower bound, so any percentile is
reported with that relative precision. Recording is O(1); a percentile query
is a bisect over cached cumulative counts.
"""
from __future__ import annotations

import bisect
import math
from typing import Dict, Iterable, List, Optional, Sequence

from route_metrics_core.stats.stats import BucketStats, nearest_rank

ZERO_BUCKET = -(2 ** 62)


class Histogram:
    def __init__(self, significant_figures: int = 3) -> None:
        if not 1 <= significant_figures <= 6:
            raise ValueError('significant_figures must be between 1 and 6')
        self.significant_figures = significant_figures
        self.precision = 10.0 ** -significant_figures
        self._log_base = math.log1p(self.precision)
        self._counts: Dict[int, int] = {}
        self.count = 0
        self.min: Optional[float] = None
        self.max: Optional[float] = None
        # Welford running mean / sum of squared deviations
        self._mean = 0.0
        self._m2 = 0.0
        self._keys: List[int] = []
        self._cumulative: List[int] = []
        self._dirty = False

    def _index(self, value: float) -> int:
        if value == 0:
            return ZERO_BUCKET
        return math.floor(math.log(value) / self._log_base)

    def _upper(self, index: int) -> float:
        if index == ZERO_BUCKET:
            return 0.0
        return math.exp((index + 1) * self._log_base)

    def record(self, value: float, count: int = 1) -> None:
        if value < 0:
            raise ValueError(f'histogram values must be non-negative, not {value}')
        if count < 1:
            raise ValueError('count must be positive')
        ix = self._index(value)
        self._counts[ix] = self._counts.get(ix, 0) + count
        self._dirty = True

        self.min = value if self.min is None else min(self.min, value)
        self.max = value if self.max is None else max(self.max, value)

        # update n times with the same value
        n = self.count + count
        delta = value - self._mean
        self._mean += delta * count / n
        self._m2 += delta * delta * self.count * count / n
        self.count = n

    def record_all(self, values: Iterable[float]) -> 'Histogram':
        for v in values:
            self.record(v)
        return self

    def merge(self, other: 'Histogram') -> None:
        """Adds another histogram's observations; both must use the same precision."""
        if other.significant_figures != self.significant_figures:
            raise ValueError('cannot merge histograms with different precision')
        if other.count == 0:
            return
        for ix, c in other._counts.items():
            self._counts[ix] = self._counts.get(ix, 0) + c
        self._dirty = True
        self.min = other.min if self.min is None else min(self.min, other.min)
        self.max = other.max if self.max is None else max(self.max, other.max)

        n = self.count + other.count
        delta = other._mean - self._mean
        self._m2 += other._m2 + delta * delta * self.count * other.count / n
        self._mean += delta * other.count / n
        self.count = n

    def _rebuild(self) -> None:
        self._keys = sorted(self._counts)
        running = 0
        self._cumulative = []
        for k in self._keys:
            running += self._counts[k]
            self._cumulative.append(running)
        self._dirty = False

    def percentile(self, p: float) -> float:
        """
        Nearest-rank percentile, to within the histogram's precision. The
        minimum (p == 0) and the top rank are exact.
        """
        if self.count == 0:
            raise ValueError('percentile() of an empty histogram')
        if p == 0:
            return self.min
        rank = nearest_rank(p, self.count)
        if rank == self.count:
            return self.max
        if self._dirty:
            self._rebuild()
        i = bisect.bisect_left(self._cumulative, rank)
        value = self._upper(self._keys[i])
        return min(max(value, self.min), self.max)

    def percentiles(self, ps: Sequence[float]) -> List[float]:
        return [self.percentile(p) for p in ps]

    @property
    def mean(self) -> float:
        return self._mean if self.count else float('nan')

    @property
    def stddev(self) -> float:
        return math.sqrt(self._m2 / self.count) if self.count else float('nan')

    def summarize(self, ps: Sequence[float]) -> BucketStats:
        return BucketStats(n=self.count, mean=self.mean, stddev=self.stddev, percentiles=tuple(self.percentiles(ps)))


def histogram_stats(samples: Iterable[float], ps: Sequence[float], significant_figures: int = 3) -> BucketStats:
    """Same ladder as stats.summarize, from a histogram instead of a sorted copy of the samples."""
    return Histogram(significant_figures).record_all(samples).summarize(ps)
