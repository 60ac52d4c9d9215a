"""
Summary statistics over elapsed-time samples.

Percentiles are nearest-rank over an ascending-sorted sample: the element at
rank ceil(p * n), no interpolation. p == 0 is the minimum.
"""
from __future__ import annotations

import math
from typing import List, NamedTuple, Sequence, Tuple

import numpy as np


class Stats(NamedTuple):
    n: int
    total: float
    mean: float
    stddev: float


class BucketStats(NamedTuple):
    """What a reporter writes for one (bucket, status) pair."""
    n: int
    mean: float
    stddev: float
    percentiles: Tuple[float, ...]


def stats(samples: Sequence[float]) -> Stats:
    """
    Count, sum, mean and population standard deviation.

    Args:
        samples: A non-empty sequence of numbers; order doesn't matter.

    Returns:
        A Stats tuple.
    """
    n = len(samples)
    if n == 0:
        raise ValueError('stats() requires at least one sample')
    arr = np.asarray(samples, dtype=np.float64)
    total = float(arr.sum())
    mean = total / n
    variance = float(np.mean((arr - mean) ** 2))
    return Stats(n=n, total=total, mean=mean, stddev=math.sqrt(variance))


def nearest_rank(p: float, n: int) -> int:
    """1-based rank ceil(p * n), clamped to [1, n]."""
    # 0.7 * 10 == 7.000000000000001
    return min(max(math.ceil(round(p * n, 9)), 1), n)


def percentile(p: float, sorted_samples: Sequence[float]) -> float:
    """
    Nearest-rank percentile of an ascending-sorted sample.

    Args:
        p: The percentile as a fraction, 0 <= p <= 1.
        sorted_samples: A non-empty, ascending-sorted sequence.

    Returns:
        The sample at rank ceil(p * n) (the minimum when p == 0).
    """
    n = len(sorted_samples)
    if n == 0:
        raise ValueError('percentile() requires at least one sample')
    if p == 0:
        return sorted_samples[0]
    return sorted_samples[nearest_rank(p, n) - 1]


def percentiles(ps: Sequence[float], sorted_samples: Sequence[float]) -> List[float]:
    return [percentile(p, sorted_samples) for p in ps]


def summarize(sorted_samples: Sequence[float], ps: Sequence[float]) -> BucketStats:
    """Stats plus the percentile ladder for one sorted sample."""
    s = stats(sorted_samples)
    return BucketStats(n=s.n, mean=s.mean, stddev=s.stddev, percentiles=tuple(percentiles(ps, sorted_samples)))


def to_millis(micros: float) -> int:
    """Converts microseconds to whole milliseconds, rounding halves up."""
    return math.floor(micros / 1000 + 0.5)
