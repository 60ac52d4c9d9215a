"""Exponential moving average over streaming data."""
from __future__ import annotations


class WeightedExpMovingAverage:
    """
    mean_t = (1 - alpha) * mean_{t-1} + alpha * x_t

    An alpha of 0.1 is a reasonable default for one-second samples. The two
    products are computed and summed in that order so re-deriving a trend from
    the same samples reproduces it exactly.
    """
    def __init__(self, alpha: float, mean: float = 0.0) -> None:
        if not 0.0 < alpha <= 1.0:
            raise ValueError(f'alpha must be in (0, 1], not {alpha}')
        self.alpha = alpha
        self.beta = 1 - alpha
        self.mean = mean

    def update(self, value: float) -> float:
        # previous observations' weight
        redistributed_mean = self.beta * self.mean
        # new observation's weight
        mean_increment = self.alpha * value

        self.mean = redistributed_mean + mean_increment
        return self.mean
