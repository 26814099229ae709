"""Consumed capacity estimation from raw metric datapoints.

Metric services report consumed capacity per period, either as a ``Sum`` over
the period or as an ``Average`` per second. The estimator normalizes each
datapoint to units per second and reduces the window to one value.
"""

import logging
from enum import Enum
from typing import Iterable, Optional, Union

import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_PERIOD_SECONDS = 60


class MetricStatistic(str, Enum):
    """How datapoints were aggregated by the metric service."""

    SUM = "Sum"
    AVERAGE = "Average"


class WindowAggregation(str, Enum):
    """How the normalized window is reduced to one value."""

    MAX = "max"
    MEAN = "mean"


class ConsumedCapacityEstimator:
    """Turns a window of datapoints into consumed units per second."""

    def __init__(
        self,
        period_seconds: float = DEFAULT_PERIOD_SECONDS,
        statistic: Union[MetricStatistic, str] = MetricStatistic.SUM,
        aggregation: Union[WindowAggregation, str] = WindowAggregation.MAX,
    ):
        if period_seconds <= 0:
            raise ValueError("period_seconds must be > 0")
        self.period_seconds = float(period_seconds)
        self.statistic = MetricStatistic(statistic)
        self.aggregation = WindowAggregation(aggregation)

    def per_second(self, datapoints: Iterable[Optional[float]]) -> np.ndarray:
        """Normalized datapoints with missing values dropped."""
        values = np.asarray(
            [np.nan if v is None else v for v in datapoints], dtype=float
        )
        values = values[~np.isnan(values)]
        if self.statistic == MetricStatistic.SUM:
            values = values / self.period_seconds
        return values

    def estimate(self, datapoints: Iterable[Optional[float]]) -> float:
        values = self.per_second(datapoints)
        if values.size == 0:
            logger.debug("No consumed capacity datapoints, assuming 0")
            return 0.0
        if self.aggregation == WindowAggregation.MEAN:
            result = float(np.mean(values))
        else:
            result = float(np.max(values))
        return max(result, 0.0)
