"""
Group aggregation and distribution statistics.

Provides the per-group outlier aggregator, the histogram binner and the
running statistics builder.
"""

from .group_aggregator import INVALID_COUNTER, GroupValidationAggregator
from .histogram import Bin, HistogramBinner
from .stats_builder import PER_FIELD_STAT_VAR_COUNT, RunningStatsBuilder

__all__ = [
    "GroupValidationAggregator",
    "INVALID_COUNTER",
    "HistogramBinner",
    "Bin",
    "RunningStatsBuilder",
    "PER_FIELD_STAT_VAR_COUNT",
]
