"""Summary statistics over a set of channel results, for reports and exports.
Nothing here is stored on the BatchSummary; it is all derived on demand.
"""
from collections import Counter
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy


@dataclass
class SeriesStatistics:
    count: int = 0
    mean: Optional[float] = None
    minimum: Optional[float] = None
    maximum: Optional[float] = None


def series_statistics(values: Sequence[float]) -> SeriesStatistics:
    """mean/min/max of a series; an empty series gives None for each"""
    if len(values) == 0:
        return SeriesStatistics()
    a = numpy.array(values, dtype=float)
    return SeriesStatistics(
        count=len(a),
        mean=float(a.mean()),
        minimum=float(a.min()),
        maximum=float(a.max())
    )


def peak_flow_statistics(results) -> SeriesStatistics:
    return series_statistics([r.peak_flow for r in results])


def velocity_statistics(results) -> SeriesStatistics:
    return series_statistics([r.velocity for r in results])


def size_distribution(results) -> List[Tuple[str, int]]:
    """Count of channels per selected size, most common first. Sizes with the
    same count keep the order they first appear in."""
    counts = Counter(r.selected_channel_size for r in results)
    return sorted(counts.items(), key=lambda kv: kv[1], reverse=True)


def success_rate(summary) -> float:
    """percent of channels with a successful design; 0 for an empty batch"""
    if not summary.total_channels:
        return 0.0
    return summary.successful_channels / summary.total_channels * 100


def average_time_per_channel(summary) -> float:
    """seconds"""
    if not summary.total_channels:
        return 0.0
    return summary.processing_time / summary.total_channels
