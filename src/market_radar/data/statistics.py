"""Population statistics over one snapshot."""

import logging
from typing import Iterable, Sequence

import numpy as np
import pandas as pd

from ..core.models import AssetRecord, PopulationMetrics

logger = logging.getLogger(__name__)


def compute_metrics(values: Iterable, positive_only: bool = False) -> PopulationMetrics:
    """
    Compute mean, median, population standard deviation, min and max.

    Non-numeric and non-finite entries are dropped. With *positive_only*
    (volumes) entries <= 0 are dropped as well; otherwise signs are kept.

    Args:
        values: Raw numeric population
        positive_only: Drop zero and negative entries before computing

    Returns:
        All-zero metrics for an empty population, never raises
    """
    series = pd.to_numeric(pd.Series(list(values), dtype=object), errors="coerce").astype(float)
    series = series[np.isfinite(series)]
    if positive_only:
        series = series[series > 0]

    if series.empty:
        return PopulationMetrics()

    arr = series.to_numpy(dtype=float)
    # numpy std defaults to ddof=0, the population deviation
    return PopulationMetrics(
        average=float(arr.mean()),
        median=float(np.median(arr)),
        std_dev=float(arr.std()),
        min=float(arr.min()),
        max=float(arr.max()),
    )


def compute_volume_metrics(records: Sequence[AssetRecord]) -> PopulationMetrics:
    """Metrics over positive 24h volumes."""
    return compute_metrics((r.volume_24h for r in records), positive_only=True)


def compute_price_change_metrics(records: Sequence[AssetRecord]) -> PopulationMetrics:
    """Metrics over signed 24h percentage changes."""
    return compute_metrics(r.percent_change_24h for r in records)


def z_score(value: float, metrics: PopulationMetrics) -> float:
    """Standard score of *value*; 0 when the population has no spread."""
    if metrics.std_dev <= 0:
        return 0.0
    return (value - metrics.average) / metrics.std_dev
