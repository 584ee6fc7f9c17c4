"""Weighted composite scoring of assets."""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

from ..core.enums import Severity
from ..core.models import (
    AnomalyResult, AssetRecord, Dataset, FilterCriteria, PatternResult,
    PopulationMetrics, Score, ScoredAsset,
)
from .anomaly import detect_anomalies
from .patterns import calculate_pattern_score, find_repeating_patterns

logger = logging.getLogger(__name__)

WEIGHT_PRICE_CHANGE = 0.4
WEIGHT_VOLUME = 0.3
WEIGHT_ANOMALY = 0.2
WEIGHT_PATTERN = 0.1

# (threshold, points), checked from the top; first strict match wins
PRICE_CHANGE_TIERS = ((50.0, 40.0), (30.0, 30.0), (20.0, 20.0), (10.0, 10.0))
MINUTE_CHANGE_TIERS = ((1.0, 30.0), (0.5, 20.0), (0.2, 10.0))
VOLUME_Z_TIERS = ((3.0, 100.0), (2.0, 75.0), (1.5, 50.0), (1.0, 25.0))

SEVERITY_BASE_SCORE = {
    Severity.HIGH: 80.0,
    Severity.MEDIUM: 50.0,
    Severity.LOW: 25.0,
    Severity.NORMAL: 0.0,
}
EXTREME_Z = 3.0
EXTREME_Z_BONUS = 20.0


def round_score(value: float) -> float:
    """Round to 2 decimals, half away from zero."""
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _tier_points(value: float, tiers) -> float:
    for threshold, points in tiers:
        if value > threshold:
            return points
    return 0.0


def calculate_price_change_score(record: AssetRecord) -> float:
    """Up to 40 points for the 24h move plus up to 30 for per-minute velocity."""
    score = (
        _tier_points(abs(record.percent_change_24h), PRICE_CHANGE_TIERS)
        + _tier_points(abs(record.minute_change), MINUTE_CHANGE_TIERS)
    )
    return min(score, 100.0)


def calculate_volume_score(record: AssetRecord) -> float:
    """Step function of |volume z-score|."""
    return _tier_points(abs(record.volume_z_score), VOLUME_Z_TIERS)


def anomaly_score_from_result(result: AnomalyResult) -> float:
    if not result.has_anomaly:
        return 0.0
    score = SEVERITY_BASE_SCORE[result.overall_severity]
    if result.price_anomaly.z_score > EXTREME_Z or result.volume_anomaly.z_score > EXTREME_Z:
        score = min(score + EXTREME_Z_BONUS, 100.0)
    return score


def calculate_anomaly_score(
    record: AssetRecord,
    volume_metrics: PopulationMetrics,
    price_metrics: PopulationMetrics,
    filters: Optional[FilterCriteria] = None,
) -> float:
    """Severity-based score with a bonus for extreme z-scores."""
    return anomaly_score_from_result(detect_anomalies(record, volume_metrics, price_metrics, filters))


def _compose(
    record: AssetRecord,
    anomaly: AnomalyResult,
    pattern: PatternResult,
) -> Score:
    price_change_score = calculate_price_change_score(record)
    volume_score = calculate_volume_score(record)
    anomaly_score = anomaly_score_from_result(anomaly)
    pattern_score = calculate_pattern_score(pattern)

    total = (
        WEIGHT_PRICE_CHANGE * price_change_score
        + WEIGHT_VOLUME * volume_score
        + WEIGHT_ANOMALY * anomaly_score
        + WEIGHT_PATTERN * pattern_score
    )
    return Score(
        total_score=round_score(total),
        price_change_score=round_score(price_change_score),
        volume_score=round_score(volume_score),
        anomaly_score=round_score(anomaly_score),
        pattern_score=round_score(pattern_score),
    )


def calculate_total_score(
    record: AssetRecord,
    volume_metrics: PopulationMetrics,
    price_metrics: PopulationMetrics,
    filters: Optional[FilterCriteria] = None,
) -> Score:
    """Weighted composite score. Pure; safe for disjoint records in parallel."""
    return score_asset(record, volume_metrics, price_metrics, filters).score


def score_asset(
    record: AssetRecord,
    volume_metrics: PopulationMetrics,
    price_metrics: PopulationMetrics,
    filters: Optional[FilterCriteria] = None,
) -> ScoredAsset:
    """Score one asset and keep the verdicts behind the score."""
    anomaly = detect_anomalies(record, volume_metrics, price_metrics, filters)
    pattern = find_repeating_patterns(record)
    return ScoredAsset(
        asset=record,
        score=_compose(record, anomaly, pattern),
        anomaly=anomaly,
        pattern=pattern,
    )


def score_dataset(dataset: Dataset, filters: Optional[FilterCriteria] = None) -> List[ScoredAsset]:
    """Score every record of a snapshot against its shared metrics."""
    return [
        score_asset(record, dataset.volume_metrics, dataset.price_metrics, filters)
        for record in dataset.records
    ]
