"""Population-relative anomaly detection."""

import logging
from typing import Optional

from ..core.enums import Severity
from ..core.models import (
    AnomalyResult, AssetRecord, FilterCriteria, MinuteAnomaly,
    PopulationMetrics, ZScoreAnomaly,
)

logger = logging.getLogger(__name__)

DEFAULT_Z_THRESHOLD = 2.0

# Severity cut-offs are fixed and do not follow the caller's threshold.
HIGH_SEVERITY_Z = 3.0
MEDIUM_SEVERITY_Z = 2.0


def _severity(z_abs: float, is_anomaly: bool) -> Severity:
    if not is_anomaly:
        return Severity.NORMAL
    if z_abs > HIGH_SEVERITY_Z:
        return Severity.HIGH
    if z_abs > MEDIUM_SEVERITY_Z:
        return Severity.MEDIUM
    return Severity.LOW


def detect_price_anomalies(record: AssetRecord, threshold: float = DEFAULT_Z_THRESHOLD) -> ZScoreAnomaly:
    """Flag a 24h change whose |z-score| exceeds *threshold*."""
    z_abs = abs(record.price_change_z_score)
    is_anomaly = z_abs > threshold
    return ZScoreAnomaly(
        is_anomaly=is_anomaly,
        z_score=z_abs,
        severity=_severity(z_abs, is_anomaly),
        value=record.percent_change_24h,
        change=record.minute_change,
    )


def detect_volume_anomalies(record: AssetRecord, threshold: float = DEFAULT_Z_THRESHOLD) -> ZScoreAnomaly:
    """Flag a 24h volume whose |z-score| exceeds *threshold*."""
    z_abs = abs(record.volume_z_score)
    is_anomaly = z_abs > threshold
    return ZScoreAnomaly(
        is_anomaly=is_anomaly,
        z_score=z_abs,
        severity=_severity(z_abs, is_anomaly),
        value=record.volume_24h,
        change=record.volume_change_24h,
    )


def detect_minute_price_anomalies(
    record: AssetRecord,
    min_threshold: Optional[float] = None,
    max_threshold: Optional[float] = None,
) -> MinuteAnomaly:
    """Flag a per-minute change outside [min, max]; a missing bound never trips."""
    minute_change = record.minute_change
    below = min_threshold is not None and minute_change < min_threshold
    above = max_threshold is not None and minute_change > max_threshold
    return MinuteAnomaly(
        is_anomaly=below or above,
        minute_change=minute_change,
        min_threshold=min_threshold,
        max_threshold=max_threshold,
    )


def detect_anomalies(
    record: AssetRecord,
    volume_metrics: PopulationMetrics,
    price_metrics: PopulationMetrics,
    filters: Optional[FilterCriteria] = None,
) -> AnomalyResult:
    """
    Combine price, volume and per-minute verdicts.

    The z-scores on *record* were already computed against *volume_metrics*
    and *price_metrics* during the population pass; the metrics are accepted
    so every scorer shares one signature.
    """
    filters = filters or FilterCriteria()
    price_anomaly = detect_price_anomalies(record)
    volume_anomaly = detect_volume_anomalies(record)
    minute_anomaly = detect_minute_price_anomalies(
        record,
        filters.min_price_change_per_minute,
        filters.max_price_change_per_minute,
    )

    has_anomaly = price_anomaly.is_anomaly or volume_anomaly.is_anomaly or minute_anomaly.is_anomaly
    severities = (price_anomaly.severity, volume_anomaly.severity)

    if not has_anomaly:
        overall = Severity.NORMAL
    elif Severity.HIGH in severities:
        overall = Severity.HIGH
    elif Severity.MEDIUM in severities:
        overall = Severity.MEDIUM
    else:
        overall = Severity.LOW

    return AnomalyResult(
        has_anomaly=has_anomaly,
        price_anomaly=price_anomaly,
        volume_anomaly=volume_anomaly,
        minute_anomaly=minute_anomaly,
        overall_severity=overall,
    )
