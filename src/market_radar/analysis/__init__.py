"""Anomaly detection, pattern classification, scoring and ranking."""

from .anomaly import (
    detect_price_anomalies, detect_volume_anomalies,
    detect_minute_price_anomalies, detect_anomalies,
)
from .patterns import (
    detect_spike_patterns, detect_pump_dump_patterns,
    find_repeating_patterns, calculate_pattern_score,
)
from .scoring import (
    calculate_price_change_score, calculate_volume_score,
    calculate_anomaly_score, calculate_total_score, score_asset, score_dataset,
)
from .filters import apply_filters, passes_filters
from .ranking import rank

__all__ = [
    "detect_price_anomalies",
    "detect_volume_anomalies",
    "detect_minute_price_anomalies",
    "detect_anomalies",
    "detect_spike_patterns",
    "detect_pump_dump_patterns",
    "find_repeating_patterns",
    "calculate_pattern_score",
    "calculate_price_change_score",
    "calculate_volume_score",
    "calculate_anomaly_score",
    "calculate_total_score",
    "score_asset",
    "score_dataset",
    "apply_filters",
    "passes_filters",
    "rank",
]
