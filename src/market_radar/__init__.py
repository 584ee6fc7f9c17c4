"""
Market Radar

Polls market listings, scores every asset for anomalous behaviour relative
to its peers in the same snapshot, and publishes a stable ranking.
"""

__version__ = "0.1.0"
__author__ = "Market Radar Team"

from .core.models import AssetRecord, FilterCriteria, PopulationMetrics, RankedAsset, Score
from .core.enums import FetchState, PatternType, Severity
from .scanner.orchestrator import FetchOrchestrator
from .monitoring.request_log import RequestLog

__all__ = [
    "AssetRecord",
    "FilterCriteria",
    "PopulationMetrics",
    "RankedAsset",
    "Score",
    "FetchState",
    "PatternType",
    "Severity",
    "FetchOrchestrator",
    "RequestLog",
]
