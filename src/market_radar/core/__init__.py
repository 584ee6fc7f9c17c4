"""Core module for the market radar."""

from .models import (
    AssetRecord, PopulationMetrics, Score, FilterCriteria, Dataset,
    ZScoreAnomaly, MinuteAnomaly, AnomalyResult, SpikeResult, PumpDumpResult,
    PatternResult, ScoredAsset, RankedAsset, RadarSnapshot,
)
from .enums import Severity, PatternType, FetchState, LogEntryType
from .errors import (
    RadarError, AuthError, HttpError, NetworkError, EmptyDatasetError, CancellationError,
)
from .concurrency import FetchGate, CancellationToken

__all__ = [
    "AssetRecord",
    "PopulationMetrics",
    "Score",
    "FilterCriteria",
    "Dataset",
    "ZScoreAnomaly",
    "MinuteAnomaly",
    "AnomalyResult",
    "SpikeResult",
    "PumpDumpResult",
    "PatternResult",
    "ScoredAsset",
    "RankedAsset",
    "RadarSnapshot",
    "Severity",
    "PatternType",
    "FetchState",
    "LogEntryType",
    "RadarError",
    "AuthError",
    "HttpError",
    "NetworkError",
    "EmptyDatasetError",
    "CancellationError",
    "FetchGate",
    "CancellationToken",
]
