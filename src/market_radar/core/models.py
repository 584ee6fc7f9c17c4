"""Core data models for the market radar."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import FrozenSet, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .enums import FetchState, PatternType, Severity


class AssetRecord(BaseModel):
    """Canonical per-asset listing record."""

    model_config = ConfigDict(frozen=True)

    # Identity
    id: int = Field(default=0, description="Upstream asset id")
    name: str = Field(default="", description="Asset name")
    symbol: str = Field(default="", description="Ticker symbol")

    # Market data
    price: float = Field(default=0.0, ge=0, description="Price in the quote currency")
    market_cap: float = Field(default=0.0, ge=0, description="Market capitalisation")
    volume_24h: float = Field(default=0.0, ge=0, description="Traded volume over 24h")
    volume_change_24h: float = Field(default=0.0, description="Volume change over 24h (%)")
    percent_change_1h: float = Field(default=0.0, description="Price change over 1h (%)")
    percent_change_24h: float = Field(default=0.0, description="Price change over 24h (%)")
    percent_change_7d: float = Field(default=0.0, description="Price change over 7d (%)")

    # Supply
    circulating_supply: float = Field(default=0.0, ge=0, description="Circulating supply")
    total_supply: float = Field(default=0.0, ge=0, description="Total supply")

    # Upstream metadata
    source_rank: int = Field(default=0, ge=0, description="Rank reported upstream (0 if missing)")
    last_updated: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Upstream update time",
    )

    # Derived from the population pass
    minute_change: float = Field(default=0.0, description="Approximate price change per minute (%)")
    volume_z_score: float = Field(default=0.0, description="Volume z-score within the snapshot")
    price_change_z_score: float = Field(default=0.0, description="24h change z-score within the snapshot")


class PopulationMetrics(BaseModel):
    """Summary statistics of one numeric field across a snapshot."""

    model_config = ConfigDict(frozen=True)

    average: float = Field(default=0.0, description="Arithmetic mean")
    median: float = Field(default=0.0, description="Median")
    std_dev: float = Field(default=0.0, ge=0, description="Population standard deviation")
    min: float = Field(default=0.0, description="Minimum value")
    max: float = Field(default=0.0, description="Maximum value")


class Score(BaseModel):
    """Composite score and its sub-scores."""

    model_config = ConfigDict(frozen=True)

    total_score: float = Field(ge=0, le=100, description="Weighted composite score")
    price_change_score: float = Field(ge=0, le=100, description="Price change sub-score")
    volume_score: float = Field(ge=0, le=100, description="Volume sub-score")
    anomaly_score: float = Field(ge=0, le=100, description="Anomaly sub-score")
    pattern_score: float = Field(ge=0, le=100, description="Pattern sub-score")


class FilterCriteria(BaseModel):
    """User-adjustable display thresholds. ``None`` means no bound."""

    model_config = ConfigDict(frozen=True)

    min_volume: Optional[float] = Field(default=None, description="Minimum 24h volume")
    min_price_change: Optional[float] = Field(default=None, description="Minimum 24h change (%)")
    max_price_change: Optional[float] = Field(default=None, description="Maximum 24h change (%)")
    min_price_change_per_minute: Optional[float] = Field(
        default=None, description="Minimum per-minute change (%)"
    )
    max_price_change_per_minute: Optional[float] = Field(
        default=None, description="Maximum per-minute change (%)"
    )

    @model_validator(mode="after")
    def validate_ranges(self):
        if (
            self.min_price_change is not None
            and self.max_price_change is not None
            and self.min_price_change > self.max_price_change
        ):
            raise ValueError("min_price_change must not exceed max_price_change")
        if (
            self.min_price_change_per_minute is not None
            and self.max_price_change_per_minute is not None
            and self.min_price_change_per_minute > self.max_price_change_per_minute
        ):
            raise ValueError("min_price_change_per_minute must not exceed max_price_change_per_minute")
        return self

    @classmethod
    def preset(cls) -> "FilterCriteria":
        """Default criteria offered to a fresh user session."""
        return cls(
            min_volume=1_000_000,
            min_price_change=-50,
            max_price_change=50,
            min_price_change_per_minute=-10,
            max_price_change_per_minute=10,
        )

    def updated(self, **changes) -> "FilterCriteria":
        """Return a validated copy with *changes* applied."""
        unknown = set(changes) - set(type(self).model_fields)
        if unknown:
            raise ValueError(f"Unknown filter fields: {sorted(unknown)}")
        return type(self)(**{**self.model_dump(), **changes})


# ----------------------------------------------------------------------
# Pipeline results
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class Dataset:
    """One snapshot after the population pass."""
    records: Tuple[AssetRecord, ...]
    volume_metrics: PopulationMetrics
    price_metrics: PopulationMetrics

    def __len__(self) -> int:
        return len(self.records)


@dataclass(frozen=True)
class ZScoreAnomaly:
    """Price or volume anomaly verdict."""
    is_anomaly: bool
    z_score: float
    severity: Severity
    value: float = 0.0
    change: float = 0.0


@dataclass(frozen=True)
class MinuteAnomaly:
    """Per-minute velocity anomaly verdict."""
    is_anomaly: bool
    minute_change: float
    min_threshold: Optional[float] = None
    max_threshold: Optional[float] = None


@dataclass(frozen=True)
class AnomalyResult:
    """Combined anomaly verdict for one asset."""
    has_anomaly: bool
    price_anomaly: ZScoreAnomaly
    volume_anomaly: ZScoreAnomaly
    minute_anomaly: MinuteAnomaly
    overall_severity: Severity


@dataclass(frozen=True)
class SpikeResult:
    is_spike: bool
    confidence: float


@dataclass(frozen=True)
class PumpDumpResult:
    is_pump: bool
    is_dump: bool
    confidence: float


@dataclass(frozen=True)
class PatternResult:
    """Union of the pattern heuristics fired for one asset."""
    has_pattern: bool
    patterns: FrozenSet[PatternType]
    confidence: float
    spike: Optional[SpikeResult] = None
    pump_dump: Optional[PumpDumpResult] = None


@dataclass(frozen=True)
class ScoredAsset:
    """Asset record with its score and the verdicts behind it."""
    asset: AssetRecord
    score: Score
    anomaly: AnomalyResult
    pattern: PatternResult


@dataclass(frozen=True)
class RankedAsset:
    """Scored asset with its dense 1-based rank."""
    asset: AssetRecord
    score: Score
    anomaly: AnomalyResult
    pattern: PatternResult
    rank: int

    @property
    def symbol(self) -> str:
        return self.asset.symbol


@dataclass(frozen=True)
class RadarSnapshot:
    """Published state as seen by the presentation layer."""
    ranked: Tuple[RankedAsset, ...] = ()
    loading: bool = False
    error: Optional[str] = None
    last_update: Optional[datetime] = None
    monitoring: bool = False
    state: FetchState = FetchState.IDLE
    filters: Optional[FilterCriteria] = None
    population_size: int = 0
    cycle_id: int = 0
