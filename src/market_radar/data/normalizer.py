"""Normalisation of raw listings into canonical asset records."""

import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from ..core.models import AssetRecord, Dataset
from .statistics import compute_price_change_metrics, compute_volume_metrics, z_score

logger = logging.getLogger(__name__)

MINUTES_PER_HOUR = 60


def _as_float(value: Any) -> float:
    """Coerce an upstream value to float; missing or invalid becomes 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        result = float(value)
    except (TypeError, ValueError):
        return 0.0
    return result if math.isfinite(result) else 0.0


def _as_int(value: Any) -> int:
    return int(_as_float(value))


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            logger.debug(f"Unparseable timestamp {value!r}, using now")
    return datetime.now(timezone.utc)


def _as_mapping(value: Any) -> Dict[str, Any]:
    """Anything but a dict counts as a missing object."""
    return value if isinstance(value, dict) else {}


def _normalize_one(raw: Any, convert: str) -> AssetRecord:
    raw = _as_mapping(raw)
    quote = _as_mapping(_as_mapping(raw.get("quote")).get(convert))
    return AssetRecord(
        id=_as_int(raw.get("id")),
        name=str(raw.get("name") or ""),
        symbol=str(raw.get("symbol") or ""),
        price=max(_as_float(quote.get("price")), 0.0),
        market_cap=max(_as_float(quote.get("market_cap")), 0.0),
        volume_24h=max(_as_float(quote.get("volume_24h")), 0.0),
        volume_change_24h=_as_float(quote.get("volume_change_24h")),
        percent_change_1h=_as_float(quote.get("percent_change_1h")),
        percent_change_24h=_as_float(quote.get("percent_change_24h")),
        percent_change_7d=_as_float(quote.get("percent_change_7d")),
        circulating_supply=max(_as_float(raw.get("circulating_supply")), 0.0),
        total_supply=max(_as_float(raw.get("total_supply")), 0.0),
        source_rank=max(_as_int(raw.get("cmc_rank")), 0),
        last_updated=_parse_timestamp(quote.get("last_updated")),
    )


def normalize(raw: Optional[Sequence[Dict[str, Any]]], convert: str = "USD") -> List[AssetRecord]:
    """Map raw listings to canonical records, one to one, order preserved."""
    if not raw:
        return []
    return [_normalize_one(item, convert) for item in raw]


def calculate_minute_change(percent_change_1h: float) -> float:
    """Approximate per-minute velocity from the hourly change."""
    return percent_change_1h / MINUTES_PER_HOUR


def create_dataset(raw: Optional[Sequence[Dict[str, Any]]], convert: str = "USD") -> Dataset:
    """
    Build one snapshot dataset.

    Every record is normalised first; population statistics are computed
    once over the full snapshot; only then are the per-record derived
    fields attached.
    """
    normalized = normalize(raw, convert)
    volume_metrics = compute_volume_metrics(normalized)
    price_metrics = compute_price_change_metrics(normalized)

    records = tuple(
        record.model_copy(update={
            "minute_change": calculate_minute_change(record.percent_change_1h),
            "volume_z_score": z_score(record.volume_24h, volume_metrics),
            "price_change_z_score": z_score(record.percent_change_24h, price_metrics),
        })
        for record in normalized
    )

    logger.debug(
        f"Dataset built: {len(records)} records, "
        f"volume mean={volume_metrics.average:.2f} sd={volume_metrics.std_dev:.2f}, "
        f"change mean={price_metrics.average:.2f} sd={price_metrics.std_dev:.2f}"
    )
    return Dataset(records=records, volume_metrics=volume_metrics, price_metrics=price_metrics)
