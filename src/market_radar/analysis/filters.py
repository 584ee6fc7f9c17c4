"""Display filtering policy applied between scoring and ranking."""

import logging
from typing import List, Optional, Sequence

from ..core.models import AssetRecord, FilterCriteria, ScoredAsset

logger = logging.getLogger(__name__)


def passes_filters(asset: AssetRecord, filters: FilterCriteria) -> bool:
    """Check every bound present in *filters*; absent bounds always pass."""
    if filters.min_volume is not None and filters.min_volume > 0:
        if asset.volume_24h < filters.min_volume:
            return False

    if filters.min_price_change is not None and asset.percent_change_24h < filters.min_price_change:
        return False
    if filters.max_price_change is not None and asset.percent_change_24h > filters.max_price_change:
        return False

    if (
        filters.min_price_change_per_minute is not None
        and asset.minute_change < filters.min_price_change_per_minute
    ):
        return False
    if (
        filters.max_price_change_per_minute is not None
        and asset.minute_change > filters.max_price_change_per_minute
    ):
        return False

    return True


def apply_filters(scored: Sequence[ScoredAsset], filters: Optional[FilterCriteria]) -> List[ScoredAsset]:
    """Keep the scored assets passing *filters*, preserving order."""
    if filters is None:
        return list(scored)
    kept = [item for item in scored if passes_filters(item.asset, filters)]
    logger.debug(f"Filters kept {len(kept)} of {len(scored)} assets")
    return kept
