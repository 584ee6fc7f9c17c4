"""Deterministic ranking of scored assets."""

from typing import List, Sequence

from ..core.models import RankedAsset, ScoredAsset


def rank(scored: Sequence[ScoredAsset]) -> List[RankedAsset]:
    """
    Sort descending by total score and assign dense 1-based ranks.

    ``sorted`` is stable with ``reverse=True`` too, so ties keep their input
    order. The input sequence is left untouched.
    """
    ordered = sorted(scored, key=lambda item: item.score.total_score, reverse=True)
    return [
        RankedAsset(
            asset=item.asset,
            score=item.score,
            anomaly=item.anomaly,
            pattern=item.pattern,
            rank=position,
        )
        for position, item in enumerate(ordered, start=1)
    ]
