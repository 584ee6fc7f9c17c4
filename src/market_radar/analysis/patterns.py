"""Single-snapshot spike / pump / dump heuristics."""

from ..core.enums import PatternType
from ..core.models import AssetRecord, PatternResult, PumpDumpResult, SpikeResult

SPIKE_PRICE_CHANGE = 10.0
SPIKE_VOLUME_CHANGE = 50.0
SPIKE_CONFIDENCE_SCALE = 20.0

PUMP_PRICE_CHANGE = 20.0
PUMP_VOLUME_CHANGE = 100.0
PUMP_HOUR_CHANGE = 5.0
PUMP_CONFIDENCE_SCALE = 30.0

POINTS_PER_PATTERN = 30.0
CONFIDENCE_POINTS = 20.0


def detect_spike_patterns(record: AssetRecord) -> SpikeResult:
    """Sharp 24h move together with a volume surge, in either direction."""
    change = record.percent_change_24h
    is_spike = abs(change) > SPIKE_PRICE_CHANGE and record.volume_change_24h > SPIKE_VOLUME_CHANGE
    confidence = min(abs(change) / SPIKE_CONFIDENCE_SCALE, 1.0) if is_spike else 0.0
    return SpikeResult(is_spike=is_spike, confidence=confidence)


def detect_pump_dump_patterns(record: AssetRecord) -> PumpDumpResult:
    """Strong directional 24h and 1h moves on more than doubled volume."""
    change = record.percent_change_24h
    hour_change = record.percent_change_1h
    volume_surge = record.volume_change_24h > PUMP_VOLUME_CHANGE

    is_pump = change > PUMP_PRICE_CHANGE and volume_surge and hour_change > PUMP_HOUR_CHANGE
    is_dump = change < -PUMP_PRICE_CHANGE and volume_surge and hour_change < -PUMP_HOUR_CHANGE
    confidence = min(abs(change) / PUMP_CONFIDENCE_SCALE, 1.0) if (is_pump or is_dump) else 0.0
    return PumpDumpResult(is_pump=is_pump, is_dump=is_dump, confidence=confidence)


def find_repeating_patterns(record: AssetRecord) -> PatternResult:
    """Union of every fired heuristic, with the highest confidence among them."""
    spike = detect_spike_patterns(record)
    pump_dump = detect_pump_dump_patterns(record)

    patterns = set()
    if spike.is_spike:
        patterns.add(PatternType.SPIKE)
    if pump_dump.is_pump:
        patterns.add(PatternType.PUMP)
    if pump_dump.is_dump:
        patterns.add(PatternType.DUMP)

    return PatternResult(
        has_pattern=bool(patterns),
        patterns=frozenset(patterns),
        confidence=max(spike.confidence, pump_dump.confidence),
        spike=spike,
        pump_dump=pump_dump,
    )


def calculate_pattern_score(result: PatternResult) -> float:
    """30 points per pattern plus up to 20 for confidence, capped at 100."""
    if not result.has_pattern:
        return 0.0
    score = POINTS_PER_PATTERN * len(result.patterns) + CONFIDENCE_POINTS * result.confidence
    return min(score, 100.0)
