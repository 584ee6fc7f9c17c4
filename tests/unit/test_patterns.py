"""Unit tests for the pattern classifier."""

import pytest

from market_radar.analysis.patterns import (
    calculate_pattern_score,
    detect_pump_dump_patterns,
    detect_spike_patterns,
    find_repeating_patterns,
)
from market_radar.core.enums import PatternType
from market_radar.core.models import AssetRecord


class TestSpike:
    """Tests for detect_spike_patterns."""

    def test_spike_up(self):
        result = detect_spike_patterns(AssetRecord(percent_change_24h=15.0, volume_change_24h=60.0))

        assert result.is_spike
        assert result.confidence == pytest.approx(0.75)

    def test_spike_down(self):
        result = detect_spike_patterns(AssetRecord(percent_change_24h=-30.0, volume_change_24h=60.0))

        assert result.is_spike
        assert result.confidence == 1.0

    def test_needs_volume_surge(self):
        result = detect_spike_patterns(AssetRecord(percent_change_24h=40.0, volume_change_24h=50.0))

        assert not result.is_spike
        assert result.confidence == 0.0

    def test_needs_price_move(self):
        assert not detect_spike_patterns(AssetRecord(percent_change_24h=10.0, volume_change_24h=500.0)).is_spike


class TestPumpDump:
    """Tests for detect_pump_dump_patterns."""

    def test_pump(self):
        record = AssetRecord(percent_change_24h=25.0, volume_change_24h=150.0, percent_change_1h=8.0)

        result = detect_pump_dump_patterns(record)

        assert result.is_pump
        assert not result.is_dump
        assert result.confidence == pytest.approx(25 / 30)
        assert round(result.confidence, 3) == 0.833

    def test_dump(self):
        record = AssetRecord(percent_change_24h=-45.0, volume_change_24h=120.0, percent_change_1h=-6.0)

        result = detect_pump_dump_patterns(record)

        assert result.is_dump
        assert not result.is_pump
        assert result.confidence == 1.0

    def test_hourly_move_must_agree(self):
        record = AssetRecord(percent_change_24h=25.0, volume_change_24h=150.0, percent_change_1h=-8.0)

        result = detect_pump_dump_patterns(record)

        assert not result.is_pump and not result.is_dump
        assert result.confidence == 0.0

    def test_volume_must_more_than_double(self):
        record = AssetRecord(percent_change_24h=25.0, volume_change_24h=100.0, percent_change_1h=8.0)

        assert not detect_pump_dump_patterns(record).is_pump


class TestFindRepeatingPatterns:
    """Tests for the pattern union and its score."""

    def test_quiet_asset_has_no_pattern(self):
        result = find_repeating_patterns(AssetRecord())

        assert not result.has_pattern
        assert result.patterns == frozenset()
        assert result.confidence == 0.0
        assert calculate_pattern_score(result) == 0.0

    def test_pump_is_also_a_spike(self):
        record = AssetRecord(percent_change_24h=25.0, volume_change_24h=150.0, percent_change_1h=8.0)

        result = find_repeating_patterns(record)

        assert result.patterns == frozenset({PatternType.SPIKE, PatternType.PUMP})
        # max of spike (1.0) and pump (0.833)
        assert result.confidence == 1.0
        assert calculate_pattern_score(result) == pytest.approx(80.0)

    def test_spike_only_score(self):
        result = find_repeating_patterns(AssetRecord(percent_change_24h=12.0, volume_change_24h=70.0))

        assert result.patterns == frozenset({PatternType.SPIKE})
        assert calculate_pattern_score(result) == pytest.approx(30 + 20 * 0.6)

    def test_pump_and_dump_are_exclusive(self):
        record = AssetRecord(percent_change_24h=-60.0, volume_change_24h=300.0, percent_change_1h=-20.0)

        result = find_repeating_patterns(record)

        assert PatternType.DUMP in result.patterns
        assert PatternType.PUMP not in result.patterns

    def test_score_capped(self):
        record = AssetRecord(percent_change_24h=80.0, volume_change_24h=900.0, percent_change_1h=30.0)

        assert calculate_pattern_score(find_repeating_patterns(record)) <= 100.0
