"""
Tests for bias lookup.

This module tests lead-day fallback ordering, sample thresholds, capping
and regime-aware lookup.
"""

import pytest

from valleywx.config import Settings, settings
from valleywx.models.correction_stat import TARGET_TMAX, TARGET_TMIN, StatEntry, StatsKey
from valleywx.models.daily_summary import REGIME_CLEAR_CALM, REGIME_HEATWAVE
from valleywx.utils.bias import (
    NO_BIAS_DAY,
    cap_correction,
    fallback_order,
    lookup_bias,
    lookup_bias_for_regime,
)


class TestFallbackOrder:

    def test_scans_outward_lower_first(self):
        assert fallback_order(2, max_day=4) == [1, 3, 0, 4]

    def test_from_day_zero(self):
        assert fallback_order(0, max_day=3) == [1, 2, 3]

    def test_from_last_day(self):
        assert fallback_order(3, max_day=3) == [2, 1, 0]

    def test_default_range_covers_every_other_day(self):
        order = fallback_order(5)
        assert sorted(order) == [d for d in range(settings.MAX_LEAD_DAY + 1) if d != 5]


class TestCapCorrection:

    @pytest.mark.parametrize("value,expected", [(10.0, 6.0), (-7.5, -6.0), (2.5, 2.5), (-6.0, -6.0)])
    def test_cap(self, value, expected):
        assert cap_correction(value, 6.0) == expected


class TestLookupBias:

    def test_empty_store(self):
        result = lookup_bias({}, "bom", TARGET_TMAX, 0)

        assert result.found is False
        assert result.bias == 0.0
        assert result.day_used == NO_BIAS_DAY

    def test_none_store(self):
        assert lookup_bias(None, "bom", TARGET_TMAX, 0).found is False

    def test_exact_day(self):
        stats = {StatsKey("wu", TARGET_TMIN, 3): StatEntry(sample_size=7, mean_bias=-1.2)}
        result = lookup_bias(stats, "wu", TARGET_TMIN, 3)

        assert result.bias == -1.2
        assert result.day_used == 3
        assert result.samples == 7
        assert result.is_fallback is False

    def test_too_few_samples_falls_back(self):
        stats = {
            StatsKey("bom", TARGET_TMAX, 2): StatEntry(sample_size=6, mean_bias=4.0),
            StatsKey("bom", TARGET_TMAX, 1): StatEntry(sample_size=7, mean_bias=1.5),
        }
        result = lookup_bias(stats, "bom", TARGET_TMAX, 2)

        assert result.bias == 1.5
        assert result.day_used == 1
        assert result.is_fallback is True

    def test_tie_prefers_lower_lead_day(self):
        stats = {
            StatsKey("bom", TARGET_TMAX, 1): StatEntry(sample_size=9, mean_bias=1.0),
            StatsKey("bom", TARGET_TMAX, 3): StatEntry(sample_size=30, mean_bias=2.0),
        }
        result = lookup_bias(stats, "bom", TARGET_TMAX, 2)

        assert result.day_used == 1

    def test_other_source_and_target_ignored(self):
        stats = {
            StatsKey("wu", TARGET_TMAX, 0): StatEntry(sample_size=20, mean_bias=2.0),
            StatsKey("bom", TARGET_TMIN, 0): StatEntry(sample_size=20, mean_bias=2.0),
        }

        assert lookup_bias(stats, "bom", TARGET_TMAX, 0).found is False

    def test_regime_rows_not_used_by_plain_lookup(self):
        stats = {StatsKey("bom", TARGET_TMAX, 0, REGIME_HEATWAVE): StatEntry(sample_size=50, mean_bias=2.0)}

        assert lookup_bias(stats, "bom", TARGET_TMAX, 0).found is False

    @pytest.mark.parametrize("mean_bias", [-12.0, -6.1, 6.1, 40.0])
    def test_bias_never_exceeds_cap(self, mean_bias):
        stats = {StatsKey("bom", TARGET_TMAX, 0): StatEntry(sample_size=10, mean_bias=mean_bias)}
        result = lookup_bias(stats, "bom", TARGET_TMAX, 0)

        assert abs(result.bias) <= settings.MAX_BIAS_CORRECTION


class TestLookupBiasForRegime:

    def test_uses_regime_with_enough_samples(self):
        stats = {
            StatsKey("bom", TARGET_TMAX, 1): StatEntry(sample_size=30, mean_bias=0.5),
            StatsKey("bom", TARGET_TMAX, 1, REGIME_CLEAR_CALM): StatEntry(sample_size=15, mean_bias=2.0),
        }
        result = lookup_bias_for_regime(stats, "bom", TARGET_TMAX, 1, REGIME_CLEAR_CALM)

        assert result.bias == 2.0
        assert result.regime == REGIME_CLEAR_CALM
        assert result.is_fallback is False

    def test_small_regime_sample_uses_all(self):
        stats = {
            StatsKey("bom", TARGET_TMAX, 1): StatEntry(sample_size=30, mean_bias=0.5),
            StatsKey("bom", TARGET_TMAX, 1, REGIME_CLEAR_CALM): StatEntry(sample_size=14, mean_bias=2.0),
        }
        result = lookup_bias_for_regime(stats, "bom", TARGET_TMAX, 1, REGIME_CLEAR_CALM)

        assert result.bias == 0.5
        assert result.regime == "all"

    def test_regime_has_no_lead_day_fallback(self):
        stats = {
            StatsKey("bom", TARGET_TMAX, 0, REGIME_HEATWAVE): StatEntry(sample_size=40, mean_bias=3.0),
            StatsKey("bom", TARGET_TMAX, 0): StatEntry(sample_size=40, mean_bias=1.0),
        }
        result = lookup_bias_for_regime(stats, "bom", TARGET_TMAX, 1, REGIME_HEATWAVE)

        assert result.bias == 1.0
        assert result.day_used == 0
        assert result.is_fallback is True

    def test_regime_bias_is_capped(self):
        stats = {StatsKey("wu", TARGET_TMAX, 0, REGIME_HEATWAVE): StatEntry(sample_size=20, mean_bias=-9.0)}
        result = lookup_bias_for_regime(stats, "wu", TARGET_TMAX, 0, REGIME_HEATWAVE)

        assert result.bias == -settings.MAX_BIAS_CORRECTION

    def test_regime_threshold_from_settings(self):
        stats = {
            StatsKey("bom", TARGET_TMAX, 1): StatEntry(sample_size=30, mean_bias=0.5),
            StatsKey("bom", TARGET_TMAX, 1, REGIME_CLEAR_CALM): StatEntry(sample_size=10, mean_bias=2.0),
        }
        tuned = Settings(MIN_REGIME_SAMPLES=10)

        result = lookup_bias_for_regime(stats, "bom", TARGET_TMAX, 1, REGIME_CLEAR_CALM, tuned)

        assert result.bias == 2.0
        assert result.regime == REGIME_CLEAR_CALM


class TestLookupSettings:

    def test_sample_threshold_from_settings(self):
        stats = {StatsKey("bom", TARGET_TMAX, 0): StatEntry(sample_size=10, mean_bias=2.0)}

        assert lookup_bias(stats, "bom", TARGET_TMAX, 0).found is True
        assert lookup_bias(stats, "bom", TARGET_TMAX, 0, Settings(MIN_BIAS_SAMPLES=20)).found is False

    def test_fallback_range_from_settings(self):
        assert fallback_order(1, settings=Settings(MAX_LEAD_DAY=3)) == [0, 2, 3]
