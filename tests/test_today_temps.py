"""
Tests for today's displayed temperature resolution.

Covers source preference, bias correction with fallback and capping,
observed floors/ceilings, the afternoon override, the overcorrection check
and the nowcast hook.
"""

from datetime import date, datetime, timezone

import pytest

from valleywx.config import Settings
from valleywx.models.correction_stat import TARGET_TMAX, TARGET_TMIN, StatEntry, StatsKey
from valleywx.models.daily_summary import REGIME_INVERSION
from valleywx.utils.today_temps import (
    ForecastSnapshot,
    TodayTempInput,
    build_displayed_forecast,
    resolve_today_temps,
)


def bom(temp_max=None, temp_min=None, day=0):
    return ForecastSnapshot(source="bom", day_of_forecast=day, temp_max=temp_max, temp_min=temp_min, id=11)


def wu(temp_max=None, temp_min=None, day=0):
    return ForecastSnapshot(source="wu", day_of_forecast=day, temp_max=temp_max, temp_min=temp_min, id=22)


class TestMaxSourceSelection:
    """Which provider's max is used."""

    def test_prefers_bom(self):
        result = resolve_today_temps(TodayTempInput(bom_forecast=bom(28), wu_forecast=wu(30)))

        assert result.have_max is True
        assert result.temp_max == 28
        assert result.explanation.max_source == "bom"
        assert result.explanation.max_raw == 28

    def test_bom_rejected_when_providers_diverge(self):
        result = resolve_today_temps(TodayTempInput(bom_forecast=bom(20), wu_forecast=wu(31)))

        assert result.temp_max == 31
        assert result.explanation.max_source == "wu"

    def test_bom_rejected_by_live_overshoot(self):
        result = resolve_today_temps(
            TodayTempInput(bom_forecast=bom(25), wu_forecast=wu(30), current_temp=29)
        )

        assert result.temp_max == 30
        assert result.explanation.max_source == "wu"

    def test_overshoot_at_exactly_three_degrees_keeps_bom(self):
        result = resolve_today_temps(
            TodayTempInput(bom_forecast=bom(25), wu_forecast=wu(30), current_temp=28)
        )

        assert result.explanation.max_source == "bom"

    def test_no_max_when_bom_overshot_and_wu_has_none(self):
        result = resolve_today_temps(
            TodayTempInput(bom_forecast=bom(25), wu_forecast=wu(None, 8), current_temp=40)
        )

        # Overshoot rejects BOM and WU has nothing, so there is no max
        assert result.have_max is False
        assert result.temp_max is None

    def test_no_forecasts(self):
        result = resolve_today_temps(TodayTempInput())

        assert result.have_max is False
        assert result.have_min is False
        assert result.explanation.max_bias_day_used == -1
        assert result.explanation.min_bias_day_used == -1


class TestObservedConstraints:
    """Observed values so far clamp the display."""

    def test_observed_max_is_a_floor(self):
        result = resolve_today_temps(TodayTempInput(bom_forecast=bom(25), observed_max=27.3))

        assert result.temp_max == 27

    def test_afternoon_falling_override(self):
        result = resolve_today_temps(
            TodayTempInput(bom_forecast=bom(30), observed_max=28.6, hour=16, temp_falling=True)
        )

        assert result.temp_max == 29

    def test_morning_falling_does_not_override(self):
        result = resolve_today_temps(
            TodayTempInput(bom_forecast=bom(30), observed_max=28.6, hour=11, temp_falling=True)
        )

        assert result.temp_max == 30

    def test_sub_zero_observed_max_still_floors(self):
        result = resolve_today_temps(TodayTempInput(bom_forecast=bom(-4), observed_max=-1.2))

        assert result.temp_max == -1

    def test_sub_zero_observed_max_falling_override(self):
        result = resolve_today_temps(
            TodayTempInput(bom_forecast=bom(2), observed_max=-0.6, hour=17, temp_falling=True)
        )

        assert result.temp_max == -1

    def test_observed_min_is_a_ceiling(self):
        result = resolve_today_temps(TodayTempInput(wu_forecast=wu(None, 9), observed_min=6.4))

        assert result.temp_min == 6
        assert result.explanation.min_final == 6


class TestBiasCorrection:
    """Bias subtraction, capping, fallback and rejection."""

    def test_bias_is_capped(self):
        stats = {StatsKey("bom", TARGET_TMAX, 0): StatEntry(sample_size=10, mean_bias=10.0)}
        result = resolve_today_temps(TodayTempInput(bom_forecast=bom(30), correction_stats=stats))

        assert result.temp_max == 24
        assert result.explanation.max_bias_applied == 6.0
        assert result.explanation.max_bias_day_used == 0
        assert result.explanation.max_bias_samples == 10

    def test_fallback_lead_day(self):
        stats = {StatsKey("bom", TARGET_TMAX, 1): StatEntry(sample_size=8, mean_bias=1.5)}
        result = resolve_today_temps(
            TodayTempInput(bom_forecast=bom(30, day=2), correction_stats=stats)
        )

        assert result.explanation.max_bias_applied == 1.5
        assert result.explanation.max_bias_day_used == 1
        assert result.explanation.max_bias_fallback is True
        assert result.temp_max == 29  # 28.5 rounds away from zero

    def test_overcorrection_rejected(self):
        stats = {StatsKey("bom", TARGET_TMAX, 0): StatEntry(sample_size=9, mean_bias=-6.0)}
        result = resolve_today_temps(
            TodayTempInput(bom_forecast=bom(25), correction_stats=stats, observed_max=26)
        )

        assert result.temp_max == 26
        assert result.explanation.max_bias_applied == 0.0
        assert result.explanation.max_bias_rejected is True

    def test_correction_within_margin_is_kept(self):
        stats = {StatsKey("bom", TARGET_TMAX, 0): StatEntry(sample_size=9, mean_bias=-2.0)}
        result = resolve_today_temps(
            TodayTempInput(bom_forecast=bom(25), correction_stats=stats, observed_max=20)
        )

        assert result.temp_max == 27
        assert result.explanation.max_bias_rejected is False

    def test_regime_statistics_used_when_large_enough(self):
        stats = {
            StatsKey("bom", TARGET_TMAX, 0): StatEntry(sample_size=20, mean_bias=1.0),
            StatsKey("bom", TARGET_TMAX, 0, REGIME_INVERSION): StatEntry(sample_size=15, mean_bias=3.0),
        }
        result = resolve_today_temps(
            TodayTempInput(bom_forecast=bom(25), correction_stats=stats, regime=REGIME_INVERSION)
        )

        assert result.temp_max == 22
        assert result.explanation.max_bias_regime == REGIME_INVERSION

    def test_min_correction(self):
        stats = {StatsKey("wu", TARGET_TMIN, 0): StatEntry(sample_size=7, mean_bias=-1.4)}
        result = resolve_today_temps(
            TodayTempInput(wu_forecast=wu(None, 8), correction_stats=stats)
        )

        assert result.temp_min == 9  # 9.4
        assert result.explanation.min_bias_applied == -1.4
        assert result.explanation.min_bias_day_used == 0

    def test_tuning_passed_per_call(self):
        stats = {
            StatsKey("bom", TARGET_TMAX, 0): StatEntry(sample_size=10, mean_bias=2.0),
            StatsKey("wu", TARGET_TMIN, 0): StatEntry(sample_size=10, mean_bias=-1.0),
        }
        inputs = TodayTempInput(bom_forecast=bom(30), wu_forecast=wu(29, 12), correction_stats=stats)

        strict = resolve_today_temps(inputs, Settings(MIN_BIAS_SAMPLES=20))
        capped = resolve_today_temps(inputs, Settings(MAX_BIAS_CORRECTION=0.5))

        assert strict.temp_max == 30
        assert strict.explanation.max_bias_day_used == -1
        assert strict.temp_min == 12
        assert strict.explanation.min_bias_day_used == -1
        assert capped.explanation.max_bias_applied == 0.5
        assert capped.temp_max == 30  # 29.5


class TestMinSourceSelection:

    def test_prefers_wu(self):
        result = resolve_today_temps(TodayTempInput(bom_forecast=bom(None, 8), wu_forecast=wu(None, 10)))

        assert result.temp_min == 10
        assert result.explanation.min_source == "wu"

    def test_falls_back_to_bom(self):
        result = resolve_today_temps(TodayTempInput(bom_forecast=bom(20, 8), wu_forecast=wu(21, None)))

        assert result.temp_min == 8
        assert result.explanation.min_source == "bom"


class TestNowcastHook:
    """The nowcast only adjusts BOM's same-day max."""

    def test_nowcast_applied(self):
        inputs = TodayTempInput(
            bom_forecast=bom(30),
            primary_station_id=1,
            hour=11,
            morning_temps=(19.0, 19.5, 20.0, 20.0, 20.5, 21.0),
            nowcast_enabled=True,
        )
        result = resolve_today_temps(inputs)

        # observed morning 20.0 vs 30 * 0.7 = 21.0, adjustment 0.7 * -1.0
        assert result.nowcast_applied is True
        assert result.nowcast_adjustment == pytest.approx(-0.7)
        assert result.temp_max_pre_nowcast == 30
        assert result.temp_max == 29

    def test_nowcast_skipped_for_wu(self):
        inputs = TodayTempInput(
            wu_forecast=wu(30),
            primary_station_id=1,
            hour=11,
            morning_temps=(10.0,) * 6,
            nowcast_enabled=True,
        )
        result = resolve_today_temps(inputs)

        assert result.nowcast_applied is False
        assert result.temp_max == 30

    def test_nowcast_skipped_without_primary(self):
        inputs = TodayTempInput(
            bom_forecast=bom(30),
            hour=11,
            morning_temps=(10.0,) * 6,
            nowcast_enabled=True,
        )

        assert resolve_today_temps(inputs).nowcast_applied is False

    def test_nowcast_skipped_for_later_lead_days(self):
        inputs = TodayTempInput(
            bom_forecast=bom(30, day=1),
            primary_station_id=1,
            hour=11,
            morning_temps=(10.0,) * 6,
            nowcast_enabled=True,
        )

        assert resolve_today_temps(inputs).nowcast_applied is False


class TestInvariants:

    @pytest.mark.parametrize("raw,bias", [(24.2, 1.3), (30.0, -2.5), (-3.6, 0.9), (17.5, 0.0)])
    def test_final_within_half_degree_of_corrected(self, raw, bias):
        stats = {StatsKey("bom", TARGET_TMAX, 0): StatEntry(sample_size=7, mean_bias=bias)}
        result = resolve_today_temps(TodayTempInput(bom_forecast=bom(raw), correction_stats=stats))

        assert abs(result.temp_max - (raw - bias)) <= 0.5

    def test_identical_inputs_give_identical_results(self):
        stats = {StatsKey("bom", TARGET_TMAX, 1): StatEntry(sample_size=12, mean_bias=0.8)}
        inputs = TodayTempInput(
            bom_forecast=bom(27.4, 12.0, day=1),
            wu_forecast=wu(26.0, 11.2, day=1),
            correction_stats=stats,
            observed_max=24.1,
            observed_min=10.9,
            hour=13,
        )

        assert resolve_today_temps(inputs).to_dict() == resolve_today_temps(inputs).to_dict()


class TestProvenanceRow:

    def test_row_carries_explanation(self):
        stats = {StatsKey("bom", TARGET_TMAX, 0): StatEntry(sample_size=10, mean_bias=1.0)}
        b, w = bom(30, 12), wu(29, 11)
        result = resolve_today_temps(TodayTempInput(bom_forecast=b, wu_forecast=w, correction_stats=stats))
        row = build_displayed_forecast(
            result, date(2026, 1, 15), w, b, datetime(2026, 1, 15, 1, tzinfo=timezone.utc)
        )

        assert row["source_max"] == "bom"
        assert row["raw_temp_max"] == 30
        assert row["bias_applied_max"] == 1.0
        assert row["bias_day_used_max"] == 0
        assert row["corrected_temp_max"] == 29
        assert row["bias_rejected_max"] is False
        assert row["source_min"] == "wu"
        assert row["corrected_temp_min"] == 11
        # No tmin statistics, so the bias columns stay empty
        assert row["bias_applied_min"] is None
        assert row["bias_day_used_min"] is None
        assert row["nowcast_applied"] is False
        assert row["nowcast_adjustment"] is None
        assert row["wu_forecast_id"] == 22
        assert row["bom_forecast_id"] == 11

    def test_row_without_max(self):
        w = wu(None, 5)
        result = resolve_today_temps(TodayTempInput(wu_forecast=w))
        row = build_displayed_forecast(
            result, date(2026, 1, 15), w, None, datetime(2026, 1, 15, 1, tzinfo=timezone.utc)
        )

        assert row["source_max"] is None
        assert row["corrected_temp_max"] is None
        assert row["corrected_temp_min"] == 5
        assert row["bom_forecast_id"] is None
