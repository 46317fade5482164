"""
Tests for rx_forecaster/environment/ (adjuster, profiles, market).

What we test
------------
season_for_date():
  - Month → season for all three built-in bands.

seasonal_multiplier():
  - Known class returns its multiplier; unknown class or season → 1.0.

weather_multiplier():
  - Linear combination of rule × impact.
  - Clamped to [0.5, 2.0] for extreme coefficients.

compute_adjustment():
  - Non-weather-sensitive class keeps weather = 1.0.
  - Weather-sensitive class gets the seasonal weather effect.
  - Market growth applied as 1 + growth / 100.
  - combined = seasonal × weather × market.

adjust_forecast():
  - Every period scaled, rounded half-up, and clamped at zero.

peak_seasons():
  - Seasons with multiplier > 1.2, in profile order.

Profile / market loading:
  - JSON profile in config/profiles matches the built-in profile.
  - Overlapping months are rejected.
  - load_market_trends() reads a JSON array and reports bad entries.
"""

from __future__ import annotations

import json
from datetime import date
from pathlib import Path

import pytest

from rx_forecaster.environment.adjuster import (
    adjust_forecast,
    compute_adjustment,
    peak_seasons,
    season_for_date,
    seasonal_multiplier,
    weather_multiplier,
)
from rx_forecaster.environment.market import (
    StaticMarketTrendProvider,
    default_market_provider,
    load_market_trends,
    resolve_market_provider,
)
from rx_forecaster.environment.profiles import (
    BANGLADESH_PROFILE,
    load_profile,
    resolve_profile,
)
from rx_forecaster.models.seasonal import (
    MarketTrend,
    SeasonalProfile,
    SeasonBand,
    WeatherImpact,
    WeatherRule,
)

_PROFILE_JSON = Path(__file__).resolve().parents[2] / "config" / "profiles" / "bangladesh.json"


class TestSeasonForDate:
    @pytest.mark.parametrize(
        "month, expected",
        [(1, "winter"), (11, "winter"), (3, "summer"), (6, "summer"), (7, "monsoon"), (10, "monsoon")],
    )
    def test_months(self, profile, month, expected):
        assert season_for_date(profile, date(2025, month, 15)) == expected


class TestSeasonalMultiplier:
    def test_known_class(self, profile):
        assert seasonal_multiplier(profile, "monsoon", "Antimalarials") == 1.9

    def test_unknown_class_is_neutral(self, profile):
        assert seasonal_multiplier(profile, "winter", "Dermatology") == 1.0

    def test_unknown_season_is_neutral(self, profile):
        assert seasonal_multiplier(profile, "spring", "Antibiotics") == 1.0


class TestWeatherMultiplier:
    def test_linear_combination(self):
        impact = WeatherImpact(temperature_impact=0.1, humidity_impact=0.4, rainfall_impact=0.5)
        rule = WeatherRule(rainfall=0.6, humidity=0.4)
        # 1 + 0.6*0.5 + 0.4*0.4 = 1.46
        assert weather_multiplier(impact, rule) == pytest.approx(1.46)

    def test_clamped_high(self):
        impact = WeatherImpact(temperature_impact=5.0)
        assert weather_multiplier(impact, WeatherRule(temperature=1.0)) == 2.0

    def test_clamped_low(self):
        impact = WeatherImpact(temperature_impact=-5.0)
        assert weather_multiplier(impact, WeatherRule(temperature=1.0)) == 0.5


class TestComputeAdjustment:
    def test_non_weather_sensitive_class(self, profile, as_of, neutral_market):
        adj = compute_adjustment(profile, "Antibiotics", as_of, neutral_market)
        assert adj.season == "winter"
        assert adj.seasonal == 1.3
        assert adj.weather == 1.0
        assert adj.market == 1.0
        assert adj.combined == pytest.approx(1.3)

    def test_weather_sensitive_class_in_winter(self, profile, as_of):
        adj = compute_adjustment(profile, "ORS", as_of)
        # ORS has no winter multiplier; temperature 0.8 × -0.2
        assert adj.seasonal == 1.0
        assert adj.weather == pytest.approx(0.84)
        assert adj.combined == pytest.approx(0.84)

    def test_respiratory_in_winter(self, profile, as_of):
        adj = compute_adjustment(profile, "Respiratory", as_of)
        # 1 + 0.5*-0.2 + 0.3*0.1 = 0.93
        assert adj.weather == pytest.approx(0.93)
        assert adj.combined == pytest.approx(1.5 * 0.93)

    def test_market_growth_applied(self, profile, as_of):
        adj = compute_adjustment(profile, "Antibiotics", as_of, default_market_provider())
        assert adj.market == pytest.approx(1.15)
        assert adj.market_trend is not None
        assert adj.combined == pytest.approx(1.3 * 1.15)

    def test_unknown_class_fully_neutral(self, profile, as_of):
        adj = compute_adjustment(profile, "Dermatology", as_of, default_market_provider())
        assert adj.combined == 1.0
        assert adj.market_trend is None

    def test_custom_weather_bounds(self, profile):
        adj = compute_adjustment(
            profile, "Antimalarials", date(2025, 8, 1), weather_bounds=(0.5, 1.2)
        )
        assert adj.weather == 1.2


class TestAdjustForecast:
    def test_scales_and_rounds(self):
        assert adjust_forecast({"week_1": 10, "week_2": 3}, 1.5) == {"week_1": 15, "week_2": 5}

    def test_half_unit_ties_round_up(self):
        # 5 × 0.5 = 2.5, 7 × 0.5 = 3.5
        assert adjust_forecast({"week_1": 5, "week_2": 7}, 0.5) == {"week_1": 3, "week_2": 4}

    def test_zero_multiplier_gives_zero(self):
        assert adjust_forecast({"week_1": 10}, 0.0) == {"week_1": 0}

    def test_never_negative(self):
        assert adjust_forecast({"week_1": 0}, 2.0) == {"week_1": 0}


class TestPeakSeasons:
    def test_antibiotics(self, profile):
        assert peak_seasons(profile, "Antibiotics") == ["winter", "monsoon"]

    def test_ors(self, profile):
        assert peak_seasons(profile, "ORS") == ["summer", "monsoon"]

    def test_unknown_class(self, profile):
        assert peak_seasons(profile, "Dermatology") == []


class TestProfiles:
    def test_json_profile_matches_builtin(self):
        assert load_profile(_PROFILE_JSON).model_dump() == BANGLADESH_PROFILE.model_dump()

    def test_resolve_empty_is_builtin(self):
        assert resolve_profile("") is BANGLADESH_PROFILE

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_profile(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text("{not json", encoding="utf-8")
        with pytest.raises(ValueError, match="Invalid JSON"):
            load_profile(bad)

    def test_overlapping_months_rejected(self):
        with pytest.raises(ValueError, match="Month 3"):
            SeasonalProfile(
                name="x",
                default_season="a",
                seasons=[SeasonBand(name="a", months=[1, 2, 3]), SeasonBand(name="b", months=[3, 4])],
            )

    def test_weather_sensitive_classes(self, profile):
        assert "ORS" in profile.weather_sensitive_classes
        assert "Antibiotics" not in profile.weather_sensitive_classes


class TestMarketProviders:
    def test_first_trend_wins(self):
        provider = StaticMarketTrendProvider([
            MarketTrend(category="X", growth_rate=10.0),
            MarketTrend(category="X", growth_rate=90.0),
        ])
        assert provider.trend_for("X").growth_rate == 10.0

    def test_load_market_trends(self, tmp_path):
        path = tmp_path / "trends.json"
        path.write_text(json.dumps([
            {"category": "Antimalarials", "trend_direction": "up", "growth_rate": 30},
        ]), encoding="utf-8")
        provider = resolve_market_provider(str(path))
        assert provider.trend_for("Antimalarials").growth_rate == 30.0
        assert provider.trend_for("Antibiotics") is None

    def test_load_market_trends_reports_bad_entries(self, tmp_path):
        path = tmp_path / "trends.json"
        path.write_text(json.dumps([
            {"category": "A", "growth_rate": 5},
            {"category": "B", "trend_direction": "sideways"},
        ]), encoding="utf-8")
        with pytest.raises(ValueError, match="Entry #1"):
            load_market_trends(path)

    def test_non_array_rejected(self, tmp_path):
        path = tmp_path / "trends.json"
        path.write_text("{}", encoding="utf-8")
        with pytest.raises(ValueError, match="JSON array"):
            load_market_trends(path)
