"""
Environmental adjuster: seasonal × weather × market multiplier per class.

Multiplier components
---------------------
seasonal : ``SeasonBand.multipliers[class]`` for the season of the as-of
           date; 1.0 when the class is not listed.
weather  : only for weather-sensitive classes (keys of
           ``SeasonalProfile.weather_rules``)::

               1 + rule.temperature * impact.temperature_impact
                 + rule.humidity    * impact.humidity_impact
                 + rule.rainfall    * impact.rainfall_impact

           clamped to [0.5, 2.0]. 1.0 for every other class.
market   : ``1 + growth_rate / 100`` from the ``MarketTrendProvider``;
           1.0 when the provider has no trend for the class.

combined = seasonal × weather × market. The adjusted forecast multiplies
every ensemble period by ``combined``, rounds, and clamps at zero.

A class missing from any table is not an error; that component is neutral.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from rx_forecaster.environment.market import MarketTrendProvider
from rx_forecaster.models.seasonal import MarketTrend, SeasonalProfile, WeatherImpact, WeatherRule
from rx_forecaster.utils.numeric import round_half_up

logger = logging.getLogger(__name__)

WEATHER_MIN = 0.5
WEATHER_MAX = 2.0


@dataclass(frozen=True)
class EnvironmentalAdjustment:
    """All multiplier components applied to one item's forecast.

    Attributes:
        season: Season in effect.
        seasonal: Category multiplier for the season.
        weather: Clamped weather multiplier (1.0 if not weather-sensitive).
        market: Market growth multiplier.
        market_trend: The trend row used, if any.
    """

    season: str
    seasonal: float = 1.0
    weather: float = 1.0
    market: float = 1.0
    market_trend: Optional[MarketTrend] = None

    @property
    def combined(self) -> float:
        return self.seasonal * self.weather * self.market


def season_for_date(profile: SeasonalProfile, day: date) -> str:
    """Return the name of the season containing ``day``'s month."""
    for band in profile.seasons:
        if day.month in band.months:
            return band.name
    return profile.default_season


def seasonal_multiplier(profile: SeasonalProfile, season: str, therapeutic_class: str) -> float:
    """Category multiplier for ``season``; 1.0 on any lookup miss."""
    try:
        band = profile.band(season)
    except KeyError:
        logger.debug("Season '%s' not in profile '%s'; multiplier 1.0", season, profile.name)
        return 1.0
    return band.multipliers.get(therapeutic_class, 1.0)


def weather_multiplier(
    impact: WeatherImpact,
    rule: WeatherRule,
    lo: float = WEATHER_MIN,
    hi: float = WEATHER_MAX,
) -> float:
    """Weather multiplier for one class, clamped to ``[lo, hi]``."""
    raw = (
        1.0
        + rule.temperature * impact.temperature_impact
        + rule.humidity * impact.humidity_impact
        + rule.rainfall * impact.rainfall_impact
    )
    return _clamp(raw, lo, hi)


def market_multiplier(trend: Optional[MarketTrend]) -> float:
    """``1 + growth_rate / 100``, or 1.0 without a trend."""
    if trend is None:
        return 1.0
    return 1.0 + trend.growth_rate / 100.0


def peak_seasons(profile: SeasonalProfile, therapeutic_class: str, cutoff: float = 1.2) -> list[str]:
    """Seasons in which the class multiplier exceeds ``cutoff`` (profile order)."""
    return [
        band.name
        for band in profile.seasons
        if band.multipliers.get(therapeutic_class, 0.0) > cutoff
    ]


def compute_adjustment(
    profile: SeasonalProfile,
    therapeutic_class: str,
    as_of: date,
    market_provider: Optional[MarketTrendProvider] = None,
    weather_bounds: tuple[float, float] = (WEATHER_MIN, WEATHER_MAX),
) -> EnvironmentalAdjustment:
    """Resolve every multiplier component for one class on ``as_of``."""
    season = season_for_date(profile, as_of)
    seasonal = seasonal_multiplier(profile, season, therapeutic_class)

    weather = 1.0
    rule = profile.weather_rules.get(therapeutic_class)
    impact = profile.weather.get(season)
    if rule is not None and impact is not None:
        weather = weather_multiplier(impact, rule, *weather_bounds)

    trend = market_provider.trend_for(therapeutic_class) if market_provider else None

    return EnvironmentalAdjustment(
        season=season,
        seasonal=seasonal,
        weather=weather,
        market=market_multiplier(trend),
        market_trend=trend,
    )


def adjust_forecast(forecast: dict[str, int], multiplier: float) -> dict[str, int]:
    """Scale every period by ``multiplier``; round and clamp at zero."""
    return {key: max(0, round_half_up(value * multiplier)) for key, value in forecast.items()}


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))
