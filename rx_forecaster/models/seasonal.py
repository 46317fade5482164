"""
Seasonal profile and market trend models.

A ``SeasonalProfile`` is a small rule table keyed by (season × therapeutic
class). It is static configuration (loaded from JSON or taken from the
built-in profile), never derived from live data:

  seasons        : calendar bands with per-class demand multipliers
  weather        : per-season impact coefficients (temperature / humidity /
                   rainfall) plus the diseases the season favours
  weather_rules  : per-class sensitivity to each weather coefficient; the
                   keys of this table are the weather-sensitive allow-list

``MarketTrend`` is one row of external market intelligence for a category,
supplied through a ``MarketTrendProvider``.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

TrendDirection = Literal["up", "down", "stable"]


class SeasonBand(BaseModel):
    """One calendar season.

    Attributes:
        name: Season slug, e.g. ``"monsoon"``.
        months: Calendar months (1–12) belonging to this season.
        diseases: Conditions that peak during the season.
        multipliers: Therapeutic class → demand multiplier.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    months: list[int]
    diseases: list[str] = []
    multipliers: dict[str, float] = {}

    @field_validator("months")
    @classmethod
    def validate_months(cls, v: list[int]) -> list[int]:
        if not v:
            raise ValueError("A season must cover at least one month.")
        bad = [m for m in v if not 1 <= m <= 12]
        if bad:
            raise ValueError(f"Months must be in 1..12, got {bad}.")
        return v

    @field_validator("multipliers")
    @classmethod
    def validate_multipliers(cls, v: dict[str, float]) -> dict[str, float]:
        for cls_name, m in v.items():
            if m <= 0:
                raise ValueError(f"Multiplier for '{cls_name}' must be > 0, got {m}.")
        return v


class WeatherImpact(BaseModel):
    """Fixed weather coefficients for a season."""

    model_config = ConfigDict(frozen=True)

    temperature_impact: float = 0.0
    humidity_impact: float = 0.0
    rainfall_impact: float = 0.0
    seasonal_diseases: list[str] = []
    affected_classes: list[str] = []


class WeatherRule(BaseModel):
    """How strongly one therapeutic class reacts to each weather coefficient."""

    model_config = ConfigDict(frozen=True)

    temperature: float = 0.0
    humidity: float = 0.0
    rainfall: float = 0.0


class SeasonalProfile(BaseModel):
    """Complete seasonal / weather lookup table.

    Attributes:
        name: Profile label (usually the region), e.g. ``"bangladesh"``.
        seasons: Non-overlapping season bands.
        weather: Season name → ``WeatherImpact``.
        weather_rules: Weather-sensitive class → ``WeatherRule``.
        default_season: Season used when a month matches no band.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    seasons: list[SeasonBand]
    weather: dict[str, WeatherImpact] = {}
    weather_rules: dict[str, WeatherRule] = {}
    default_season: str

    @model_validator(mode="after")
    def validate_profile(self) -> "SeasonalProfile":
        names = [s.name for s in self.seasons]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate season names in profile '{self.name}': {names}.")
        if self.default_season not in names:
            raise ValueError(
                f"default_season '{self.default_season}' is not one of {names}."
            )
        seen: dict[int, str] = {}
        for band in self.seasons:
            for month in band.months:
                if month in seen:
                    raise ValueError(
                        f"Month {month} appears in both '{seen[month]}' and '{band.name}'."
                    )
                seen[month] = band.name
        unknown = set(self.weather) - set(names)
        if unknown:
            raise ValueError(f"Weather entries for unknown seasons: {sorted(unknown)}.")
        return self

    @property
    def weather_sensitive_classes(self) -> frozenset[str]:
        return frozenset(self.weather_rules)

    def band(self, season: str) -> SeasonBand:
        """Return the band named ``season`` (``KeyError`` if absent)."""
        for band in self.seasons:
            if band.name == season:
                return band
        raise KeyError(season)


class MarketTrend(BaseModel):
    """Market intelligence for one therapeutic class.

    Attributes:
        category: Therapeutic class this trend applies to.
        trend_direction: ``"up"``, ``"down"`` or ``"stable"``.
        growth_rate: Expected growth in percent (``15`` = +15%).
        market_size: Market size in local currency units (informational).
        key_drivers: Free-text demand drivers.
        forecast_confidence: Provider's own confidence, 0–100.
    """

    model_config = ConfigDict(frozen=True)

    category: str
    trend_direction: TrendDirection = "stable"
    growth_rate: float = 0.0
    market_size: float = 0.0
    key_drivers: list[str] = []
    forecast_confidence: float = 50.0

    @field_validator("growth_rate")
    @classmethod
    def validate_growth(cls, v: float) -> float:
        if v <= -100.0:
            raise ValueError(f"growth_rate must be > -100%, got {v}.")
        return v

    @field_validator("forecast_confidence")
    @classmethod
    def validate_confidence(cls, v: float) -> float:
        if not 0.0 <= v <= 100.0:
            raise ValueError(f"forecast_confidence must be in [0, 100], got {v}.")
        return v
