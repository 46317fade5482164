"""
Forecast result and aggregation output models.

``ForecastResult`` is the per-item output of one forecast run: per-period
predictions, the stocking recommendation, urgency and confidence.

``ForecastReport``, ``QuickSummary`` and ``QuickSeasonalInsights`` are the
aggregated views handed to the dashboard / notification collaborators.

All models are frozen: a result is produced fresh by each run and replaced
by the next one, never edited in place.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from rx_forecaster.models.seasonal import WeatherImpact
from rx_forecaster.taxonomy.forecast_taxonomy import StockAction, TrendClass, UrgencyTier


class ConfidenceInterval(BaseModel):
    """Per-period demand band derived from historical dispersion."""

    model_config = ConfigDict(frozen=True)

    lower: int = 0
    upper: int = 0

    @model_validator(mode="after")
    def validate_bounds(self) -> "ConfidenceInterval":
        if self.lower < 0:
            raise ValueError("lower must be non-negative.")
        if self.lower > self.upper:
            raise ValueError(
                f"lower ({self.lower}) must be <= upper ({self.upper})."
            )
        return self


class StockRecommendation(BaseModel):
    """A stocking action with the quantities that go with it.

    Attributes:
        action: Recommended action.
        suggested_quantity: Units to hold / order for the horizon.
        reorder_point: Stock level at which to reorder.
        safety_stock: Buffer stock to keep on hand.
        reasoning: Human-readable explanation.
    """

    model_config = ConfigDict(frozen=True)

    action: StockAction
    suggested_quantity: int
    reorder_point: int
    safety_stock: int
    reasoning: str

    @field_validator("suggested_quantity", "reorder_point", "safety_stock")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"Recommendation quantities must be non-negative, got {v}.")
        return v


class ForecastResult(BaseModel):
    """Demand forecast and stocking recommendation for one item.

    Attributes:
        owner_id: Owning entity the forecast was produced for.
        item_id: Item identifier.
        item_name: Display name.
        therapeutic_class: Category used for adjustments.
        horizon_days: Requested horizon (30, 60 or 90).
        current_stock: On-hand quantity at forecast time.
        reorder_threshold: Low-stock threshold at forecast time.
        predictions: ``week_N`` → adjusted predicted units.
        total_predicted_demand: Sum of ``predictions``.
        confidence_interval: Historical per-period demand band.
        trend: Demand shape classification.
        risk_factors: Every applicable risk string.
        recommendation: Action + quantities.
        urgency: Urgency tier.
        confidence_score: Heuristic trust score, 0–100.
        seasonal_factor: Combined seasonal × weather × market multiplier.
        season: Season in effect on the as-of date.
        peak_seasons: Seasons in which this class sees elevated demand.
        history_points: Length of the demand series used.
        fallback_estimators: Estimators that used the flat default forecast.
    """

    model_config = ConfigDict(frozen=True)

    owner_id: str
    item_id: str
    item_name: str
    therapeutic_class: str
    horizon_days: int
    current_stock: int
    reorder_threshold: int
    predictions: dict[str, int]
    total_predicted_demand: int
    confidence_interval: ConfidenceInterval
    trend: TrendClass
    risk_factors: list[str] = []
    recommendation: StockRecommendation
    urgency: UrgencyTier
    confidence_score: float
    seasonal_factor: float = 1.0
    season: str = ""
    peak_seasons: list[str] = []
    history_points: int = 0
    fallback_estimators: list[str] = []

    @model_validator(mode="after")
    def validate_result(self) -> "ForecastResult":
        negative = {k: v for k, v in self.predictions.items() if v < 0}
        if negative:
            raise ValueError(f"Per-period predictions must be non-negative: {negative}.")
        if self.total_predicted_demand < 0:
            raise ValueError("total_predicted_demand must be non-negative.")
        if not 0.0 <= self.confidence_score <= 100.0:
            raise ValueError(
                f"confidence_score must be in [0, 100], got {self.confidence_score}."
            )
        return self

    @property
    def action(self) -> StockAction:
        return self.recommendation.action


class PriorityBuckets(BaseModel):
    """Results partitioned by urgency for presentation / alerting."""

    model_config = ConfigDict(frozen=True)

    high: list[ForecastResult] = []
    medium: list[ForecastResult] = []
    low: list[ForecastResult] = []


class ForecastReport(BaseModel):
    """Full aggregated output of one forecast run for one owning entity."""

    model_config = ConfigDict(frozen=True)

    owner_id: str
    horizon_days: int
    as_of: date
    season: str
    results: list[ForecastResult]
    buckets: PriorityBuckets
    market_insights: list[str]
    overall_confidence: int
    weather: Optional[WeatherImpact] = None


class TopForecast(BaseModel):
    """Compact row for the dashboard's top-forecast list."""

    model_config = ConfigDict(frozen=True)

    item_id: str
    item_name: str
    predicted_demand: int
    action: StockAction


class QuickSummary(BaseModel):
    """Cheap dashboard view derived from a full result set."""

    model_config = ConfigDict(frozen=True)

    total_predicted_demand: int = 0
    urgent_restock_count: int = 0
    high_confidence_count: int = 0
    top_forecasts: list[TopForecast] = []


class QuickSeasonalInsights(BaseModel):
    """Seasonal headline numbers for the dashboard's alert panel.

    Attributes:
        critical_alerts: Results in the high-priority bucket (critical + high).
        high_demand_items: Results whose seasonal factor exceeds 1.3.
        mean_seasonal_factor: Average combined multiplier; 1.0 for an empty run.
        top_recommendations: Item names of the first high-priority results.
    """

    model_config = ConfigDict(frozen=True)

    critical_alerts: int = 0
    high_demand_items: int = 0
    mean_seasonal_factor: float = 1.0
    top_recommendations: list[str] = []
