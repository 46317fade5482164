"""
Forecast report builder and writers.

Summary helpers (pure, no I/O)
------------------------------
  build_market_insights(results, season, weather)  -> list[str]
  overall_confidence(results)                      -> int
  build_quick_summary(results, ...)                -> QuickSummary
  build_quick_seasonal_insights(results, ...)      -> QuickSeasonalInsights

File writers
------------
  data/outputs/forecasts/
    forecast_{owner}_{date}.csv      -- one row per item, aggregator order
    report_{owner}_{date}.json       -- full ForecastReport, structured JSON
"""

from __future__ import annotations

import csv
import json
import logging
from datetime import date
from pathlib import Path
from typing import Optional, Sequence

from rx_forecaster.models.forecast import (
    ForecastReport,
    ForecastResult,
    QuickSeasonalInsights,
    QuickSummary,
    TopForecast,
)
from rx_forecaster.models.seasonal import WeatherImpact
from rx_forecaster.recommendations.ranker import partition_by_priority, sort_results
from rx_forecaster.taxonomy.forecast_taxonomy import StockAction, UrgencyTier
from rx_forecaster.utils.numeric import round_half_up

logger = logging.getLogger(__name__)

HIGH_DEMAND_FACTOR = 1.3


def overall_confidence(results: Sequence[ForecastResult]) -> int:
    """Rounded mean confidence score; 0 for an empty run."""
    if not results:
        return 0
    return round_half_up(sum(r.confidence_score for r in results) / len(results))


def build_market_insights(
    results: Sequence[ForecastResult],
    season: str,
    weather: Optional[WeatherImpact] = None,
) -> list[str]:
    """Free-text summary lines derived from aggregate counts.

    Lines are emitted in a fixed order and only when they apply, except the
    confidence line which is always last.
    """
    insights: list[str] = []

    high_demand = [r for r in results if r.seasonal_factor > HIGH_DEMAND_FACTOR]
    if high_demand:
        insights.append(
            f"Expected high demand for {len(high_demand)} items in {season} season"
        )

    needs_restock = [
        r for r in results if r.urgency in (UrgencyTier.CRITICAL, UrgencyTier.HIGH)
    ]
    if needs_restock:
        insights.append(f"{len(needs_restock)} items need immediate restocking")

    if weather is not None and weather.seasonal_diseases:
        insights.append(
            f"Weather conditions favor: {', '.join(weather.seasonal_diseases)}"
        )

    insights.append(
        f"Prediction confidence: {overall_confidence(results)}% "
        "based on historical data and seasonal patterns"
    )
    return insights


def build_quick_summary(
    results: Sequence[ForecastResult],
    high_confidence_above: float = 80.0,
    top_n: int = 5,
) -> QuickSummary:
    """Dashboard view: totals, urgent and high-confidence counts, top items.

    ``top_forecasts`` are the first ``top_n`` results in aggregator order, so
    the dashboard lists the most urgent items rather than the largest.
    """
    return QuickSummary(
        total_predicted_demand=sum(r.total_predicted_demand for r in results),
        urgent_restock_count=sum(
            1 for r in results if r.action is StockAction.URGENT_RESTOCK
        ),
        high_confidence_count=sum(
            1 for r in results if r.confidence_score > high_confidence_above
        ),
        top_forecasts=[
            TopForecast(
                item_id=r.item_id,
                item_name=r.item_name,
                predicted_demand=r.total_predicted_demand,
                action=r.action,
            )
            for r in sort_results(results)[:top_n]
        ],
    )


def build_quick_seasonal_insights(
    results: Sequence[ForecastResult],
    top_n: int = 3,
) -> QuickSeasonalInsights:
    """Alert-panel numbers: high-priority count, seasonal hot spots, top names.

    An empty run gives zero counts, no names and a neutral 1.0 mean factor.
    """
    if not results:
        return QuickSeasonalInsights()

    high_priority = partition_by_priority(results).high
    return QuickSeasonalInsights(
        critical_alerts=len(high_priority),
        high_demand_items=sum(
            1 for r in results if r.seasonal_factor > HIGH_DEMAND_FACTOR
        ),
        mean_seasonal_factor=sum(r.seasonal_factor for r in results) / len(results),
        top_recommendations=[r.item_name for r in high_priority[:top_n]],
    )


# ── Writers ────────────────────────────────────────────────────────────────────

_CSV_FIELDS = [
    "item_id", "item_name", "therapeutic_class", "urgency", "action",
    "current_stock", "reorder_threshold", "total_predicted_demand",
    "suggested_quantity", "reorder_point", "safety_stock",
    "ci_lower", "ci_upper", "trend", "confidence_score",
    "seasonal_factor", "risk_factors",
]


def write_forecast_csv(
    results: Sequence[ForecastResult],
    output_dir: Path,
    owner_id: str,
    run_date: date | None = None,
) -> Path:
    """Write one CSV row per item in aggregator order.

    Args:
        results: Forecast results for this run.
        output_dir: Directory to write the file (created if missing).
        owner_id: Owning entity (used in filename).
        run_date: Date label for the filename. Defaults to today.

    Returns:
        Path to the written CSV file.
    """
    if run_date is None:
        run_date = date.today()

    output_dir.mkdir(parents=True, exist_ok=True)
    csv_path = output_dir / f"forecast_{owner_id}_{run_date}.csv"

    with csv_path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=_CSV_FIELDS)
        writer.writeheader()
        for r in sort_results(results):
            writer.writerow(
                {
                    "item_id":                r.item_id,
                    "item_name":              r.item_name,
                    "therapeutic_class":      r.therapeutic_class,
                    "urgency":                r.urgency.value,
                    "action":                 r.action.value,
                    "current_stock":          r.current_stock,
                    "reorder_threshold":      r.reorder_threshold,
                    "total_predicted_demand": r.total_predicted_demand,
                    "suggested_quantity":     r.recommendation.suggested_quantity,
                    "reorder_point":          r.recommendation.reorder_point,
                    "safety_stock":           r.recommendation.safety_stock,
                    "ci_lower":               r.confidence_interval.lower,
                    "ci_upper":               r.confidence_interval.upper,
                    "trend":                  r.trend.value,
                    "confidence_score":       r.confidence_score,
                    "seasonal_factor":        round(r.seasonal_factor, 4),
                    "risk_factors":           "; ".join(r.risk_factors),
                }
            )

    logger.info("Forecast CSV written: %s (%d rows)", csv_path, len(results))
    return csv_path


def write_report_json(report: ForecastReport, output_dir: Path) -> Path:
    """Write the full report as indented JSON.

    Returns:
        Path to the written JSON file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    json_path = output_dir / f"report_{report.owner_id}_{report.as_of}.json"

    payload = report.model_dump(mode="json")
    json_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    logger.info("Forecast report JSON written: %s", json_path)
    return json_path
