"""Tests for rx_forecaster.reporting.formatters."""

from __future__ import annotations

from rx_forecaster.environment.profiles import BANGLADESH_PROFILE
from rx_forecaster.models.forecast import QuickSeasonalInsights, QuickSummary, TopForecast
from rx_forecaster.pipeline.forecast import build_forecast_report
from rx_forecaster.reporting.formatters import (
    format_forecast_report,
    format_profile,
    format_quick_seasonal_insights,
    format_quick_summary,
)
from rx_forecaster.taxonomy.forecast_taxonomy import StockAction


# ── format_forecast_report ────────────────────────────────────────────────────


def _report(store, owner, as_of, market):
    return build_forecast_report(
        owner, 30, store, store, as_of=as_of, market_provider=market
    )


def test_report_blocks_in_priority_order(sample_store, owner, as_of, neutral_market) -> None:
    """HIGH block precedes LOW; MEDIUM is omitted when empty."""
    text = format_forecast_report(_report(sample_store, owner, as_of, neutral_market))
    assert "[HIGH]" in text
    assert "[LOW]" in text
    assert "[MEDIUM]" not in text
    assert text.index("[HIGH]") < text.index("[LOW]")
    assert text.index("ORS Sachet") < text.index("Amoxicillin 500mg")


def test_report_header(sample_store, owner, as_of, neutral_market) -> None:
    text = format_forecast_report(_report(sample_store, owner, as_of, neutral_market))
    assert "Owner:    pharmacy-1" in text
    assert "season: winter" in text
    assert "Items:    3" in text


def test_report_risks_only_when_requested(sample_store, owner, as_of, neutral_market) -> None:
    """Risk lines are prefixed with '!' and hidden by default."""
    report = _report(sample_store, owner, as_of, neutral_market)
    assert "! Current stock below minimum threshold" not in format_forecast_report(report)
    assert "! Current stock below minimum threshold" in format_forecast_report(
        report, show_risks=True
    )


def test_report_insights_listed(sample_store, owner, as_of, neutral_market) -> None:
    text = format_forecast_report(_report(sample_store, owner, as_of, neutral_market))
    assert "Insights:" in text
    assert "- 1 items need immediate restocking" in text


def test_empty_report_hint(sample_store, as_of, neutral_market) -> None:
    text = format_forecast_report(_report(sample_store, "nobody", as_of, neutral_market))
    assert "no stocked items" in text
    assert "Insights:" not in text


# ── format_quick_summary ──────────────────────────────────────────────────────


def test_quick_summary_lines() -> None:
    summary = QuickSummary(
        total_predicted_demand=178,
        urgent_restock_count=1,
        high_confidence_count=1,
        top_forecasts=[
            TopForecast(
                item_id="amox-500", item_name="Amoxicillin 500mg",
                predicted_demand=106, action=StockAction.MAINTAIN_STOCK,
            )
        ],
    )
    text = format_quick_summary(summary, "pharmacy-1")
    assert "Total predicted demand: 178" in text
    assert "Urgent restocks:        1" in text
    assert "Amoxicillin 500mg" in text
    assert "maintain_stock" in text


def test_quick_summary_without_top_items() -> None:
    text = format_quick_summary(QuickSummary(), "p")
    assert "Demand" not in text



# ── format_quick_seasonal_insights ────────────────────────────────────────────


def test_seasonal_insights_lines() -> None:
    insights = QuickSeasonalInsights(
        critical_alerts=2,
        high_demand_items=1,
        mean_seasonal_factor=1.0467,
        top_recommendations=["ORS Sachet", "Amoxicillin 500mg"],
    )
    text = format_quick_seasonal_insights(insights, "pharmacy-1")
    assert "Critical alerts:        2" in text
    assert "Mean seasonal factor:   x1.05" in text
    assert "    - ORS Sachet" in text


def test_seasonal_insights_without_recommendations() -> None:
    text = format_quick_seasonal_insights(QuickSeasonalInsights(), "p")
    assert "x1.00" in text
    assert "Restock first" not in text

# ── format_profile ────────────────────────────────────────────────────────────


def test_profile_lists_every_season() -> None:
    text = format_profile(BANGLADESH_PROFILE)
    for season in ("[WINTER]", "[SUMMER]", "[MONSOON]"):
        assert season in text
    assert "Antimalarials" in text
    assert "x1.90" in text
    assert "Weather-sensitive classes:" in text
