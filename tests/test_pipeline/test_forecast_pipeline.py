"""
Tests for rx_forecaster/pipeline/forecast.py.

Uses the ``sample_store`` fixture (winter as-of date, neutral market unless a
test says otherwise):

  ors-sachet  ORS, stock 5 / threshold 10, 2 weeks of history
              → weather 0.84, all estimators degraded, CRITICAL
  amox-500    Antibiotics, 12 steady weeks of 20, stock 100
              → seasonal 1.3, LOW, confidence 94
  derm-cream  unknown class, no sales, stock 200 → REDUCE_STOCK

What we test
------------
generate_forecast():
  - Expected per-item numbers for the three sample items.
  - Aggregator order: critical first, then confidence desc, then item_id.
  - Other owners' items and sales never leak in.
  - Same inputs twice → identical results; thread-pool run matches serial.
  - Predictions are never negative, even for collapsing demand.
  - Expiring stock and hot markets add their risk factors.
  - Unsupported horizon → ValueError; owner with no stock → [].
  - Stock / ledger failures and ledger timeouts → DataFetchError.

build_forecast_report() / quick_summary() / quick_seasonal_insights():
  - Season, buckets, insights and overall confidence.
  - Quick summary totals, counts and top list in aggregator order.
  - Seasonal alerts: high-priority count, factor > 1.3 count, mean factor,
    top names; neutral defaults for an owner with no stock.
"""

from __future__ import annotations

import time
from datetime import timedelta

import pytest

from rx_forecaster.collaborators.base import DataFetchError
from rx_forecaster.collaborators.memory import InMemoryStore
from rx_forecaster.config import AggregationConfig, AppConfig, HistoryConfig
from rx_forecaster.pipeline.forecast import (
    build_forecast_report,
    generate_forecast,
    quick_seasonal_insights,
    quick_summary,
)
from rx_forecaster.recommendations.scorer import (
    RISK_BELOW_THRESHOLD,
    RISK_EXPIRING,
    RISK_HIGH_DEMAND,
    RISK_MARKET_GROWTH,
)
from rx_forecaster.taxonomy.forecast_taxonomy import StockAction, TrendClass, UrgencyTier


class _FailingStock:
    def fetch_stock_snapshots(self, owner_id):
        raise ConnectionError("stock service unreachable")


class _SlowLedger:
    def fetch_sales_history(self, owner_id, window_days, as_of):
        time.sleep(0.5)
        return []


class _BrokenLedger:
    def fetch_sales_history(self, owner_id, window_days, as_of):
        raise DataFetchError("ledger gone", source="test-ledger")


def _run(store, owner, as_of, market, config=None, horizon=30):
    return generate_forecast(
        owner, horizon, store, store,
        config=config or AppConfig(), as_of=as_of, market_provider=market,
    )


def _by_id(results):
    return {r.item_id: r for r in results}


# ── Per-item numbers ──────────────────────────────────────────────────────────

class TestSampleItems:
    def test_order(self, sample_store, owner, as_of, neutral_market):
        results = _run(sample_store, owner, as_of, neutral_market)
        assert [r.item_id for r in results] == ["ors-sachet", "amox-500", "derm-cream"]

    def test_low_stock_weather_sensitive_item(self, sample_store, owner, as_of, neutral_market):
        ors = _by_id(_run(sample_store, owner, as_of, neutral_market))["ors-sachet"]
        assert ors.seasonal_factor == pytest.approx(0.84)
        assert ors.predictions == {"week_1": 8, "week_2": 8, "week_3": 8, "week_4": 8}
        assert ors.total_predicted_demand == 32
        assert ors.urgency is UrgencyTier.CRITICAL
        assert ors.action is StockAction.URGENT_RESTOCK
        assert ors.recommendation.suggested_quantity == 48
        assert ors.risk_factors == [RISK_HIGH_DEMAND, RISK_BELOW_THRESHOLD]
        assert ors.confidence_score == 54.0
        assert ors.fallback_estimators == ["trend", "smoothing", "cyclical"]
        assert (ors.confidence_interval.lower, ors.confidence_interval.upper) == (0, 0)
        assert ors.peak_seasons == ["summer", "monsoon"]

    def test_steady_seasonal_item(self, sample_store, owner, as_of, neutral_market):
        amox = _by_id(_run(sample_store, owner, as_of, neutral_market))["amox-500"]
        assert amox.season == "winter"
        assert amox.seasonal_factor == pytest.approx(1.3)
        assert amox.predictions == {"week_1": 26, "week_2": 26, "week_3": 27, "week_4": 27}
        assert amox.total_predicted_demand == 106
        assert amox.urgency is UrgencyTier.LOW
        assert amox.action is StockAction.MAINTAIN_STOCK
        assert amox.recommendation.reorder_point == 32
        assert amox.recommendation.safety_stock == 21
        assert amox.confidence_score == 94.0
        assert amox.trend is TrendClass.STABLE
        assert amox.risk_factors == []
        assert amox.history_points == 12
        assert amox.fallback_estimators == []

    def test_item_without_sales(self, sample_store, owner, as_of, neutral_market):
        derm = _by_id(_run(sample_store, owner, as_of, neutral_market))["derm-cream"]
        assert derm.total_predicted_demand == 40
        assert derm.action is StockAction.REDUCE_STOCK
        assert derm.recommendation.suggested_quantity == 32
        assert derm.urgency is UrgencyTier.LOW
        assert derm.confidence_score == 50.0
        assert derm.history_points == 0

    def test_longer_horizon(self, sample_store, owner, as_of, neutral_market):
        results = _run(sample_store, owner, as_of, neutral_market, horizon=90)
        assert all(len(r.predictions) == 12 for r in results)
        assert all(r.horizon_days == 90 for r in results)


# ── Run-level properties ──────────────────────────────────────────────────────

class TestRunProperties:
    def test_other_owner_isolated(self, sample_store, owner, as_of, neutral_market):
        results = _run(sample_store, owner, as_of, neutral_market)
        assert "other-item" not in _by_id(results)
        assert all(r.owner_id == owner for r in results)

        other = _run(sample_store, "pharmacy-2", as_of, neutral_market)
        assert [r.item_id for r in other] == ["other-item"]

    def test_idempotent(self, sample_store, owner, as_of, neutral_market):
        first = _run(sample_store, owner, as_of, neutral_market)
        second = _run(sample_store, owner, as_of, neutral_market)
        assert first == second

    def test_thread_pool_matches_serial(self, sample_store, owner, as_of, neutral_market):
        pooled_config = AppConfig(aggregation=AggregationConfig(max_workers=4))
        serial = _run(sample_store, owner, as_of, neutral_market)
        pooled = _run(sample_store, owner, as_of, neutral_market, config=pooled_config)
        assert serial == pooled

    def test_collapsing_demand_never_negative(
        self, owner, as_of, neutral_market, make_snapshot, weekly_sales
    ):
        store = InMemoryStore(
            [make_snapshot(item_id="fading", therapeutic_class="Dermatology")],
            weekly_sales("fading", [200, 150, 100, 50, 0, 0, 0, 0, 0, 0, 0, 0]),
        )
        result = _run(store, owner, as_of, neutral_market, horizon=90)[0]
        assert all(v >= 0 for v in result.predictions.values())
        assert result.total_predicted_demand >= 0

    def test_expiring_stock_flagged(self, owner, as_of, neutral_market, make_snapshot):
        store = InMemoryStore([make_snapshot(expiry_date=as_of + timedelta(days=10))])
        result = _run(store, owner, as_of, neutral_market)[0]
        assert RISK_EXPIRING in result.risk_factors

    def test_hot_market(self, sample_store, owner, as_of, hot_market):
        amox = _by_id(_run(sample_store, owner, as_of, hot_market))["amox-500"]
        assert amox.seasonal_factor == pytest.approx(1.625)
        assert amox.trend is TrendClass.INCREASING
        assert amox.risk_factors == [RISK_MARKET_GROWTH]
        assert amox.confidence_score == 74.0

    def test_unsupported_horizon(self, sample_store, owner, as_of, neutral_market):
        with pytest.raises(ValueError):
            _run(sample_store, owner, as_of, neutral_market, horizon=45)

    def test_owner_without_stock(self, sample_store, as_of, neutral_market):
        assert _run(sample_store, "nobody", as_of, neutral_market) == []


# ── Collaborator failures ─────────────────────────────────────────────────────

class TestCollaboratorFailures:
    def test_stock_failure_wrapped(self, sample_store, owner, as_of, neutral_market):
        with pytest.raises(DataFetchError) as exc_info:
            generate_forecast(
                owner, 30, _FailingStock(), sample_store,
                as_of=as_of, market_provider=neutral_market,
            )
        assert exc_info.value.source == "stock"
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    def test_ledger_error_propagates_unchanged(self, sample_store, owner, as_of, neutral_market):
        with pytest.raises(DataFetchError) as exc_info:
            generate_forecast(
                owner, 30, sample_store, _BrokenLedger(),
                as_of=as_of, market_provider=neutral_market,
            )
        assert exc_info.value.source == "test-ledger"

    def test_ledger_timeout(self, sample_store, owner, as_of, neutral_market):
        config = AppConfig(history=HistoryConfig(fetch_timeout_s=0.05))
        with pytest.raises(DataFetchError, match="timed out") as exc_info:
            generate_forecast(
                owner, 30, sample_store, _SlowLedger(),
                config=config, as_of=as_of, market_provider=neutral_market,
            )
        assert exc_info.value.source == "ledger"

    def test_quick_summary_propagates(self, sample_store, owner, as_of, neutral_market):
        with pytest.raises(DataFetchError):
            quick_summary(
                owner, _FailingStock(), sample_store,
                as_of=as_of, market_provider=neutral_market,
            )

    def test_quick_seasonal_insights_propagates(self, sample_store, owner, as_of, neutral_market):
        with pytest.raises(DataFetchError):
            quick_seasonal_insights(
                owner, _FailingStock(), sample_store,
                as_of=as_of, market_provider=neutral_market,
            )


# ── Aggregated views ──────────────────────────────────────────────────────────

class TestReportAndSummary:
    def test_report(self, sample_store, owner, as_of, neutral_market):
        report = build_forecast_report(
            owner, 30, sample_store, sample_store,
            as_of=as_of, market_provider=neutral_market,
        )
        assert report.season == "winter"
        assert [r.item_id for r in report.buckets.high] == ["ors-sachet"]
        assert report.buckets.medium == []
        assert [r.item_id for r in report.buckets.low] == ["amox-500", "derm-cream"]
        assert report.overall_confidence == 66
        assert report.market_insights == [
            "1 items need immediate restocking",
            "Weather conditions favor: cold, flu, pneumonia",
            "Prediction confidence: 66% based on historical data and seasonal patterns",
        ]

    def test_quick_summary(self, sample_store, owner, as_of, neutral_market):
        summary = quick_summary(
            owner, sample_store, sample_store,
            as_of=as_of, market_provider=neutral_market,
        )
        assert summary.total_predicted_demand == 178
        assert summary.urgent_restock_count == 1
        assert summary.high_confidence_count == 1
        assert [t.item_id for t in summary.top_forecasts] == [
            "ors-sachet", "amox-500", "derm-cream",
        ]

    def test_quick_seasonal_insights(self, sample_store, owner, as_of, neutral_market):
        insights = quick_seasonal_insights(
            owner, sample_store, sample_store,
            as_of=as_of, market_provider=neutral_market,
        )
        assert insights.critical_alerts == 1
        # amox-500 sits exactly at 1.3, which is not "high demand"
        assert insights.high_demand_items == 0
        assert insights.mean_seasonal_factor == pytest.approx((0.84 + 1.3 + 1.0) / 3)
        assert insights.top_recommendations == ["ORS Sachet"]

    def test_quick_seasonal_insights_hot_market(self, sample_store, owner, as_of, hot_market):
        insights = quick_seasonal_insights(
            owner, sample_store, sample_store,
            as_of=as_of, market_provider=hot_market,
        )
        assert insights.high_demand_items == 1

    def test_quick_seasonal_insights_owner_without_stock(
        self, sample_store, as_of, neutral_market
    ):
        insights = quick_seasonal_insights(
            "nobody", sample_store, sample_store,
            as_of=as_of, market_provider=neutral_market,
        )
        assert insights.model_dump() == {
            "critical_alerts": 0,
            "high_demand_items": 0,
            "mean_seasonal_factor": 1.0,
            "top_recommendations": [],
        }
