"""
Tests for rx_forecaster/models/ (item, sales, seasonal, forecast).

What we test
------------
Item / StockSnapshot:
  - Blank item_id rejected; whitespace stripped.
  - Negative quantity / threshold rejected.
  - Models are frozen.

SalesRecord:
  - Naive sold_at becomes UTC; negative quantity rejected.

SeasonBand / MarketTrend:
  - Months outside 1..12 and non-positive multipliers rejected.
  - growth_rate <= -100 and confidence outside [0, 100] rejected.

ConfidenceInterval / ForecastResult / StockRecommendation:
  - lower <= upper and lower >= 0.
  - Negative predictions and out-of-range confidence rejected.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from rx_forecaster.models.forecast import (
    ConfidenceInterval,
    ForecastResult,
    StockRecommendation,
)
from rx_forecaster.models.item import Item, StockSnapshot
from rx_forecaster.models.sales import SalesRecord
from rx_forecaster.models.seasonal import MarketTrend, SeasonBand
from rx_forecaster.taxonomy.forecast_taxonomy import StockAction, TrendClass, UrgencyTier


class TestItemModels:
    def test_blank_item_id(self):
        with pytest.raises(ValidationError):
            Item(item_id="  ", name="x")

    def test_item_id_stripped(self):
        assert Item(item_id=" amox ", name="x").item_id == "amox"

    def test_negative_stock(self):
        with pytest.raises(ValidationError):
            StockSnapshot(owner_id="p", item=Item(item_id="a", name="A"), quantity=-1)

    def test_negative_threshold(self):
        with pytest.raises(ValidationError):
            StockSnapshot(
                owner_id="p", item=Item(item_id="a", name="A"), quantity=1, reorder_threshold=-5
            )

    def test_frozen(self, make_snapshot):
        snapshot = make_snapshot()
        with pytest.raises(ValidationError):
            snapshot.quantity = 0

    def test_item_id_shortcut(self, make_snapshot):
        assert make_snapshot(item_id="zinc").item_id == "zinc"


class TestSalesRecord:
    def test_naive_is_utc(self):
        record = SalesRecord(owner_id="p", item_id="a", quantity=1, sold_at=datetime(2025, 1, 1, 9))
        assert record.sold_at.tzinfo == timezone.utc

    def test_negative_quantity(self):
        with pytest.raises(ValidationError):
            SalesRecord(owner_id="p", item_id="a", quantity=-1, sold_at=datetime(2025, 1, 1))


class TestSeasonalModels:
    def test_month_out_of_range(self):
        with pytest.raises(ValidationError):
            SeasonBand(name="x", months=[0, 13])

    def test_empty_months(self):
        with pytest.raises(ValidationError):
            SeasonBand(name="x", months=[])

    def test_non_positive_multiplier(self):
        with pytest.raises(ValidationError):
            SeasonBand(name="x", months=[1], multipliers={"ORS": 0.0})

    def test_growth_floor(self):
        with pytest.raises(ValidationError):
            MarketTrend(category="x", growth_rate=-100.0)

    def test_confidence_range(self):
        with pytest.raises(ValidationError):
            MarketTrend(category="x", forecast_confidence=120.0)


def _result(**overrides) -> ForecastResult:
    fields = dict(
        owner_id="p",
        item_id="a",
        item_name="A",
        therapeutic_class="",
        horizon_days=30,
        current_stock=10,
        reorder_threshold=1,
        predictions={"week_1": 5},
        total_predicted_demand=5,
        confidence_interval=ConfidenceInterval(),
        trend=TrendClass.STABLE,
        recommendation=StockRecommendation(
            action=StockAction.REDUCE_STOCK,
            suggested_quantity=4,
            reorder_point=2,
            safety_stock=1,
            reasoning="",
        ),
        urgency=UrgencyTier.LOW,
        confidence_score=50.0,
    )
    fields.update(overrides)
    return ForecastResult(**fields)


class TestForecastModels:
    def test_interval_bounds(self):
        with pytest.raises(ValidationError):
            ConfidenceInterval(lower=5, upper=4)
        with pytest.raises(ValidationError):
            ConfidenceInterval(lower=-1, upper=4)

    def test_negative_recommendation_quantity(self):
        with pytest.raises(ValidationError):
            StockRecommendation(
                action=StockAction.MAINTAIN_STOCK,
                suggested_quantity=-1,
                reorder_point=0,
                safety_stock=0,
                reasoning="",
            )

    def test_valid_result(self):
        result = _result()
        assert result.action is StockAction.REDUCE_STOCK

    def test_negative_prediction(self):
        with pytest.raises(ValidationError):
            _result(predictions={"week_1": -1})

    def test_confidence_out_of_range(self):
        with pytest.raises(ValidationError):
            _result(confidence_score=100.5)
