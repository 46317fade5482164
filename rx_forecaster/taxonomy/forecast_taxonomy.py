"""
Enumerations shared by the forecasting pipeline.

``StockAction`` and ``UrgencyTier`` are the two outputs a pharmacy acts on;
``TrendClass`` describes the demand shape; ``Season`` names the calendar
bands of the built-in seasonal profile.

``URGENCY_RANK`` is the canonical ordering contract used by the result
aggregator: lower rank sorts first.

This module has NO imports from any other ``rx_forecaster`` package.
"""

from enum import StrEnum


class StockAction(StrEnum):
    """Recommended stocking action for one item."""

    URGENT_RESTOCK = "urgent_restock"
    """On-hand stock is at or below the reorder threshold."""

    INCREASE_STOCK = "increase_stock"
    """Predicted demand exceeds 1.5x current stock."""

    REDUCE_STOCK = "reduce_stock"
    """Predicted demand is under half of current stock."""

    MAINTAIN_STOCK = "maintain_stock"
    """Demand and stock are in balance."""


class UrgencyTier(StrEnum):
    """How soon a stocking action is needed."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class TrendClass(StrEnum):
    """Shape of demand implied by the multipliers and recent history."""

    INCREASING = "increasing"
    DECREASING = "decreasing"
    CYCLICAL = "cyclical"
    STABLE = "stable"


class Season(StrEnum):
    """Calendar bands of the built-in (Bangladesh) seasonal profile."""

    WINTER = "winter"
    SUMMER = "summer"
    MONSOON = "monsoon"


URGENCY_RANK: dict[UrgencyTier, int] = {
    UrgencyTier.CRITICAL: 0,
    UrgencyTier.HIGH: 1,
    UrgencyTier.MEDIUM: 2,
    UrgencyTier.LOW: 3,
}


class PriorityBucket(StrEnum):
    """Presentation buckets; ``high`` absorbs both critical and high tiers."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


TIER_TO_BUCKET: dict[UrgencyTier, PriorityBucket] = {
    UrgencyTier.CRITICAL: PriorityBucket.HIGH,
    UrgencyTier.HIGH: PriorityBucket.HIGH,
    UrgencyTier.MEDIUM: PriorityBucket.MEDIUM,
    UrgencyTier.LOW: PriorityBucket.LOW,
}
