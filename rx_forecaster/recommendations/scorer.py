"""
Risk and recommendation scoring: converts an adjusted demand forecast plus
the current stock snapshot into an action, urgency tier, risk factors and a
confidence score.

Notation
--------
    D = adjusted total predicted demand over the horizon
    S = current on-hand stock
    T = reorder (low-stock) threshold

Action determination (first match wins)
---------------------------------------
    1. URGENT_RESTOCK : S <= T
    2. INCREASE_STOCK : D >  1.5 * S
    3. REDUCE_STOCK   : D <  0.5 * S
    4. MAINTAIN_STOCK : everything else

Suggested quantity
------------------
    urgent   → round(max(1.5 * D, 3 * T))
    increase → round(1.2 * D)
    reduce   → round(0.8 * D)
    maintain → round(D)

    reorder point = round(0.3 * D);  safety stock = round(0.2 * D)

    Every rounding here is half-up (4.5 → 5).

Urgency tier (first match wins)
-------------------------------
    CRITICAL : S <= T      and D > S
    HIGH     : S <= 2 * T  and D > 1.2 * S
    MEDIUM   : D > 1.5 * S
    LOW      : otherwise

Confidence score (0–100)
------------------------
    50 (base)
    + min(30, 2 * history_points)
    + 20 if 0.8 <= combined multiplier <= 1.5 and the history is long
      enough for the trend estimator
    capped at 100.

Trend classification
--------------------
    INCREASING : combined multiplier > 1.3
    DECREASING : combined multiplier < 0.8
    CYCLICAL   : |recent-window mean / full-series mean - 1| > 0.3
    STABLE     : otherwise
"""

from __future__ import annotations

import math
from datetime import date
from typing import Optional, Sequence

from rx_forecaster.config import RiskConfig
from rx_forecaster.models.forecast import ConfidenceInterval, StockRecommendation
from rx_forecaster.models.seasonal import MarketTrend
from rx_forecaster.taxonomy.forecast_taxonomy import StockAction, TrendClass, UrgencyTier
from rx_forecaster.utils.numeric import round_half_up
from rx_forecaster.utils.time_utils import days_until

RISK_HIGH_DEMAND = "High demand predicted - stock may be insufficient"
RISK_BELOW_THRESHOLD = "Current stock below minimum threshold"
RISK_MARKET_GROWTH = "Market showing high growth - demand may exceed forecast"
RISK_EXPIRING = "Stock expiring soon - may need to reduce price or return"

_REASONING: dict[StockAction, str] = {
    StockAction.URGENT_RESTOCK: "Stock below minimum threshold - urgent restocking required",
    StockAction.INCREASE_STOCK: "High demand predicted - increase stock to meet demand",
    StockAction.REDUCE_STOCK: "Low demand predicted - consider reducing stock levels",
    StockAction.MAINTAIN_STOCK: "Demand stable - maintain current stock levels",
}

_DEFAULT_RISK = RiskConfig()


def determine_action(
    demand: float,
    stock: int,
    threshold: int,
    config: RiskConfig = _DEFAULT_RISK,
) -> StockAction:
    """Pick the stocking action for ``(S, T, D)``.

    Returns:
        One of the four ``StockAction`` values.
    """
    if stock <= threshold:
        return StockAction.URGENT_RESTOCK
    if demand > stock * config.increase_ratio:
        return StockAction.INCREASE_STOCK
    if demand < stock * config.reduce_ratio:
        return StockAction.REDUCE_STOCK
    return StockAction.MAINTAIN_STOCK


def suggested_quantity(action: StockAction, demand: float, threshold: int) -> int:
    """Units to hold / order for ``action``."""
    if action is StockAction.URGENT_RESTOCK:
        return round_half_up(max(demand * 1.5, threshold * 3))
    if action is StockAction.INCREASE_STOCK:
        return round_half_up(demand * 1.2)
    if action is StockAction.REDUCE_STOCK:
        return round_half_up(demand * 0.8)
    return round_half_up(demand)


def build_recommendation(
    demand: int,
    stock: int,
    threshold: int,
    config: RiskConfig = _DEFAULT_RISK,
) -> StockRecommendation:
    """Action, quantities and reasoning for one item."""
    action = determine_action(demand, stock, threshold, config)
    return StockRecommendation(
        action=action,
        suggested_quantity=suggested_quantity(action, demand, threshold),
        reorder_point=round_half_up(demand * 0.3),
        safety_stock=round_half_up(demand * 0.2),
        reasoning=build_reasoning(action, demand, stock),
    )


def build_reasoning(action: StockAction, demand: int, stock: int) -> str:
    """Human-readable reason for ``action`` with the numbers behind it."""
    return f"{_REASONING[action]} (predicted {demand} units vs {stock} on hand)"


def determine_urgency(demand: float, stock: int, threshold: int) -> UrgencyTier:
    """Urgency tier for ``(S, T, D)``.

    Examples:
        ``S=5,   T=10, D=20``  → CRITICAL
        ``S=15,  T=10, D=20``  → HIGH
        ``S=100, T=10, D=160`` → MEDIUM
        ``S=100, T=10, D=90``  → LOW
    """
    if stock <= threshold and demand > stock:
        return UrgencyTier.CRITICAL
    if stock <= threshold * 2 and demand > stock * 1.2:
        return UrgencyTier.HIGH
    if demand > stock * 1.5:
        return UrgencyTier.MEDIUM
    return UrgencyTier.LOW


def identify_risk_factors(
    demand: float,
    stock: int,
    threshold: int,
    market_trend: Optional[MarketTrend] = None,
    expiry_date: Optional[date] = None,
    as_of: Optional[date] = None,
    config: RiskConfig = _DEFAULT_RISK,
) -> list[str]:
    """Every applicable risk string, in a fixed order.

    Args:
        demand: Adjusted total predicted demand.
        stock: Current on-hand quantity.
        threshold: Reorder threshold.
        market_trend: Market trend for the item's class, if any.
        expiry_date: Expiry of on-hand stock, if known.
        as_of: Reference date for the expiry check.
        config: Risk thresholds.

    Returns:
        List of risk strings (possibly empty).
    """
    risks: list[str] = []

    if demand > stock * config.high_demand_ratio:
        risks.append(RISK_HIGH_DEMAND)

    if stock <= threshold:
        risks.append(RISK_BELOW_THRESHOLD)

    if market_trend is not None and market_trend.growth_rate > config.high_growth_cutoff_pct:
        risks.append(RISK_MARKET_GROWTH)

    if expiry_date is not None and as_of is not None:
        if days_until(as_of, expiry_date) < config.expiry_window_days:
            risks.append(RISK_EXPIRING)

    return risks


def compute_confidence_score(
    history_points: int,
    combined_multiplier: float,
    config: RiskConfig = _DEFAULT_RISK,
    sufficient_history: bool = True,
) -> float:
    """Heuristic 0–100 trust score.

    Args:
        history_points: Length of the demand series.
        combined_multiplier: Seasonal × weather × market multiplier.
        config: Scoring constants.
        sufficient_history: False when the series is too short for the trend
            estimator; such results skip the moderation bonus.

    Returns:
        Score in [0, 100].
    """
    score = config.confidence_base
    score += min(config.confidence_data_cap, history_points * config.confidence_per_obs)
    if sufficient_history and (
        config.moderate_band_low <= combined_multiplier <= config.moderate_band_high
    ):
        score += config.confidence_moderation_bonus
    return float(min(100.0, max(0.0, score)))


def recent_ratio(series: Sequence[int], recent_window: int = 4) -> float:
    """Mean of the last ``recent_window`` points divided by the full-series mean.

    1.0 when the series is empty or its mean is zero.
    """
    values = list(series)
    if not values:
        return 1.0
    overall = sum(values) / len(values)
    if overall == 0:
        return 1.0
    recent = values[-recent_window:]
    return (sum(recent) / len(recent)) / overall


def classify_trend(
    combined_multiplier: float,
    short_long_ratio: float,
    config: RiskConfig = _DEFAULT_RISK,
) -> TrendClass:
    """Demand shape from the multiplier and the recent-vs-overall ratio."""
    if combined_multiplier > config.trend_increasing_above:
        return TrendClass.INCREASING
    if combined_multiplier < config.trend_decreasing_below:
        return TrendClass.DECREASING
    if abs(short_long_ratio - 1.0) > config.cyclical_margin:
        return TrendClass.CYCLICAL
    return TrendClass.STABLE


def compute_confidence_interval(series: Sequence[int]) -> ConfidenceInterval:
    """Per-period demand band: mean ± 2 population standard deviations.

    Fewer than 3 observations give the empty band (0, 0).
    """
    values = list(series)
    if len(values) < 3:
        return ConfidenceInterval(lower=0, upper=0)
    mean = sum(values) / len(values)
    variance = sum((v - mean) ** 2 for v in values) / len(values)
    margin = 2.0 * math.sqrt(variance)
    return ConfidenceInterval(
        lower=max(0, round_half_up(mean - margin)),
        upper=max(0, round_half_up(mean + margin)),
    )
