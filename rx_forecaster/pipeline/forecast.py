"""
Forecast pipeline: stock + ledger → sorted per-item forecast results.

Flow for one run
----------------
1. Validate the horizon (30 / 60 / 90 days → 4 / 8 / 12 weekly periods).
2. Fetch every ``StockSnapshot`` for the owner from the ``StockSource``.
3. Fetch the ledger window from the ``LedgerSource``, bounded by
   ``history.fetch_timeout_s``.
4. Per item (order-independent, optionally on a thread pool):
     demand series → ensemble forecast → environmental adjustment
     → recommendation, urgency, risk factors, confidence.
5. Sort with the aggregator ordering.

Any collaborator failure in steps 2–3 aborts the whole run with
``DataFetchError``; no partial forecast is produced without stock context.
Short or missing history for an item never raises: that item falls back to
the flat default forecast and gets a low confidence score.

The run is a pure function of (snapshots, ledger rows, as_of, config,
profile, market provider). Passing the same ``as_of`` twice over unchanged
data yields identical results.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from datetime import date
from typing import Callable, Optional, Sequence, TypeVar

from rx_forecaster.collaborators.base import DataFetchError, LedgerSource, StockSource
from rx_forecaster.config import AppConfig
from rx_forecaster.ensemble.combine import run_ensemble
from rx_forecaster.environment.adjuster import (
    adjust_forecast,
    compute_adjustment,
    peak_seasons,
    season_for_date,
)
from rx_forecaster.environment.market import MarketTrendProvider, resolve_market_provider
from rx_forecaster.environment.profiles import resolve_profile
from rx_forecaster.history.extractor import extract_demand_series, group_records_by_item
from rx_forecaster.models.forecast import (
    ForecastReport,
    ForecastResult,
    QuickSeasonalInsights,
    QuickSummary,
)
from rx_forecaster.models.item import StockSnapshot
from rx_forecaster.models.sales import SalesRecord
from rx_forecaster.models.seasonal import SeasonalProfile
from rx_forecaster.recommendations.ranker import partition_by_priority, sort_results
from rx_forecaster.recommendations.reporter import (
    build_market_insights,
    build_quick_seasonal_insights,
    build_quick_summary,
    overall_confidence,
)
from rx_forecaster.recommendations.scorer import (
    build_recommendation,
    classify_trend,
    compute_confidence_interval,
    compute_confidence_score,
    determine_urgency,
    identify_risk_factors,
    recent_ratio,
)
from rx_forecaster.utils.time_utils import periods_for_horizon, utc_today

logger = logging.getLogger(__name__)

T = TypeVar("T")

QUICK_SUMMARY_HORIZON_DAYS = 30


def forecast_item(
    snapshot: StockSnapshot,
    series: Sequence[int],
    horizon_days: int,
    as_of: date,
    config: AppConfig,
    profile: SeasonalProfile,
    market_provider: Optional[MarketTrendProvider] = None,
) -> ForecastResult:
    """Forecast one item from its stock snapshot and demand series.

    Args:
        snapshot: Current stock state of the item.
        series: Bucketed historical demand, oldest first (may be empty).
        horizon_days: 30, 60 or 90.
        as_of: Reference date for season and expiry checks.
        config: Application configuration.
        profile: Seasonal rule table.
        market_provider: Source of market trends (None → no market effect).

    Returns:
        A frozen ``ForecastResult``.
    """
    periods = periods_for_horizon(horizon_days)
    history = list(series)
    cls = snapshot.item.therapeutic_class
    env = config.environment
    risk = config.risk

    ensemble = run_ensemble(history, periods, config.ensemble)
    adjustment = compute_adjustment(
        profile,
        cls,
        as_of,
        market_provider=market_provider,
        weather_bounds=(env.weather_min, env.weather_max),
    )
    multiplier = adjustment.combined
    predictions = adjust_forecast(ensemble.values, multiplier)
    demand = sum(predictions.values())

    stock = snapshot.quantity
    threshold = snapshot.reorder_threshold

    return ForecastResult(
        owner_id=snapshot.owner_id,
        item_id=snapshot.item_id,
        item_name=snapshot.item.name,
        therapeutic_class=cls,
        horizon_days=horizon_days,
        current_stock=stock,
        reorder_threshold=threshold,
        predictions=predictions,
        total_predicted_demand=demand,
        confidence_interval=compute_confidence_interval(history),
        trend=classify_trend(multiplier, recent_ratio(history, risk.recent_window), risk),
        risk_factors=identify_risk_factors(
            demand,
            stock,
            threshold,
            market_trend=adjustment.market_trend,
            expiry_date=snapshot.expiry_date,
            as_of=as_of,
            config=risk,
        ),
        recommendation=build_recommendation(demand, stock, threshold, risk),
        urgency=determine_urgency(demand, stock, threshold),
        confidence_score=compute_confidence_score(
            len(history),
            multiplier,
            risk,
            sufficient_history=len(history) >= config.ensemble.trend_min_obs,
        ),
        seasonal_factor=multiplier,
        season=adjustment.season,
        peak_seasons=peak_seasons(profile, cls, env.peak_season_cutoff),
        history_points=len(history),
        fallback_estimators=ensemble.fallback_estimators,
    )


def generate_forecast(
    owner_id: str,
    horizon_days: int,
    stock_source: StockSource,
    ledger_source: LedgerSource,
    config: Optional[AppConfig] = None,
    as_of: Optional[date] = None,
    market_provider: Optional[MarketTrendProvider] = None,
    profile: Optional[SeasonalProfile] = None,
) -> list[ForecastResult]:
    """Forecast every stocked item for ``owner_id``.

    Args:
        owner_id: Owning entity (pharmacy) to forecast for.
        horizon_days: 30, 60 or 90.
        stock_source: Supplies stock snapshots.
        ledger_source: Supplies sales history.
        config: Application configuration (defaults to ``AppConfig()``).
        as_of: Reference date (defaults to today, UTC).
        market_provider: Market trends (defaults to ``data.market_trends_file``
            or the reference fixture).
        profile: Seasonal profile (defaults to ``data.seasonal_profile_file``
            or the built-in profile).

    Returns:
        Results in aggregator order. Empty when the owner stocks nothing.

    Raises:
        ValueError: If ``horizon_days`` is not supported.
        DataFetchError: If stock or sales history cannot be fetched.
    """
    cfg = config or AppConfig()
    periods_for_horizon(horizon_days)
    as_of = as_of or utc_today()
    profile = profile or resolve_profile(cfg.data.seasonal_profile_file)
    if market_provider is None:
        market_provider = resolve_market_provider(cfg.data.market_trends_file)

    snapshots = _call_collaborator(
        "stock", lambda: stock_source.fetch_stock_snapshots(owner_id)
    )
    if not snapshots:
        logger.info("owner=%s has no stock; nothing to forecast.", owner_id)
        return []

    records = _fetch_history(ledger_source, owner_id, as_of, cfg)
    by_item = group_records_by_item(records)

    def _one(snapshot: StockSnapshot) -> ForecastResult:
        series = extract_demand_series(
            by_item.get(snapshot.item_id, []),
            snapshot.item_id,
            cfg.history.window_days,
            as_of,
            cfg.history.bucket_days,
        )
        return forecast_item(
            snapshot, series, horizon_days, as_of, cfg, profile, market_provider
        )

    workers = cfg.aggregation.max_workers
    if workers > 1 and len(snapshots) > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(_one, snapshots))
    else:
        results = [_one(s) for s in snapshots]

    logger.info(
        "owner=%s horizon=%dd as_of=%s: %d item(s) forecast, %d degraded",
        owner_id, horizon_days, as_of, len(results),
        sum(1 for r in results if r.fallback_estimators),
        extra={"owner_id": owner_id, "items": len(results)},
    )
    return sort_results(results)


def build_forecast_report(
    owner_id: str,
    horizon_days: int,
    stock_source: StockSource,
    ledger_source: LedgerSource,
    config: Optional[AppConfig] = None,
    as_of: Optional[date] = None,
    market_provider: Optional[MarketTrendProvider] = None,
    profile: Optional[SeasonalProfile] = None,
) -> ForecastReport:
    """Run ``generate_forecast`` and aggregate it into a ``ForecastReport``."""
    cfg = config or AppConfig()
    as_of = as_of or utc_today()
    profile = profile or resolve_profile(cfg.data.seasonal_profile_file)

    results = generate_forecast(
        owner_id, horizon_days, stock_source, ledger_source,
        config=cfg, as_of=as_of, market_provider=market_provider, profile=profile,
    )
    season = season_for_date(profile, as_of)
    weather = profile.weather.get(season)

    return ForecastReport(
        owner_id=owner_id,
        horizon_days=horizon_days,
        as_of=as_of,
        season=season,
        results=results,
        buckets=partition_by_priority(results),
        market_insights=build_market_insights(results, season, weather),
        overall_confidence=overall_confidence(results),
        weather=weather,
    )


def quick_summary(
    owner_id: str,
    stock_source: StockSource,
    ledger_source: LedgerSource,
    config: Optional[AppConfig] = None,
    as_of: Optional[date] = None,
    market_provider: Optional[MarketTrendProvider] = None,
    profile: Optional[SeasonalProfile] = None,
) -> QuickSummary:
    """Dashboard summary over a full 30-day forecast.

    Raises:
        DataFetchError: Propagated from ``generate_forecast``.
    """
    cfg = config or AppConfig()
    results = generate_forecast(
        owner_id, QUICK_SUMMARY_HORIZON_DAYS, stock_source, ledger_source,
        config=cfg, as_of=as_of, market_provider=market_provider, profile=profile,
    )
    return build_quick_summary(
        results,
        high_confidence_above=cfg.aggregation.high_confidence_above,
        top_n=cfg.aggregation.top_n,
    )


def quick_seasonal_insights(
    owner_id: str,
    stock_source: StockSource,
    ledger_source: LedgerSource,
    config: Optional[AppConfig] = None,
    as_of: Optional[date] = None,
    market_provider: Optional[MarketTrendProvider] = None,
    profile: Optional[SeasonalProfile] = None,
) -> QuickSeasonalInsights:
    """Seasonal alert numbers over a full 30-day forecast.

    Raises:
        DataFetchError: Propagated from ``generate_forecast``.
    """
    results = generate_forecast(
        owner_id, QUICK_SUMMARY_HORIZON_DAYS, stock_source, ledger_source,
        config=config, as_of=as_of, market_provider=market_provider, profile=profile,
    )
    return build_quick_seasonal_insights(results)


# ── Collaborator helpers ───────────────────────────────────────────────────────

def _call_collaborator(source: str, fn: Callable[[], T]) -> T:
    try:
        return fn()
    except DataFetchError:
        raise
    except Exception as exc:
        raise DataFetchError(f"{source} fetch failed: {exc}", source=source) from exc


def _fetch_history(
    ledger_source: LedgerSource,
    owner_id: str,
    as_of: date,
    config: AppConfig,
) -> list[SalesRecord]:
    """Fetch the ledger window, giving up after ``history.fetch_timeout_s``."""
    hist = config.history
    pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="ledger-fetch")
    future = pool.submit(
        _call_collaborator,
        "ledger",
        lambda: ledger_source.fetch_sales_history(owner_id, hist.window_days, as_of),
    )
    try:
        return future.result(timeout=hist.fetch_timeout_s)
    except FutureTimeoutError as exc:
        raise DataFetchError(
            f"Sales history fetch for owner '{owner_id}' timed out "
            f"after {hist.fetch_timeout_s:.1f}s",
            source="ledger",
        ) from exc
    finally:
        pool.shutdown(wait=False, cancel_futures=True)
