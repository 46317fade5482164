"""
Demand estimators for the forecasting ensemble.

Each estimator encodes one hypothesis about how a medicine's weekly demand
behaves:

  TrendEstimator      → "Demand drifts along a straight line."
                         Ordinary least squares over (week index, units).

  SmoothingEstimator  → "Recent weeks matter most, and demand grows slowly."
                         Single exponential smoothing (alpha = 0.3) with a
                         compounding +5% per projected week.

  CyclicalEstimator   → "Demand repeats on a 4-week cycle (monthly refills)."
                         Phase-averaged seasonal index × overall mean.
                         Forecast week i reads phase i mod 4.

Interface contract
------------------
All estimators are stateless and implement:

  forecast(series: Sequence[int], periods: int) → EstimatorOutput

When the series is shorter than ``min_observations`` the estimator emits the
flat default forecast (``default_forecast`` units for every period) and marks
the output ``used_fallback=True``. Every estimator always emits the full set
of ``week_N`` keys, so all three contribute to every period of the ensemble.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from rx_forecaster.config import EnsembleConfig
from rx_forecaster.utils.numeric import round_half_up
from rx_forecaster.utils.time_utils import period_keys


@dataclass(frozen=True)
class EstimatorOutput:
    """Per-period forecast from one estimator.

    Attributes:
        name: Estimator name.
        weight: Blend weight in the ensemble.
        values: ``week_N`` → predicted units (non-negative integers).
        used_fallback: True when the flat default forecast was emitted.
    """

    name: str
    weight: float
    values: dict[str, int]
    used_fallback: bool = False


def default_forecast(periods: int, units: int = 10) -> dict[str, int]:
    """Flat low-demand forecast used when history is too short."""
    return {key: units for key in period_keys(periods)}


class _Estimator:
    name = "base"

    def __init__(self, weight: float, min_observations: int, default_units: int = 10) -> None:
        self.weight = weight
        self.min_observations = min_observations
        self.default_units = default_units

    def forecast(self, series: Sequence[int], periods: int) -> EstimatorOutput:
        values = list(series)
        if len(values) < self.min_observations:
            return EstimatorOutput(
                name=self.name,
                weight=self.weight,
                values=default_forecast(periods, self.default_units),
                used_fallback=True,
            )
        raw = self._project(values, periods)
        return EstimatorOutput(
            name=self.name,
            weight=self.weight,
            values={key: max(0, round_half_up(v)) for key, v in zip(period_keys(periods), raw)},
        )

    def _project(self, values: list[int], periods: int) -> list[float]:
        raise NotImplementedError


class TrendEstimator(_Estimator):
    """Least-squares line through (index, quantity); future weeks read off the line.

    For a series of length ``n``, projected week ``i`` (0-based) is the fitted
    value at x = ``n + i``. Negative values are clamped to zero.
    """

    name = "trend"

    def __init__(self, weight: float = 0.3, min_observations: int = 4, default_units: int = 10) -> None:
        super().__init__(weight, min_observations, default_units)

    def _project(self, values: list[int], periods: int) -> list[float]:
        slope, intercept = fit_line(values)
        n = len(values)
        return [intercept + slope * (n + i) for i in range(periods)]


class SmoothingEstimator(_Estimator):
    """Exponentially smoothed level projected with compounding growth.

    The level starts at the first observation and is updated as
    ``level = alpha * x + (1 - alpha) * level``. Projected week ``i``
    (0-based) is ``level * (1 + growth) ** i``.
    """

    name = "smoothing"

    def __init__(
        self,
        weight: float = 0.4,
        min_observations: int = 3,
        default_units: int = 10,
        alpha: float = 0.3,
        growth: float = 0.05,
    ) -> None:
        super().__init__(weight, min_observations, default_units)
        self.alpha = alpha
        self.growth = growth

    def _project(self, values: list[int], periods: int) -> list[float]:
        level = smoothed_level(values, self.alpha)
        return [level * (1.0 + self.growth) ** i for i in range(periods)]


class CyclicalEstimator(_Estimator):
    """Overall mean scaled by a phase index on a fixed-length cycle.

    The seasonal index of phase ``p`` is the mean of every observation at
    positions ``p, p + L, p + 2L, …`` divided by the overall mean. Projected
    week ``i`` (0-based) uses phase ``i mod L``, so the first forecast week
    always reads phase 0. An all-zero history projects zero demand.
    """

    name = "cyclical"

    def __init__(
        self,
        weight: float = 0.3,
        min_observations: int = 12,
        default_units: int = 10,
        cycle_length: int = 4,
    ) -> None:
        super().__init__(weight, min_observations, default_units)
        self.cycle_length = cycle_length

    def _project(self, values: list[int], periods: int) -> list[float]:
        mean = sum(values) / len(values)
        indices = seasonal_indices(values, self.cycle_length)
        return [mean * indices[i % self.cycle_length] for i in range(periods)]


# ── Pure numeric helpers ──────────────────────────────────────────────────────

def fit_line(values: Sequence[float]) -> tuple[float, float]:
    """Return ``(slope, intercept)`` of the OLS line through ``(i, values[i])``.

    A single point (or a degenerate x-spread) yields a flat line at the mean.
    """
    n = len(values)
    if n == 0:
        return 0.0, 0.0
    sum_x = n * (n - 1) / 2
    sum_y = float(sum(values))
    sum_xy = float(sum(i * y for i, y in enumerate(values)))
    sum_xx = (n - 1) * n * (2 * n - 1) / 6
    denom = n * sum_xx - sum_x * sum_x
    if denom == 0:
        return 0.0, sum_y / n
    slope = (n * sum_xy - sum_x * sum_y) / denom
    intercept = (sum_y - slope * sum_x) / n
    return slope, intercept


def smoothed_level(values: Sequence[float], alpha: float) -> float:
    """Final level of single exponential smoothing seeded with ``values[0]``."""
    if not values:
        return 0.0
    level = float(values[0])
    for x in values[1:]:
        level = alpha * x + (1.0 - alpha) * level
    return level


def seasonal_indices(values: Sequence[float], cycle_length: int = 4) -> list[float]:
    """Phase means normalised by the overall mean.

    Phases with no observations get an index of 1.0; an all-zero series
    gets all-zero indices.
    """
    if not values:
        return [1.0] * cycle_length
    mean = sum(values) / len(values)
    sums = [0.0] * cycle_length
    counts = [0] * cycle_length
    for i, v in enumerate(values):
        sums[i % cycle_length] += v
        counts[i % cycle_length] += 1
    if mean == 0:
        return [0.0] * cycle_length
    return [
        (sums[p] / counts[p]) / mean if counts[p] else 1.0
        for p in range(cycle_length)
    ]


def all_estimators(config: EnsembleConfig | None = None) -> list[_Estimator]:
    """Return one instance of each estimator configured from ``config``.

    Estimators hold no per-series state, so the same list can be reused
    across items and threads.
    """
    cfg = config or EnsembleConfig()
    return [
        TrendEstimator(
            weight=cfg.trend_weight,
            min_observations=cfg.trend_min_obs,
            default_units=cfg.default_forecast,
        ),
        SmoothingEstimator(
            weight=cfg.smoothing_weight,
            min_observations=cfg.smoothing_min_obs,
            default_units=cfg.default_forecast,
            alpha=cfg.smoothing_alpha,
            growth=cfg.smoothing_growth,
        ),
        CyclicalEstimator(
            weight=cfg.cyclical_weight,
            min_observations=cfg.cyclical_min_obs,
            default_units=cfg.default_forecast,
            cycle_length=cfg.cycle_length,
        ),
    ]
