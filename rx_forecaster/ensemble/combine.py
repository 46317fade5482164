"""
Weighted combination of estimator outputs.

For every period key the ensemble value is

    round_half_up( Σ w_k · v_k / Σ w_k )      over estimators k that emitted the key

clamped at zero. With the default weights 0.3 / 0.4 / 0.3 and values
10 / 20 / 30 this gives ``round_half_up(3 + 8 + 9) = 20``. Ties round up: 2.5 → 3.

Fallback outputs blend at full weight unless ``fallback_weight_factor`` is
lowered, in which case their weight is multiplied by that factor. When every
estimator fell back the factor is ignored.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from rx_forecaster.ensemble.estimators import EstimatorOutput, all_estimators
from rx_forecaster.config import EnsembleConfig
from rx_forecaster.utils.numeric import round_half_up

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnsembleForecast:
    """Combined per-period forecast plus the outputs it was built from."""

    values: dict[str, int]
    outputs: tuple[EstimatorOutput, ...] = field(default=())

    @property
    def fallback_estimators(self) -> list[str]:
        return [o.name for o in self.outputs if o.used_fallback]

    @property
    def total(self) -> int:
        return sum(self.values.values())


def combine_forecasts(
    outputs: Sequence[EstimatorOutput],
    fallback_weight_factor: float = 1.0,
) -> dict[str, int]:
    """Blend estimator outputs into one per-period forecast.

    Keys are taken in first-seen order across ``outputs``.

    Args:
        outputs: Estimator outputs for the same horizon.
        fallback_weight_factor: Multiplier applied to the weight of outputs
            that used the default fallback (1.0 = no down-weighting).

    Returns:
        ``week_N`` → non-negative integer units.
    """
    keys: list[str] = []
    for out in outputs:
        for key in out.values:
            if key not in keys:
                keys.append(key)

    # Nothing to prefer over the default when every estimator fell back.
    if outputs and all(out.used_fallback for out in outputs):
        fallback_weight_factor = 1.0

    combined: dict[str, int] = {}
    for key in keys:
        weighted_sum = 0.0
        total_weight = 0.0
        for out in outputs:
            if key not in out.values:
                continue
            weight = out.weight * (fallback_weight_factor if out.used_fallback else 1.0)
            weighted_sum += out.values[key] * weight
            total_weight += weight
        combined[key] = max(0, round_half_up(weighted_sum / total_weight)) if total_weight > 0 else 0
    return combined


def run_ensemble(
    series: Sequence[int],
    periods: int,
    config: EnsembleConfig | None = None,
) -> EnsembleForecast:
    """Run every configured estimator over ``series`` and blend the results."""
    cfg = config or EnsembleConfig()
    values = list(series)
    outputs = tuple(est.forecast(values, periods) for est in all_estimators(cfg))

    fallbacks = [o.name for o in outputs if o.used_fallback]
    if fallbacks:
        logger.debug(
            "Series of %d point(s): fallback forecast used by %s", len(values), fallbacks
        )

    return EnsembleForecast(
        values=combine_forecasts(outputs, cfg.fallback_weight_factor),
        outputs=outputs,
    )
