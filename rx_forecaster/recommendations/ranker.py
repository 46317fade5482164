"""
Result ranker: orders per-item forecast results and partitions them into
priority buckets.

Ordering contract
-----------------
1. Urgency tier: critical, high, medium, low (``URGENCY_RANK``).
2. Confidence score, descending.
3. ``item_id`` ascending, so reruns over the same inputs give the same order
   regardless of the order the per-item work completed in.

Buckets
-------
  high   : critical + high tiers
  medium : medium tier
  low    : low tier

Bucket contents keep the sorted order.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Iterable

from rx_forecaster.models.forecast import ForecastResult, PriorityBuckets
from rx_forecaster.taxonomy.forecast_taxonomy import (
    TIER_TO_BUCKET,
    URGENCY_RANK,
    PriorityBucket,
)


def sort_key(result: ForecastResult) -> tuple[int, float, str]:
    return (URGENCY_RANK[result.urgency], -result.confidence_score, result.item_id)


def sort_results(results: Iterable[ForecastResult]) -> list[ForecastResult]:
    """Return ``results`` in aggregator order (see module docstring)."""
    return sorted(results, key=sort_key)


def partition_by_priority(results: Iterable[ForecastResult]) -> PriorityBuckets:
    """Split results into high / medium / low buckets by urgency tier.

    Args:
        results: Forecast results in any order.

    Returns:
        ``PriorityBuckets`` whose lists are each in aggregator order.
    """
    by_bucket: dict[PriorityBucket, list[ForecastResult]] = defaultdict(list)
    for result in sort_results(results):
        by_bucket[TIER_TO_BUCKET[result.urgency]].append(result)

    return PriorityBuckets(
        high=by_bucket[PriorityBucket.HIGH],
        medium=by_bucket[PriorityBucket.MEDIUM],
        low=by_bucket[PriorityBucket.LOW],
    )
