"""
History extractor: ledger rows → per-item weekly demand series.

The ledger collaborator returns raw ``SalesRecord`` rows for a window. This
module buckets them per item into fixed-width day buckets counted back from
the as-of date and exposes the result as a ``DemandSeries``.

Bucketing rules
---------------
- Bucket 0 covers ``as_of`` and the ``bucket_days - 1`` days before it.
- Records dated after ``as_of`` or before the window start are ignored.
- The window is trimmed to a whole number of buckets, so every bucket in a
  series covers a full ``bucket_days`` span. With the defaults (365 days,
  7-day buckets) that is 52 buckets; the 365th day back is dropped.
- Buckets are zero-filled from the oldest bucket containing a sale through
  bucket 0: a week with no sales is a real zero-demand observation.
- An item with no sales in the window yields an empty series, never an error.

``DemandSeries`` is lazy (the bucketing runs on first iteration) and
restartable: every ``iter()`` call yields the same values from the start.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date
from typing import Iterable, Iterator, Sequence

from rx_forecaster.models.sales import SalesRecord
from rx_forecaster.utils.time_utils import bucket_index, to_date

logger = logging.getLogger(__name__)


class DemandSeries:
    """Lazy, finite, restartable sequence of bucketed quantities for one item.

    Attributes:
        item_id: Item the series belongs to.
        as_of: Reference date (end of the newest bucket).
        window_days: Length of the scanned window in days.
        bucket_days: Width of one bucket in days.
    """

    def __init__(
        self,
        item_id: str,
        records: Iterable[SalesRecord],
        as_of: date,
        window_days: int,
        bucket_days: int = 7,
    ) -> None:
        if window_days < 1 or bucket_days < 1:
            raise ValueError(
                f"window_days and bucket_days must be >= 1, got {window_days}/{bucket_days}."
            )
        self.item_id = item_id
        self.as_of = as_of
        self.window_days = window_days
        self.bucket_days = bucket_days
        self._records = records
        self._values: tuple[int, ...] | None = None

    @classmethod
    def from_values(cls, item_id: str, values: Sequence[int], as_of: date) -> "DemandSeries":
        """Build a series directly from quantities (oldest → newest)."""
        series = cls(item_id, (), as_of, window_days=max(1, len(values)) * 7)
        series._values = tuple(int(v) for v in values)
        return series

    def _materialise(self) -> tuple[int, ...]:
        if self._values is None:
            self._values = _bucket_quantities(
                self._records, self.item_id, self.as_of, self.window_days, self.bucket_days
            )
            self._records = ()
        return self._values

    def values(self) -> list[int]:
        """Return the quantities as a new list (oldest → newest)."""
        return list(self._materialise())

    def __iter__(self) -> Iterator[int]:
        return iter(self._materialise())

    def __len__(self) -> int:
        return len(self._materialise())

    def __bool__(self) -> bool:
        return len(self) > 0

    def __repr__(self) -> str:
        return f"DemandSeries(item_id={self.item_id!r}, points={len(self)})"


def group_records_by_item(records: Iterable[SalesRecord]) -> dict[str, list[SalesRecord]]:
    """Index ledger rows by item so each series only scans its own rows."""
    grouped: dict[str, list[SalesRecord]] = defaultdict(list)
    for rec in records:
        grouped[rec.item_id].append(rec)
    return dict(grouped)


def extract_demand_series(
    records: Iterable[SalesRecord],
    item_id: str,
    window_days: int,
    as_of: date,
    bucket_days: int = 7,
) -> DemandSeries:
    """Return the weekly demand series for ``item_id``.

    Args:
        records: Ledger rows (any items; only ``item_id`` rows are used).
        item_id: Item to extract.
        window_days: How many days back from ``as_of`` to scan.
        as_of: Reference date; the newest bucket ends here.
        bucket_days: Bucket width in days (default one week).

    Returns:
        A lazy ``DemandSeries``; empty when the item has no sales in the window.
    """
    return DemandSeries(item_id, records, as_of, window_days, bucket_days)


def _bucket_quantities(
    records: Iterable[SalesRecord],
    item_id: str,
    as_of: date,
    window_days: int,
    bucket_days: int,
) -> tuple[int, ...]:
    span = whole_bucket_span(window_days, bucket_days)
    totals: dict[int, int] = defaultdict(int)
    skipped = 0

    for rec in records:
        if rec.item_id != item_id:
            continue
        sold_on = to_date(rec.sold_at)
        age_days = (as_of - sold_on).days
        if age_days < 0 or age_days >= span:
            skipped += 1
            continue
        totals[bucket_index(as_of, sold_on, bucket_days)] += rec.quantity

    if skipped:
        logger.debug(
            "item=%s: %d record(s) outside the %d-day window ignored.",
            item_id, skipped, span,
        )

    if not totals:
        return ()

    oldest = max(totals)
    return tuple(totals.get(idx, 0) for idx in range(oldest, -1, -1))


def whole_bucket_span(window_days: int, bucket_days: int) -> int:
    """Largest multiple of ``bucket_days`` that fits in ``window_days``.

    A window shorter than one bucket is kept as is.
    """
    if window_days < bucket_days:
        return window_days
    return window_days - window_days % bucket_days
