"""
Date helpers for demand forecasting.

Key concepts:
  - Horizon: a requested day count (30 / 60 / 90) mapped to a whole number of
    weekly forecast periods (4 / 8 / 12).
  - Period keys: ``week_1`` … ``week_N`` label each forecast period.
  - Buckets: sales are grouped into fixed-width day buckets counted backwards
    from the as-of date, so bucket 0 is the most recent week.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

# Horizon in days → number of weekly forecast periods.
HORIZON_PERIODS: dict[int, int] = {
    30: 4,
    60: 8,
    90: 12,
}

VALID_HORIZONS: frozenset[int] = frozenset(HORIZON_PERIODS)


def periods_for_horizon(horizon_days: int) -> int:
    """Return the number of weekly periods for a supported horizon.

    Args:
        horizon_days: One of 30, 60 or 90.

    Returns:
        4, 8 or 12.

    Raises:
        ValueError: For any other horizon.
    """
    try:
        return HORIZON_PERIODS[horizon_days]
    except KeyError:
        raise ValueError(
            f"Unsupported horizon {horizon_days!r} days. "
            f"Must be one of {sorted(VALID_HORIZONS)}."
        ) from None


def period_keys(periods: int) -> list[str]:
    """Return ``["week_1", …, "week_<periods>"]``."""
    return [f"week_{i}" for i in range(1, periods + 1)]


def bucket_index(as_of: date, day: date, bucket_days: int = 7) -> int:
    """Return how many whole buckets ``day`` lies before ``as_of``.

    ``as_of`` itself and the ``bucket_days - 1`` days before it are bucket 0.
    Days after ``as_of`` return a negative index.
    """
    return (as_of - day).days // bucket_days


def days_until(check_date: date, target: date) -> int:
    """Signed day count from ``check_date`` to ``target`` (negative = past)."""
    return (target - check_date).days


def window_start(as_of: date, window_days: int) -> date:
    """First day (inclusive) of a ``window_days``-long window ending at ``as_of``."""
    return as_of - timedelta(days=window_days - 1)


def to_date(value: date | datetime) -> date:
    """Normalise a ``date`` or ``datetime`` to a UTC calendar date."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    return value


def utcnow() -> datetime:
    """Return the current UTC datetime with timezone info.

    Prefer this over ``datetime.utcnow()`` (which returns naive datetimes).
    """
    return datetime.now(tz=timezone.utc)


def utc_today() -> date:
    """Current UTC calendar date; the default as-of date for a forecast run."""
    return utcnow().date()
