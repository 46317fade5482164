"""
Market trend providers.

The engine never hard-codes market intelligence: it asks a
``MarketTrendProvider`` for the trend of a therapeutic class. Providers:

  StaticMarketTrendProvider  : fixed list of ``MarketTrend`` rows; the
                               default instance carries the reference
                               fixture (antibiotics / analgesics /
                               cardiovascular).
  load_market_trends(path)   : build a static provider from a JSON array.

Tests substitute their own ``StaticMarketTrendProvider`` (or any object
with a ``trend_for`` method) to get deterministic multipliers.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable, Optional, Protocol

from pydantic import ValidationError

from rx_forecaster.models.seasonal import MarketTrend

logger = logging.getLogger(__name__)


class MarketTrendProvider(Protocol):
    """Anything that can answer "what is the market doing for this class?"."""

    def trend_for(self, category: str) -> Optional[MarketTrend]:
        ...


class StaticMarketTrendProvider:
    """In-memory provider over a fixed list of trends (first match wins)."""

    def __init__(self, trends: Iterable[MarketTrend] = ()) -> None:
        self._trends: dict[str, MarketTrend] = {}
        for trend in trends:
            self._trends.setdefault(trend.category, trend)

    def trend_for(self, category: str) -> Optional[MarketTrend]:
        return self._trends.get(category)

    @property
    def trends(self) -> list[MarketTrend]:
        return list(self._trends.values())


REFERENCE_MARKET_TRENDS: tuple[MarketTrend, ...] = (
    MarketTrend(
        category="Antibiotics",
        trend_direction="up",
        growth_rate=15.0,
        market_size=1_000_000,
        key_drivers=["Seasonal infections", "Antibiotic resistance"],
        forecast_confidence=85.0,
    ),
    MarketTrend(
        category="Analgesics",
        trend_direction="stable",
        growth_rate=5.0,
        market_size=800_000,
        key_drivers=["Chronic pain management", "Post-surgical care"],
        forecast_confidence=90.0,
    ),
    MarketTrend(
        category="Cardiovascular",
        trend_direction="up",
        growth_rate=12.0,
        market_size=600_000,
        key_drivers=["Aging population", "Lifestyle diseases"],
        forecast_confidence=80.0,
    ),
)


def default_market_provider() -> StaticMarketTrendProvider:
    """Provider preloaded with ``REFERENCE_MARKET_TRENDS``."""
    return StaticMarketTrendProvider(REFERENCE_MARKET_TRENDS)


def load_market_trends(path: Path) -> StaticMarketTrendProvider:
    """Build a provider from a JSON array of ``MarketTrend`` objects.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: If the file is not a JSON array or any entry is invalid.
    """
    if not path.exists():
        raise FileNotFoundError(f"Market trends file not found: {path}")

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in market trends file {path}: {exc}") from exc

    if not isinstance(raw, list):
        raise ValueError(f"Market trends file must contain a JSON array: {path}")

    trends: list[MarketTrend] = []
    errors: list[str] = []
    for idx, entry in enumerate(raw):
        try:
            trends.append(MarketTrend.model_validate(entry))
        except ValidationError as exc:
            errors.append(f"  Entry #{idx}: {exc.errors()[0]['msg']}")

    if errors:
        raise ValueError(
            f"{len(errors)} market trend(s) failed validation in {path.name}:\n"
            + "\n".join(errors)
        )

    logger.info("Loaded %d market trend(s) from %s", len(trends), path.name)
    return StaticMarketTrendProvider(trends)


def resolve_market_provider(trends_file: str = "") -> StaticMarketTrendProvider:
    """Provider from ``trends_file``, or the reference fixture when empty."""
    if not trends_file:
        return default_market_provider()
    return load_market_trends(Path(trends_file))
