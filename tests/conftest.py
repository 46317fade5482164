"""
Shared pytest fixtures for the rx-forecaster test suite.

Provides:
  - ``in_memory_db``: a fresh in-memory SQLite connection with the schema
    applied, created anew for each test that requests it.
  - ``as_of``: a fixed winter reference date so seasonal lookups and
    bucketing are deterministic.
  - Item / snapshot / sales factories and a populated ``InMemoryStore``.
"""

from __future__ import annotations

import sqlite3
from datetime import date, datetime, time, timedelta, timezone
from typing import Generator

import pytest

from rx_forecaster.collaborators.memory import InMemoryStore
from rx_forecaster.config import AppConfig
from rx_forecaster.db.schema import apply_schema
from rx_forecaster.environment.market import StaticMarketTrendProvider
from rx_forecaster.environment.profiles import BANGLADESH_PROFILE
from rx_forecaster.models.item import Item, StockSnapshot
from rx_forecaster.models.sales import SalesRecord
from rx_forecaster.models.seasonal import MarketTrend

OWNER = "pharmacy-1"
AS_OF = date(2025, 1, 15)  # winter in the built-in profile


# ── Database fixture ──────────────────────────────────────────────────────────

@pytest.fixture
def in_memory_db() -> Generator[sqlite3.Connection, None, None]:
    """Yield a fresh in-memory SQLite connection with the schema applied."""
    conn = sqlite3.connect(":memory:")
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    apply_schema(conn)
    yield conn
    conn.close()


# ── Factories ─────────────────────────────────────────────────────────────────

def _make_snapshot(
    item_id: str = "amox-500",
    name: str = "Amoxicillin 500mg",
    therapeutic_class: str = "Antibiotics",
    quantity: int = 100,
    reorder_threshold: int = 10,
    expiry_date: date | None = None,
    owner_id: str = OWNER,
) -> StockSnapshot:
    return StockSnapshot(
        owner_id=owner_id,
        item=Item(item_id=item_id, name=name, therapeutic_class=therapeutic_class),
        quantity=quantity,
        reorder_threshold=reorder_threshold,
        expiry_date=expiry_date,
    )


def _weekly_sales(
    item_id: str,
    quantities: list[int],
    as_of: date = AS_OF,
    owner_id: str = OWNER,
) -> list[SalesRecord]:
    """One sale per week, oldest first; the last quantity lands on ``as_of``."""
    n = len(quantities)
    return [
        SalesRecord(
            owner_id=owner_id,
            item_id=item_id,
            quantity=q,
            sold_at=datetime.combine(
                as_of - timedelta(days=7 * (n - 1 - i)), time(10, 0), tzinfo=timezone.utc
            ),
        )
        for i, q in enumerate(quantities)
    ]


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture
def as_of() -> date:
    return AS_OF


@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig()


@pytest.fixture
def profile():
    return BANGLADESH_PROFILE


@pytest.fixture
def neutral_market() -> StaticMarketTrendProvider:
    """A provider with no trends, so the market multiplier is always 1.0."""
    return StaticMarketTrendProvider()


@pytest.fixture
def hot_market() -> StaticMarketTrendProvider:
    return StaticMarketTrendProvider(
        [MarketTrend(category="Antibiotics", trend_direction="up", growth_rate=25.0)]
    )


@pytest.fixture
def sample_store() -> InMemoryStore:
    """Three items for ``OWNER`` plus one item for another owner.

    - ``amox-500``  Antibiotics, 12 weeks of steady 20 units, well stocked.
    - ``ors-sachet`` ORS, below threshold, only 2 weeks of history.
    - ``derm-cream`` unknown class, no sales at all.
    """
    snapshots = [
        _make_snapshot(),
        _make_snapshot(
            item_id="ors-sachet", name="ORS Sachet", therapeutic_class="ORS",
            quantity=5, reorder_threshold=10,
        ),
        _make_snapshot(
            item_id="derm-cream", name="Derm Cream", therapeutic_class="Dermatology",
            quantity=200, reorder_threshold=20,
        ),
        _make_snapshot(item_id="other-item", owner_id="pharmacy-2"),
    ]
    sales = (
        _weekly_sales("amox-500", [20] * 12)
        + _weekly_sales("ors-sachet", [8, 12])
        + _weekly_sales("other-item", [500] * 12, owner_id="pharmacy-2")
    )
    return InMemoryStore(snapshots, sales)


@pytest.fixture
def owner() -> str:
    return OWNER


@pytest.fixture
def make_snapshot():
    """Factory fixture: ``make_snapshot(item_id=..., quantity=..., ...)``."""
    return _make_snapshot


@pytest.fixture
def weekly_sales():
    """Factory fixture: ``weekly_sales(item_id, [q_oldest, ..., q_newest])``."""
    return _weekly_sales
