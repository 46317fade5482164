"""
In-memory stock + ledger store.

Used by tests and fixtures. Implements both
``StockSource`` and ``LedgerSource``.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable

from rx_forecaster.collaborators.base import in_window
from rx_forecaster.models.item import StockSnapshot
from rx_forecaster.models.sales import SalesRecord


class InMemoryStore:
    """Holds snapshots and sales rows in plain lists.

    Args:
        snapshots: Initial stock snapshots (any owners).
        sales: Initial ledger rows (any owners).
    """

    def __init__(
        self,
        snapshots: Iterable[StockSnapshot] = (),
        sales: Iterable[SalesRecord] = (),
    ) -> None:
        self._snapshots: list[StockSnapshot] = list(snapshots)
        self._sales: list[SalesRecord] = list(sales)

    def add_snapshot(self, snapshot: StockSnapshot) -> None:
        self._snapshots.append(snapshot)

    def add_sales(self, records: Iterable[SalesRecord]) -> None:
        self._sales.extend(records)

    def fetch_stock_snapshots(self, owner_id: str) -> list[StockSnapshot]:
        return [s for s in self._snapshots if s.owner_id == owner_id]

    def fetch_sales_history(
        self,
        owner_id: str,
        window_days: int,
        as_of: date,
    ) -> list[SalesRecord]:
        return [
            r for r in self._sales
            if r.owner_id == owner_id and in_window(r, window_days, as_of)
        ]
