"""
Collaborator contracts for the forecasting pipeline.

The engine never talks to a database or HTTP API directly. It asks two
narrow collaborators for data:

  StockSource.fetch_stock_snapshots(owner_id)
      -> every live StockSnapshot for one owning entity.

  LedgerSource.fetch_sales_history(owner_id, window_days, as_of)
      -> SalesRecord rows dated within ``window_days`` before ``as_of``.

Implementations in this package: ``InMemoryStore`` (tests and fixtures),
``SqliteStore`` (local database), ``ParquetLedger`` (bulk ledger exports) and
``HostedStoreClient`` (hosted REST store).

Any failure to reach or read a collaborator is surfaced as
``DataFetchError``. The pipeline treats it as fatal for the whole run.
"""

from __future__ import annotations

from datetime import date
from typing import Protocol, runtime_checkable

from rx_forecaster.models.item import StockSnapshot
from rx_forecaster.models.sales import SalesRecord
from rx_forecaster.utils.time_utils import to_date


class DataFetchError(RuntimeError):
    """A stock or ledger collaborator could not supply data.

    Attributes:
        source: Short name of the collaborator that failed.
    """

    def __init__(self, message: str, source: str = "") -> None:
        super().__init__(message)
        self.source = source


@runtime_checkable
class StockSource(Protocol):
    def fetch_stock_snapshots(self, owner_id: str) -> list[StockSnapshot]:
        ...


@runtime_checkable
class LedgerSource(Protocol):
    def fetch_sales_history(
        self,
        owner_id: str,
        window_days: int,
        as_of: date,
    ) -> list[SalesRecord]:
        ...


def in_window(record: SalesRecord, window_days: int, as_of: date) -> bool:
    """True when ``record`` falls within ``window_days`` ending on ``as_of``."""
    age = (as_of - to_date(record.sold_at)).days
    return 0 <= age < window_days
