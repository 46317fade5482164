"""
Stock + ledger collaborator backed by the local SQLite database.

Each fetch opens its own short-lived connection, so a ``SqliteStore`` may be
shared across threads. ``sqlite3.Error`` is wrapped in ``DataFetchError``.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import date

from rx_forecaster.collaborators.base import DataFetchError
from rx_forecaster.config import DatabaseConfig
from rx_forecaster.db.connection import get_connection
from rx_forecaster.db.repositories.sales_repo import SalesRepository
from rx_forecaster.db.repositories.stock_repo import StockRepository
from rx_forecaster.models.item import StockSnapshot
from rx_forecaster.models.sales import SalesRecord

logger = logging.getLogger(__name__)


class SqliteStore:
    """Reads snapshots and ledger rows from ``config.db_path``."""

    def __init__(self, config: DatabaseConfig) -> None:
        self.config = config

    def _connect(self):
        return get_connection(
            self.config.db_path,
            wal_mode=self.config.wal_mode,
            busy_timeout_ms=self.config.busy_timeout_ms,
        )

    def fetch_stock_snapshots(self, owner_id: str) -> list[StockSnapshot]:
        try:
            with self._connect() as conn:
                snapshots = StockRepository(conn).get_for_owner(owner_id)
        except sqlite3.Error as exc:
            raise DataFetchError(
                f"Could not read stock for owner '{owner_id}': {exc}", source="sqlite"
            ) from exc
        logger.debug("sqlite: %d snapshot(s) for owner=%s", len(snapshots), owner_id)
        return snapshots

    def fetch_sales_history(
        self,
        owner_id: str,
        window_days: int,
        as_of: date,
    ) -> list[SalesRecord]:
        try:
            with self._connect() as conn:
                records = SalesRepository(conn).get_window(owner_id, window_days, as_of)
        except sqlite3.Error as exc:
            raise DataFetchError(
                f"Could not read sales for owner '{owner_id}': {exc}", source="sqlite"
            ) from exc
        logger.debug("sqlite: %d sales row(s) for owner=%s", len(records), owner_id)
        return records
