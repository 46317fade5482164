"""
Repository for the append-only ``sales`` ledger.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import date, datetime, time, timedelta, timezone

from rx_forecaster.db.repositories.base import BaseRepository
from rx_forecaster.models.sales import SalesRecord
from rx_forecaster.utils.time_utils import window_start

logger = logging.getLogger(__name__)


class SalesRepository(BaseRepository):
    """Append and window-query sold line items.

    ``sold_at`` is stored as an ISO 8601 UTC string so lexical comparison in
    SQL matches chronological order.
    """

    def insert_many(self, records: list[SalesRecord]) -> int:
        """Append ``records`` to the ledger.

        Item rows referenced by the records must already exist.

        Returns:
            Number of rows written.
        """
        self.executemany(
            "INSERT INTO sales (owner_id, item_id, quantity, sold_at) VALUES (?, ?, ?, ?);",
            [
                (r.owner_id, r.item_id, r.quantity, _to_utc_iso(r.sold_at))
                for r in records
            ],
        )
        return len(records)

    def get_window(self, owner_id: str, window_days: int, as_of: date) -> list[SalesRecord]:
        """Rows for ``owner_id`` sold within ``window_days`` ending on ``as_of``."""
        start = datetime.combine(
            window_start(as_of, window_days), time.min, tzinfo=timezone.utc
        )
        end = datetime.combine(as_of + timedelta(days=1), time.min, tzinfo=timezone.utc)
        rows = self.fetchall(
            """
            SELECT owner_id, item_id, quantity, sold_at
            FROM sales
            WHERE owner_id = ? AND sold_at >= ? AND sold_at < ?
            ORDER BY sold_at, sale_id;
            """,
            (owner_id, _to_utc_iso(start), _to_utc_iso(end)),
        )
        return [_row_to_record(r) for r in rows]

    def count(self, owner_id: str | None = None) -> int:
        if owner_id is None:
            row = self.fetchone("SELECT COUNT(*) AS n FROM sales;")
        else:
            row = self.fetchone(
                "SELECT COUNT(*) AS n FROM sales WHERE owner_id = ?;", (owner_id,)
            )
        return int(row["n"]) if row else 0


def _to_utc_iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S+00:00")


def _row_to_record(row: sqlite3.Row) -> SalesRecord:
    return SalesRecord(
        owner_id=row["owner_id"],
        item_id=row["item_id"],
        quantity=row["quantity"],
        sold_at=datetime.fromisoformat(row["sold_at"]),
    )
