"""
Repositories for item reference data and live stock snapshots.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import date
from typing import Optional

from rx_forecaster.db.repositories.base import BaseRepository
from rx_forecaster.models.item import Item, StockSnapshot

logger = logging.getLogger(__name__)


class ItemRepository(BaseRepository):
    """Read/write access to the ``items`` table."""

    def upsert(self, item: Item) -> None:
        """Insert ``item`` or refresh its name and therapeutic class."""
        self.execute(
            """
            INSERT INTO items (item_id, name, therapeutic_class)
            VALUES (?, ?, ?)
            ON CONFLICT(item_id) DO UPDATE SET
                name = excluded.name,
                therapeutic_class = excluded.therapeutic_class;
            """,
            (item.item_id, item.name, item.therapeutic_class),
        )

    def get(self, item_id: str) -> Optional[Item]:
        row = self.fetchone("SELECT * FROM items WHERE item_id = ?;", (item_id,))
        return _row_to_item(row) if row else None

    def count(self) -> int:
        row = self.fetchone("SELECT COUNT(*) AS n FROM items;")
        return int(row["n"]) if row else 0


class StockRepository(BaseRepository):
    """Read/write access to the ``stock`` table.

    There is exactly one row per ``(owner_id, item_id)``; writes replace it.
    """

    def upsert_snapshot(self, snapshot: StockSnapshot) -> None:
        """Store ``snapshot``, creating its item row when needed."""
        ItemRepository(self.conn).upsert(snapshot.item)
        self.execute(
            """
            INSERT INTO stock (owner_id, item_id, quantity, reorder_threshold, expiry_date)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(owner_id, item_id) DO UPDATE SET
                quantity = excluded.quantity,
                reorder_threshold = excluded.reorder_threshold,
                expiry_date = excluded.expiry_date,
                updated_at = strftime('%Y-%m-%dT%H:%M:%SZ', 'now');
            """,
            (
                snapshot.owner_id,
                snapshot.item_id,
                snapshot.quantity,
                snapshot.reorder_threshold,
                snapshot.expiry_date.isoformat() if snapshot.expiry_date else None,
            ),
        )

    def upsert_many(self, snapshots: list[StockSnapshot]) -> int:
        for snapshot in snapshots:
            self.upsert_snapshot(snapshot)
        return len(snapshots)

    def get_for_owner(self, owner_id: str) -> list[StockSnapshot]:
        """Every snapshot for ``owner_id`` joined with its item, by item_id."""
        rows = self.fetchall(
            """
            SELECT s.owner_id, s.item_id, s.quantity, s.reorder_threshold,
                   s.expiry_date, i.name, i.therapeutic_class
            FROM stock s
            JOIN items i ON i.item_id = s.item_id
            WHERE s.owner_id = ?
            ORDER BY s.item_id;
            """,
            (owner_id,),
        )
        return [_row_to_snapshot(r) for r in rows]


# ── Row mappers ────────────────────────────────────────────────────────────────

def _row_to_item(row: sqlite3.Row) -> Item:
    return Item(
        item_id=row["item_id"],
        name=row["name"],
        therapeutic_class=row["therapeutic_class"],
    )


def _row_to_snapshot(row: sqlite3.Row) -> StockSnapshot:
    expiry = row["expiry_date"]
    return StockSnapshot(
        owner_id=row["owner_id"],
        item=Item(
            item_id=row["item_id"],
            name=row["name"],
            therapeutic_class=row["therapeutic_class"],
        ),
        quantity=row["quantity"],
        reorder_threshold=row["reorder_threshold"],
        expiry_date=date.fromisoformat(expiry) if expiry else None,
    )
