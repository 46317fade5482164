"""
SQLite schema DDL for the local store.

Every statement uses ``IF NOT EXISTS`` so ``apply_schema()`` is idempotent.

Tables (in FK order):
  1. items  : reference data per item (name, therapeutic class)
  2. stock  : one live snapshot per (owner_id, item_id)  (→ items)
  3. sales  : append-only ledger of sold line items       (→ items)
"""

from __future__ import annotations

import logging
import sqlite3

logger = logging.getLogger(__name__)

_DDL_ITEMS = """
CREATE TABLE IF NOT EXISTS items (
    item_id            TEXT    PRIMARY KEY,
    name               TEXT    NOT NULL,
    therapeutic_class  TEXT    NOT NULL DEFAULT '',
    created_at         TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
);
"""

_DDL_STOCK = """
CREATE TABLE IF NOT EXISTS stock (
    owner_id           TEXT    NOT NULL,
    item_id            TEXT    NOT NULL REFERENCES items(item_id),
    quantity           INTEGER NOT NULL CHECK (quantity >= 0),
    reorder_threshold  INTEGER NOT NULL DEFAULT 0 CHECK (reorder_threshold >= 0),
    expiry_date        TEXT,
    updated_at         TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now')),
    PRIMARY KEY (owner_id, item_id)
);
"""

_DDL_SALES = """
CREATE TABLE IF NOT EXISTS sales (
    sale_id    INTEGER PRIMARY KEY AUTOINCREMENT,
    owner_id   TEXT    NOT NULL,
    item_id    TEXT    NOT NULL REFERENCES items(item_id),
    quantity   INTEGER NOT NULL CHECK (quantity >= 0),
    sold_at    TEXT    NOT NULL
);
"""

_DDL_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_sales_owner_time ON sales (owner_id, sold_at);",
    "CREATE INDEX IF NOT EXISTS idx_sales_item ON sales (item_id);",
]

ALL_DDL: list[str] = [_DDL_ITEMS, _DDL_STOCK, _DDL_SALES, *_DDL_INDEXES]


def apply_schema(conn: sqlite3.Connection) -> None:
    """Create every table and index that does not exist yet."""
    for ddl in ALL_DDL:
        conn.execute(ddl)
    logger.debug("Schema applied (%d statements).", len(ALL_DDL))


def table_names(conn: sqlite3.Connection) -> set[str]:
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type = 'table' AND name NOT LIKE 'sqlite_%';"
    ).fetchall()
    return {row["name"] for row in rows}
