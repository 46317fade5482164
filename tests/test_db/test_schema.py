"""
Tests for rx_forecaster/db/schema.py and db/connection.py.

What we test
------------
apply_schema():
  - Creates items, stock and sales tables.
  - Idempotent: running twice is harmless.
  - CHECK constraints reject negative quantities.
  - Foreign keys reject stock rows for unknown items.

get_connection():
  - File databases get their parent directory created.
  - Commits on clean exit, rolls back on exception.
"""

from __future__ import annotations

import sqlite3

import pytest

from rx_forecaster.db.connection import get_connection
from rx_forecaster.db.schema import apply_schema, table_names


class TestApplySchema:
    def test_tables_created(self, in_memory_db):
        assert {"items", "stock", "sales"} <= table_names(in_memory_db)

    def test_idempotent(self, in_memory_db):
        apply_schema(in_memory_db)
        assert {"items", "stock", "sales"} <= table_names(in_memory_db)

    def test_negative_stock_rejected(self, in_memory_db):
        in_memory_db.execute("INSERT INTO items (item_id, name) VALUES ('a', 'A');")
        with pytest.raises(sqlite3.IntegrityError):
            in_memory_db.execute(
                "INSERT INTO stock (owner_id, item_id, quantity) VALUES ('p', 'a', -1);"
            )

    def test_unknown_item_rejected(self, in_memory_db):
        with pytest.raises(sqlite3.IntegrityError):
            in_memory_db.execute(
                "INSERT INTO stock (owner_id, item_id, quantity) VALUES ('p', 'ghost', 1);"
            )


class TestGetConnection:
    def test_creates_parent_dir_and_commits(self, tmp_path):
        db_path = tmp_path / "nested" / "rx.db"
        with get_connection(str(db_path)) as conn:
            apply_schema(conn)
            conn.execute("INSERT INTO items (item_id, name) VALUES ('a', 'A');")

        assert db_path.exists()
        with get_connection(str(db_path)) as conn:
            assert conn.execute("SELECT COUNT(*) FROM items;").fetchone()[0] == 1

    def test_rolls_back_on_error(self, tmp_path):
        db_path = str(tmp_path / "rx.db")
        with get_connection(db_path) as conn:
            apply_schema(conn)

        with pytest.raises(RuntimeError):
            with get_connection(db_path) as conn:
                conn.execute("INSERT INTO items (item_id, name) VALUES ('a', 'A');")
                raise RuntimeError("boom")

        with get_connection(db_path) as conn:
            assert conn.execute("SELECT COUNT(*) FROM items;").fetchone()[0] == 0
