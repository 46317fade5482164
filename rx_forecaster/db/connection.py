"""
SQLite connection management for the local stock / ledger store.

``get_connection()`` yields a connection that:
  - enforces foreign keys,
  - uses WAL journaling when requested,
  - waits ``busy_timeout_ms`` on lock contention,
  - returns ``sqlite3.Row`` rows,
  - commits on clean exit and rolls back on exception.

Usage::

    from rx_forecaster.db.connection import get_connection

    with get_connection("data/db/rx_forecaster.db") as conn:
        StockRepository(conn).upsert_snapshot(snapshot)
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

logger = logging.getLogger(__name__)


@contextmanager
def get_connection(
    db_path: str,
    wal_mode: bool = True,
    busy_timeout_ms: int = 5000,
) -> Generator[sqlite3.Connection, None, None]:
    """Yield a configured SQLite connection.

    Args:
        db_path: Database file, or ``":memory:"`` in tests. Parent
            directories are created for file paths.
        wal_mode: Enable WAL journal mode.
        busy_timeout_ms: Lock wait before ``OperationalError``.

    Raises:
        sqlite3.OperationalError: If the database cannot be opened or is locked.
    """
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path, timeout=busy_timeout_ms / 1000)
    conn.row_factory = sqlite3.Row

    try:
        conn.execute("PRAGMA foreign_keys = ON;")
        conn.execute(f"PRAGMA busy_timeout = {busy_timeout_ms};")
        if wal_mode and db_path != ":memory:":
            conn.execute("PRAGMA journal_mode = WAL;")

        yield conn
        conn.commit()

    except Exception:
        conn.rollback()
        raise

    finally:
        conn.close()
