"""
Parquet sales-ledger export and reader.

Large ledgers (a year of invoices for many pharmacies) are exported once to
a Parquet file and read back as a ``LedgerSource``. The file layout is one
row per sold line item:

    owner_id  : utf8
    item_id   : utf8
    quantity  : int64
    sold_at   : timestamp[us, tz=UTC]

Reads push the owner and time-window predicates down to pyarrow so only the
matching row groups are decoded.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from pathlib import Path
from typing import Sequence

import pyarrow as pa
import pyarrow.parquet as pq

from rx_forecaster.collaborators.base import DataFetchError
from rx_forecaster.models.sales import SalesRecord
from rx_forecaster.utils.time_utils import window_start

logger = logging.getLogger(__name__)

LEDGER_SCHEMA = pa.schema(
    [
        pa.field("owner_id", pa.string(), nullable=False),
        pa.field("item_id", pa.string(), nullable=False),
        pa.field("quantity", pa.int64(), nullable=False),
        pa.field("sold_at", pa.timestamp("us", tz="UTC"), nullable=False),
    ]
)


def records_to_table(records: Sequence[SalesRecord]) -> pa.Table:
    """Convert ledger rows into a ``pa.Table`` with ``LEDGER_SCHEMA``."""
    return pa.table(
        {
            "owner_id": pa.array([r.owner_id for r in records], type=pa.string()),
            "item_id": pa.array([r.item_id for r in records], type=pa.string()),
            "quantity": pa.array([r.quantity for r in records], type=pa.int64()),
            "sold_at": pa.array(
                [r.sold_at.astimezone(timezone.utc) for r in records],
                type=pa.timestamp("us", tz="UTC"),
            ),
        },
        schema=LEDGER_SCHEMA,
    )


def write_sales_parquet(records: Sequence[SalesRecord], path: Path) -> Path:
    """Write ``records`` to ``path`` (parent directories created).

    Returns:
        The written path.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    pq.write_table(records_to_table(records), str(path), compression="snappy")
    logger.info("Sales ledger Parquet written: %s (%d rows)", path, len(records))
    return path


class ParquetLedger:
    """``LedgerSource`` over a Parquet ledger export.

    Args:
        path: Parquet file written by ``write_sales_parquet``.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def fetch_sales_history(
        self,
        owner_id: str,
        window_days: int,
        as_of: date,
    ) -> list[SalesRecord]:
        start = datetime.combine(
            window_start(as_of, window_days), time.min, tzinfo=timezone.utc
        )
        end = datetime.combine(as_of + timedelta(days=1), time.min, tzinfo=timezone.utc)

        if not self.path.exists():
            raise DataFetchError(f"Ledger file not found: {self.path}", source="parquet")

        try:
            table = pq.read_table(
                str(self.path),
                filters=[
                    ("owner_id", "=", owner_id),
                    ("sold_at", ">=", start),
                    ("sold_at", "<", end),
                ],
            )
        except (OSError, pa.ArrowException) as exc:
            raise DataFetchError(
                f"Could not read ledger {self.path}: {exc}", source="parquet"
            ) from exc

        records = [
            SalesRecord(
                owner_id=row["owner_id"],
                item_id=row["item_id"],
                quantity=row["quantity"],
                sold_at=row["sold_at"],
            )
            for row in table.to_pylist()
        ]
        logger.debug("parquet: %d sales row(s) for owner=%s", len(records), owner_id)
        return records
