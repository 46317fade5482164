"""
CSV import parsers for stock snapshots and sales ledger rows.

Both parsers are all-or-nothing: every row is validated first and, if any
row fails, a single ``ValueError`` lists the first 10 failures. Nothing is
returned (or persisted by the caller) for a partially valid file.

Stock CSV
---------
Required columns:
  owner_id, item_id, name, quantity
Optional columns (empty → default):
  therapeutic_class (""), reorder_threshold (0), expiry_date (YYYY-MM-DD)

Sales CSV
---------
Required columns:
  owner_id, item_id, quantity, sold_at
``sold_at`` accepts YYYY-MM-DD or ISO 8601 datetimes; a trailing ``Z`` and
naive values are read as UTC.

See ``config/samples/`` for example files.
"""

from __future__ import annotations

import csv
import logging
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Callable, Optional, TypeVar

from pydantic import ValidationError

from rx_forecaster.models.item import Item, StockSnapshot
from rx_forecaster.models.sales import SalesRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")

REQUIRED_STOCK_COLUMNS = frozenset({"owner_id", "item_id", "name", "quantity"})
REQUIRED_SALES_COLUMNS = frozenset({"owner_id", "item_id", "quantity", "sold_at"})

_MAX_ERRORS_SHOWN = 10


def parse_stock_csv(path: Path) -> list[StockSnapshot]:
    """Parse a stock CSV into validated ``StockSnapshot`` objects.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: If required columns are missing or any row fails validation.
    """
    return _parse(path, REQUIRED_STOCK_COLUMNS, _row_to_snapshot, "stock")


def parse_sales_csv(path: Path) -> list[SalesRecord]:
    """Parse a sales CSV into validated ``SalesRecord`` objects.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: If required columns are missing or any row fails validation.
    """
    return _parse(path, REQUIRED_SALES_COLUMNS, _row_to_sale, "sales")


def _parse(
    path: Path,
    required: frozenset[str],
    convert: Callable[[dict[str, str]], T],
    kind: str,
) -> list[T]:
    if not path.exists():
        raise FileNotFoundError(f"{kind.capitalize()} CSV file not found: {path}")

    with open(path, encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)

        if reader.fieldnames is None:
            raise ValueError(f"CSV file is empty or has no header row: {path}")

        actual_cols = {c.strip() for c in reader.fieldnames}
        missing = required - actual_cols
        if missing:
            raise ValueError(
                f"CSV missing required columns: {sorted(missing)}\n"
                f"Found columns: {sorted(actual_cols)}"
            )

        rows = [{(k or "").strip(): (v or "") for k, v in row.items()} for row in reader]

    if not rows:
        logger.warning("%s CSV is empty (header only): %s", kind.capitalize(), path)
        return []

    parsed: list[T] = []
    errors: list[tuple[int, str]] = []

    for i, row in enumerate(rows):
        line_no = i + 2  # header is line 1
        try:
            parsed.append(convert(row))
        except (ValueError, ValidationError) as exc:
            errors.append((line_no, str(exc)))

    if errors:
        detail = "\n".join(f"  Row {ln}: {msg}" for ln, msg in errors[:_MAX_ERRORS_SHOWN])
        extra = len(errors) - _MAX_ERRORS_SHOWN
        suffix = f"\n  ... and {extra} more" if extra > 0 else ""
        raise ValueError(
            f"{len(errors)} row(s) failed validation in {path.name}:\n{detail}{suffix}"
        )

    logger.info("Parsed %d %s row(s) from %s", len(parsed), kind, path.name)
    return parsed


# ── Row converters ─────────────────────────────────────────────────────────────

def _row_to_snapshot(row: dict[str, str]) -> StockSnapshot:
    return StockSnapshot(
        owner_id=_req(row, "owner_id"),
        item=Item(
            item_id=_req(row, "item_id"),
            name=_req(row, "name"),
            therapeutic_class=_opt(row, "therapeutic_class") or "",
        ),
        quantity=_parse_int(row, "quantity", required=True),
        reorder_threshold=_parse_int(row, "reorder_threshold") or 0,
        expiry_date=_parse_date(row, "expiry_date"),
    )


def _row_to_sale(row: dict[str, str]) -> SalesRecord:
    return SalesRecord(
        owner_id=_req(row, "owner_id"),
        item_id=_req(row, "item_id"),
        quantity=_parse_int(row, "quantity", required=True),
        sold_at=_parse_timestamp(row, "sold_at"),
    )


def _req(row: dict[str, str], key: str) -> str:
    v = row.get(key, "").strip()
    if not v:
        raise ValueError(f"Required field '{key}' is empty.")
    return v


def _opt(row: dict[str, str], key: str) -> Optional[str]:
    v = row.get(key, "").strip()
    return v if v else None


def _parse_int(row: dict[str, str], key: str, required: bool = False) -> Optional[int]:
    v = _opt(row, key)
    if v is None:
        if required:
            raise ValueError(f"Required integer field '{key}' is empty.")
        return None
    try:
        return int(v)
    except ValueError:
        raise ValueError(f"Invalid integer for '{key}': '{v}'.")


def _parse_date(row: dict[str, str], key: str) -> Optional[date]:
    v = _opt(row, key)
    if v is None:
        return None
    try:
        return date.fromisoformat(v)
    except ValueError:
        raise ValueError(f"Invalid date for '{key}': '{v}'. Expected YYYY-MM-DD format.")


def _parse_timestamp(row: dict[str, str], key: str) -> datetime:
    v = _req(row, key)
    try:
        parsed = datetime.fromisoformat(v.replace("Z", "+00:00"))
    except ValueError:
        raise ValueError(
            f"Invalid timestamp for '{key}': '{v}'. "
            "Expected YYYY-MM-DD or ISO 8601, e.g. '2025-11-03T18:00:00Z'."
        )
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
