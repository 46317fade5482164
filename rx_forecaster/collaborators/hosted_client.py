"""
Hosted data-store client: PostgREST-style REST API over the pharmacy's
``stock`` and ``invoices`` tables.

Credential setup (.env, gitignored):
  RX_FORECASTER_STORE_URL=https://<project>.example.co
  RX_FORECASTER_STORE_KEY=<service or anon key>

Endpoints
---------
  Stock snapshots, joined with the medicine reference table:
    GET {base}/rest/v1/stock
        ?select=*,medicine:global_medicine_database(*)
        &pharmacy_id=eq.{owner_id}

  Invoices in the history window (each carries an ``items`` array of
  ``{medicine_id, quantity}`` line items):
    GET {base}/rest/v1/invoices
        ?select=*
        &pharmacy_id=eq.{owner_id}
        &created_at=gte.{window start ISO}

Row mapping
-----------
  stock.quantity             → StockSnapshot.quantity
  stock.low_stock_threshold  → StockSnapshot.reorder_threshold
  stock.expiry_date          → StockSnapshot.expiry_date
  medicine.id / generic_name / therapeutic_class → Item
  invoices.created_at + items[*] → one SalesRecord per line item

Rows without a joined medicine are skipped. Invoices dated after ``as_of``
are dropped so a rerun with the same as-of date sees the same ledger.

Every transport error, non-2xx response or malformed payload is raised as
``DataFetchError``.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timezone
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from rx_forecaster.collaborators.base import DataFetchError, in_window
from rx_forecaster.config import StoreConfig
from rx_forecaster.models.item import Item, StockSnapshot
from rx_forecaster.models.sales import SalesRecord
from rx_forecaster.utils.time_utils import window_start

logger = logging.getLogger(__name__)

_STOCK_SELECT = "*,medicine:global_medicine_database(*)"


class HostedStoreClient:
    """``StockSource`` + ``LedgerSource`` over the hosted REST store.

    Usage::

        client = HostedStoreClient(config.store)
        snapshots = client.fetch_stock_snapshots("pharmacy-1")

    Tests inject an ``httpx.MockTransport`` through ``transport``.
    """

    def __init__(
        self,
        config: StoreConfig,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        if not config.base_url:
            raise ValueError(
                "Hosted store base_url is not configured "
                "(set RX_FORECASTER_STORE_URL or [store].base_url)."
            )
        self.config = config
        self._transport = transport

    def _client(self) -> httpx.Client:
        headers = {"Accept": "application/json"}
        if self.config.api_key:
            headers["apikey"] = self.config.api_key
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        return httpx.Client(
            base_url=self.config.base_url.rstrip("/"),
            headers=headers,
            timeout=self.config.timeout_s,
            transport=self._transport,
        )

    def _get_rows(self, table: str, params: dict[str, str]) -> list[dict[str, Any]]:
        try:
            with self._client() as client:
                resp = client.get(f"/rest/v1/{table}", params=params)
                resp.raise_for_status()
                payload = resp.json()
        except httpx.HTTPError as exc:
            raise DataFetchError(f"Hosted store request for '{table}' failed: {exc}",
                                 source="hosted") from exc
        except ValueError as exc:
            raise DataFetchError(f"Hosted store returned invalid JSON for '{table}': {exc}",
                                 source="hosted") from exc

        if not isinstance(payload, list):
            raise DataFetchError(
                f"Hosted store returned {type(payload).__name__} for '{table}', expected a list.",
                source="hosted",
            )
        return payload

    # ── StockSource ────────────────────────────────────────────────────────────

    def fetch_stock_snapshots(self, owner_id: str) -> list[StockSnapshot]:
        rows = self._get_rows(
            self.config.stock_table,
            {"select": _STOCK_SELECT, "pharmacy_id": f"eq.{owner_id}"},
        )
        snapshots: list[StockSnapshot] = []
        skipped = 0
        for row in rows:
            if not row.get("medicine"):
                skipped += 1
                continue
            try:
                snapshots.append(_row_to_snapshot(owner_id, row))
            except (ValueError, ValidationError) as exc:
                raise DataFetchError(f"Malformed stock row {row.get('id')}: {exc}",
                                     source="hosted") from exc
        if skipped:
            logger.debug("hosted: %d stock row(s) without medicine skipped", skipped)
        logger.info("hosted: %d snapshot(s) for owner=%s", len(snapshots), owner_id)
        return snapshots

    # ── LedgerSource ───────────────────────────────────────────────────────────

    def fetch_sales_history(
        self,
        owner_id: str,
        window_days: int,
        as_of: date,
    ) -> list[SalesRecord]:
        start = datetime.combine(
            window_start(as_of, window_days), time.min, tzinfo=timezone.utc
        )
        rows = self._get_rows(
            self.config.invoice_table,
            {
                "select": "*",
                "pharmacy_id": f"eq.{owner_id}",
                "created_at": f"gte.{start.isoformat()}",
            },
        )
        records: list[SalesRecord] = []
        for invoice in rows:
            try:
                records.extend(_invoice_to_records(owner_id, invoice))
            except (ValueError, ValidationError) as exc:
                raise DataFetchError(f"Malformed invoice {invoice.get('id')}: {exc}",
                                     source="hosted") from exc

        in_range = [r for r in records if in_window(r, window_days, as_of)]
        logger.info("hosted: %d sales line(s) for owner=%s", len(in_range), owner_id)
        return in_range


# ── Row mappers ────────────────────────────────────────────────────────────────

def _row_to_snapshot(owner_id: str, row: dict[str, Any]) -> StockSnapshot:
    medicine = row["medicine"]
    expiry = row.get("expiry_date")
    return StockSnapshot(
        owner_id=owner_id,
        item=Item(
            item_id=str(medicine["id"]),
            name=medicine.get("generic_name") or medicine.get("name") or str(medicine["id"]),
            therapeutic_class=medicine.get("therapeutic_class") or "",
        ),
        quantity=int(row.get("quantity") or 0),
        reorder_threshold=int(row.get("low_stock_threshold") or 0),
        expiry_date=date.fromisoformat(str(expiry)[:10]) if expiry else None,
    )


def _invoice_to_records(owner_id: str, invoice: dict[str, Any]) -> list[SalesRecord]:
    created = invoice.get("created_at")
    if not created:
        raise ValueError("invoice has no created_at")
    sold_at = datetime.fromisoformat(str(created).replace("Z", "+00:00"))

    return [
        SalesRecord(
            owner_id=owner_id,
            item_id=str(line["medicine_id"]),
            quantity=int(line.get("quantity") or 0),
            sold_at=sold_at,
        )
        for line in invoice.get("items") or []
        if line.get("medicine_id") is not None
    ]
