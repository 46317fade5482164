"""
Sales ledger record model.

``SalesRecord`` is one line of the append-only transaction ledger: a
quantity of one item sold at a point in time. Invoices with several line
items become several records sharing ``sold_at``.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, field_validator


class SalesRecord(BaseModel):
    """A single sold line item.

    Attributes:
        owner_id: Owning entity (pharmacy) the sale belongs to.
        item_id: Item that was sold.
        quantity: Units sold (returns are not modelled; must be >= 0).
        sold_at: Sale timestamp. Naive datetimes are treated as UTC.
    """

    model_config = ConfigDict(frozen=True)

    owner_id: str
    item_id: str
    quantity: int
    sold_at: datetime

    @field_validator("quantity")
    @classmethod
    def validate_quantity(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"quantity must be non-negative, got {v}.")
        return v

    @field_validator("sold_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v
