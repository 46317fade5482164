"""
Item and stock snapshot models.

``Item`` is immutable reference data (a medicine) supplied by the stock
collaborator. ``StockSnapshot`` is the live on-hand state of one item for one
owning entity (a pharmacy). The engine reads snapshots but never mutates
them; a new snapshot is fetched on every forecast run.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator


class Item(BaseModel):
    """A stocked product.

    Attributes:
        item_id: Stable identifier from the stock collaborator.
        name: Display name (generic name for medicines).
        therapeutic_class: Category used for seasonal / weather / market
            lookups, e.g. ``"Antibiotics"`` or ``"ORS"``. Matching is exact
            and case-sensitive; an unknown class simply gets no adjustment.
    """

    model_config = ConfigDict(frozen=True)

    item_id: str
    name: str
    therapeutic_class: str = ""

    @field_validator("item_id")
    @classmethod
    def validate_item_id(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("item_id must not be empty.")
        return v.strip()


class StockSnapshot(BaseModel):
    """Current on-hand state of one item for one owning entity.

    Attributes:
        owner_id: The owning entity (pharmacy) this snapshot belongs to.
        item: Reference data for the stocked item.
        quantity: Units currently on hand.
        reorder_threshold: Low-stock threshold configured by the pharmacy.
        expiry_date: Earliest expiry of the on-hand batch, if known.
    """

    model_config = ConfigDict(frozen=True)

    owner_id: str
    item: Item
    quantity: int
    reorder_threshold: int = 0
    expiry_date: Optional[date] = None

    @field_validator("quantity", "reorder_threshold")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"Stock quantities must be non-negative, got {v}.")
        return v

    @property
    def item_id(self) -> str:
        return self.item.item_id
