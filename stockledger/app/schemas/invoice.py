from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field


class InvoiceLineIn(BaseModel):
    product_id: int
    quantity: int = Field(gt=0)
    unit_price: Decimal | None = Field(default=None, ge=0)


class InvoiceFulfill(BaseModel):
    items: list[InvoiceLineIn] = Field(min_length=1)
