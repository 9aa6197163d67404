from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_serializer

from stockledger.app.db.models.core_types import Location
from stockledger.services.costing import display_cost


class ProductCreate(BaseModel):
    sku: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=255)
    category: str | None = Field(default=None, max_length=128)
    price: Decimal | None = Field(default=None, ge=0)
    min_stock_level: int = Field(default=0, ge=0)


class ProductRead(BaseModel):
    id: int
    sku: str
    name: str
    category: str | None = None
    price: Decimal | None = None

    warehouse_stock: int
    store_stock: int
    total_stock: int
    min_stock_level: int

    cost: Decimal | None = None
    average_cost: Decimal | None = None  # READ ONLY, arrondi à l'affichage seulement

    total_sold: int
    last_sale_date: datetime | None = None
    updated_at: datetime

    class Config:
        from_attributes = True

    @field_serializer("cost", "average_cost", "price")
    def _round_money(self, value: Decimal | None) -> str | None:
        rounded = display_cost(value)
        return None if rounded is None else str(rounded)


class PurchaseCreate(BaseModel):
    quantity: int = Field(gt=0)
    unit_cost: Decimal = Field(ge=0)
    location: Location


class PurchasePreviewIn(BaseModel):
    quantity: int = Field(gt=0)
    unit_cost: Decimal = Field(ge=0)


class PurchasePreviewRead(BaseModel):
    product_id: int
    current_stock: int
    current_cost: Decimal
    incoming_quantity: int
    incoming_unit_cost: Decimal
    new_average_cost: Decimal

    class Config:
        from_attributes = True

    @field_serializer("current_cost", "incoming_unit_cost", "new_average_cost")
    def _round_money(self, value: Decimal) -> str:
        return str(display_cost(value))
