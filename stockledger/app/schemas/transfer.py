from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from stockledger.app.db.models.core_types import ActivityType, Location, TransferStatus
from stockledger.app.schemas.product import ProductRead


class TransferCreate(BaseModel):
    product_id: int
    from_location: Location
    to_location: Location
    quantity: int = Field(gt=0)
    technician_name: str | None = Field(default=None, max_length=200)
    activity_type: ActivityType | None = None
    notes: str | None = None
    requested_by: str | None = Field(default=None, max_length=200)


class TransferRead(BaseModel):
    id: int
    transfer_number: str
    product_id: int
    product_name: str
    from_location: Location
    to_location: Location
    quantity: int
    status: TransferStatus
    requested_by: str | None = None
    technician_name: str | None = None
    activity_type: ActivityType | None = None
    notes: str | None = None
    created_at: datetime

    class Config:
        from_attributes = True


class TransferResultRead(BaseModel):
    transfer: TransferRead
    product: ProductRead
    activity_id: int | None = None
    warnings: list[str] = Field(default_factory=list)
