from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from stockledger.app.db.models.core_types import AlertPriority, AlertType


class AlertRead(BaseModel):
    id: int
    type: AlertType
    title: str
    message: str
    product_id: int
    priority: AlertPriority
    is_read: bool
    read_at: datetime | None = None
    resolved_at: datetime | None = None
    created_at: datetime

    class Config:
        from_attributes = True


class ScanResultRead(BaseModel):
    created: list[AlertRead]
    resolved: list[AlertRead]

    class Config:
        from_attributes = True
