from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from stockledger.app.db.models.core_types import ActivityType


class TechnicianActivityRead(BaseModel):
    id: int
    technician_name: str
    activity_type: ActivityType
    product_id: int | None = None
    product_name: str | None = None
    quantity: int
    transfer_id: int | None = None
    notes: str | None = None
    work_date: datetime

    class Config:
        from_attributes = True


class TechnicianSummaryRead(BaseModel):
    technician_name: str
    checks: int
    repairs: int
    maintenance: int
    installation: int
    total: int
    activities: list[TechnicianActivityRead]

    class Config:
        from_attributes = True
