from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from stockledger.app.api.deps import get_db
from stockledger.app.db.models.core_types import ActivityType
from stockledger.app.schemas.technician import TechnicianActivityRead, TechnicianSummaryRead
from stockledger.services import activity

router = APIRouter(prefix="/technicians")


def _filters(
    technician_name: str | None = None,
    activity_type: ActivityType | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    month: int | None = Query(default=None, ge=1, le=12),
    year: int | None = Query(default=None, ge=1970),
) -> dict:
    return {
        "technician_name": technician_name,
        "activity_type": activity_type,
        "start": start_date,
        "end": end_date,
        "month": month,
        "year": year,
    }


@router.get("/activities", response_model=list[TechnicianActivityRead])
def list_activities(filters: dict = Depends(_filters), db: Session = Depends(get_db)):
    return activity.list_activities(db, **filters)


@router.get("/summary", response_model=list[TechnicianSummaryRead])
def technician_summary(filters: dict = Depends(_filters), db: Session = Depends(get_db)):
    summary = activity.technician_summary(db, **filters)
    return [
        TechnicianSummaryRead.model_validate(totals)
        for totals in sorted(summary.values(), key=lambda t: t.technician_name.lower())
    ]
