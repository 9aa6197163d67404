from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from stockledger.app.api.deps import get_db
from stockledger.app.core import config
from stockledger.app.schemas.alert import AlertRead, ScanResultRead
from stockledger.services import monitor

router = APIRouter(prefix="/alerts")


@router.get("", response_model=list[AlertRead])
def list_alerts(is_read: bool | None = None, db: Session = Depends(get_db)):
    return monitor.list_alerts(db, is_read=is_read)


@router.post("/scan", response_model=ScanResultRead)
def scan_alerts(
    days: int = Query(default=config.LOW_MOVING_WINDOW_DAYS),
    db: Session = Depends(get_db),
):
    result = monitor.scan_alerts(db, days)
    return ScanResultRead(
        created=[AlertRead.model_validate(a) for a in result.created],
        resolved=[AlertRead.model_validate(a) for a in result.resolved],
    )


@router.post("/{alert_id}/read", response_model=AlertRead)
def acknowledge_alert(alert_id: int, db: Session = Depends(get_db)):
    return monitor.acknowledge_alert(db, alert_id)
