from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from stockledger.app.api.deps import get_db
from stockledger.app.core import config
from stockledger.app.schemas.product import ProductRead
from stockledger.services import monitor

router = APIRouter(prefix="/stock")


@router.get("/low", response_model=list[ProductRead])
def get_low_stock(db: Session = Depends(get_db)):
    """
    Stock (READ ONLY)
    - warehouse + store < min_stock_level
    - tri : stock restant croissant, puis nom
    """
    return monitor.low_stock(db)


@router.get("/low-moving", response_model=list[ProductRead])
def get_low_moving_stock(
    days: int = Query(default=config.LOW_MOVING_WINDOW_DAYS),
    db: Session = Depends(get_db),
):
    # days <= 0 : InvalidInputError -> 400
    return monitor.low_moving_stock(db, days)
