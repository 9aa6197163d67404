from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from stockledger.app.api.deps import get_db
from stockledger.app.schemas.product import ProductRead
from stockledger.app.schemas.transfer import TransferCreate, TransferRead, TransferResultRead
from stockledger.services import inventory

router = APIRouter(prefix="/transfers")


@router.get("", response_model=list[TransferRead])
def list_transfers(
    product_id: int | None = None,
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return inventory.list_transfers(db, product_id=product_id, limit=limit, offset=offset)


@router.get("/{transfer_id}", response_model=TransferRead)
def get_transfer(transfer_id: int, db: Session = Depends(get_db)):
    return inventory.get_transfer(db, transfer_id)


@router.post("", response_model=TransferResultRead)
def create_transfer(payload: TransferCreate, db: Session = Depends(get_db)):
    """
    Transfert immédiat (status=completed).

    Si l'activité technicien n'a pas pu être enregistrée, le transfert est
    quand même acquis : réponse 200 avec ``warnings`` non vide.
    """
    result = inventory.transfer_stock(
        db,
        payload.product_id,
        payload.from_location,
        payload.to_location,
        payload.quantity,
        technician_name=payload.technician_name,
        activity_type=payload.activity_type,
        notes=payload.notes,
        requested_by=payload.requested_by,
    )
    return TransferResultRead(
        transfer=TransferRead.model_validate(result.transfer),
        product=ProductRead.model_validate(result.product),
        activity_id=int(result.activity.id) if result.activity is not None else None,
        warnings=result.warnings,
    )
