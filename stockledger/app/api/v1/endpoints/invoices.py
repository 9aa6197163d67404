from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stockledger.app.api.deps import get_db
from stockledger.app.schemas.invoice import InvoiceFulfill
from stockledger.app.schemas.product import ProductRead
from stockledger.services import inventory
from stockledger.services.inventory import SaleLine

router = APIRouter(prefix="/invoices")


@router.post("/fulfill", response_model=list[ProductRead])
def fulfill_invoice(payload: InvoiceFulfill, db: Session = Depends(get_db)):
    """Déduction du stock magasin pour une facture entière (tout ou rien)."""
    lines = [
        SaleLine(product_id=it.product_id, quantity=it.quantity, unit_price=it.unit_price)
        for it in payload.items
    ]
    return inventory.fulfill_sale(db, lines)
