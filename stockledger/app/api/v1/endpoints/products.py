from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stockledger.app.api.deps import get_db
from stockledger.app.db.models.models_v1 import Product
from stockledger.app.schemas.product import (
    ProductCreate,
    ProductRead,
    PurchaseCreate,
    PurchasePreviewIn,
    PurchasePreviewRead,
)
from stockledger.services import inventory

router = APIRouter(prefix="/products")


@router.get("", response_model=list[ProductRead])
def list_products(db: Session = Depends(get_db)):
    return db.execute(select(Product).order_by(Product.sku)).scalars().all()


@router.post("", response_model=ProductRead, status_code=201)
def create_product(payload: ProductCreate, db: Session = Depends(get_db)):
    """
    Fiche produit minimale : le stock démarre à 0 et n'évolue ensuite que
    via achats / transferts / ventes.

    Unicité du SKU portée par la contrainte UNIQUE (pas de check-then-insert).
    """
    p = Product(
        sku=payload.sku,
        name=payload.name,
        category=payload.category,
        price=payload.price,
        min_stock_level=payload.min_stock_level,
        warehouse_stock=0,
        store_stock=0,
        total_sold=0,
    )
    db.add(p)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="SKU already exists") from None
    db.refresh(p)
    return p


@router.get("/{product_id}", response_model=ProductRead)
def get_product(product_id: int, db: Session = Depends(get_db)):
    return inventory.get_product(db, product_id)


@router.post("/{product_id}/purchases", response_model=ProductRead)
def record_purchase(product_id: int, payload: PurchaseCreate, db: Session = Depends(get_db)):
    return inventory.apply_purchase(
        db,
        product_id,
        quantity=payload.quantity,
        unit_cost=payload.unit_cost,
        location=payload.location,
    )


@router.post("/{product_id}/purchases/preview", response_model=PurchasePreviewRead)
def preview_purchase(product_id: int, payload: PurchasePreviewIn, db: Session = Depends(get_db)):
    preview = inventory.preview_purchase(db, product_id, quantity=payload.quantity, unit_cost=payload.unit_cost)
    return PurchasePreviewRead.model_validate(preview)
