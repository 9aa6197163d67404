"""
Inventory service : toutes les mutations du stock produit passent ici.

Opérations :
    apply_purchase   achat -> stock + coût moyen pondéré
    transfer_stock   déplacement warehouse <-> store (+ activité technicien)
    fulfill_sale     déduction du stock magasin pour une facture (tout ou rien)

Propriétés :
- fail closed : une précondition violée => aucune écriture
- sérialisé par produit (FOR UPDATE + version, cf. services.concurrency)
- chaque opération commit sa propre transaction
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from stockledger.app.core.logging_config import get_logger
from stockledger.app.db.models.core_types import ActivityType, Location, TransferStatus
from stockledger.app.db.models.models_v1 import Product, TechnicianActivity, Transfer, utcnow
from stockledger.services import activity as activity_service
from stockledger.services.concurrency import lock_product, lock_products, run_with_retry
from stockledger.services.costing import resolve_current_cost, to_decimal, weighted_average_cost
from stockledger.services.errors import (
    InsufficientStockError,
    InvalidInputError,
    InvalidLocationError,
    ProductNotFoundError,
    Shortage,
    TransferNotFoundError,
)

logger = get_logger("services.inventory")


# ---------- Types ----------
@dataclass(frozen=True)
class SaleLine:
    product_id: int
    quantity: int
    unit_price: Decimal | None = None


@dataclass
class PurchasePreview:
    product_id: int
    current_stock: int
    current_cost: Decimal
    incoming_quantity: int
    incoming_unit_cost: Decimal
    new_average_cost: Decimal


@dataclass
class TransferResult:
    transfer: Transfer
    product: Product
    activity: TechnicianActivity | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return bool(self.warnings)


# ---------- Helpers ----------
def _parse_location(value: Location | str, field_name: str) -> Location:
    try:
        return Location(value)
    except ValueError:
        raise InvalidInputError(field_name, f"unknown location '{value}'") from None


def _require_positive(quantity: int, field_name: str = "quantity") -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidInputError(field_name, f"must be a positive integer (got {quantity!r})")
    return quantity


def _parse_cost(value: Decimal | float | str, field_name: str = "unit_cost") -> Decimal:
    try:
        cost = to_decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidInputError(field_name, f"not a number ({value!r})") from None
    # NaN / Infinity : jamais persistés comme coût
    if not cost.is_finite():
        raise InvalidInputError(field_name, f"must be a finite number (got {value!r})")
    if cost < 0:
        raise InvalidInputError(field_name, "must be >= 0")
    return cost


def _new_transfer_number() -> str:
    return f"TR-{utcnow():%Y%m%d}-{uuid.uuid4().hex[:8].upper()}"


def get_product(db: Session, product_id: int) -> Product:
    product = db.get(Product, product_id)
    if product is None:
        raise ProductNotFoundError(product_id)
    return product


# ---------- Purchase / costing ----------
def preview_purchase(
    db: Session,
    product_id: int,
    quantity: int,
    unit_cost: Decimal | float | str,
) -> PurchasePreview:
    """Projected average cost of a purchase, nothing written."""
    _require_positive(quantity)
    unit_cost = _parse_cost(unit_cost)

    product = get_product(db, product_id)
    current_stock = product.total_stock
    current_cost = resolve_current_cost(product.average_cost, product.cost, unit_cost)
    return PurchasePreview(
        product_id=int(product.id),
        current_stock=current_stock,
        current_cost=current_cost,
        incoming_quantity=quantity,
        incoming_unit_cost=unit_cost,
        new_average_cost=weighted_average_cost(current_stock, current_cost, quantity, unit_cost),
    )


def apply_purchase(
    db: Session,
    product_id: int,
    quantity: int,
    unit_cost: Decimal | float | str,
    location: Location | str,
) -> Product:
    """
    Entrée de stock achetée.

    Incrémente le compteur de la location, ``cost = unit_cost`` et
    recalcule ``average_cost`` sur le stock total détenu AVANT l'entrée.
    """
    _require_positive(quantity)
    unit_cost = _parse_cost(unit_cost)
    location = _parse_location(location, "location")

    def _apply() -> Product:
        try:
            product = lock_product(db, product_id)

            current_stock = product.total_stock
            current_cost = resolve_current_cost(product.average_cost, product.cost, unit_cost)
            new_average = weighted_average_cost(current_stock, current_cost, quantity, unit_cost)

            product.adjust_stock(location, quantity)
            product.cost = unit_cost
            product.average_cost = new_average
            db.flush()
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(
            "Purchase applied",
            extra={
                "product_id": int(product.id),
                "location": location.value,
                "quantity": quantity,
                "unit_cost": unit_cost,
                "average_cost": new_average,
            },
        )
        return product

    return run_with_retry(db, _apply)


# ---------- Transfers ----------
def transfer_stock(
    db: Session,
    product_id: int,
    from_location: Location | str,
    to_location: Location | str,
    quantity: int,
    *,
    technician_name: str | None = None,
    activity_type: ActivityType | str | None = None,
    notes: str | None = None,
    requested_by: str | None = None,
) -> TransferResult:
    """
    Déplace ``quantity`` d'une location à l'autre (coûts inchangés).

    Étape 1 : transfert + enregistrement "completed", commit.
    Étape 2 : si un technicien est nommé, activité enregistrée dans sa propre
    transaction ; un échec ici est loggé et remonté en ``warnings``, le
    transfert reste acquis.
    """
    src = _parse_location(from_location, "from_location")
    dst = _parse_location(to_location, "to_location")
    if src == dst:
        raise InvalidLocationError(src.value)
    _require_positive(quantity)

    if activity_type is not None:
        try:
            activity_type = ActivityType(activity_type)
        except ValueError:
            raise InvalidInputError("activity_type", f"unknown activity type '{activity_type}'") from None

    technician_name = technician_name.strip() if technician_name and technician_name.strip() else None

    def _move() -> tuple[Transfer, Product]:
        try:
            product = lock_product(db, product_id)

            available = product.stock_at(src)
            if quantity > available:
                raise InsufficientStockError(
                    [Shortage(product_id=int(product.id), location=src.value, available=available, requested=quantity)]
                )

            product.adjust_stock(src, -quantity)
            product.adjust_stock(dst, quantity)

            now = utcnow()
            tr = Transfer(
                transfer_number=_new_transfer_number(),
                product_id=int(product.id),
                product_name=product.name,
                from_location=src,
                to_location=dst,
                quantity=quantity,
                status=TransferStatus.completed,
                requested_by=requested_by,
                technician_name=technician_name,
                activity_type=activity_type,
                notes=notes,
                created_at=now,
                updated_at=now,
            )
            db.add(tr)
            db.flush()
            db.commit()
        except Exception:
            db.rollback()
            raise
        return tr, product

    transfer, product = run_with_retry(db, _move)

    logger.info(
        "Transfer completed",
        extra={
            "transfer_id": int(transfer.id),
            "transfer_number": transfer.transfer_number,
            "product_id": int(product.id),
            "from_location": src.value,
            "to_location": dst.value,
            "quantity": quantity,
        },
    )

    result = TransferResult(transfer=transfer, product=product)
    if technician_name:
        # hors du périmètre du verrou produit
        act_type = activity_type or ActivityType.check
        try:
            result.activity = activity_service.record_activity(
                db,
                technician_name=technician_name,
                activity_type=act_type,
                product_id=int(product.id),
                product_name=product.name,
                quantity=quantity,
                transfer_id=int(transfer.id),
                notes=notes or f"{act_type.value} - {quantity} units of {product.name}",
            )
        except Exception as exc:
            logger.warning(
                "Technician activity recording failed, transfer kept",
                exc_info=True,
                extra={"transfer_id": int(transfer.id), "technician_name": technician_name},
            )
            result.warnings.append(f"Technician activity not recorded: {exc}")

    return result


def get_transfer(db: Session, transfer_id: int) -> Transfer:
    tr = db.get(Transfer, transfer_id)
    if tr is None:
        raise TransferNotFoundError(transfer_id)
    return tr


def list_transfers(
    db: Session,
    *,
    product_id: int | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Transfer]:
    stmt = select(Transfer).order_by(Transfer.created_at.desc(), Transfer.id.desc())
    if product_id is not None:
        stmt = stmt.where(Transfer.product_id == product_id)
    return list(db.execute(stmt.offset(offset).limit(limit)).scalars().all())


# ---------- Sales ----------
def _aggregate_lines(items: Iterable[SaleLine]) -> dict[int, int]:
    # dict garde l'ordre de première apparition
    totals: dict[int, int] = {}
    for line in items:
        _require_positive(line.quantity, f"items[{line.product_id}].quantity")
        pid = int(line.product_id)
        totals[pid] = totals.get(pid, 0) + line.quantity
    return totals


def fulfill_sale(db: Session, items: Iterable[SaleLine]) -> list[Product]:
    """
    Déduit le stock magasin pour toutes les lignes d'une facture.

    Tout ou rien : phase 1 valide TOUTES les lignes (produits verrouillés),
    phase 2 applique. Une erreur pendant l'application => rollback complet.
    """
    items = list(items)
    if not items:
        raise InvalidInputError("items", "at least one line item is required")
    totals = _aggregate_lines(items)

    def _fulfill() -> list[Product]:
        try:
            products = lock_products(db, totals.keys())

            # ---------- VALIDATE ALL ----------
            missing = [pid for pid in totals if pid not in products]
            if missing:
                raise ProductNotFoundError(missing[0], missing_ids=missing)

            shortages = [
                Shortage(product_id=pid, location=Location.store.value, available=products[pid].store_stock, requested=qty)
                for pid, qty in totals.items()
                if qty > products[pid].store_stock
            ]
            if shortages:
                raise InsufficientStockError(shortages)

            # ---------- APPLY ALL ----------
            now = utcnow()
            for pid, qty in totals.items():
                p = products[pid]
                p.store_stock -= qty
                p.total_sold += qty
                p.last_sale_date = now

            db.flush()
            db.commit()
        except Exception:
            db.rollback()
            raise
        return [products[pid] for pid in totals]

    updated = run_with_retry(db, _fulfill)

    logger.info(
        "Sale fulfilled",
        extra={"lines": len(items), "products": [int(p.id) for p in updated]},
    )
    return updated
