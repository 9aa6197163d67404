"""
Stock monitor : signaux dérivés, aucune mutation du stock.

- low_stock        : warehouse + store < min_stock_level
- low_moving_stock : stock > 0 et aucune vente depuis ``window_days``

``scan_alerts`` transforme ces signaux en alertes, au plus UNE alerte
ouverte (non résolue) par (produit, type). Une alerte acquittée dont la
condition persiste reste ouverte : pas de doublon. Quand la condition
disparaît, l'alerte est marquée résolue ; si elle réapparaît plus tard,
une nouvelle alerte est créée.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stockledger.app.core import config
from stockledger.app.core.logging_config import get_logger
from stockledger.app.db.models.core_types import AlertPriority, AlertType
from stockledger.app.db.models.models_v1 import Alert, Product, utcnow
from stockledger.services.concurrency import lock_products, run_with_retry
from stockledger.services.errors import AlertNotFoundError, ConcurrencyConflictError, InvalidInputError

logger = get_logger("services.monitor")


# ---------- Queries ----------
def low_stock(db: Session) -> list[Product]:
    total = Product.warehouse_stock + Product.store_stock
    stmt = (
        select(Product)
        .where(total < Product.min_stock_level)
        .order_by(total.asc(), Product.name.asc(), Product.id.asc())
    )
    return list(db.execute(stmt).scalars().all())


def _validate_window(window_days: int) -> int:
    if isinstance(window_days, bool) or not isinstance(window_days, int) or window_days <= 0:
        raise InvalidInputError("window_days", f"must be a positive integer (got {window_days!r})")
    return window_days


def low_moving_stock(db: Session, window_days: int | None = None) -> list[Product]:
    window_days = _validate_window(config.LOW_MOVING_WINDOW_DAYS if window_days is None else window_days)
    cutoff = utcnow() - timedelta(days=window_days)

    stmt = (
        select(Product)
        .where((Product.warehouse_stock + Product.store_stock) > 0)
        .where(or_(Product.last_sale_date.is_(None), Product.last_sale_date < cutoff))
        .order_by(Product.last_sale_date.asc().nulls_first(), Product.name.asc(), Product.id.asc())
    )
    return list(db.execute(stmt).scalars().all())


# ---------- Alerts ----------
@dataclass
class ScanResult:
    created: list[Alert] = field(default_factory=list)
    resolved: list[Alert] = field(default_factory=list)


def _low_stock_alert(p: Product) -> Alert:
    priority = AlertPriority.high if p.total_stock == 0 else AlertPriority.medium
    return Alert(
        type=AlertType.low_stock,
        title=f"Low stock: {p.name}",
        message=(
            f"{p.name} ({p.sku}) has {p.total_stock} units in stock "
            f"(warehouse={p.warehouse_stock}, store={p.store_stock}), minimum is {p.min_stock_level}."
        ),
        product_id=int(p.id),
        priority=priority,
    )


def _low_moving_alert(p: Product, window_days: int) -> Alert:
    last = p.last_sale_date.date().isoformat() if p.last_sale_date else "never"
    return Alert(
        type=AlertType.low_moving_stock,
        title=f"Low moving stock: {p.name}",
        message=(
            f"{p.name} ({p.sku}) has {p.total_stock} units and no sale in the last "
            f"{window_days} days (last sale: {last})."
        ),
        product_id=int(p.id),
        priority=AlertPriority.low,
    )


def _open_alerts(db: Session, alert_type: AlertType) -> dict[int, Alert]:
    rows = (
        db.execute(
            select(Alert)
            .where(Alert.type == alert_type)
            .where(Alert.resolved_at.is_(None))
            .order_by(Alert.id.asc())
        )
        .scalars()
        .all()
    )
    # au plus une ouverte par produit ; en cas d'historique sale, la plus ancienne gagne
    out: dict[int, Alert] = {}
    for a in rows:
        out.setdefault(int(a.product_id), a)
    return out


def _sync(db: Session, alert_type: AlertType, flagged: list[Product], build, result: ScanResult) -> None:
    open_alerts = _open_alerts(db, alert_type)
    flagged_ids = {int(p.id) for p in flagged}
    now = utcnow()

    for p in flagged:
        if int(p.id) in open_alerts:
            continue
        alert = build(p)
        db.add(alert)
        result.created.append(alert)

    for pid, alert in open_alerts.items():
        if pid not in flagged_ids:
            alert.resolved_at = now
            result.resolved.append(alert)


def scan_alerts(db: Session, window_days: int | None = None) -> ScanResult:
    """
    Deux scans concurrents : les produits signalés sont verrouillés avant la
    lecture des alertes ouvertes. L'index unique partiel
    ``uq_alerts_open_product_type`` garantit la règle en base : un doublon
    inséré par un autre scan => IntegrityError => scan rejoué.
    """
    window_days = _validate_window(config.LOW_MOVING_WINDOW_DAYS if window_days is None else window_days)

    def _scan() -> ScanResult:
        result = ScanResult()
        try:
            flagged_low = low_stock(db)
            flagged_moving = low_moving_stock(db, window_days)
            lock_products(db, [p.id for p in flagged_low + flagged_moving])

            _sync(db, AlertType.low_stock, flagged_low, _low_stock_alert, result)
            _sync(
                db,
                AlertType.low_moving_stock,
                flagged_moving,
                lambda p: _low_moving_alert(p, window_days),
                result,
            )
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            raise ConcurrencyConflictError() from exc
        except Exception:
            db.rollback()
            raise
        return result

    result = run_with_retry(db, _scan)

    logger.info(
        "Alert scan completed",
        extra={"alerts_created": len(result.created), "alerts_resolved": len(result.resolved), "window_days": window_days},
    )
    return result


def list_alerts(db: Session, is_read: bool | None = None) -> list[Alert]:
    stmt = select(Alert).order_by(Alert.created_at.desc(), Alert.id.desc())
    if is_read is not None:
        stmt = stmt.where(Alert.is_read == is_read)
    return list(db.execute(stmt).scalars().all())


def acknowledge_alert(db: Session, alert_id: int) -> Alert:
    """created -> acknowledged. Déjà lue : no-op, alerte renvoyée telle quelle."""
    alert = db.get(Alert, alert_id)
    if alert is None:
        raise AlertNotFoundError(alert_id)
    if alert.is_read:
        return alert

    try:
        alert.is_read = True
        alert.read_at = utcnow()
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Alert acknowledged", extra={"alert_id": alert_id, "product_id": int(alert.product_id)})
    return alert
