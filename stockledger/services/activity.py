"""
Journal d'activité des techniciens.

Ajout pur (jamais de mise à jour). Appelé après le commit d'un transfert,
dans sa propre transaction : un échec ici ne touche jamais au stock.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from stockledger.app.core.logging_config import get_logger
from stockledger.app.db.models.core_types import ActivityType
from stockledger.app.db.models.models_v1 import TechnicianActivity, utcnow
from stockledger.services.errors import InvalidInputError

logger = get_logger("services.activity")


def record_activity(
    db: Session,
    *,
    technician_name: str,
    activity_type: ActivityType | str,
    product_id: int | None,
    product_name: str | None,
    quantity: int,
    transfer_id: int | None = None,
    notes: str | None = None,
    work_date: datetime | None = None,
) -> TechnicianActivity:
    if not technician_name or not technician_name.strip():
        raise InvalidInputError("technician_name", "must not be empty")
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidInputError("quantity", f"must be a positive integer (got {quantity!r})")
    try:
        activity_type = ActivityType(activity_type)
    except ValueError:
        raise InvalidInputError("activity_type", f"unknown activity type '{activity_type}'") from None

    act = TechnicianActivity(
        technician_name=technician_name.strip(),
        activity_type=activity_type,
        product_id=product_id,
        product_name=product_name,
        quantity=quantity,
        transfer_id=transfer_id,
        notes=notes,
        work_date=work_date or utcnow(),
    )
    try:
        db.add(act)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        "Technician activity recorded",
        extra={
            "activity_id": int(act.id),
            "technician_name": act.technician_name,
            "activity_type": activity_type.value,
            "transfer_id": transfer_id,
            "quantity": quantity,
        },
    )
    return act


def _month_bounds(month: int, year: int) -> tuple[datetime, datetime]:
    if not 1 <= month <= 12:
        raise InvalidInputError("month", "must be between 1 and 12")
    last_day = calendar.monthrange(year, month)[1]
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    end = datetime(year, month, last_day, 23, 59, 59, 999999, tzinfo=timezone.utc)
    return start, end


def list_activities(
    db: Session,
    *,
    technician_name: str | None = None,
    activity_type: ActivityType | str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    month: int | None = None,
    year: int | None = None,
) -> list[TechnicianActivity]:
    """
    Filtres :
    - technician_name : sous-chaîne, insensible à la casse
    - start/end prioritaires sur month/year
    """
    stmt = select(TechnicianActivity)

    if technician_name:
        stmt = stmt.where(func.lower(TechnicianActivity.technician_name).contains(technician_name.strip().lower()))

    if activity_type is not None:
        try:
            stmt = stmt.where(TechnicianActivity.activity_type == ActivityType(activity_type))
        except ValueError:
            raise InvalidInputError("activity_type", f"unknown activity type '{activity_type}'") from None

    if start is not None and end is not None:
        if start > end:
            raise InvalidInputError("start", "must not be after end")
        stmt = stmt.where(TechnicianActivity.work_date >= start).where(TechnicianActivity.work_date <= end)
    elif month is not None and year is not None:
        lo, hi = _month_bounds(month, year)
        stmt = stmt.where(TechnicianActivity.work_date >= lo).where(TechnicianActivity.work_date <= hi)

    stmt = stmt.order_by(TechnicianActivity.work_date.desc(), TechnicianActivity.id.desc())
    return list(db.execute(stmt).scalars().all())


@dataclass
class TechnicianTotals:
    technician_name: str
    checks: int = 0
    repairs: int = 0
    maintenance: int = 0
    installation: int = 0
    total: int = 0
    activities: list[TechnicianActivity] = field(default_factory=list)


_COUNTERS = {
    ActivityType.check: "checks",
    ActivityType.repair: "repairs",
    ActivityType.maintenance: "maintenance",
    ActivityType.installation: "installation",
}


def technician_summary(db: Session, **filters) -> dict[str, TechnicianTotals]:
    """Quantités cumulées par technicien et par type d'activité."""
    summary: dict[str, TechnicianTotals] = {}
    for act in list_activities(db, **filters):
        totals = summary.setdefault(act.technician_name, TechnicianTotals(technician_name=act.technician_name))
        attr = _COUNTERS[act.activity_type]
        setattr(totals, attr, getattr(totals, attr) + act.quantity)
        totals.total += act.quantity
        totals.activities.append(act)
    return summary
