from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    String,
    Integer,
    BigInteger,
    DateTime,
    Boolean,
    ForeignKey,
    Numeric,
    Text,
    Enum,
    Index,
    CheckConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stockledger.app.db.base import Base
from stockledger.app.db.models.core_types import (
    Location,
    TransferStatus,
    ActivityType,
    AlertType,
    AlertPriority,
)

# Précision des coûts : pas d'arrondi persisté, l'arrondi à 2 décimales
# se fait uniquement à l'affichage.
COST_PRECISION = Numeric(28, 10)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------- STOCK RECORD ----------
class Product(Base):
    __tablename__ = "products"
    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)
    sku: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str | None] = mapped_column(String(128))
    price: Mapped[Decimal | None] = mapped_column(Numeric(14, 2))

    warehouse_stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    store_stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    min_stock_level: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    cost: Mapped[Decimal | None] = mapped_column(COST_PRECISION)
    average_cost: Mapped[Decimal | None] = mapped_column(COST_PRECISION)

    total_sold: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_sale_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # compteur de version (verrou optimiste)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint("warehouse_stock >= 0", name="ck_product_warehouse_stock_nonneg"),
        CheckConstraint("store_stock >= 0", name="ck_product_store_stock_nonneg"),
        CheckConstraint("min_stock_level >= 0", name="ck_product_min_stock_nonneg"),
        CheckConstraint("total_sold >= 0", name="ck_product_total_sold_nonneg"),
        CheckConstraint("cost IS NULL OR cost >= 0", name="ck_product_cost_nonneg"),
    )

    @property
    def total_stock(self) -> int:
        return self.warehouse_stock + self.store_stock

    def stock_at(self, location: Location) -> int:
        if location == Location.warehouse:
            return self.warehouse_stock
        return self.store_stock

    def adjust_stock(self, location: Location, delta: int) -> None:
        if location == Location.warehouse:
            self.warehouse_stock += delta
        else:
            self.store_stock += delta


# ---------- MOVEMENTS ----------
class Transfer(Base):
    __tablename__ = "transfers"
    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)
    transfer_number: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)

    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)

    from_location: Mapped[Location] = mapped_column(Enum(Location, name="stock_location"), nullable=False)
    to_location: Mapped[Location] = mapped_column(Enum(Location, name="stock_location"), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[TransferStatus] = mapped_column(
        Enum(TransferStatus, name="transfer_status"),
        default=TransferStatus.completed,
        nullable=False,
    )
    requested_by: Mapped[str | None] = mapped_column(String(200))
    technician_name: Mapped[str | None] = mapped_column(String(200))
    activity_type: Mapped[ActivityType | None] = mapped_column(Enum(ActivityType, name="activity_type"))
    notes: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    product: Mapped[Product] = relationship()

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_transfer_qty_pos"),
        CheckConstraint("from_location <> to_location", name="ck_transfer_locations_differ"),
        Index("ix_transfers_product_time", "product_id", "created_at"),
    )


# ---------- TECHNICIANS ----------
class TechnicianActivity(Base):
    __tablename__ = "technician_activities"
    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)
    technician_name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    activity_type: Mapped[ActivityType] = mapped_column(Enum(ActivityType, name="activity_type"), nullable=False)

    product_id: Mapped[int | None] = mapped_column(ForeignKey("products.id", ondelete="SET NULL"))
    product_name: Mapped[str | None] = mapped_column(String(255))
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    # simple référence arrière, pas de propriété
    transfer_id: Mapped[int | None] = mapped_column(ForeignKey("transfers.id", ondelete="SET NULL"))
    notes: Mapped[str | None] = mapped_column(Text)

    work_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_activity_qty_pos"),
        Index("ix_technician_activities_name_date", "technician_name", "work_date"),
    )


# ---------- ALERTS ----------
class Alert(Base):
    __tablename__ = "alerts"
    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)
    type: Mapped[AlertType] = mapped_column(Enum(AlertType, name="alert_type"), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)

    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    priority: Mapped[AlertPriority] = mapped_column(
        Enum(AlertPriority, name="alert_priority"),
        default=AlertPriority.medium,
        nullable=False,
    )

    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    # condition disparue lors d'un scan ultérieur
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_alerts_product_type_open", "product_id", "type", "resolved_at"),
        # au plus une alerte ouverte par (produit, type)
        Index(
            "uq_alerts_open_product_type",
            "product_id",
            "type",
            unique=True,
            postgresql_where=text("resolved_at IS NULL"),
            sqlite_where=text("resolved_at IS NULL"),
        ),
    )
