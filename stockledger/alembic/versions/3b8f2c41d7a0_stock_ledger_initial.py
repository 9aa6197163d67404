"""stock ledger initial schema

Revision ID: 3b8f2c41d7a0
Revises:
Create Date: 2026-10-16
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "3b8f2c41d7a0"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

COST = sa.Numeric(28, 10)

# Types ENUM créés une seule fois, puis référencés sans recréation
STOCK_LOCATION = postgresql.ENUM("warehouse", "store", name="stock_location", create_type=False)
TRANSFER_STATUS = postgresql.ENUM("completed", name="transfer_status", create_type=False)
ACTIVITY_TYPE = postgresql.ENUM(
    "check", "repair", "maintenance", "installation", name="activity_type", create_type=False
)
ALERT_TYPE = postgresql.ENUM("low_stock", "low_moving_stock", name="alert_type", create_type=False)
ALERT_PRIORITY = postgresql.ENUM("low", "medium", "high", name="alert_priority", create_type=False)

_ENUMS = (STOCK_LOCATION, TRANSFER_STATUS, ACTIVITY_TYPE, ALERT_TYPE, ALERT_PRIORITY)


def upgrade() -> None:
    bind = op.get_bind()
    for enum_type in _ENUMS:
        enum_type.create(bind, checkfirst=True)

    # ---------- PRODUCTS (stock record) ----------
    op.create_table(
        "products",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("sku", sa.String(64), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("category", sa.String(128)),
        sa.Column("price", sa.Numeric(14, 2)),
        sa.Column("warehouse_stock", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("store_stock", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("min_stock_level", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("cost", COST),
        sa.Column("average_cost", COST),
        sa.Column("total_sold", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_sale_date", sa.DateTime(timezone=True)),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("warehouse_stock >= 0", name="ck_product_warehouse_stock_nonneg"),
        sa.CheckConstraint("store_stock >= 0", name="ck_product_store_stock_nonneg"),
        sa.CheckConstraint("min_stock_level >= 0", name="ck_product_min_stock_nonneg"),
        sa.CheckConstraint("total_sold >= 0", name="ck_product_total_sold_nonneg"),
        sa.CheckConstraint("cost IS NULL OR cost >= 0", name="ck_product_cost_nonneg"),
    )

    # ---------- TRANSFERS ----------
    op.create_table(
        "transfers",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("transfer_number", sa.String(64), nullable=False, unique=True),
        sa.Column("product_id", sa.BigInteger(), sa.ForeignKey("products.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("product_name", sa.String(255), nullable=False),
        sa.Column("from_location", STOCK_LOCATION, nullable=False),
        sa.Column("to_location", STOCK_LOCATION, nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("status", TRANSFER_STATUS, nullable=False, server_default="completed"),
        sa.Column("requested_by", sa.String(200)),
        sa.Column("technician_name", sa.String(200)),
        sa.Column("activity_type", ACTIVITY_TYPE),
        sa.Column("notes", sa.Text()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("quantity > 0", name="ck_transfer_qty_pos"),
        sa.CheckConstraint("from_location <> to_location", name="ck_transfer_locations_differ"),
    )
    op.create_index("ix_transfers_product_id", "transfers", ["product_id"])
    op.create_index("ix_transfers_product_time", "transfers", ["product_id", "created_at"])

    # ---------- TECHNICIAN ACTIVITIES ----------
    op.create_table(
        "technician_activities",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("technician_name", sa.String(200), nullable=False),
        sa.Column("activity_type", ACTIVITY_TYPE, nullable=False),
        sa.Column("product_id", sa.BigInteger(), sa.ForeignKey("products.id", ondelete="SET NULL")),
        sa.Column("product_name", sa.String(255)),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("transfer_id", sa.BigInteger(), sa.ForeignKey("transfers.id", ondelete="SET NULL")),
        sa.Column("notes", sa.Text()),
        sa.Column("work_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("quantity > 0", name="ck_activity_qty_pos"),
    )
    op.create_index("ix_technician_activities_technician_name", "technician_activities", ["technician_name"])
    op.create_index(
        "ix_technician_activities_name_date", "technician_activities", ["technician_name", "work_date"]
    )

    # ---------- ALERTS ----------
    op.create_table(
        "alerts",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("type", ALERT_TYPE, nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("product_id", sa.BigInteger(), sa.ForeignKey("products.id", ondelete="CASCADE"), nullable=False),
        sa.Column("priority", ALERT_PRIORITY, nullable=False, server_default="medium"),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("read_at", sa.DateTime(timezone=True)),
        sa.Column("resolved_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_alerts_product_id", "alerts", ["product_id"])
    op.create_index("ix_alerts_product_type_open", "alerts", ["product_id", "type", "resolved_at"])
    op.create_index(
        "uq_alerts_open_product_type",
        "alerts",
        ["product_id", "type"],
        unique=True,
        postgresql_where=sa.text("resolved_at IS NULL"),
    )


def downgrade() -> None:
    op.drop_table("alerts")
    op.drop_table("technician_activities")
    op.drop_table("transfers")
    op.drop_table("products")

    bind = op.get_bind()
    for enum_type in reversed(_ENUMS):
        enum_type.drop(bind, checkfirst=True)
