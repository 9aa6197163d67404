from __future__ import annotations

from decimal import Decimal

from sqlalchemy import select

from stockledger.app.db.session import SessionLocal
from stockledger.app.db.models.models_v1 import Product
from stockledger.app.db.models.core_types import Location
from stockledger.services.inventory import apply_purchase

# (sku, name, category, min_stock_level, achat initial warehouse (qty, unit_cost))
DEMO_PRODUCTS = [
    ("FLT-OIL-001", "Oil filter", "filters", 10, (40, Decimal("3.20"))),
    ("BRK-PAD-014", "Brake pads (front)", "brakes", 6, (12, Decimal("18.50"))),
    ("BAT-12V-070", "12V battery 70Ah", "electrical", 4, (3, Decimal("62.00"))),
]


def run_seed():
    db = SessionLocal()
    try:
        created = 0
        for sku, name, category, min_level, (qty, unit_cost) in DEMO_PRODUCTS:
            product = db.scalar(select(Product).where(Product.sku == sku))
            if product:
                continue

            product = Product(
                sku=sku,
                name=name,
                category=category,
                min_stock_level=min_level,
                warehouse_stock=0,
                store_stock=0,
                total_sold=0,
            )
            db.add(product)
            db.commit()

            # le stock initial passe par le moteur de coût, jamais en direct
            apply_purchase(db, int(product.id), qty, unit_cost, Location.warehouse)
            created += 1

        print(f"SEED OK: {created} product(s) created")
    finally:
        db.close()


if __name__ == "__main__":
    run_seed()
