from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from stockledger.app.core import config
from stockledger.app.db.base import Base
from stockledger.app.db.session import make_engine
from stockledger.app.db.models.core_types import AlertPriority, AlertType, Location
from stockledger.app.db.models.models_v1 import Alert, Product
from stockledger.services import monitor
from stockledger.services.errors import AlertNotFoundError, InvalidInputError
from stockledger.services.inventory import SaleLine, apply_purchase, fulfill_sale
from stockledger.services.monitor import (
    acknowledge_alert,
    list_alerts,
    low_moving_stock,
    low_stock,
    scan_alerts,
)


def _days_ago(n: int) -> datetime:
    return datetime.now(timezone.utc) - timedelta(days=n)


# ---------- low stock ----------
def test_low_stock_threshold_is_strict(db_session, make_product):
    below = make_product(min_stock_level=10, warehouse_stock=2, store_stock=3)
    make_product(min_stock_level=10, warehouse_stock=5, store_stock=5)  # == minimum
    make_product(min_stock_level=0)  # pas de minimum

    assert [p.id for p in low_stock(db_session)] == [below.id]


def test_low_stock_ordered_by_remaining_then_name(db_session, make_product):
    c = make_product(name="Cable", min_stock_level=10, store_stock=4)
    b = make_product(name="Bolt", min_stock_level=10, store_stock=1)
    a = make_product(name="Anchor", min_stock_level=10, warehouse_stock=4)

    assert [p.id for p in low_stock(db_session)] == [b.id, a.id, c.id]


# ---------- low moving ----------
def test_low_moving_selects_stale_or_never_sold_products_with_stock(db_session, make_product):
    never = make_product(name="Never sold", store_stock=1)
    stale = make_product(name="Stale", warehouse_stock=3, last_sale_date=_days_ago(45))
    make_product(name="Recent", store_stock=2, last_sale_date=_days_ago(3))
    make_product(name="Empty", last_sale_date=_days_ago(90))

    result = low_moving_stock(db_session, 30)

    assert [p.id for p in result] == [never.id, stale.id]


def test_low_moving_window_is_configurable(db_session, make_product):
    p = make_product(store_stock=1, last_sale_date=_days_ago(10))

    assert low_moving_stock(db_session, 30) == []
    assert [x.id for x in low_moving_stock(db_session, 7)] == [p.id]


@pytest.mark.parametrize("window", [0, -5])
def test_low_moving_rejects_non_positive_window(db_session, window):
    with pytest.raises(InvalidInputError) as exc:
        low_moving_stock(db_session, window)
    assert exc.value.field == "window_days"


def test_a_sale_removes_product_from_low_moving(db_session, make_product):
    p = make_product(store_stock=5, last_sale_date=_days_ago(60))
    assert [x.id for x in low_moving_stock(db_session, 30)] == [p.id]

    fulfill_sale(db_session, [SaleLine(p.id, 1)])

    assert low_moving_stock(db_session, 30) == []


# ---------- alerts ----------
def test_scan_creates_one_alert_per_condition(db_session, make_product):
    p = make_product(name="Gasket", min_stock_level=5, store_stock=1)
    empty = make_product(name="Valve", min_stock_level=2)

    result = scan_alerts(db_session, 30)

    by_key = {(a.product_id, a.type): a for a in result.created}
    assert set(by_key) == {
        (p.id, AlertType.low_stock),
        (p.id, AlertType.low_moving_stock),
        (empty.id, AlertType.low_stock),
    }
    assert by_key[(empty.id, AlertType.low_stock)].priority == AlertPriority.high
    assert by_key[(p.id, AlertType.low_stock)].priority == AlertPriority.medium
    assert by_key[(p.id, AlertType.low_moving_stock)].priority == AlertPriority.low
    assert all(not a.is_read for a in result.created)


def test_rescan_does_not_duplicate_open_alerts(db_session, make_product):
    make_product(min_stock_level=5, store_stock=1, last_sale_date=_days_ago(1))

    first = scan_alerts(db_session, 30)
    second = scan_alerts(db_session, 30)

    assert len(first.created) == 1
    assert second.created == []
    assert len(db_session.execute(select(Alert)).scalars().all()) == 1


def test_acknowledged_alert_is_not_regenerated_while_condition_persists(db_session, make_product):
    make_product(min_stock_level=5, store_stock=1, last_sale_date=_days_ago(1))
    [alert] = scan_alerts(db_session, 30).created

    acknowledge_alert(db_session, alert.id)
    rescan = scan_alerts(db_session, 30)

    assert rescan.created == []
    assert len(list_alerts(db_session)) == 1


def test_cleared_condition_resolves_and_reoccurrence_creates_new_alert(db_session, make_product):
    p = make_product(min_stock_level=5, store_stock=1, average_cost=Decimal("1"), last_sale_date=_days_ago(1))
    [first] = scan_alerts(db_session, 30).created
    acknowledge_alert(db_session, first.id)

    apply_purchase(db_session, p.id, 10, Decimal("1"), Location.warehouse)
    cleared = scan_alerts(db_session, 30)
    assert [a.id for a in cleared.resolved] == [first.id]
    assert cleared.created == []

    # la condition réapparaît : le minimum passe au-dessus du stock détenu
    p.min_stock_level = 100
    db_session.commit()

    again = scan_alerts(db_session, 30)
    assert len(again.created) == 1
    assert again.created[0].id != first.id
    assert again.created[0].type == AlertType.low_stock


def test_acknowledge_is_idempotent(db_session, make_product):
    make_product(min_stock_level=5)
    [alert] = scan_alerts(db_session, 30).created

    once = acknowledge_alert(db_session, alert.id)
    read_at = once.read_at
    twice = acknowledge_alert(db_session, alert.id)

    assert once.is_read and twice.is_read
    assert twice.read_at == read_at


def test_acknowledge_missing_alert(db_session):
    with pytest.raises(AlertNotFoundError):
        acknowledge_alert(db_session, 12345)


def test_list_alerts_filters_on_read_flag(db_session, make_product):
    make_product(min_stock_level=5)
    make_product(min_stock_level=5)
    a, b = scan_alerts(db_session, 30).created
    acknowledge_alert(db_session, a.id)

    assert [x.id for x in list_alerts(db_session, is_read=True)] == [a.id]
    assert [x.id for x in list_alerts(db_session, is_read=False)] == [b.id]
    assert len(list_alerts(db_session)) == 2


# ---------- concurrent scans ----------
def test_overlapping_scans_leave_a_single_open_alert(tmp_path, monkeypatch):
    """
    Le scan A lit "aucune alerte ouverte", puis le scan B s'intercale et
    insère les siennes avant que A n'écrive. A doit rejouer, pas doublonner.
    """
    engine = make_engine(f"sqlite+pysqlite:///{tmp_path / 'alerts.db'}")
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    monkeypatch.setattr(config, "RETRY_BACKOFF_SECONDS", 0)
    try:
        with factory() as setup:
            setup.add(Product(sku="SCAN-1", name="scan", store_stock=1, min_stock_level=5, total_sold=0))
            setup.commit()

        real_open_alerts = monitor._open_alerts
        interleaved = []

        def _open_alerts_then_other_scan(db, alert_type):
            found = real_open_alerts(db, alert_type)
            if not interleaved:
                interleaved.append(True)
                with factory() as other:
                    scan_alerts(other)
            return found

        monkeypatch.setattr(monitor, "_open_alerts", _open_alerts_then_other_scan)

        with factory() as db:
            result = scan_alerts(db)

        assert interleaved == [True]
        assert result.created == []
        with factory() as check:
            for alert_type in (AlertType.low_stock, AlertType.low_moving_stock):
                open_alerts = check.scalars(
                    select(Alert).where(Alert.type == alert_type).where(Alert.resolved_at.is_(None))
                ).all()
                assert len(open_alerts) == 1
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


def test_open_alert_uniqueness_is_enforced_by_the_database(db_session, make_product):
    p = make_product(min_stock_level=5, store_stock=1)
    db_session.add(Alert(type=AlertType.low_stock, title="t", message="m", product_id=p.id))
    db_session.commit()

    db_session.add(Alert(type=AlertType.low_stock, title="t", message="m", product_id=p.id))
    with pytest.raises(IntegrityError):
        db_session.commit()
    db_session.rollback()

    # une fois résolue, une nouvelle alerte ouverte est de nouveau permise
    first = db_session.scalars(select(Alert)).one()
    first.resolved_at = _days_ago(0)
    db_session.add(Alert(type=AlertType.low_stock, title="t", message="m", product_id=p.id))
    db_session.commit()
    assert len(db_session.scalars(select(Alert)).all()) == 2
