from datetime import datetime, timezone

import pytest

from stockledger.app.db.models.core_types import ActivityType
from stockledger.services.activity import list_activities, record_activity, technician_summary
from stockledger.services.errors import InvalidInputError


def _at(year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def activities(db_session, make_product):
    p = make_product(name="Pump")
    rows = [
        ("Ana Lopes", ActivityType.check, 2, _at(2026, 3, 2)),
        ("Ana Lopes", ActivityType.repair, 1, _at(2026, 3, 20)),
        ("ana lopes", ActivityType.check, 4, _at(2026, 4, 1)),
        ("Bo Chen", ActivityType.installation, 3, _at(2026, 3, 31)),
        ("Bo Chen", ActivityType.maintenance, 5, _at(2026, 2, 28)),
    ]
    return [
        record_activity(
            db_session,
            technician_name=name,
            activity_type=kind,
            product_id=p.id,
            product_name=p.name,
            quantity=qty,
            work_date=when,
        )
        for name, kind, qty, when in rows
    ]


def test_record_defaults_work_date_to_now(db_session):
    before = datetime.now(timezone.utc)

    act = record_activity(
        db_session,
        technician_name="Ana",
        activity_type="maintenance",
        product_id=None,
        product_name=None,
        quantity=1,
    )

    assert act.activity_type == ActivityType.maintenance
    assert act.work_date >= before
    assert act.transfer_id is None


@pytest.mark.parametrize(
    "name, quantity, kind, field",
    [
        ("", 1, "check", "technician_name"),
        ("   ", 1, "check", "technician_name"),
        ("Ana", 0, "check", "quantity"),
        ("Ana", 1, "welding", "activity_type"),
    ],
)
def test_record_validation(db_session, name, quantity, kind, field):
    with pytest.raises(InvalidInputError) as exc:
        record_activity(
            db_session,
            technician_name=name,
            activity_type=kind,
            product_id=None,
            product_name=None,
            quantity=quantity,
        )
    assert exc.value.field == field


def test_list_by_name_is_case_insensitive_substring(db_session, activities):
    result = list_activities(db_session, technician_name="LOPES")

    assert len(result) == 3
    # plus récent d'abord
    assert [a.quantity for a in result] == [4, 1, 2]


def test_list_by_type(db_session, activities):
    result = list_activities(db_session, activity_type="check")
    assert {a.quantity for a in result} == {2, 4}


def test_list_by_month(db_session, activities):
    result = list_activities(db_session, month=3, year=2026)
    assert sorted(a.quantity for a in result) == [1, 2, 3]


def test_date_range_takes_precedence_over_month(db_session, activities):
    result = list_activities(
        db_session,
        start=_at(2026, 2, 1),
        end=_at(2026, 3, 3),
        month=4,
        year=2026,
    )
    assert sorted(a.quantity for a in result) == [2, 5]


def test_invalid_month(db_session):
    with pytest.raises(InvalidInputError):
        list_activities(db_session, month=13, year=2026)


def test_summary_groups_by_technician_and_type(db_session, activities):
    summary = technician_summary(db_session, month=3, year=2026)

    assert set(summary) == {"Ana Lopes", "Bo Chen"}
    ana = summary["Ana Lopes"]
    assert (ana.checks, ana.repairs, ana.total) == (2, 1, 3)
    bo = summary["Bo Chen"]
    assert (bo.installation, bo.maintenance, bo.total) == (3, 0, 3)
    assert len(bo.activities) == 1
