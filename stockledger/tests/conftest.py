import os

# base de test : SQLite en mémoire, jamais la base configurée
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ.setdefault("LOG_JSON", "0")

from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402

from stockledger.app.api.deps import get_db  # noqa: E402
from stockledger.app.db.base import Base  # noqa: E402
from stockledger.app.db.session import make_engine  # noqa: E402
from stockledger.app.db.models.models_v1 import Product  # noqa: E402


@pytest.fixture(scope="function")
def engine():
    """
    Moteur isolé par test.

    Les services commit eux-mêmes : une base neuve par test garantit que
    rien ne fuit d'un test à l'autre.
    """
    eng = make_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(bind=eng)
    try:
        yield eng
    finally:
        Base.metadata.drop_all(bind=eng)
        eng.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture(scope="function")
def db_session(session_factory) -> Session:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(session_factory):
    from stockledger.app.main import app

    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_product(db_session):
    counter = {"n": 0}

    def _make(
        *,
        name: str | None = None,
        warehouse_stock: int = 0,
        store_stock: int = 0,
        min_stock_level: int = 0,
        cost: Decimal | None = None,
        average_cost: Decimal | None = None,
        **extra,
    ) -> Product:
        counter["n"] += 1
        n = counter["n"]
        p = Product(
            sku=f"TEST-SKU-{n:04d}",
            name=name or f"TEST-PROD-{n:04d}",
            warehouse_stock=warehouse_stock,
            store_stock=store_stock,
            min_stock_level=min_stock_level,
            cost=cost,
            average_cost=average_cost,
            total_sold=extra.pop("total_sold", 0),
            **extra,
        )
        db_session.add(p)
        db_session.commit()
        return p

    return _make
