"""
Sérialisation par produit.

Deux protections superposées :
- verrou de ligne ``SELECT ... FOR UPDATE`` sur le produit (PostgreSQL),
  pris dans l'ordre croissant des ids pour éviter les deadlocks ;
- compteur de version (``Product.version``) : un UPDATE concurrent qui
  passe malgré tout lève ``StaleDataError`` au flush.

``run_with_retry`` rejoue l'opération complète après rollback, avec un
backoff exponentiel borné.
"""

from __future__ import annotations

import time
from typing import Callable, Iterable, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from stockledger.app.core import config
from stockledger.app.core.logging_config import get_logger
from stockledger.app.db.models.models_v1 import Product
from stockledger.services.errors import ConcurrencyConflictError, ProductNotFoundError

logger = get_logger("services.concurrency")

T = TypeVar("T")

# SQLSTATE postgres : serialization_failure, deadlock_detected, lock_not_available
_RETRYABLE_PGCODES = {"40001", "40P01", "55P03"}


def lock_product(db: Session, product_id: int) -> Product:
    product = (
        db.execute(
            select(Product)
            .where(Product.id == product_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        .scalar_one_or_none()
    )
    if product is None:
        raise ProductNotFoundError(product_id)
    return product


def lock_products(db: Session, product_ids: Iterable[int]) -> dict[int, Product]:
    """Lock several products in ascending id order. Missing ids are absent from the result."""
    ids = sorted({int(pid) for pid in product_ids})
    if not ids:
        return {}

    rows = (
        db.execute(
            select(Product)
            .where(Product.id.in_(ids))
            .order_by(Product.id.asc())
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        .scalars()
        .all()
    )
    return {int(p.id): p for p in rows}


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, (ConcurrencyConflictError, StaleDataError)):
        return True
    if isinstance(exc, OperationalError):
        pgcode = getattr(exc.orig, "sqlstate", None) or getattr(exc.orig, "pgcode", None)
        return pgcode in _RETRYABLE_PGCODES
    return False


def run_with_retry(
    db: Session,
    operation: Callable[[], T],
    *,
    attempts: int | None = None,
    backoff_seconds: float | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Exécute ``operation`` et la rejoue sur conflit de concurrence.

    L'opération doit être rejouable de bout en bout (elle relit et reverrouille
    le produit). Après épuisement des tentatives : ``ConcurrencyConflictError``.
    """
    attempts = attempts if attempts is not None else config.RETRY_ATTEMPTS
    backoff_seconds = backoff_seconds if backoff_seconds is not None else config.RETRY_BACKOFF_SECONDS
    attempts = max(1, attempts)

    last_exc: BaseException | None = None
    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except Exception as exc:
            if not _is_retryable(exc):
                raise
            db.rollback()
            last_exc = exc
            if attempt == attempts:
                break
            delay = backoff_seconds * (2 ** (attempt - 1))
            logger.warning(
                "Concurrency conflict, retrying",
                extra={"attempt": attempt, "max_attempts": attempts, "delay_s": delay, "error": type(exc).__name__},
            )
            sleep(delay)

    logger.error(
        "Concurrency conflict, retries exhausted",
        extra={"max_attempts": attempts, "error": type(last_exc).__name__},
    )
    raise ConcurrencyConflictError(attempts=attempts) from last_exc
