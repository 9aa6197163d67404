import io
import json
import logging
from decimal import Decimal

import pytest

from stockledger.app.core.logging_config import (
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)
from stockledger.services.errors import ProductNotFoundError


@pytest.fixture
def stream():
    reset_logging()
    buf = io.StringIO()
    configure_logging(level="DEBUG", json_output=True, handler=logging.StreamHandler(buf))
    try:
        yield buf
    finally:
        reset_logging()


def _lines(buf):
    return [json.loads(line) for line in buf.getvalue().splitlines() if line.strip()]


def test_extra_fields_are_serialized(stream):
    get_logger("tests").info("Purchase applied", extra={"product_id": 7, "average_cost": Decimal("6.5")})

    (entry,) = _lines(stream)
    assert entry["level"] == "INFO"
    assert entry["logger"] == "stockledger.tests"
    assert entry["message"] == "Purchase applied"
    assert entry["product_id"] == 7
    assert entry["average_cost"] == "6.5"


def test_exception_code_is_reported(stream):
    try:
        raise ProductNotFoundError(42)
    except ProductNotFoundError:
        get_logger("tests").warning("lookup failed", exc_info=True)

    (entry,) = _lines(stream)
    assert entry["exc_type"] == "ProductNotFoundError"
    assert entry["exc_code"] == "PRODUCT_NOT_FOUND"
    assert "Traceback" in entry["traceback"]


def test_configure_is_idempotent(stream):
    configure_logging(level="DEBUG", handler=logging.StreamHandler(io.StringIO()))
    assert len(logging.getLogger("stockledger").handlers) == 1


def test_formatter_outputs_single_line():
    record = logging.LogRecord("stockledger.x", logging.INFO, __file__, 1, "a\nb", (), None)
    out = StructuredFormatter().format(record)
    assert "\n" not in out
    assert json.loads(out)["message"] == "a\nb"
