"""
Typed exceptions for the stock ledger.

Every error carries a machine-readable ``code`` plus structured fields, so
the HTTP layer (and any in-process caller) reacts by type, never by parsing
messages.

    LedgerError
    |
    +-- NotFoundError
    |   +-- ProductNotFoundError
    |   +-- TransferNotFoundError
    |   +-- AlertNotFoundError
    |
    +-- InvalidInputError
    |   +-- InvalidLocationError
    |
    +-- InsufficientStockError
    |
    +-- ConcurrencyConflictError   (retryable)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class LedgerError(Exception):
    """Base exception for the stock ledger."""

    code: str = "LEDGER_ERROR"

    def to_dict(self) -> dict[str, Any]:
        return {"detail": str(self), "code": self.code}


# ---------- NOT FOUND ----------
class NotFoundError(LedgerError):
    code: str = "NOT_FOUND"


class ProductNotFoundError(NotFoundError):
    code: str = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: int, missing_ids: list[int] | None = None):
        # factures : tous les ids absents, ``product_id`` reste le premier
        self.product_id = product_id
        self.missing_ids = list(missing_ids) if missing_ids else [product_id]
        if len(self.missing_ids) == 1:
            super().__init__(f"Product {product_id} not found")
        else:
            super().__init__(f"Products not found: {', '.join(str(i) for i in self.missing_ids)}")

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "product_id": self.product_id, "missing_ids": self.missing_ids}



class TransferNotFoundError(NotFoundError):
    code: str = "TRANSFER_NOT_FOUND"

    def __init__(self, transfer_id: int):
        self.transfer_id = transfer_id
        super().__init__(f"Transfer {transfer_id} not found")


class AlertNotFoundError(NotFoundError):
    code: str = "ALERT_NOT_FOUND"

    def __init__(self, alert_id: int):
        self.alert_id = alert_id
        super().__init__(f"Alert {alert_id} not found")


# ---------- INVALID INPUT ----------
class InvalidInputError(LedgerError):
    """Rejected before any mutation, never retried."""

    code: str = "INVALID_INPUT"

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"{field}: {message}")

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "field": self.field}


class InvalidLocationError(InvalidInputError):
    code: str = "INVALID_LOCATION"

    def __init__(self, location: str):
        self.location = location
        super().__init__("to_location", f"from_location and to_location must differ (both '{location}')")


# ---------- BUSINESS RULES ----------
@dataclass(frozen=True)
class Shortage:
    product_id: int
    location: str
    available: int
    requested: int

    def as_dict(self) -> dict[str, Any]:
        return {
            "product_id": self.product_id,
            "location": self.location,
            "available": self.available,
            "requested": self.requested,
        }


class InsufficientStockError(LedgerError):
    """Requested quantity exceeds what the location holds."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, shortages: list[Shortage]):
        self.shortages = list(shortages)
        parts = [
            f"product {s.product_id} at {s.location}: available={s.available}, requested={s.requested}"
            for s in self.shortages
        ]
        super().__init__("Insufficient stock (" + "; ".join(parts) + ")")

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "items": [s.as_dict() for s in self.shortages]}


# ---------- CONCURRENCY ----------
class ConcurrencyConflictError(LedgerError):
    code: str = "CONCURRENCY_CONFLICT"

    def __init__(self, entity_id: Any = None, attempts: int | None = None):
        self.entity_id = entity_id
        self.attempts = attempts
        super().__init__("Stock record was modified concurrently, try again")
