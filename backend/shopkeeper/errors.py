# Overview: Domain error taxonomy shared by services and routes.

"""
Shopkeeper error taxonomy.

Every error carries:
- code: machine-readable kind (stable, used by the dashboard)
- status_code: HTTP status the request layer answers with
- details: dict with the specific values involved (may be empty)

Services raise these; routes translate them with error_response().
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any


class ShopError(Exception):
    """Base class for errors surfaced to API callers."""

    code = "INTERNAL"
    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "code": self.code,
            "details": self.details,
        }


class InvalidRequest(ShopError):
    """Malformed or missing request fields."""

    code = "INVALID_REQUEST"
    status_code = 400


class NotFound(ShopError):
    code = "NOT_FOUND"
    status_code = 404


class InsufficientStock(ShopError):
    """Requested quantity exceeds the stock available for a product."""

    code = "INSUFFICIENT_STOCK"
    status_code = 400

    def __init__(self, *, product_id: int, product_name: str | None, requested: int, available: int):
        label = product_name or f"#{product_id}"
        super().__init__(
            f"Insufficient stock for product: {label}",
            details={
                "productId": product_id,
                "productName": product_name,
                "requested": requested,
                "available": available,
            },
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class PaymentMismatch(ShopError):
    """Declared payments do not add up to the sale total."""

    code = "PAYMENT_MISMATCH"
    status_code = 400

    def __init__(self, *, payment_total: Decimal, sale_total: Decimal):
        super().__init__(
            f"Payment total ({payment_total}) does not match sale total ({sale_total})",
            details={
                "paymentTotal": str(payment_total),
                "saleTotal": str(sale_total),
            },
        )
        self.payment_total = payment_total
        self.sale_total = sale_total


class InvalidState(ShopError):
    """Operation not permitted in the entity's current state."""

    code = "INVALID_STATE"
    status_code = 400


class Conflict(ShopError):
    """Duplicate key or competing write."""

    code = "CONFLICT"
    status_code = 409


class Internal(ShopError):
    code = "INTERNAL"
    status_code = 500


def error_response(exc: ShopError) -> tuple[dict[str, Any], int]:
    """Flask (body, status) tuple for a domain error."""
    return exc.to_dict(), exc.status_code


def internal_error_response() -> tuple[dict[str, Any], int]:
    """Body for an unexpected failure; the cause stays in the server log."""
    return error_response(Internal("Internal server error"))
