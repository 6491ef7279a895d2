from __future__ import annotations
from datetime import datetime
from decimal import Decimal

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Boolean, Integer, Numeric, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta

from .errors import Conflict, InvalidRequest
from .models import PAYMENT_TYPES, SALE_STATUSES
from .money import MAX_AMOUNT, to_decimal
from shopkeeper.time_utils import parse_iso_datetime


class ValidationError(InvalidRequest):
    """400-level input problem."""


class ConflictError(Conflict):
    """409-level business rule conflict (e.g., duplicate client email)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: column keys clients are allowed to set (security boundary)
    - required_on_create: column keys required for POST
    - aliases: payload key -> column key (the API speaks camelCase)
    - ignored_fields: payload keys accepted but handled outside the model
    """
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)
    aliases: dict[str, str] = field(default_factory=dict)
    ignored_fields: set[str] = field(default_factory=set)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_int(key: str, value: Any) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def _coerce_amount(key: str, value: Any, *, strict_places: bool = True) -> Decimal:
    try:
        amount = to_decimal(value, key)
    except ValueError as e:
        raise ValidationError(str(e))
    if amount < 0:
        raise ValidationError(f"{key} must be >= 0")
    if amount > MAX_AMOUNT:
        raise ValidationError(f"{key} cannot exceed {MAX_AMOUNT}")
    if strict_places and amount.as_tuple().exponent < -2:
        raise ValidationError(f"{key} cannot have more than 2 decimal places")
    return amount


def _coerce_value(col, key: str, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return _coerce_int(key, value)

    if isinstance(coltype, Numeric):
        return _coerce_amount(key, value)

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        return bool(value)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{key} must be a datetime")

    if isinstance(coltype, (String, Text)):
        if isinstance(value, (dict, list)):
            raise ValidationError(f"{key} must be a string")
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields, after alias resolution)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict keyed by column name.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    reverse_aliases = {col: key for key, col in policy.aliases.items()}
    resolved: dict[str, tuple[str, Any]] = {}

    for key, raw in payload.items():
        if key in policy.ignored_fields:
            continue
        col_key = policy.aliases.get(key, key)
        if col_key not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {key}")
        resolved[col_key] = (key, raw)

    if not partial:
        missing = [
            reverse_aliases.get(f, f)
            for f in sorted(policy.required_on_create)
            if f not in resolved
        ]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)
    patch: dict = {}

    for col_key, (key, raw) in resolved.items():
        if col_key not in cols:
            raise ValidationError(f"Unknown field: {key}")
        col = cols[col_key]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{key} cannot be null")
            patch[col_key] = None
            continue

        val = _coerce_value(col, key, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{key} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{key} exceeds max length {col.type.length}")

        patch[col_key] = val

    return patch


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    if "stock" in patch:
        if patch["stock"] is None or patch["stock"] < 0:
            raise ValidationError("stock must be a non-negative integer")


def enforce_rules_client(patch: dict) -> None:
    email = patch.get("email")
    if email is not None and ("@" not in email or email.startswith("@") or email.endswith("@")):
        raise ValidationError("email must be a valid email address")


# ---------------------------------------------------------------------------
# Sale requests
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SaleItemRequest:
    product_id: int
    quantity: int


@dataclass(frozen=True)
class PaymentMethodInput:
    type: str
    amount: Decimal
    reference: str | None = None

    def to_document(self) -> dict:
        doc = {"type": self.type, "amount": str(self.amount)}
        if self.reference is not None:
            doc["reference"] = self.reference
        return doc


@dataclass(frozen=True)
class SaleRequest:
    client_id: int
    items: tuple[SaleItemRequest, ...]
    payment_methods: tuple[PaymentMethodInput, ...]
    status: str = "completed"


def _require_id(value: Any, key: str) -> int:
    if value is None or value == "":
        raise ValidationError(f"{key} is required")
    sid = _coerce_int(key, value)
    if sid <= 0:
        raise ValidationError(f"{key} must be a positive integer")
    return sid


def validate_sale_status(status: Any) -> str:
    if not isinstance(status, str) or status not in SALE_STATUSES:
        raise ValidationError(
            f"status must be one of: {', '.join(SALE_STATUSES)}"
        )
    return status


def parse_sale_request(payload: Any) -> SaleRequest:
    """
    Shape-check a POST /api/sales body.

    Emptiness of items / paymentMethods is left to the sale engine, which
    checks the client first; everything else about the shape is checked here.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    client_id = _require_id(payload.get("clientId"), "clientId")

    raw_items = payload.get("items")
    if raw_items is None:
        raw_items = []
    if not isinstance(raw_items, list):
        raise ValidationError("items must be a list")

    items = []
    for idx, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{idx}] must be an object")
        product_id = _require_id(raw.get("productId"), f"items[{idx}].productId")
        if raw.get("quantity") is None:
            raise ValidationError(f"items[{idx}].quantity is required")
        quantity = _coerce_int(f"items[{idx}].quantity", raw.get("quantity"))
        if quantity <= 0:
            raise ValidationError("Quantity must be a positive integer")
        items.append(SaleItemRequest(product_id=product_id, quantity=quantity))

    raw_payments = payload.get("paymentMethods")
    if raw_payments is None:
        raw_payments = []
    if not isinstance(raw_payments, list):
        raise ValidationError("paymentMethods must be a list")

    payments = []
    for idx, raw in enumerate(raw_payments):
        if not isinstance(raw, dict):
            raise ValidationError(f"paymentMethods[{idx}] must be an object")
        ptype = raw.get("type")
        if ptype not in PAYMENT_TYPES:
            raise ValidationError(
                f"paymentMethods[{idx}].type must be one of: {', '.join(PAYMENT_TYPES)}"
            )
        if raw.get("amount") is None:
            raise ValidationError(f"paymentMethods[{idx}].amount is required")
        # Float noise from the client is absorbed by the reconciliation tolerance
        amount = _coerce_amount(f"paymentMethods[{idx}].amount", raw.get("amount"), strict_places=False)
        reference = raw.get("reference")
        if reference is not None:
            if not isinstance(reference, str):
                raise ValidationError(f"paymentMethods[{idx}].reference must be a string")
            reference = reference.strip() or None
        payments.append(PaymentMethodInput(type=ptype, amount=amount, reference=reference))

    status = payload.get("status")
    status = "completed" if status is None else validate_sale_status(status)

    return SaleRequest(
        client_id=client_id,
        items=tuple(items),
        payment_methods=tuple(payments),
        status=status,
    )
