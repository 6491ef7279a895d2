# backend/shopkeeper/services/products_service.py
"""
Products Service (product ledger)

Owns product master data and the per-product stock count.

STOCK RULES:
- stock never goes negative
- every stock change is a single conditional UPDATE issued through
  decrement_stock / increment_stock; nothing assigns Product.stock directly
  after creation
- both bump version_id, so an ORM edit racing a stock change fails with
  StaleDataError and is retried by run_with_retry

Cost/price changes write PriceHistory in the same transaction as the
product row.
"""
from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from ..errors import InsufficientStock, InvalidRequest, NotFound
from ..extensions import db
from ..models import Category, Product
from ..validation import ModelValidationPolicy
from .concurrency import lock_for_update, run_with_retry
from .price_history_service import PriceSnapshot, record_price_change
from .unit_of_work import UnitOfWork, UnitOfWorkFactory

logger = logging.getLogger(__name__)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "cost", "price", "stock", "category_id", "image_url"},
    required_on_create={"name", "price", "cost"},
    aliases={"categoryId": "category_id", "imageUrl": "image_url"},
    ignored_fields={"priceChangeReason"},
)

# Stock is only set on create; afterwards it moves through adjust_stock and sales.
PRODUCT_MUTABLE_FIELDS = {"name", "description", "cost", "price", "category_id", "image_url"}

INITIAL_PRICE_REASON = "Initial price"


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


# ---------------------------------------------------------------------------
# Ledger accessors (take the unit-of-work session explicitly)
# ---------------------------------------------------------------------------


def get_product(session: Session, product_id: int, *, lock: bool = False) -> Product | None:
    query = session.query(Product).filter(Product.id == product_id)
    if lock:
        query = lock_for_update(query)
    return query.first()


def decrement_stock(session: Session, product_id: int, quantity: int) -> bool:
    """
    Conditionally take `quantity` units off a product.

    Returns False (and changes nothing) when the product is gone or has
    fewer than `quantity` units left.
    """
    updated = (
        session.query(Product)
        .filter(Product.id == product_id, Product.stock >= quantity)
        .update(
            {
                Product.stock: Product.stock - quantity,
                Product.version_id: Product.version_id + 1,
            },
            synchronize_session="fetch",
        )
    )
    return updated == 1


def increment_stock(session: Session, product_id: int, quantity: int) -> bool:
    """Put `quantity` units back. Returns False when the product no longer exists."""
    updated = (
        session.query(Product)
        .filter(Product.id == product_id)
        .update(
            {
                Product.stock: Product.stock + quantity,
                Product.version_id: Product.version_id + 1,
            },
            synchronize_session="fetch",
        )
    )
    return updated == 1


def adjust_stock(
    product_id: int,
    delta: int,
    *,
    reason: str | None = None,
    uow_factory: UnitOfWorkFactory = UnitOfWork,
) -> Product:
    """
    Manual restock / shrinkage through the same guarded updates sales use.

    Raises:
        InvalidRequest: delta is zero
        NotFound: product does not exist
        InsufficientStock: the adjustment would take stock below zero
    """
    if delta == 0:
        raise InvalidRequest("delta must be a non-zero integer")

    def _op():
        with uow_factory() as uow:
            product = get_product(uow.session, product_id, lock=True)
            if product is None:
                raise NotFound("Product not found")

            if delta > 0:
                increment_stock(uow.session, product_id, delta)
            elif not decrement_stock(uow.session, product_id, -delta):
                raise InsufficientStock(
                    product_id=product.id,
                    product_name=product.name,
                    requested=-delta,
                    available=product.stock,
                )
        logger.info("Adjusted stock of product %s by %+d (%s)", product_id, delta, reason or "no reason")
        return product

    return run_with_retry(_op)


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


def list_products(category_id: int | None = None, in_stock: bool = False) -> dict:
    query = db.session.query(Product)
    if category_id is not None:
        query = query.filter(Product.category_id == category_id)
    if in_stock:
        query = query.filter(Product.stock > 0)

    products = query.order_by(Product.name.asc(), Product.id.asc()).all()
    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
    }


def _require_category(category_id: int | None) -> None:
    if category_id is None:
        return
    if db.session.get(Category, category_id) is None:
        raise NotFound("Category not found")


def create_product(*, patch: dict, reason: str | None = None, actor_id: str | None = None) -> dict:
    """
    Create product using a validated patch dict and record its first price.

    Raises:
        NotFound: categoryId does not resolve
    """
    _require_category(patch.get("category_id"))

    with UnitOfWork() as uow:
        p = Product(stock=patch.get("stock") or 0)
        apply_product_patch(p, patch)
        uow.session.add(p)
        uow.session.flush()

        record_price_change(
            p.id,
            None,
            PriceSnapshot.of(p),
            reason or INITIAL_PRICE_REASON,
            actor_id,
            session=uow.session,
        )

    logger.info("Created product %s (%s)", p.id, p.name)
    return p.to_dict()


def update_product(
    *,
    product_id: int,
    patch: dict,
    reason: str | None = None,
    actor_id: str | None = None,
) -> dict | None:
    """
    Update product fields; stock is not writable here.

    Returns None when the product does not exist.

    Raises:
        InvalidRequest: patch tries to set stock
        NotFound: categoryId does not resolve
    """
    if "stock" in patch:
        raise InvalidRequest("stock cannot be edited directly; use the stock adjustment endpoint")
    if "category_id" in patch:
        _require_category(patch["category_id"])

    def _op():
        with UnitOfWork() as uow:
            p = get_product(uow.session, product_id, lock=True)
            if p is None:
                return None

            before = PriceSnapshot.of(p)
            apply_product_patch(p, patch)
            uow.session.flush()

            record_price_change(
                p.id,
                before,
                PriceSnapshot.of(p),
                reason,
                actor_id,
                session=uow.session,
            )
        return p.to_dict()

    return run_with_retry(_op)


def delete_product(*, product_id: int) -> bool:
    """
    Delete a product.

    Historical sales keep their item snapshots and price history keeps its
    rows; neither references the product row.
    """
    p = db.session.get(Product, product_id)
    if not p:
        return False

    db.session.delete(p)
    db.session.commit()
    logger.info("Deleted product %s", product_id)
    return True
