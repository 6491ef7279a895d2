# Overview: Service-layer operations for product categories.

from __future__ import annotations

import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..errors import InvalidState
from ..extensions import db
from ..models import Category, Product, DEFAULT_CATEGORIES, DEFAULT_CATEGORY_COLOR
from ..validation import ConflictError, ModelValidationPolicy

logger = logging.getLogger(__name__)

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "color"},
    required_on_create={"name"},
)


def ensure_default_categories() -> int:
    """
    Seed the default categories when the table is empty.

    Safe to call repeatedly (idempotent). Returns the number inserted.
    """
    if db.session.query(Category.id).first() is not None:
        return 0

    for item in DEFAULT_CATEGORIES:
        db.session.add(Category(**item))
    db.session.commit()
    logger.info("Initialized %d default categories", len(DEFAULT_CATEGORIES))
    return len(DEFAULT_CATEGORIES)


def list_categories() -> dict:
    categories = db.session.query(Category).order_by(Category.name.asc()).all()
    return {
        "items": [c.to_dict() for c in categories],
        "count": len(categories),
    }


def _commit_or_conflict() -> None:
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("A category with this name already exists")


def create_category(*, patch: dict) -> dict:
    c = Category(
        name=patch["name"],
        description=patch.get("description") or "",
        color=patch.get("color") or DEFAULT_CATEGORY_COLOR,
    )
    db.session.add(c)
    _commit_or_conflict()
    return c.to_dict()


def update_category(*, category_id: int, patch: dict) -> dict | None:
    c = db.session.get(Category, category_id)
    if not c:
        return None

    if "name" in patch:
        c.name = patch["name"]
    if "description" in patch:
        c.description = patch["description"] or ""
    if "color" in patch:
        c.color = patch["color"] or DEFAULT_CATEGORY_COLOR
    _commit_or_conflict()
    return c.to_dict()


def delete_category(*, category_id: int) -> bool:
    """
    Raises:
        InvalidState: products are still assigned to the category
    """
    c = db.session.get(Category, category_id)
    if not c:
        return False

    in_use = db.session.query(func.count(Product.id)).filter(Product.category_id == category_id).scalar()
    if in_use:
        raise InvalidState(
            "Cannot delete category that is assigned to products",
            details={"productsCount": int(in_use)},
        )

    db.session.delete(c)
    db.session.commit()
    return True
