# Overview: Flask API routes for product categories.

from flask import Blueprint, request, current_app

from ..errors import ShopError, error_response, internal_error_response
from ..extensions import db
from ..models import Category
from ..services import categories_service
from ..services.cache_service import CATEGORIES_PREFIX, PRODUCTS_PREFIX, get_cache
from ..services.categories_service import CATEGORY_POLICY
from ..validation import validate_payload

categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")

CATEGORY_LIST_KEY = f"{CATEGORIES_PREFIX}all"


def _invalidate() -> None:
    cache = get_cache()
    cache.invalidate_prefix(CATEGORIES_PREFIX)
    # product listings carry categoryName
    cache.invalidate_prefix(PRODUCTS_PREFIX)


@categories_bp.get("")
def list_categories():
    """List categories by name; seeds the defaults on an empty table."""
    def _load():
        categories_service.ensure_default_categories()
        return categories_service.list_categories()

    return get_cache().get_or_set(CATEGORY_LIST_KEY, _load), 200


@categories_bp.get("/<int:category_id>")
def get_category_route(category_id: int):
    c = db.session.get(Category, category_id)
    if not c:
        return {"error": "Category not found", "code": "NOT_FOUND"}, 404
    return {"category": c.to_dict()}, 200


@categories_bp.post("")
def create_category_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=False)
        created = categories_service.create_category(patch=patch)
    except ShopError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create category")
        return internal_error_response()

    _invalidate()
    return {"category": created}, 201


@categories_bp.put("/<int:category_id>")
def update_category_route(category_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=False)
        updated = categories_service.update_category(category_id=category_id, patch=patch)
    except ShopError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update category")
        return internal_error_response()

    if not updated:
        return {"error": "Category not found", "code": "NOT_FOUND"}, 404

    _invalidate()
    return {"category": updated}, 200


@categories_bp.delete("/<int:category_id>")
def delete_category_route(category_id: int):
    """Delete a category; refused while products are assigned to it."""
    try:
        deleted = categories_service.delete_category(category_id=category_id)
    except ShopError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete category")
        return internal_error_response()

    if not deleted:
        return {"error": "Category not found", "code": "NOT_FOUND"}, 404

    _invalidate()
    return {"ok": True}, 200
