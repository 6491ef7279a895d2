# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/shopkeeper/routes/products.py
"""
Product management routes.

Write routes record price history (actor from the X-Actor-Id header) and
invalidate the cached product listings.
"""
from flask import Blueprint, request, current_app

from ..errors import ShopError, error_response, internal_error_response
from ..extensions import db
from ..models import Product
from ..services import products_service
from ..services.cache_service import PRODUCTS_PREFIX, get_cache
from ..services.price_history_service import get_product_price_history
from ..services.products_service import PRODUCT_POLICY
from ..validation import ValidationError, validate_payload, enforce_rules_product

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _actor_id() -> str | None:
    return request.headers.get("X-Actor-Id") or None


def _price_change_reason(payload: dict) -> str | None:
    reason = payload.get("priceChangeReason")
    if reason is None:
        return None
    if not isinstance(reason, str):
        raise ValidationError("priceChangeReason must be a string")
    return reason.strip()[:255] or None


@products_bp.get("")
def list_products():
    """
    List products.

    Query params:
    - categoryId: int (optional)
    - inStock: any value (optional) - only products with stock > 0
    """
    category_id = request.args.get("categoryId", type=int)
    in_stock = "inStock" in request.args

    cache_key = f"{PRODUCTS_PREFIX}{category_id}:{in_stock}"
    result = get_cache().get_or_set(
        cache_key,
        lambda: products_service.list_products(category_id=category_id, in_stock=in_stock),
    )
    return result, 200


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    product = db.session.get(Product, product_id)
    if not product:
        return {"error": "Product not found", "code": "NOT_FOUND"}, 404
    return {"product": product.to_dict()}, 200


@products_bp.post("")
def create_product_route():
    """Create a new product and its first price history record."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
        created = products_service.create_product(
            patch=patch,
            reason=_price_change_reason(payload),
            actor_id=_actor_id(),
        )
    except ShopError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return internal_error_response()

    get_cache().invalidate_prefix(PRODUCTS_PREFIX)
    return {"product": created}, 201


@products_bp.put("/<int:product_id>")
def update_product_route(product_id: int):
    """Update a product; cost/price changes are recorded in price history."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
        updated = products_service.update_product(
            product_id=product_id,
            patch=patch,
            reason=_price_change_reason(payload),
            actor_id=_actor_id(),
        )
    except ShopError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update product")
        return internal_error_response()

    if not updated:
        return {"error": "Product not found", "code": "NOT_FOUND"}, 404

    get_cache().invalidate_prefix(PRODUCTS_PREFIX)
    return {"product": updated}, 200


@products_bp.delete("/<int:product_id>")
def delete_product_route(product_id: int):
    try:
        deleted = products_service.delete_product(product_id=product_id)
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return internal_error_response()

    if not deleted:
        return {"error": "Product not found", "code": "NOT_FOUND"}, 404

    get_cache().invalidate_prefix(PRODUCTS_PREFIX)
    return {"ok": True}, 200


@products_bp.post("/<int:product_id>/stock")
def adjust_stock_route(product_id: int):
    """
    Manual stock adjustment.

    Body: {delta: int (non-zero), reason?: str}
    """
    payload = request.get_json(silent=True) or {}

    try:
        if not isinstance(payload, dict):
            raise ValidationError("Invalid JSON payload")
        delta = payload.get("delta")
        if isinstance(delta, bool) or not isinstance(delta, int):
            raise ValidationError("delta must be an integer")
        product = products_service.adjust_stock(product_id, delta, reason=payload.get("reason"))
    except ShopError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return internal_error_response()

    get_cache().invalidate_prefix(PRODUCTS_PREFIX)
    return {"product": product.to_dict()}, 200


@products_bp.get("/<int:product_id>/price-history")
def price_history_route(product_id: int):
    """Price history for a product, newest first."""
    history = get_product_price_history(product_id)
    return {
        "items": [h.to_dict() for h in history],
        "count": len(history),
    }, 200
