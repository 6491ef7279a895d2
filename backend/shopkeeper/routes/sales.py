# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/shopkeeper/routes/sales.py
"""Sales API routes"""

from flask import Blueprint, request, current_app

from ..errors import ShopError, error_response, internal_error_response
from ..services import sales_service, sale_lifecycle_service
from ..services.cache_service import PRODUCTS_PREFIX, get_cache
from ..validation import ValidationError, parse_sale_request, validate_sale_status
from shopkeeper.time_utils import parse_iso_datetime, parse_range_end


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _client_id_filter(raw: str | None) -> int | None:
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError("clientId must be an integer")


@sales_bp.get("")
def list_sales_route():
    """
    List sales, newest first.

    Query params:
    - clientId: int (optional)
    - status: pending | completed | cancelled (optional)
    - startDate / endDate: ISO-8601 (optional, inclusive)
    """
    try:
        client_id = _client_id_filter(request.args.get("clientId"))
        status = request.args.get("status")
        if status is not None:
            validate_sale_status(status)
        try:
            start = parse_iso_datetime(request.args.get("startDate"))
            end = parse_range_end(request.args.get("endDate"))
        except ValueError:
            raise ValidationError("startDate and endDate must be ISO-8601 dates")

        return sales_service.list_sales(client_id=client_id, status=status, start=start, end=end), 200

    except ShopError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list sales")
        return internal_error_response()


@sales_bp.post("")
def create_sale_route():
    """
    Create a sale: validate stock and payments, decrement stock, persist.

    Body: {clientId, items: [{productId, quantity}], paymentMethods: [{type, amount, reference?}], status?}
    """
    try:
        sale_request = parse_sale_request(request.get_json(silent=True))
        sale = sales_service.create_sale(sale_request)
        get_cache().invalidate_prefix(PRODUCTS_PREFIX)

        return {"sale": sale.to_dict()}, 201

    except ShopError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return internal_error_response()


@sales_bp.get("/<int:sale_id>")
def get_sale_route(sale_id: int):
    """Get sale with its client resolved."""
    try:
        sale = sale_lifecycle_service.get_sale(sale_id)
        return {"sale": sale.to_dict(include_client=True)}, 200

    except ShopError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load sale")
        return internal_error_response()


@sales_bp.put("/<int:sale_id>")
def update_sale_route(sale_id: int):
    """
    Update sale status (the only editable field).

    Body: {status}
    """
    try:
        data = request.get_json(silent=True)
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValidationError("Invalid JSON payload")
        if not data.get("status"):
            raise ValidationError("Only status can be updated")

        sale = sale_lifecycle_service.update_status(sale_id, data["status"])
        return {"sale": sale.to_dict()}, 200

    except ShopError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update sale")
        return internal_error_response()


@sales_bp.delete("/<int:sale_id>")
def delete_sale_route(sale_id: int):
    """Delete a pending sale and restore its stock."""
    try:
        result = sale_lifecycle_service.delete_sale(sale_id)
        get_cache().invalidate_prefix(PRODUCTS_PREFIX)

        return {"ok": True, "message": "Sale deleted successfully", **result}, 200

    except ShopError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete sale")
        return internal_error_response()
