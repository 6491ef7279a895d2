# Overview: Flask API routes for client operations; parses input and returns JSON responses.

from flask import Blueprint, request, current_app

from ..errors import ShopError, error_response, internal_error_response
from ..extensions import db
from ..models import Client
from ..services import clients_service
from ..services.clients_service import CLIENT_POLICY
from ..validation import validate_payload, enforce_rules_client

clients_bp = Blueprint("clients", __name__, url_prefix="/api/clients")


@clients_bp.get("")
def list_clients():
    """
    Query params:
    - search: substring of name or email (case-insensitive, optional)
    """
    return clients_service.list_clients(search=request.args.get("search")), 200


@clients_bp.get("/<int:client_id>")
def get_client_route(client_id: int):
    c = db.session.get(Client, client_id)
    if not c:
        return {"error": "Client not found", "code": "NOT_FOUND"}, 404
    return {"client": c.to_dict()}, 200


@clients_bp.post("")
def create_client_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Client, payload=payload, policy=CLIENT_POLICY, partial=False)
        enforce_rules_client(patch)
        created = clients_service.create_client(patch=patch)
    except ShopError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create client")
        return internal_error_response()

    return {"client": created}, 201


@clients_bp.put("/<int:client_id>")
def update_client_route(client_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Client, payload=payload, policy=CLIENT_POLICY, partial=True)
        enforce_rules_client(patch)
        updated = clients_service.update_client(client_id=client_id, patch=patch)
    except ShopError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update client")
        return internal_error_response()

    if not updated:
        return {"error": "Client not found", "code": "NOT_FOUND"}, 404
    return {"client": updated}, 200


@clients_bp.delete("/<int:client_id>")
def delete_client_route(client_id: int):
    """Delete a client; refused while the client has sales."""
    try:
        deleted = clients_service.delete_client(client_id=client_id)
    except ShopError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete client")
        return internal_error_response()

    if not deleted:
        return {"error": "Client not found", "code": "NOT_FOUND"}, 404
    return {"ok": True, "message": "Client deleted successfully"}, 200
