# Overview: Service-layer operations for clients; CRUD with unique email and sale-history guard.

from __future__ import annotations

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..errors import InvalidState
from ..extensions import db
from ..models import Client, Sale
from ..validation import ConflictError, ModelValidationPolicy

CLIENT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "phone", "address"},
    required_on_create={"name", "email"},
)

CLIENT_MUTABLE_FIELDS = {"name", "email", "phone", "address"}


def apply_client_patch(c: Client, patch: dict) -> None:
    for k, v in patch.items():
        if k not in CLIENT_MUTABLE_FIELDS:
            continue
        setattr(c, k, v)


def get_client(session: Session, client_id: int) -> Client | None:
    return session.query(Client).filter(Client.id == client_id).first()


def client_exists(session: Session, client_id: int) -> bool:
    return session.query(Client.id).filter(Client.id == client_id).first() is not None


def _email_taken(email: str, exclude_id: int | None = None) -> bool:
    query = db.session.query(Client.id).filter(func.lower(Client.email) == email.lower())
    if exclude_id is not None:
        query = query.filter(Client.id != exclude_id)
    return query.first() is not None


def list_clients(search: str | None = None) -> dict:
    query = db.session.query(Client)
    if search:
        pattern = f"%{search.strip().lower()}%"
        query = query.filter(
            or_(func.lower(Client.name).like(pattern), func.lower(Client.email).like(pattern))
        )
    clients = query.order_by(Client.name.asc(), Client.id.asc()).all()
    return {
        "items": [c.to_dict() for c in clients],
        "count": len(clients),
    }


def create_client(*, patch: dict) -> dict:
    """
    Raises:
        ConflictError: email already in use
    """
    if _email_taken(patch["email"]):
        raise ConflictError("Email already in use")

    c = Client()
    apply_client_patch(c, patch)
    db.session.add(c)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Email already in use")
    return c.to_dict()


def update_client(*, client_id: int, patch: dict) -> dict | None:
    c = db.session.get(Client, client_id)
    if not c:
        return None

    if "email" in patch and _email_taken(patch["email"], exclude_id=client_id):
        raise ConflictError("Email already in use")

    apply_client_patch(c, patch)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Email already in use")
    return c.to_dict()


def delete_client(*, client_id: int) -> bool:
    """
    Delete a client that has no sales.

    Raises:
        InvalidState: the client is referenced by at least one sale
    """
    c = db.session.get(Client, client_id)
    if not c:
        return False

    sales_count = db.session.query(func.count(Sale.id)).filter(Sale.client_id == client_id).scalar()
    if sales_count:
        raise InvalidState(
            "Cannot delete client with associated sales",
            details={"salesCount": int(sales_count)},
        )

    db.session.delete(c)
    db.session.commit()
    return True
