# Overview: Service-layer operations for the sale lifecycle; status changes, deletion with stock restore.

"""
Sale Lifecycle Service

STATE MACHINE:
    pending -> completed
    pending -> cancelled
    completed -> cancelled
    pending -> (deleted, stock restored)

    cancelled: terminal for status changes
    completed, cancelled: cannot be deleted

RULES:
1. Status updates touch only status (and updated_at); no stock effects.
2. Cancelling does NOT restore stock. Only deleting a pending sale does.
3. Deletion restores every item's quantity and removes the sale in one unit
   of work. A product deleted since the sale is skipped (logged).
4. Setting the current status again is a no-op.
"""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from ..errors import InvalidState, NotFound
from ..extensions import db
from ..models import Sale
from ..validation import validate_sale_status
from shopkeeper.time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry
from .products_service import increment_stock
from .unit_of_work import UnitOfWork, UnitOfWorkFactory

logger = logging.getLogger(__name__)

VALID_TRANSITIONS = {
    ("pending", "completed"),
    ("pending", "cancelled"),
    ("completed", "cancelled"),
}


def can_transition(from_status: str, to_status: str) -> bool:
    if from_status == to_status:
        return True
    return (from_status, to_status) in VALID_TRANSITIONS


def _load_sale(session: Session, sale_id: int, *, lock: bool = False) -> Sale:
    query = session.query(Sale).filter(Sale.id == sale_id)
    if lock:
        query = lock_for_update(query)
    sale = query.first()
    if sale is None:
        raise NotFound("Sale not found", details={"saleId": sale_id})
    return sale


def get_sale(sale_id: int) -> Sale:
    """
    Read-only fetch. The client is reachable through sale.client
    (None if it no longer resolves).

    Raises:
        NotFound: sale does not exist
    """
    return _load_sale(db.session, sale_id)


def update_status(sale_id: int, new_status: str, *, uow_factory: UnitOfWorkFactory = UnitOfWork) -> Sale:
    """
    Raises:
        InvalidRequest: new_status is not a known status
        NotFound: sale does not exist
        InvalidState: transition not allowed from the current status
    """
    validate_sale_status(new_status)

    def _op():
        with uow_factory() as uow:
            sale = _load_sale(uow.session, sale_id, lock=True)
            old_status = sale.status

            if old_status == new_status:
                return sale

            if not can_transition(old_status, new_status):
                raise InvalidState(
                    f"Cannot change sale status from {old_status} to {new_status}",
                    details={"from": old_status, "to": new_status},
                )

            sale.status = new_status
            sale.updated_at = utcnow()

        logger.info("Sale %s status %s -> %s", sale_id, old_status, new_status)
        return sale

    return run_with_retry(_op)


def delete_sale(sale_id: int, *, uow_factory: UnitOfWorkFactory = UnitOfWork) -> dict:
    """
    Delete a pending sale and put its items back into stock.

    Returns a summary: {"saleId", "restored": [...], "skipped": [...]}.

    Raises:
        NotFound: sale does not exist
        InvalidState: sale is not pending
    """
    def _op():
        restored: list[dict] = []
        skipped: list[dict] = []

        with uow_factory() as uow:
            sale = _load_sale(uow.session, sale_id, lock=True)

            if sale.status != "pending":
                raise InvalidState(
                    "Only pending sales can be deleted",
                    details={"status": sale.status},
                )

            for item in sale.items or []:
                entry = {"productId": item["productId"], "quantity": item["quantity"]}
                if increment_stock(uow.session, item["productId"], item["quantity"]):
                    restored.append(entry)
                else:
                    skipped.append(entry)
                    logger.warning(
                        "Sale %s: product %s no longer exists, %s unit(s) not restored",
                        sale_id, item["productId"], item["quantity"],
                    )

            uow.session.delete(sale)

        logger.info("Deleted pending sale %s, restored %d item(s)", sale_id, len(restored))
        return {"saleId": sale_id, "restored": restored, "skipped": skipped}

    return run_with_retry(_op)
