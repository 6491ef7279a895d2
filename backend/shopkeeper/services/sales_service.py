"""
Sales Service - sale transaction engine

create_sale turns a SaleRequest into one committed unit of work:

    1. client must exist                              -> NotFound
    2. items and paymentMethods must be non-empty     -> InvalidRequest
    3. per item, in request order:
         product must exist                           -> NotFound
         quantity <= stock still available            -> InsufficientStock
    4. subtotal = current product price * quantity; total = sum(subtotals)
    5. |sum(payment amounts) - total| <= 0.01         -> PaymentMismatch
    6. conditional stock decrement per item, insert the Sale document

Steps 1-5 only read (under the unit-of-work write lock / row locks); step 6
writes. Any failure rolls the whole unit of work back, so a rejected sale
never leaves stock decremented.

DUPLICATE PRODUCT LINES:
Lines naming the same product are checked sequentially: each line sees the
stock left after the earlier lines of the same request. A request whose
lines jointly exceed the stock is rejected.

Sales never write price history; unit prices are snapshotted into the sale.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import Session

from ..errors import InsufficientStock, InvalidRequest, NotFound, PaymentMismatch
from ..extensions import db
from ..models import Sale
from ..money import money_str, quantize, within_tolerance
from ..validation import SaleItemRequest, SaleRequest
from .clients_service import client_exists
from .concurrency import run_with_retry
from .products_service import decrement_stock, get_product
from .unit_of_work import UnitOfWork, UnitOfWorkFactory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PricedLine:
    product_id: int
    product_name: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal

    def to_document(self) -> dict:
        return {
            "productId": self.product_id,
            "productName": self.product_name,
            "quantity": self.quantity,
            "unitPrice": money_str(self.unit_price),
            "subtotal": money_str(self.subtotal),
        }


def _price_lines(session: Session, items: tuple[SaleItemRequest, ...]) -> list[PricedLine]:
    """Validate every line against current stock and snapshot name / unit price."""
    requested_so_far: dict[int, int] = {}
    lines: list[PricedLine] = []

    for item in items:
        product = get_product(session, item.product_id, lock=True)
        if product is None:
            raise NotFound(
                f"Product not found: {item.product_id}",
                details={"productId": item.product_id},
            )

        already = requested_so_far.get(product.id, 0)
        available = product.stock - already
        if item.quantity > available:
            raise InsufficientStock(
                product_id=product.id,
                product_name=product.name,
                requested=item.quantity,
                available=available,
            )
        requested_so_far[product.id] = already + item.quantity

        unit_price = Decimal(product.price)
        lines.append(
            PricedLine(
                product_id=product.id,
                product_name=product.name,
                quantity=item.quantity,
                unit_price=unit_price,
                subtotal=quantize(unit_price * item.quantity),
            )
        )

    return lines


def _apply_stock_decrements(session: Session, lines: list[PricedLine]) -> None:
    for line in lines:
        if not decrement_stock(session, line.product_id, line.quantity):
            # Only reachable when the store does not honor the row lock taken
            # during validation; the conditional update still refuses to oversell.
            current = get_product(session, line.product_id)
            raise InsufficientStock(
                product_id=line.product_id,
                product_name=line.product_name,
                requested=line.quantity,
                available=current.stock if current is not None else 0,
            )


def create_sale(sale_request: SaleRequest, *, uow_factory: UnitOfWorkFactory = UnitOfWork) -> Sale:
    """
    Create a sale, decrement stock, and persist it atomically.

    Raises:
        NotFound: client or a product does not exist
        InvalidRequest: no items or no payment methods
        InsufficientStock: an item asks for more than is available
        PaymentMismatch: payments do not add up to the total (beyond 0.01)
    """
    def _op():
        with uow_factory() as uow:
            session = uow.session

            if not client_exists(session, sale_request.client_id):
                raise NotFound("Client not found", details={"clientId": sale_request.client_id})

            if not sale_request.items or not sale_request.payment_methods:
                raise InvalidRequest(
                    "Missing required fields",
                    details={
                        "items": len(sale_request.items),
                        "paymentMethods": len(sale_request.payment_methods),
                    },
                )

            lines = _price_lines(session, sale_request.items)
            total = sum((line.subtotal for line in lines), Decimal("0"))

            payment_total = sum((p.amount for p in sale_request.payment_methods), Decimal("0"))
            if not within_tolerance(payment_total, total):
                raise PaymentMismatch(payment_total=payment_total, sale_total=total)

            _apply_stock_decrements(session, lines)

            sale = Sale(
                client_id=sale_request.client_id,
                items=[line.to_document() for line in lines],
                payment_methods=[p.to_document() for p in sale_request.payment_methods],
                total=total,
                status=sale_request.status,
            )
            session.add(sale)
            session.flush()

        logger.info(
            "Created sale %s for client %s: %d item(s), total %s, status %s",
            sale.id, sale_request.client_id, len(lines), money_str(total), sale_request.status,
        )
        return sale

    return run_with_retry(_op)


def list_sales(
    *,
    client_id: int | None = None,
    status: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> dict:
    """Sales matching the filters, newest first. Date bounds are inclusive."""
    query = db.session.query(Sale)
    if client_id is not None:
        query = query.filter(Sale.client_id == client_id)
    if status is not None:
        query = query.filter(Sale.status == status)
    if start is not None:
        query = query.filter(Sale.created_at >= start)
    if end is not None:
        query = query.filter(Sale.created_at <= end)

    sales = query.order_by(Sale.created_at.desc(), Sale.id.desc()).all()
    return {
        "items": [s.to_dict() for s in sales],
        "count": len(sales),
    }
