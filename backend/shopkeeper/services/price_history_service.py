# Overview: Service-layer operations for price history; append-only cost/price audit trail.

"""
Price History Invariants (authoritative)

- Append-only: rows are inserted, never updated or deleted.
- A product gets exactly one record when it is created (before = None).
- Afterwards a record is written only when cost or price actually changed.
- Records are added to the caller's session without committing, so they
  commit or roll back together with the product write that caused them.
- Sales never write price history.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.orm import Session

from ..extensions import db
from ..models import PriceHistory
from shopkeeper.time_utils import utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PriceSnapshot:
    cost: Decimal
    price: Decimal

    @classmethod
    def of(cls, product) -> "PriceSnapshot":
        return cls(cost=Decimal(product.cost), price=Decimal(product.price))


def record_price_change(
    product_id: int,
    before: PriceSnapshot | None,
    after: PriceSnapshot,
    reason: str | None = None,
    actor_id: str | None = None,
    *,
    session: Session | None = None,
) -> PriceHistory | None:
    """
    Append a price history record for product_id.

    Returns the new record, or None when before is given and neither cost nor
    price changed.
    """
    session = session if session is not None else db.session

    if before is not None and before.cost == after.cost and before.price == after.price:
        return None

    entry = PriceHistory(
        product_id=product_id,
        recorded_at=utcnow(),
        cost_before=before.cost if before is not None else None,
        cost_after=after.cost,
        price_before=before.price if before is not None else None,
        price_after=after.price,
        reason=reason,
        user_id=actor_id,
    )
    session.add(entry)
    session.flush()
    logger.debug(
        "Recorded price change for product %s: cost %s -> %s, price %s -> %s",
        product_id,
        entry.cost_before, entry.cost_after,
        entry.price_before, entry.price_after,
    )
    return entry


def get_product_price_history(product_id: int) -> list[PriceHistory]:
    """Newest first."""
    return (
        db.session.query(PriceHistory)
        .filter(PriceHistory.product_id == product_id)
        .order_by(PriceHistory.recorded_at.desc(), PriceHistory.id.desc())
        .all()
    )
