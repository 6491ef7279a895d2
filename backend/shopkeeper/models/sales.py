from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..money import money_str
from shopkeeper.time_utils import to_utc_z


SALE_STATUSES = ("pending", "completed", "cancelled")
PAYMENT_TYPES = ("cash", "credit", "debit", "transfer", "other")


class Sale(db.Model):
    """
    Sale document.

    The sale owns its line items and payment methods; both are embedded JSON
    documents, not rows of their own:

        items:           [{productId, productName, quantity, unitPrice, subtotal}]
        payment_methods: [{type, amount, reference?}]

    Money inside the documents is stored as decimal strings ("15.00").
    productName and unitPrice are snapshots taken when the sale was created,
    so later product edits or deletions never change a stored sale.

    INVARIANTS:
    - total == sum(item.subtotal)
    - |sum(payment.amount) - total| <= 0.01 at creation
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_status_created", "status", "created_at"),
        db.Index("ix_sales_client_created", "client_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(db.Integer, db.ForeignKey("clients.id"), nullable=False)

    items = db.Column(db.JSON, nullable=False, default=list)
    payment_methods = db.Column(db.JSON, nullable=False, default=list)

    total = db.Column(db.Numeric(12, 2), nullable=False)

    # Lifecycle status: pending | completed | cancelled
    status = db.Column(db.String(16), nullable=False, default="completed", index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
    version_id = db.Column(db.Integer, nullable=False, default=1)

    client = db.relationship("Client", backref=db.backref("sales", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Sale id={self.id} status={self.status} total={self.total}>"

    def item_total(self) -> Decimal:
        return sum((Decimal(i["subtotal"]) for i in self.items or []), Decimal("0"))

    def payment_total(self) -> Decimal:
        return sum((Decimal(p["amount"]) for p in self.payment_methods or []), Decimal("0"))

    def to_dict(self, include_client: bool = False) -> dict:
        data = {
            "id": self.id,
            "clientId": self.client_id,
            "items": [dict(i) for i in self.items or []],
            "paymentMethods": [dict(p) for p in self.payment_methods or []],
            "total": money_str(self.total),
            "status": self.status,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
            "versionId": self.version_id,
        }
        if include_client:
            data["client"] = self.client.to_dict() if self.client else None
        return data
