from __future__ import annotations

from ..extensions import db
from ..money import money_str
from shopkeeper.time_utils import to_utc_z


DEFAULT_CATEGORY_COLOR = "#6B7280"

DEFAULT_CATEGORIES = [
    {"name": "Electronics", "color": "#3B82F6", "description": "Electronic devices and accessories"},
    {"name": "Clothing", "color": "#10B981", "description": "Apparel and fashion items"},
    {"name": "Home & Kitchen", "color": "#F59E0B", "description": "Home goods and kitchen supplies"},
    {"name": "Office Supplies", "color": "#6366F1", "description": "Office equipment and supplies"},
    {"name": "Food & Beverages", "color": "#EC4899", "description": "Consumable food and drink items"},
    {"name": "Other", "color": "#6B7280", "description": "Miscellaneous items"},
]


class Category(db.Model):
    __tablename__ = "categories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    color = db.Column(db.String(16), nullable=False, default=DEFAULT_CATEGORY_COLOR)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Category id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description or "",
            "color": self.color,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class Product(db.Model):
    """
    Product master data and the stock ledger for that product.

    STOCK INVARIANT:
    - stock never goes negative (CHECK constraint + conditional updates)
    - stock is only changed through products_service.decrement_stock /
      increment_stock (sales, sale deletion, manual adjustment)
    - cost/price changes are mirrored in PriceHistory by products_service
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        db.CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
        db.CheckConstraint("cost >= 0", name="ck_products_cost_non_negative"),
        db.Index("ix_products_category_name", "category_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    # Unit acquisition cost and unit sale price
    cost = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    price = db.Column(db.Numeric(12, 2), nullable=False)

    stock = db.Column(db.Integer, nullable=False, default=0)

    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True)
    image_url = db.Column(db.String(512), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    category = db.relationship("Category", backref=db.backref("products", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description or "",
            "cost": money_str(self.cost),
            "price": money_str(self.price),
            "stock": self.stock,
            "categoryId": self.category_id,
            "categoryName": self.category.name if self.category else None,
            "imageUrl": self.image_url,
            "versionId": self.version_id,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class PriceHistory(db.Model):
    """
    Append-only audit trail of cost/price changes.

    - One row when a product is created (before fields NULL)
    - One row per update that actually changes cost or price
    - Rows are never updated or deleted; product_id is a plain column so the
      history outlives the product
    """
    __tablename__ = "price_history"
    __table_args__ = (
        db.Index("ix_price_history_product_recorded", "product_id", "recorded_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, nullable=False)

    recorded_at = db.Column(db.DateTime(timezone=True), nullable=False)

    cost_before = db.Column(db.Numeric(12, 2), nullable=True)
    cost_after = db.Column(db.Numeric(12, 2), nullable=False)
    price_before = db.Column(db.Numeric(12, 2), nullable=True)
    price_after = db.Column(db.Numeric(12, 2), nullable=False)

    reason = db.Column(db.String(255), nullable=True)
    user_id = db.Column(db.String(64), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productId": self.product_id,
            "date": to_utc_z(self.recorded_at),
            "costBefore": money_str(self.cost_before),
            "costAfter": money_str(self.cost_after),
            "priceBefore": money_str(self.price_before),
            "priceAfter": money_str(self.price_after),
            "reason": self.reason,
            "userId": self.user_id,
        }
