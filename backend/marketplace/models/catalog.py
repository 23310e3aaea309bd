from __future__ import annotations

from ..extensions import db
from ..money import money_str
from ..time_utils import to_utc_z


PRODUCT_AVAILABLE = "available"
PRODUCT_UNAVAILABLE = "unavailable"
PRODUCT_STATUSES = frozenset({PRODUCT_AVAILABLE, PRODUCT_UNAVAILABLE})


class Category(db.Model):
    """Product taxonomy. Names are unique; the constraint lives in the database."""
    __tablename__ = "categories"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_categories_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, nullable=True)
    # Path to an icon or an icon class name
    icon = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Category id={self.id} name={self.name!r}>"

    def to_summary(self) -> dict:
        return {"id": self.id, "name": self.name}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "icon": self.icon,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class Product(db.Model):
    """
    A producer's listing.

    STOCK: changes only through order placement / cancellation or an explicit
    update by the owner. The CHECK constraint backs the conditional decrement
    in order_service.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("price >= 0", name="price_non_negative"),
        db.CheckConstraint("stock >= 0", name="stock_non_negative"),
        db.Index("ix_products_category_price", "category_id", "price"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(200), nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    stock = db.Column(db.Integer, nullable=False, default=0)

    # Relative URL, e.g. "/uploads/products/product-1700000000000.png"
    image_url = db.Column(db.String(255), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=PRODUCT_AVAILABLE)

    # Producer
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=False, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    producer = db.relationship("User", backref=db.backref("products", lazy=True))
    category = db.relationship("Category", backref=db.backref("products", lazy=True))

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.stock}>"

    def to_summary(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price": money_str(self.price),
            "imageUrl": self.image_url,
        }

    def to_dict(self, include_relations: bool = False) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": money_str(self.price),
            "stock": self.stock,
            "imageUrl": self.image_url,
            "status": self.status,
            "userId": self.user_id,
            "categoryId": self.category_id,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
        if include_relations:
            data["producer"] = self.producer.to_summary() if self.producer else None
            data["category"] = self.category.to_summary() if self.category else None
        return data
