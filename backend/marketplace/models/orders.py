from __future__ import annotations

from ..extensions import db
from ..money import money_str
from ..time_utils import to_utc_z


# Order lifecycle
ORDER_PENDING = "pending"
ORDER_PROCESSING = "processing"
ORDER_SHIPPED = "shipped"
ORDER_DELIVERED = "delivered"
ORDER_CANCELLED = "cancelled"

ORDER_STATUSES = (
    ORDER_PENDING,
    ORDER_PROCESSING,
    ORDER_SHIPPED,
    ORDER_DELIVERED,
    ORDER_CANCELLED,
)
TERMINAL_ORDER_STATUSES = frozenset({ORDER_DELIVERED, ORDER_CANCELLED})

# Statuses a buyer (or admin) may cancel from, keyed by ORDER_CANCEL_POLICY
CANCEL_POLICIES = {
    "marketplace": frozenset({ORDER_PENDING, ORDER_PROCESSING}),
    "point_of_sale": frozenset(ORDER_STATUSES) - TERMINAL_ORDER_STATUSES,
}

REMOVED_PRODUCT_SUFFIX = " (no longer available)"


class Order(db.Model):
    """
    Purchase document.

    total_amount is derived at placement time from the snapshotted item
    prices and never recomputed. Orders are never deleted through the API;
    they end in "delivered" or "cancelled".
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_user_created", "user_id", "created_at"),
        db.Index("ix_orders_status", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Buyer
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    total_amount = db.Column(db.Numeric(10, 2), nullable=False)
    # Point-of-sale orders have no shipping address
    shipping_address = db.Column(db.String(255), nullable=True)
    status = db.Column(db.String(16), nullable=False, default=ORDER_PENDING)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    buyer = db.relationship("User", backref=db.backref("orders", lazy=True))
    items = db.relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
        lazy=True,
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_ORDER_STATUSES

    def __repr__(self) -> str:
        return f"<Order id={self.id} user_id={self.user_id} status={self.status}>"

    def to_dict(self, include_items: bool = True, include_buyer: bool = False) -> dict:
        data = {
            "id": self.id,
            "userId": self.user_id,
            "totalAmount": money_str(self.total_amount),
            "shippingAddress": self.shipping_address,
            "status": self.status,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
        if include_items:
            data["orderItems"] = [item.to_dict() for item in self.items]
        if include_buyer:
            data["buyer"] = self.buyer.to_summary() if self.buyer else None
        return data


class OrderItem(db.Model):
    """
    Line item with the unit price captured at purchase time.

    product_id is a weak reference: deleting the Product nulls it out and
    the item falls back to its snapshotted name.
    """
    __tablename__ = "order_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)

    product_name = db.Column(db.String(200), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Numeric(10, 2), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    order = db.relationship("Order", back_populates="items")
    # Default one-to-many cascade nulls product_id on the items when a Product is deleted
    product = db.relationship("Product", backref=db.backref("order_items", lazy=True))

    @property
    def label(self) -> str:
        if self.product is None:
            return f"{self.product_name}{REMOVED_PRODUCT_SUFFIX}"
        return self.product.name

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "orderId": self.order_id,
            "productId": self.product_id,
            "quantity": self.quantity,
            "price": money_str(self.price),
            "label": self.label,
            "product": self.product.to_summary() if self.product else None,
            "createdAt": to_utc_z(self.created_at),
        }
