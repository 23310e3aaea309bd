from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Review(db.Model):
    """
    Product review.

    One review per (user, product): enforced by uq_reviews_user_product so
    two concurrent submissions cannot both succeed.
    """
    __tablename__ = "reviews"
    __table_args__ = (
        db.UniqueConstraint("user_id", "product_id", name="uq_reviews_user_product"),
        db.CheckConstraint("rating >= 1 AND rating <= 5", name="rating_range"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    review = db.Column(db.Text, nullable=False)
    rating = db.Column(db.Integer, nullable=False)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    user = db.relationship(
        "User",
        backref=db.backref("reviews", lazy=True, cascade="all, delete-orphan"),
    )
    product = db.relationship(
        "Product",
        backref=db.backref("reviews", lazy=True, cascade="all, delete-orphan"),
    )

    def to_dict(self, include_relations: bool = False) -> dict:
        data = {
            "id": self.id,
            "review": self.review,
            "rating": self.rating,
            "userId": self.user_id,
            "productId": self.product_id,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
        if include_relations:
            data["user"] = {"id": self.user.id, "name": self.user.name, "email": self.user.email} if self.user else None
            data["product"] = {"id": self.product.id, "name": self.product.name} if self.product else None
        return data
