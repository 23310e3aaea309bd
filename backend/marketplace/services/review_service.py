# Overview: Service-layer operations for product reviews.

from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Product, Review, User
from ..validation import (
    ModelValidationPolicy,
    enforce_rules_review,
    parse_positive_int,
    validate_payload,
)


REVIEW_POLICY = ModelValidationPolicy(
    writable_fields={"review", "rating"},
    required_on_create={"review", "rating"},
)

DUPLICATE_MESSAGE = "You have already reviewed this product"


def list_reviews(product_id: int | None = None) -> list[Review]:
    query = db.session.query(Review)
    if product_id is not None:
        query = query.filter(Review.product_id == product_id)
    return query.order_by(Review.created_at.desc(), Review.id.desc()).all()


def get_review(review_id: int) -> Review:
    review = db.session.get(Review, review_id)
    if review is None:
        raise NotFoundError("No review found with that ID")
    return review


def _require_author_or_admin(actor: User, review: Review, action: str) -> None:
    if review.user_id != actor.id and not actor.is_admin:
        raise ForbiddenError(f"You do not have permission to {action} this review")


def create_review(author: User, payload, product_id=None) -> Review:
    """
    One review per (user, product). The pre-check gives the friendly error;
    uq_reviews_user_product catches the concurrent case.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    payload = dict(payload)
    body_product_id = payload.pop("productId", None)
    raw_product_id = product_id if product_id is not None else body_product_id
    if raw_product_id is None:
        raise ValidationError("Please provide the product ID, the review and the rating")
    product_id = parse_positive_int(raw_product_id, "productId")

    patch = validate_payload(model=Review, payload=payload, policy=REVIEW_POLICY, partial=False)
    enforce_rules_review(patch)

    if db.session.get(Product, product_id) is None:
        raise NotFoundError("Product not found for this review")

    existing = db.session.query(Review.id).filter_by(user_id=author.id, product_id=product_id).first()
    if existing is not None:
        raise ConflictError(DUPLICATE_MESSAGE)

    review = Review(user_id=author.id, product_id=product_id, **patch)
    db.session.add(review)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(DUPLICATE_MESSAGE)
    return review


def update_review(actor: User, review_id: int, payload) -> Review:
    review = get_review(review_id)
    _require_author_or_admin(actor, review, "update")

    patch = validate_payload(model=Review, payload=payload, policy=REVIEW_POLICY, partial=True)
    enforce_rules_review(patch)

    for k, v in patch.items():
        setattr(review, k, v)
    db.session.commit()
    return review


def delete_review(actor: User, review_id: int) -> None:
    review = get_review(review_id)
    _require_author_or_admin(actor, review, "delete")
    db.session.delete(review)
    db.session.commit()


def product_rating_summary(product_id: int) -> dict:
    """{"average": "4.50" | None, "count": n} for one product."""
    average, count = (
        db.session.query(func.avg(Review.rating), func.count(Review.id))
        .filter(Review.product_id == product_id)
        .one()
    )
    return {
        "average": f"{float(average):.2f}" if count else None,
        "count": int(count or 0),
    }
