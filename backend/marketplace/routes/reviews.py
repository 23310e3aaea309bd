# Overview: Flask API routes for reviews; public reads, author-or-admin writes.

from flask import Blueprint, request, g

from ..decorators import require_auth
from ..responses import no_content, success
from ..services import review_service
from ..validation import parse_positive_int


reviews_bp = Blueprint("reviews", __name__, url_prefix="/api/reviews")


@reviews_bp.get("")
def list_reviews_route():
    """Optional ?productId= filter."""
    product_id = request.args.get("productId")
    if product_id is not None:
        product_id = parse_positive_int(product_id, "productId")
    reviews = review_service.list_reviews(product_id=product_id)
    return success(
        {"reviews": [r.to_dict(include_relations=True) for r in reviews]},
        results=len(reviews),
    )


@reviews_bp.get("/<int:review_id>")
def get_review_route(review_id: int):
    review = review_service.get_review(review_id)
    return success({"review": review.to_dict(include_relations=True)})


@reviews_bp.post("")
@require_auth
def create_review_route():
    review = review_service.create_review(g.current_user, request.get_json(silent=True))
    return success({"review": review.to_dict()}, 201)


@reviews_bp.patch("/<int:review_id>")
@require_auth
def update_review_route(review_id: int):
    review = review_service.update_review(g.current_user, review_id, request.get_json(silent=True))
    return success({"review": review.to_dict()})


@reviews_bp.delete("/<int:review_id>")
@require_auth
def delete_review_route(review_id: int):
    review_service.delete_review(g.current_user, review_id)
    return no_content()
