# Overview: Flask API routes for products operations; parses input and returns JSON responses.

"""
Product routes.

Reads are public. Writes require authentication; update and delete are
limited to the producer who owns the listing or an admin (checked in
product_service).

Create and update accept either JSON or multipart/form-data. In the
multipart case the optional "image" field carries the product picture.
"""
from flask import Blueprint, request, g

from ..decorators import require_auth
from ..responses import no_content, success
from ..services import product_service, review_service


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _product_input():
    """(payload, image) from a JSON or multipart request."""
    if request.mimetype == "multipart/form-data":
        payload = request.form.to_dict()
        image = request.files.get("image")
        if image is not None and not image.filename:
            image = None
        return payload, image
    return request.get_json(silent=True), None


@products_bp.get("")
def list_products_route():
    """
    List products.

    Query params: name, price[gte], price[lte], categoryId, sort, page, limit
    """
    result = product_service.list_products(request.args)
    return success(
        {"products": result["products"], "pagination": result["pagination"]},
        results=len(result["products"]),
    )


@products_bp.get("/my-products")
@require_auth
def my_products_route():
    products = product_service.list_my_products(g.current_user.id)
    return success(
        {"products": [p.to_dict(include_relations=True) for p in products]},
        results=len(products),
    )


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    return success({"product": product_service.product_detail(product_id)})


@products_bp.post("")
@require_auth
def create_product_route():
    payload, image = _product_input()
    product = product_service.create_product(g.current_user, payload, image=image)
    return success({"product": product.to_dict(include_relations=True)}, 201)


@products_bp.put("/<int:product_id>")
@require_auth
def update_product_route(product_id: int):
    payload, image = _product_input()
    product = product_service.update_product(g.current_user, product_id, payload, image=image)
    return success({"product": product.to_dict(include_relations=True)})


@products_bp.delete("/<int:product_id>")
@require_auth
def delete_product_route(product_id: int):
    product_service.delete_product(g.current_user, product_id)
    return no_content()


@products_bp.get("/<int:product_id>/reviews")
def list_product_reviews_route(product_id: int):
    product_service.get_product(product_id)
    reviews = review_service.list_reviews(product_id=product_id)
    return success(
        {"reviews": [r.to_dict(include_relations=True) for r in reviews]},
        results=len(reviews),
    )


@products_bp.post("/<int:product_id>/reviews")
@require_auth
def create_product_review_route(product_id: int):
    review = review_service.create_review(
        g.current_user,
        request.get_json(silent=True) or {},
        product_id=product_id,
    )
    return success({"review": review.to_dict()}, 201)
