# Overview: Flask API routes for categories; public reads, admin writes.

from flask import Blueprint, request

from ..decorators import require_auth, require_role
from ..models import ROLE_ADMIN
from ..responses import no_content, success
from ..services import category_service


categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@categories_bp.get("")
def list_categories_route():
    categories = category_service.list_categories()
    return success({"categories": [c.to_dict() for c in categories]}, results=len(categories))


@categories_bp.get("/<int:category_id>")
def get_category_route(category_id: int):
    category = category_service.get_category(category_id)
    return success({"category": category.to_dict()})


@categories_bp.post("")
@require_auth
@require_role(ROLE_ADMIN)
def create_category_route():
    category = category_service.create_category(request.get_json(silent=True))
    return success({"category": category.to_dict()}, 201)


@categories_bp.put("/<int:category_id>")
@require_auth
@require_role(ROLE_ADMIN)
def update_category_route(category_id: int):
    category = category_service.update_category(category_id, request.get_json(silent=True))
    return success({"category": category.to_dict()})


@categories_bp.delete("/<int:category_id>")
@require_auth
@require_role(ROLE_ADMIN)
def delete_category_route(category_id: int):
    category_service.delete_category(category_id)
    return no_content()
