# Overview: Flask API routes for orders; parses input and delegates to order_service.

"""
Order routes.

All routes require authentication. POST dispatches on the body shape:
- {"products": [{"productId", "quantity"}, ...], "shippingAddress"} places a
  multi-item pending order
- {"productId", "quantity"} records a single-item point-of-sale order

Visibility and ownership rules live in order_service.
"""

from flask import Blueprint, request, g

from ..decorators import require_auth, require_role
from ..errors import ValidationError
from ..models import ROLE_ADMIN
from ..responses import success
from ..services import order_service


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.post("")
@require_auth
def create_order_route():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Incomplete order data. Please provide products and a shipping address.")

    if "products" in data:
        order = order_service.place_order(
            g.current_user.id,
            data.get("products"),
            data.get("shippingAddress"),
        )
    elif "productId" in data:
        order = order_service.record_point_of_sale(
            g.current_user.id,
            data.get("productId"),
            data.get("quantity"),
        )
    else:
        raise ValidationError("Incomplete order data. Please provide products and a shipping address.")

    return success({"order": order.to_dict()}, 201)


@orders_bp.get("/my-orders")
@require_auth
def my_orders_route():
    orders = order_service.list_my_orders(g.current_user.id)
    return success({"orders": [o.to_dict() for o in orders]}, results=len(orders))


@orders_bp.get("/<int:order_id>")
@require_auth
def get_order_route(order_id: int):
    order = order_service.get_order(g.current_user, order_id)
    return success({"order": order.to_dict(include_buyer=True)})


@orders_bp.patch("/<int:order_id>/cancel")
@require_auth
def cancel_order_route(order_id: int):
    order = order_service.cancel_order(g.current_user, order_id)
    return success({"order": order.to_dict()})


@orders_bp.get("")
@require_auth
@require_role(ROLE_ADMIN)
def list_orders_route():
    """Admin listing. Optional ?status= filter."""
    orders = order_service.list_all_orders(status=request.args.get("status") or None)
    return success(
        {"orders": [o.to_dict(include_buyer=True) for o in orders]},
        results=len(orders),
    )


@orders_bp.patch("/<int:order_id>/status")
@require_auth
@require_role(ROLE_ADMIN)
def update_order_status_route(order_id: int):
    data = request.get_json(silent=True) or {}
    order = order_service.update_status(g.current_user, order_id, data.get("status"))
    return success({"order": order.to_dict()})
