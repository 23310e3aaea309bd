"""
Order Service - stock reservation, cancellation and status changes

All stock movement happens here. Each public write runs as one transaction:
either every line is reserved and every row is written, or nothing is.

STOCK DECREMENT: rows are read with SELECT ... FOR UPDATE where the dialect
supports it, and the decrement itself is a conditional UPDATE
(stock = stock - q WHERE stock >= q). Zero affected rows means another
order took the units first, so correctness does not depend on the
isolation level.
"""

from __future__ import annotations

from decimal import Decimal

from flask import current_app
from sqlalchemy import update

from ..errors import (
    ForbiddenError,
    InsufficientStockError,
    NotFoundError,
    OrderStateError,
    ValidationError,
)
from ..extensions import db
from ..models import (
    CANCEL_POLICIES,
    ORDER_CANCELLED,
    ORDER_DELIVERED,
    ORDER_PENDING,
    ORDER_STATUSES,
    PRODUCT_AVAILABLE,
    PRODUCT_UNAVAILABLE,
    Order,
    OrderItem,
    Product,
    User,
)
from ..money import to_money
from ..validation import parse_positive_int
from .concurrency import atomic, lock_for_update, run_with_retry


def cancellable_statuses() -> frozenset:
    policy = current_app.config.get("ORDER_CANCEL_POLICY", "marketplace")
    try:
        return CANCEL_POLICIES[policy]
    except KeyError:
        raise RuntimeError(f"Unknown ORDER_CANCEL_POLICY: {policy!r}")


def normalize_lines(raw_lines) -> list[tuple[int, int]]:
    """
    Validate [{"productId": .., "quantity": ..}, ...] into (product_id, quantity) pairs.

    Order is preserved; repeated products stay separate lines.
    """
    if not isinstance(raw_lines, list) or not raw_lines:
        raise ValidationError("Order must contain at least one product")

    lines = []
    for index, raw in enumerate(raw_lines):
        if not isinstance(raw, dict):
            raise ValidationError(f"products[{index}] must be an object")
        product_id = parse_positive_int(raw.get("productId"), f"products[{index}].productId")
        quantity = parse_positive_int(raw.get("quantity"), f"products[{index}].quantity")
        lines.append((product_id, quantity))
    return lines


def _reserve_stock(product_id: int, quantity: int) -> Product:
    """Lock, check and decrement one product's stock inside the open transaction."""
    product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
    if product is None:
        raise NotFoundError(f"Product with ID {product_id} not found")

    if quantity > product.stock:
        raise InsufficientStockError(
            f'Insufficient stock for product "{product.name}". Available: {product.stock}',
            details={"productId": product.id, "requested": quantity, "available": product.stock},
        )

    result = db.session.execute(
        update(Product)
        .where(Product.id == product_id, Product.stock >= quantity)
        .values(stock=Product.stock - quantity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise InsufficientStockError(
            f'Insufficient stock for product "{product.name}"',
            details={"productId": product.id, "requested": quantity},
        )

    db.session.refresh(product)
    return product


def _create_order(
    buyer_id: int,
    lines: list[tuple[int, int]],
    *,
    shipping_address: str | None,
    status: str,
    mark_sold_out: bool,
) -> Order:
    total = Decimal("0.00")
    items = []

    for product_id, quantity in lines:
        product = _reserve_stock(product_id, quantity)

        if mark_sold_out and product.stock == 0:
            product.status = PRODUCT_UNAVAILABLE

        # Price at time of purchase; later price edits never touch this order
        unit_price = to_money(product.price)
        total += unit_price * quantity
        items.append(OrderItem(
            product_id=product.id,
            product_name=product.name,
            quantity=quantity,
            price=unit_price,
        ))

    order = Order(
        user_id=buyer_id,
        total_amount=to_money(total),
        shipping_address=shipping_address,
        status=status,
        items=items,
    )
    db.session.add(order)
    db.session.flush()
    return order


def place_order(buyer_id: int, raw_lines, shipping_address) -> Order:
    """
    Multi-item buyer order: reserve every line or none, status "pending".

    Raises ValidationError, NotFoundError, InsufficientStockError.
    """
    lines = normalize_lines(raw_lines)
    if not isinstance(shipping_address, str) or not shipping_address.strip():
        raise ValidationError("Incomplete order data. Please provide products and a shipping address.")
    if len(shipping_address.strip()) > 255:
        raise ValidationError("shippingAddress exceeds max length 255")

    def _op():
        with atomic():
            return _create_order(
                buyer_id,
                lines,
                shipping_address=shipping_address.strip(),
                status=ORDER_PENDING,
                mark_sold_out=False,
            )

    order = run_with_retry(_op)
    current_app.logger.info(
        "Order %s placed by user %s: %d line(s), total %s",
        order.id, buyer_id, len(lines), order.total_amount,
    )
    return order


def record_point_of_sale(buyer_id: int, product_id, quantity) -> Order:
    """
    Single-item sale completed on the spot: the order is "delivered" at once
    and the product is flagged unavailable when it sells out.
    """
    lines = [(
        parse_positive_int(product_id, "productId"),
        parse_positive_int(quantity, "quantity"),
    )]

    def _op():
        with atomic():
            return _create_order(
                buyer_id,
                lines,
                shipping_address=None,
                status=ORDER_DELIVERED,
                mark_sold_out=True,
            )

    order = run_with_retry(_op)
    current_app.logger.info("Point-of-sale order %s recorded for user %s", order.id, buyer_id)
    return order


def cancel_order(actor: User, order_id: int) -> Order:
    """
    Cancel an order and put every line's quantity back on its product.

    Only the buyer or an admin may cancel, and only from a status in the
    configured cancellable set. Lines whose product has since been deleted
    are skipped. Any failure leaves status and stock untouched.
    """
    allowed = cancellable_statuses()

    def _op():
        with atomic():
            order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
            if order is None:
                raise NotFoundError("Order not found")

            if order.user_id != actor.id and not actor.is_admin:
                raise ForbiddenError("You do not have permission to cancel this order")

            if order.status not in allowed:
                raise OrderStateError(f'Cannot cancel an order with status "{order.status}"')

            order.status = ORDER_CANCELLED

            for item in order.items:
                if item.product_id is None:
                    continue
                product = lock_for_update(db.session.query(Product).filter_by(id=item.product_id)).first()
                if product is None:
                    continue
                product.stock += item.quantity
                if product.status == PRODUCT_UNAVAILABLE and product.stock > 0:
                    product.status = PRODUCT_AVAILABLE

            return order

    order = run_with_retry(_op)
    current_app.logger.info("Order %s cancelled by user %s; stock restored", order.id, actor.id)
    return order


def update_status(actor: User, order_id: int, status) -> Order:
    """Admin-only status change. No stock side effects."""
    if not actor.is_admin:
        raise ForbiddenError("Only administrators can update the status of an order")

    if status not in ORDER_STATUSES:
        raise ValidationError(f"Invalid order status. Allowed: {', '.join(ORDER_STATUSES)}")

    with atomic():
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
        if order is None:
            raise NotFoundError("Order not found")

        if order.is_terminal:
            current_app.logger.warning(
                "Rejected status change on order %s: %s -> %s", order.id, order.status, status,
            )
            raise OrderStateError(f'Order is already "{order.status}" and can no longer change status')

        # Orders only move forward; "pending" is the entry state
        if status == ORDER_PENDING or status == order.status:
            current_app.logger.warning(
                "Rejected status change on order %s: %s -> %s", order.id, order.status, status,
            )
            raise OrderStateError(f'Cannot change order status from "{order.status}" to "{status}"')

        previous = order.status
        order.status = status

    current_app.logger.info("Order %s status %s -> %s by admin %s", order.id, previous, status, actor.id)
    return order


def _is_producer_in_order(user_id: int, order_id: int) -> bool:
    row = (
        db.session.query(OrderItem.id)
        .join(Product, OrderItem.product_id == Product.id)
        .filter(OrderItem.order_id == order_id, Product.user_id == user_id)
        .first()
    )
    return row is not None


def get_order(actor: User, order_id: int) -> Order:
    """
    Buyer, admin, or a producer with at least one product in the order.
    Everyone else gets ForbiddenError.
    """
    order = db.session.get(Order, order_id)
    if order is None:
        raise NotFoundError("Order not found")

    if order.user_id == actor.id or actor.is_admin:
        return order

    if not _is_producer_in_order(actor.id, order.id):
        raise ForbiddenError("You do not have permission to view this order")

    return order


def list_my_orders(buyer_id: int) -> list[Order]:
    return (
        db.session.query(Order)
        .filter_by(user_id=buyer_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )


def list_all_orders(status: str | None = None) -> list[Order]:
    query = db.session.query(Order)
    if status is not None:
        if status not in ORDER_STATUSES:
            raise ValidationError(f"Invalid order status. Allowed: {', '.join(ORDER_STATUSES)}")
        query = query.filter(Order.status == status)
    return query.order_by(Order.created_at.desc(), Order.id.desc()).all()
