from .auth import User, SessionToken, USER_ROLES, ROLE_USER, ROLE_ADMIN
from .catalog import Category, Product, PRODUCT_STATUSES, PRODUCT_AVAILABLE, PRODUCT_UNAVAILABLE
from .orders import (
    Order,
    OrderItem,
    ORDER_STATUSES,
    TERMINAL_ORDER_STATUSES,
    CANCEL_POLICIES,
    ORDER_PENDING,
    ORDER_PROCESSING,
    ORDER_SHIPPED,
    ORDER_DELIVERED,
    ORDER_CANCELLED,
)
from .reviews import Review

__all__ = [
    'User', 'SessionToken', 'USER_ROLES', 'ROLE_USER', 'ROLE_ADMIN',
    'Category', 'Product', 'PRODUCT_STATUSES', 'PRODUCT_AVAILABLE', 'PRODUCT_UNAVAILABLE',
    'Order', 'OrderItem', 'ORDER_STATUSES', 'TERMINAL_ORDER_STATUSES', 'CANCEL_POLICIES',
    'ORDER_PENDING', 'ORDER_PROCESSING', 'ORDER_SHIPPED', 'ORDER_DELIVERED', 'ORDER_CANCELLED',
    'Review',
]
