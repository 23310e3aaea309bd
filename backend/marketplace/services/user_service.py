# Overview: Service-layer operations for user profiles and admin user management.

"""
User Service

Own-profile operations (me / updateMe / deleteMe) and admin management of
other accounts. Password changes never go through these paths; see
auth_service.change_password.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from ..extensions import db
from ..models import ROLE_ADMIN, Order, Product, User
from ..validation import ModelValidationPolicy, enforce_rules_user, validate_payload
from . import session_service
from .auth_service import email_taken


PASSWORD_FIELDS = {"password", "passwordConfirm", "passwordCurrent"}

SELF_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "address", "phone"},
)

ADMIN_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "role", "address", "phone"},
)


def _reject_password_fields(payload: dict, message: str) -> None:
    if any(k in payload for k in PASSWORD_FIELDS):
        raise ValidationError(message)


def _apply_patch(user: User, patch: dict) -> User:
    if "email" in patch and email_taken(patch["email"], exclude_user_id=user.id):
        raise ConflictError("An account with this email already exists")

    for k, v in patch.items():
        setattr(user, k, v)

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("An account with this email already exists")
    return user


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("No user found with that ID")
    return user


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.id.asc()).all()


def update_me(user: User, payload) -> User:
    """Profile fields only. Role and password cannot be changed here."""
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    _reject_password_fields(
        payload,
        "This route is not for password updates. Please use /updateMyPassword.",
    )

    # Unknown keys (role included) are dropped rather than rejected
    filtered = {k: v for k, v in payload.items() if k in SELF_POLICY.writable_fields}
    patch = validate_payload(model=User, payload=filtered, policy=SELF_POLICY, partial=True)
    enforce_rules_user(patch)
    return _apply_patch(user, patch)


def deactivate_me(user: User) -> None:
    """
    Self-service account removal.

    The account is deactivated rather than deleted so order history stays
    intact; every session is revoked.
    """
    user.is_active = False
    session_service.revoke_all_user_sessions(user.id, reason="Account deactivated", commit=False)
    db.session.commit()
    current_app.logger.info("User %s deactivated their account", user.id)


def update_user(actor: User, user_id: int, payload) -> User:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    _reject_password_fields(payload, "Administrators cannot change a user's password through this route.")

    user = get_user(user_id)

    filtered = {k: v for k, v in payload.items() if k in ADMIN_POLICY.writable_fields}
    patch = validate_payload(model=User, payload=filtered, policy=ADMIN_POLICY, partial=True)
    enforce_rules_user(patch)

    if actor.id == user.id and patch.get("role", ROLE_ADMIN) != ROLE_ADMIN:
        raise ForbiddenError("Administrators cannot demote their own role through this route.")

    return _apply_patch(user, patch)


def delete_user(actor: User, user_id: int) -> None:
    """
    Physically delete an account. Accounts with orders or product listings
    are kept for history; deactivate those instead.
    """
    user = get_user(user_id)

    if actor.id == user.id:
        raise ForbiddenError("Administrators cannot delete their own account through this route.")

    has_orders = db.session.query(Order.id).filter(Order.user_id == user.id).first() is not None
    has_products = db.session.query(Product.id).filter(Product.user_id == user.id).first() is not None
    if has_orders or has_products:
        raise ConflictError(
            "This user has orders or products and cannot be deleted",
            details={"orders": has_orders, "products": has_products},
        )

    db.session.delete(user)
    db.session.commit()
    current_app.logger.info("User %s deleted by admin %s", user_id, actor.id)
