# Overview: Flask API routes for user profiles and admin user management.

from flask import Blueprint, request, g

from ..decorators import require_auth, require_role
from ..models import ROLE_ADMIN
from ..responses import no_content, success
from ..services import auth_service, user_service


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


# =============================================================================
# Own profile
# =============================================================================

@users_bp.get("/me")
@require_auth
def me_route():
    return success({"user": g.current_user.to_dict()})


@users_bp.patch("/updateMe")
@require_auth
def update_me_route():
    """name / email / address / phone only. Password fields are rejected."""
    user = user_service.update_me(g.current_user, request.get_json(silent=True) or {})
    return success({"user": user.to_dict()})


@users_bp.patch("/updateMyPassword")
@require_auth
def update_my_password_route():
    """
    Body: passwordCurrent, password

    Every session is revoked, including the one used for this request.
    """
    data = request.get_json(silent=True) or {}
    auth_service.change_password(g.current_user, data.get("passwordCurrent"), data.get("password"))
    return success({"message": "Password updated. Please log in again."})


@users_bp.delete("/deleteMe")
@require_auth
def delete_me_route():
    user_service.deactivate_me(g.current_user)
    return no_content()


# =============================================================================
# Admin
# =============================================================================

@users_bp.get("")
@require_auth
@require_role(ROLE_ADMIN)
def list_users_route():
    users = user_service.list_users()
    return success({"users": [u.to_dict() for u in users]}, results=len(users))


@users_bp.get("/<int:user_id>")
@require_auth
@require_role(ROLE_ADMIN)
def get_user_route(user_id: int):
    return success({"user": user_service.get_user(user_id).to_dict()})


@users_bp.put("/<int:user_id>")
@require_auth
@require_role(ROLE_ADMIN)
def update_user_route(user_id: int):
    user = user_service.update_user(g.current_user, user_id, request.get_json(silent=True) or {})
    return success({"user": user.to_dict()})


@users_bp.delete("/<int:user_id>")
@require_auth
@require_role(ROLE_ADMIN)
def delete_user_route(user_id: int):
    user_service.delete_user(g.current_user, user_id)
    return no_content()
