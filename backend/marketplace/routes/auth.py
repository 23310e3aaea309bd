# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

- Self-registration always creates a "user" account
- Login returns an opaque bearer token for the Authorization header
- Logout revokes the presented token
"""

from flask import Blueprint, request, current_app, g

from ..errors import UnauthenticatedError, ValidationError
from ..responses import success
from ..services import auth_service
from ..services import session_service
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _issue_token(user):
    session, token = session_service.create_session(
        user_id=user.id,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )
    return {"token": token, "session": session.to_dict(), "user": user.to_dict()}


@auth_bp.post("/register")
def register_route():
    """
    Create an account and log it in.

    Body: name, email, password, address?, phone?
    """
    user = auth_service.register(request.get_json(silent=True))
    current_app.logger.info("Registered user %s", user.id)
    return success(_issue_token(user), 201)


@auth_bp.post("/login")
def login_route():
    """
    Authenticate with email and password.

    Returns the token once; only its hash is stored.
    """
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")

    if not email or not password:
        raise ValidationError("Please provide email and password")

    user = auth_service.authenticate(email, password)
    if not user:
        current_app.logger.warning("Failed login for %r from %s", email, request.remote_addr)
        raise UnauthenticatedError("Incorrect email or password")

    return success(_issue_token(user))


@auth_bp.post("/logout")
@require_auth
def logout_route():
    session_service.revoke_session(g.token, reason="User logout")
    return success({"message": "Logged out"})
