# Overview: Request and role decorators for API routes.

from functools import wraps
from flask import request, g

from .errors import ForbiddenError, UnauthenticatedError
from .services import session_service


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user')


def require_auth(f):
    """
    Require a valid bearer token.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.session_context: The full SessionContext object
    - g.token: The plaintext token (logout revokes it)

    SECURITY: Raises UnauthenticatedError (401) if:
    - No Authorization header
    - Invalid, expired, idle or revoked token
    - User account deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if token is None:
            raise UnauthenticatedError("You are not logged in. Please log in to get access.")

        context = session_service.validate_session(token)
        if not context:
            raise UnauthenticatedError("Invalid or expired token. Please log in again.")

        g.current_user = context.user
        g.session_context = context
        g.token = token

        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles):
    """
    Restrict a route to the given roles. Must be stacked under @require_auth.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                raise UnauthenticatedError("You are not logged in. Please log in to get access.")

            if g.current_user.role not in roles:
                raise ForbiddenError("You do not have permission to perform this action")

            return f(*args, **kwargs)

        return decorated_function
    return decorator
