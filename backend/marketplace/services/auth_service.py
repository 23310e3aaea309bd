# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

Uses bcrypt for password hashing. Session tokens are managed separately
(see session_service.py).

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Minimum 6 characters required
- Self-registration always creates role "user"; admins are created via CLI
"""

import bcrypt
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, UnauthenticatedError, ValidationError
from ..extensions import db
from ..models import ROLE_USER, User
from ..time_utils import utcnow
from ..validation import ModelValidationPolicy, enforce_rules_user, validate_payload
from . import session_service


MIN_PASSWORD_LENGTH = 6
MAX_PASSWORD_LENGTH = 72  # bcrypt only uses the first 72 bytes

REGISTER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "address", "phone"},
    required_on_create={"name", "email"},
)


def validate_password_strength(password) -> None:
    """Raises ValidationError if the password is missing or out of bounds."""
    if not isinstance(password, str) or not password:
        raise ValidationError("Password is required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    if len(password.encode("utf-8")) > MAX_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_LENGTH} bytes long")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe. A malformed stored hash counts as a
    mismatch rather than an error.
    """
    if not isinstance(password, str) or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def email_taken(email: str, exclude_user_id: int | None = None) -> bool:
    query = db.session.query(User.id).filter(User.email == email)
    if exclude_user_id is not None:
        query = query.filter(User.id != exclude_user_id)
    return query.first() is not None


def create_user(
    name: str,
    email: str,
    password: str,
    role: str = ROLE_USER,
    address: str | None = None,
    phone: str | None = None,
) -> User:
    """
    Create a user with a bcrypt password hash.

    Raises ValidationError for a weak password, ConflictError if the email
    is already registered (pre-check plus the unique constraint).
    """
    email = email.strip().lower()
    if email_taken(email):
        raise ConflictError("An account with this email already exists")

    user = User(
        name=name,
        email=email,
        password_hash=hash_password(password),
        role=role,
        address=address,
        phone=phone,
    )

    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("An account with this email already exists")
    return user


def register(payload: dict) -> User:
    """Self-registration. Role is always "user" whatever the payload says."""
    payload = dict(payload or {})
    password = payload.pop("password", None)
    payload.pop("role", None)

    patch = validate_payload(model=User, payload=payload, policy=REGISTER_POLICY, partial=False)
    enforce_rules_user(patch)
    validate_password_strength(password)

    return create_user(password=password, role=ROLE_USER, **patch)


def authenticate(email: str, password: str) -> User | None:
    """
    Authenticate user with email and password.

    Returns User if credentials valid and the account is active, None otherwise.
    Updates last_login_at timestamp on successful authentication.
    """
    if not isinstance(email, str):
        return None

    user = db.session.query(User).filter(
        User.email == email.strip().lower(),
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None


def change_password(user: User, current_password, new_password) -> None:
    """
    Change a user's own password. Every existing session is revoked, so the
    caller has to log in again.
    """
    if not verify_password(current_password, user.password_hash):
        raise UnauthenticatedError("Your current password is wrong")

    user.password_hash = hash_password(new_password)
    session_service.revoke_all_user_sessions(user.id, reason="Password changed", commit=False)
    db.session.commit()
