from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import Boolean, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .models.auth import USER_ROLES
from .models.catalog import PRODUCT_STATUSES
from .money import MAX_PRICE, to_money


EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# 32-bit INTEGER columns
MAX_INT = 2**31 - 1


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: wire names clients are allowed to set (security boundary)
    - required_on_create: wire names required for POST
    - aliases: wire name -> model column key (camelCase JSON to snake_case columns)
    """
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)
    aliases: dict[str, str] = field(default_factory=dict)

    def column_for(self, wire_name: str) -> str:
        return self.aliases.get(wire_name, wire_name)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _bounded_int(value: int, wire_name: str) -> int:
    if abs(value) > MAX_INT:
        raise ValidationError(f"{wire_name} is out of range (max {MAX_INT})")
    return value


def _coerce_value(col, value: Any, wire_name: str):
    coltype = col.type

    if value is None:
        return None

    # Decimals (prices): accept numbers or numeric strings, never bools or floats' repr noise
    if isinstance(coltype, Numeric) and not isinstance(coltype, Integer):
        if isinstance(value, bool):
            raise ValidationError(f"{wire_name} must be a number")
        if isinstance(value, (int, float, Decimal)):
            raw = str(value)
        elif isinstance(value, str) and value.strip():
            raw = value.strip()
        else:
            raise ValidationError(f"{wire_name} must be a number")
        try:
            number = Decimal(raw)
        except InvalidOperation:
            raise ValidationError(f"{wire_name} must be a number")
        if not number.is_finite():
            raise ValidationError(f"{wire_name} must be a number")
        # Bound before quantizing; huge exponents overflow the decimal context
        if abs(number) > MAX_PRICE:
            raise ValidationError(f"{wire_name} cannot exceed {MAX_PRICE}")
        return to_money(number)

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        # Already an int (but not bool which is a subclass of int)
        if isinstance(value, int) and not isinstance(value, bool):
            return _bounded_int(value, wire_name)
        # String input (multipart forms) - must be plain digits with optional leading minus
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{wire_name} must be an integer")
            if "e" in stripped.lower():
                raise ValidationError(f"{wire_name} must be a plain integer (scientific notation not allowed)")
            if "." in stripped:
                raise ValidationError(f"{wire_name} must be an integer (no decimals)")
            try:
                number = int(stripped)
            except ValueError:
                raise ValidationError(f"{wire_name} must be an integer")
            return _bounded_int(number, wire_name)
        if isinstance(value, float):
            raise ValidationError(f"{wire_name} must be an integer, not a decimal")
        raise ValidationError(f"{wire_name} must be an integer")

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{wire_name} must be true or false")

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        if isinstance(value, (dict, list)):
            raise ValidationError(f"{wire_name} must be a string")
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON (or form data) against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict keyed by model column name.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(
            f for f in policy.required_on_create
            if payload.get(f) is None or (isinstance(payload.get(f), str) and not payload[f].strip())
        )
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if policy.column_for(k) not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        key = policy.column_for(k)
        col = cols[key]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[key] = None
            continue

        val = _coerce_value(col, raw, k)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[key] = val

    return patch


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    if patch.get("price") is not None:
        price = patch["price"]
        if price < 0:
            raise ValidationError("price must be >= 0")
        if price > MAX_PRICE:
            raise ValidationError(f"price cannot exceed {MAX_PRICE}")

    if patch.get("stock") is not None and patch["stock"] < 0:
        raise ValidationError("stock must be >= 0")

    if "status" in patch:
        if patch["status"] not in PRODUCT_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(sorted(PRODUCT_STATUSES))}")


def enforce_rules_review(patch: dict) -> None:
    if "rating" in patch:
        rating = patch["rating"]
        if rating is None or not 1 <= rating <= 5:
            raise ValidationError("rating must be an integer between 1 and 5")


def enforce_rules_user(patch: dict) -> None:
    if "email" in patch:
        email = (patch["email"] or "").lower()
        if not EMAIL_RE.match(email):
            raise ValidationError("Please provide a valid email address")
        patch["email"] = email

    if "role" in patch:
        if patch["role"] not in USER_ROLES:
            raise ValidationError(f"role must be one of: {', '.join(sorted(USER_ROLES))}")


def parse_positive_int(value: Any, name: str) -> int:
    """Strict positive integer for ids and quantities in nested payloads."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{name} must be a positive integer")
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if not isinstance(value, int) or value <= 0:
        raise ValidationError(f"{name} must be a positive integer")
    return _bounded_int(value, name)
