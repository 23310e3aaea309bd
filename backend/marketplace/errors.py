# Overview: Domain error taxonomy and the single boundary translator that turns
# errors into the JSON response envelope.

"""
Error taxonomy

Services raise AppError subclasses; routes never build error responses
themselves. register_error_handlers() installs one translator per error
family on the Flask app:

- AppError        -> {"status": "fail", "message": ...} with the error's code
- HTTPException   -> same envelope (unknown route, 405, 413 upload too large)
- anything else   -> 500 {"status": "error", ...}, logged with traceback

The session is always rolled back before the response is built, so a
failed workflow never leaves pending writes behind for teardown.
"""

from __future__ import annotations

from flask import current_app, jsonify, request
from werkzeug.exceptions import HTTPException

from .extensions import db


class AppError(Exception):
    """Base class for errors that map to a client-facing HTTP status."""

    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    @property
    def status(self) -> str:
        return "fail" if 400 <= self.status_code < 500 else "error"


class ValidationError(AppError):
    """Malformed or missing fields, invalid enum values."""
    status_code = 400


class ConflictError(AppError):
    """Duplicate unique field (category name, email) or duplicate review."""
    status_code = 400


class InsufficientStockError(AppError):
    """Requested quantity exceeds the product's current stock."""
    status_code = 400


class OrderStateError(AppError):
    """Order status does not allow the requested transition."""
    status_code = 400


class UnauthenticatedError(AppError):
    status_code = 401


class ForbiddenError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


def _envelope(status: str, message: str, details: dict | None = None) -> dict:
    body = {"status": status, "message": message}
    if details:
        body["details"] = details
    return body


def register_error_handlers(app) -> None:
    @app.errorhandler(AppError)
    def handle_app_error(err: AppError):
        db.session.rollback()
        return jsonify(_envelope(err.status, err.message, err.details)), err.status_code

    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        db.session.rollback()
        status = "fail" if err.code and err.code < 500 else "error"
        return jsonify(_envelope(status, err.description or err.name)), err.code

    @app.errorhandler(Exception)
    def handle_unexpected(err: Exception):
        db.session.rollback()
        current_app.logger.exception("Unhandled error on %s %s", request.method, request.path)

        body = _envelope("error", "Something went wrong. Please try again later.")
        if current_app.config.get("APP_ENV") != "production":
            body["error"] = {"type": type(err).__name__, "detail": str(err)}
        return jsonify(body), 500
