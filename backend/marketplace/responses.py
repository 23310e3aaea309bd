# Overview: Success envelope helpers shared by every blueprint. Errors are built in errors.py.

from flask import jsonify


def success(data: dict | None = None, status: int = 200, results: int | None = None):
    body = {"status": "success"}
    if results is not None:
        body["results"] = results
    body["data"] = data if data is not None else {}
    return jsonify(body), status


def no_content():
    """Deletions answer 204 with an empty body."""
    return "", 204
