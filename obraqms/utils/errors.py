"""JSON error bodies shared by every blueprint and app-level handler.

Body shape::

    {"error": "<message>", "code": "ERR_...", "details": {...}}

``code`` lets the client tell "log in again" (ERR_NOT_AUTHENTICATED)
apart from "try again later" (ERR_STORE_UNAVAILABLE).
"""

from __future__ import annotations

from flask import jsonify


class E:
    """Error code constants."""

    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"   # missing body field
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"     # unknown type, bad action, self-link
    NOT_AUTHENTICATED = "ERR_NOT_AUTHENTICATED"
    FORBIDDEN = "ERR_FORBIDDEN"
    NOT_FOUND = "ERR_NOT_FOUND"
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"     # link or record id already exists
    STORE_UNAVAILABLE = "ERR_STORE_UNAVAILABLE"
    DATABASE = "ERR_DATABASE"
    INTERNAL = "ERR_INTERNAL"


STATUS_BY_CODE: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 422,
    E.NOT_AUTHENTICATED: 401,
    E.FORBIDDEN: 403,
    E.NOT_FOUND: 404,
    E.CONFLICT_DUPLICATE: 409,
    E.STORE_UNAVAILABLE: 503,
    E.DATABASE: 500,
    E.INTERNAL: 500,
}


def api_error(code: str, message: str, *, status: int | None = None, details: dict | None = None):
    """Build ``(response, status)`` for *code*; *status* overrides the table (e.g. 405, 415)."""
    body: dict = {"error": message, "code": code}
    if details:
        body["details"] = details
    return jsonify(body), status or STATUS_BY_CODE.get(code, 400)
