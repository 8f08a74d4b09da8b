"""
Obra QMS
Authorization middleware.

Provides:
    - Role-based access control (RBAC) decorator over the acting user
    - CSRF mitigation for state-changing requests (JSON Content-Type)

Security model:
    - Identity comes from the JWT middleware (``g.acting_user``)
    - Reads require any authenticated role; writes require ``fiscal``;
      administrative operations require ``admin``

Role hierarchy: admin > fiscal > viewer
"""

import functools
import logging

from flask import request

from obraqms.core.identity import get_acting_user
from obraqms.utils.errors import E, api_error

logger = logging.getLogger(__name__)

# ── Roles ────────────────────────────────────────────────────────────────────

ROLES = {"admin", "fiscal", "viewer"}

ROLE_HIERARCHY = {
    "admin": {"admin", "fiscal", "viewer"},
    "fiscal": {"fiscal", "viewer"},
    "viewer": {"viewer"},
}


def require_role(minimum_role: str):
    """
    Decorator: require an acting user with at least *minimum_role*.

    Usage:
        @bp.route("/relationships", methods=["POST"])
        @require_role("fiscal")
        def create_relationship(): ...
    """
    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            user = get_acting_user()
            if user is None:
                return api_error(E.NOT_AUTHENTICATED, "Authentication required")

            allowed = ROLE_HIERARCHY.get(user.role, set())
            if minimum_role not in allowed:
                logger.warning(
                    "Access denied: role '%s' tried to access '%s'-level endpoint %s",
                    user.role, minimum_role, request.path,
                )
                return api_error(E.FORBIDDEN, "Insufficient permissions")

            return f(*args, **kwargs)
        return decorated
    return decorator


# ── CSRF protection for API ──────────────────────────────────────────────────

def _check_content_type():
    """
    For state-changing requests with a body, require
    Content-Type: application/json. HTML forms cannot send it, which makes
    this a lightweight CSRF mitigation.
    """
    if request.method in ("POST", "PUT", "PATCH", "DELETE"):
        ct = request.content_type or ""
        if "application/json" not in ct and request.content_length and request.content_length > 0:
            return api_error(
                E.VALIDATION_INVALID,
                "Content-Type must be application/json for state-changing requests",
                status=415,
            )
    return None


def init_auth(app):
    """Install the Content-Type guard on API routes."""

    @app.before_request
    def _before_request_auth():
        if not request.path.startswith("/api/v1/"):
            return None
        if request.method == "OPTIONS":
            return None
        return _check_content_type()

    logger.info("Auth middleware installed")
