"""
JWT Auth Middleware — parses the bearer token and sets ``g.acting_user``.

A missing, expired or invalid token leaves ``g.acting_user = None``; the
request continues and the role guard or the service layer decides whether
an acting user is needed.
"""

import logging

import jwt as pyjwt
from flask import g, request

from obraqms.core.identity import ActingUser
from obraqms.services.jwt_service import decode_access_token

logger = logging.getLogger(__name__)

# Paths that skip JWT parsing entirely
JWT_SKIP_PREFIXES = (
    "/api/v1/health",
    "/static/",
)


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.acting_user = None

        path = request.path
        if not path.startswith("/api/v1/"):
            return
        for prefix in JWT_SKIP_PREFIXES:
            if path.startswith(prefix):
                return

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return

        token = auth_header[7:]

        try:
            payload = decode_access_token(token)
        except pyjwt.ExpiredSignatureError:
            logger.info("Expired token on %s", path)
            return
        except pyjwt.InvalidTokenError as exc:
            logger.warning("Invalid token on %s: %s", path, exc)
            return

        g.acting_user = ActingUser(
            id=str(payload["sub"]),
            name=payload.get("name") or str(payload["sub"]),
            role=payload.get("role", "viewer"),
        )
