"""
JWT Service — access-token generation and verification.

Access token: 15 minutes (configurable via JWT_ACCESS_EXPIRES)
Algorithm:    HS256

Token payload:
{
    "sub": <user_id>,
    "name": <display name>,
    "role": "admin" | "fiscal" | "viewer",
    "type": "access",
    "iat": <issued_at>,
    "exp": <expires_at>,
    "jti": <unique_id>
}

Login itself is handled by the identity provider; this service only mints
tokens for it (and for tests) and verifies them on every request.
"""

import uuid
from datetime import datetime, timedelta, timezone

import jwt
from flask import current_app

DEFAULT_ACCESS_EXPIRES = 900       # 15 minutes
ALGORITHM = "HS256"


def _get_secret():
    return current_app.config.get("JWT_SECRET_KEY") or current_app.config["SECRET_KEY"]


def _get_access_expires():
    return current_app.config.get("JWT_ACCESS_EXPIRES", DEFAULT_ACCESS_EXPIRES)


def generate_access_token(user_id: str, name: str, role: str = "viewer") -> str:
    """Generate a short-lived access token for the acting user."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "name": name,
        "role": role,
        "type": "access",
        "iat": now,
        "exp": now + timedelta(seconds=_get_access_expires()),
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(payload, _get_secret(), algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """
    Decode and verify an access token.

    Raises:
        jwt.ExpiredSignatureError: token has expired
        jwt.InvalidTokenError: token is malformed or not an access token
    """
    payload = jwt.decode(token, _get_secret(), algorithms=[ALGORITHM])
    if payload.get("type") != "access":
        raise jwt.InvalidTokenError("Not an access token")
    if not payload.get("sub"):
        raise jwt.InvalidTokenError("Token has no subject")
    return payload
