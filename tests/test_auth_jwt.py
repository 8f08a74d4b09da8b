"""
Identity tests — JWT service, bearer middleware, role hierarchy, health.
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from obraqms.core.exceptions import NotAuthenticatedError
from obraqms.core.identity import ActingUser, acting_as, get_acting_user, require_acting_user
from obraqms.services.jwt_service import ALGORITHM, decode_access_token, generate_access_token


# ═════════════════════════════════════════════════════════════════════════════
# JWT service
# ═════════════════════════════════════════════════════════════════════════════


class TestJWTService:
    def test_round_trip_claims(self):
        payload = decode_access_token(generate_access_token("u-1", "João Silva", "fiscal"))
        assert payload["sub"] == "u-1"
        assert payload["name"] == "João Silva"
        assert payload["role"] == "fiscal"
        assert payload["type"] == "access"

    def test_expired_token(self, app):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"sub": "u-1", "type": "access", "iat": now - timedelta(hours=2), "exp": now - timedelta(hours=1)},
            app.config["SECRET_KEY"], algorithm=ALGORITHM,
        )
        with pytest.raises(jwt.ExpiredSignatureError):
            decode_access_token(token)

    def test_wrong_token_type(self, app):
        token = jwt.encode({"sub": "u-1", "type": "refresh"}, app.config["SECRET_KEY"], algorithm=ALGORITHM)
        with pytest.raises(jwt.InvalidTokenError):
            decode_access_token(token)

    def test_wrong_secret(self):
        token = jwt.encode({"sub": "u-1", "type": "access"}, "another-secret-of-sufficient-length!!", algorithm=ALGORITHM)
        with pytest.raises(jwt.InvalidTokenError):
            decode_access_token(token)


# ═════════════════════════════════════════════════════════════════════════════
# Acting-user context
# ═════════════════════════════════════════════════════════════════════════════


class TestActingUser:
    def test_no_user_by_default(self):
        assert get_acting_user() is None
        with pytest.raises(NotAuthenticatedError):
            require_acting_user()

    def test_acting_as_restores_previous(self, fiscal_user):
        with acting_as(fiscal_user):
            assert require_acting_user() == fiscal_user
        assert get_acting_user() is None

    def test_to_dict(self):
        assert ActingUser("u-1", "Ana").to_dict() == {"id": "u-1", "name": "Ana", "role": "viewer"}


# ═════════════════════════════════════════════════════════════════════════════
# Middleware + roles over HTTP
# ═════════════════════════════════════════════════════════════════════════════


class TestBearerMiddleware:
    def test_expired_bearer_is_unauthenticated(self, client, app):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"sub": "u-1", "type": "access", "role": "admin", "exp": now - timedelta(minutes=1)},
            app.config["SECRET_KEY"], algorithm=ALGORITHM,
        )
        res = client.get("/api/v1/records", headers={"Authorization": f"Bearer {token}"})
        assert res.status_code == 401

    def test_admin_inherits_lower_roles(self, client, auth_headers, admin_user):
        res = client.post("/api/v1/records/rfi", json={}, headers=auth_headers(admin_user))
        assert res.status_code == 201
        assert res.get_json()["submittedBy"] == admin_user.id

    def test_unknown_role_has_no_access(self, client, auth_headers):
        headers = auth_headers(ActingUser("u-x", "Externo", "contractor"))
        assert client.get("/api/v1/records", headers=headers).status_code == 403

    def test_response_carries_request_id(self, client, auth_headers, viewer_user):
        res = client.get("/api/v1/records", headers={**auth_headers(viewer_user), "X-Request-ID": "abc123"})
        assert res.headers["X-Request-ID"] == "abc123"
        assert "X-Request-Duration-Ms" in res.headers


class TestHealth:
    def test_health_open(self, client):
        assert client.get("/api/v1/health").get_json()["status"] == "ok"

    def test_ready(self, client):
        assert client.get("/api/v1/health/ready").status_code == 200

    def test_live_reports_sequences(self, client, auth_headers, fiscal_user):
        client.post("/api/v1/records/nc", json={}, headers=auth_headers(fiscal_user))
        data = client.get("/api/v1/health/live").get_json()
        assert data["status"] == "ok"
        assert data["checks"]["database"]["status"] == "ok"
        assert data["checks"]["code_sequences"]["nonConformity"] == 1

    def test_unknown_route_is_json_404(self, client):
        res = client.get("/api/v1/nothing-here")
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"
