"""
Shared pytest fixtures for the Obra QMS test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - fiscal_user / admin_user / viewer_user: ActingUser values
    - acting_user: sets g.acting_user to the fiscal user for service tests
    - auth_headers: factory for Bearer headers minted with the JWT service
"""

import pytest
from flask import g

from obraqms import create_app
from obraqms.core.identity import ActingUser
from obraqms.models import db as _db
from obraqms.services.jwt_service import generate_access_token


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        g.acting_user = None
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Identity fixtures ────────────────────────────────────────────────────


@pytest.fixture()
def fiscal_user():
    return ActingUser(id="u-fiscal", name="João Silva", role="fiscal")


@pytest.fixture()
def admin_user():
    return ActingUser(id="u-admin", name="Maria Santos", role="admin")


@pytest.fixture()
def viewer_user():
    return ActingUser(id="u-viewer", name="Ana Costa", role="viewer")


@pytest.fixture()
def acting_user(fiscal_user):
    """Authenticate service-level calls as the fiscal user."""
    g.acting_user = fiscal_user
    yield fiscal_user
    g.acting_user = None


@pytest.fixture()
def auth_headers():
    """Return a factory: auth_headers(user) → {"Authorization": "Bearer ..."}."""
    def _make(user):
        token = generate_access_token(user.id, user.name, user.role)
        return {"Authorization": f"Bearer {token}"}
    return _make
