"""
Obra QMS
Flask Application Factory.

Usage:
    from obraqms import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

from obraqms.auth import init_auth
from obraqms.config import config
from obraqms.core.exceptions import (
    BackingStoreUnavailableError,
    ConflictError,
    NotAuthenticatedError,
    NotFoundError,
    ValidationError,
)
from obraqms.middleware.jwt_auth import init_jwt_middleware
from obraqms.middleware.logging_config import configure_logging
from obraqms.middleware.rate_limiter import init_rate_limits
from obraqms.middleware.timing import init_request_timing
from obraqms.models import db
from obraqms.utils.errors import E, api_error

logger = logging.getLogger(__name__)

migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # no global limit, applied per blueprint
)


def _rollback_quietly():
    try:
        db.session.rollback()
    except Exception as exc:
        logger.warning("Session rollback failed: %s", exc)


def register_error_handlers(app):
    """Map the core exception hierarchy to JSON responses, once for all blueprints."""

    @app.errorhandler(NotAuthenticatedError)
    def _not_authenticated(error):
        _rollback_quietly()
        return api_error(E.NOT_AUTHENTICATED, str(error))

    @app.errorhandler(BackingStoreUnavailableError)
    def _store_unavailable(error):
        _rollback_quietly()
        return api_error(
            E.STORE_UNAVAILABLE,
            "Backing store temporarily unavailable, try again",
            details={"transient": error.transient},
        )

    @app.errorhandler(ValidationError)
    def _validation(error):
        _rollback_quietly()
        return api_error(E.VALIDATION_INVALID, str(error), details=error.details)

    @app.errorhandler(NotFoundError)
    def _not_found(error):
        _rollback_quietly()
        return api_error(E.NOT_FOUND, str(error))

    @app.errorhandler(ConflictError)
    def _conflict(error):
        _rollback_quietly()
        return api_error(E.CONFLICT_DUPLICATE, str(error))

    @app.errorhandler(404)
    def _route_not_found(e):
        return api_error(E.NOT_FOUND, "Not found")

    @app.errorhandler(405)
    def _method_not_allowed(e):
        return api_error(E.VALIDATION_INVALID, "Method not allowed", status=405)

    @app.errorhandler(429)
    def _rate_limited(e):
        return {"error": "Too many requests", "retry_after": e.description}, 429

    @app.errorhandler(500)
    def _server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        _rollback_quietly()
        return api_error(E.INTERNAL, "Internal server error")


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    config_cls = config[config_name]
    # Instantiated in production so its required-env checks run
    app.config.from_object(config_cls() if config_name == "production" else config_cls)

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    if not app.config.get("TESTING"):
        os.makedirs(app.instance_path, exist_ok=True)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Identity (JWT → g.acting_user), CSRF guard, request timing ───────
    init_jwt_middleware(app)
    init_auth(app)
    init_request_timing(app)

    # ── Import all models so create_all / Alembic see them ───────────────
    from obraqms.models import activity as _activity_models          # noqa: F401
    from obraqms.models import history as _history_models            # noqa: F401
    from obraqms.models import record as _record_models              # noqa: F401
    from obraqms.models import relationship as _relationship_models  # noqa: F401

    with app.app_context():
        try:
            db.create_all()
            app.logger.info("db.create_all() completed successfully")
        except Exception as e:
            app.logger.warning("db.create_all() failed: %s", e)

    # ── Blueprints ───────────────────────────────────────────────────────
    from obraqms.blueprints.activity_bp import activity_bp
    from obraqms.blueprints.health_bp import health_bp
    from obraqms.blueprints.history_bp import history_bp
    from obraqms.blueprints.record_bp import record_bp
    from obraqms.blueprints.relationship_bp import relationship_bp

    app.register_blueprint(relationship_bp)
    app.register_blueprint(history_bp)
    app.register_blueprint(record_bp)
    app.register_blueprint(activity_bp)
    app.register_blueprint(health_bp)

    register_error_handlers(app)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("seed-code-sequences")
    def seed_code_sequences_cmd():
        """Create the per-type code counter rows (NC, ENS, MAT, DOC, RFI, CKL)."""
        from obraqms.services.code_generator import seed_sequences
        count = seed_sequences()
        db.session.commit()
        logger.info("Seeded %s new code sequence rows.", count)

    @app.route("/api/v1/health")
    def health():
        return {"status": "ok", "app": "Obra QMS"}

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app
