"""
Per-blueprint rate limits (Flask-Limiter).

The Limiter is created in ``obraqms/__init__.py`` without default limits;
limits are attached here once the blueprints are registered:

    relationships, records, history  → RELATIONSHIP_RATE_LIMIT
    activity                         → ACTIVITY_RATE_LIMIT
    health                           → exempt
"""

import logging

logger = logging.getLogger(__name__)

WRITE_BLUEPRINTS = ("relationships", "records", "history")
READ_BLUEPRINTS = ("activity",)
EXEMPT_BLUEPRINTS = ("health",)


def _apply(app, limiter, names, limit):
    applied = []
    for name in names:
        bp = app.blueprints.get(name)
        if bp is not None:
            limiter.limit(limit)(bp)
            applied.append(name)
    return applied


def init_rate_limits(app, limiter):
    """Attach limits to registered blueprints; no-op when TESTING."""
    if app.config.get("TESTING"):
        logger.debug("Rate limiting disabled under TESTING")
        return

    write_limit = app.config.get("RELATIONSHIP_RATE_LIMIT", "60/minute")
    read_limit = app.config.get("ACTIVITY_RATE_LIMIT", "200/minute")

    limited = _apply(app, limiter, WRITE_BLUEPRINTS, write_limit)
    limited += _apply(app, limiter, READ_BLUEPRINTS, read_limit)
    for name in EXEMPT_BLUEPRINTS:
        if name in app.blueprints:
            limiter.exempt(app.blueprints[name])

    logger.info("Rate limits: %s at %s, activity at %s", ", ".join(limited), write_limit, read_limit)
