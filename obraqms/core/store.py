"""
Backing-store guards.

``require_store()`` fails fast with ``BackingStoreUnavailableError`` when
the SQLAlchemy extension is not bound to the current app. ``store_guard``
converts connection-level DBAPI failures into the same error, flagged as
transient, so callers never see raw driver exceptions.
"""

import logging
from contextlib import contextmanager

from flask import current_app
from sqlalchemy.exc import InterfaceError, OperationalError

from obraqms.core.exceptions import BackingStoreUnavailableError

logger = logging.getLogger(__name__)


def require_store() -> None:
    try:
        extensions = current_app.extensions
    except RuntimeError as exc:
        raise BackingStoreUnavailableError("No application context; backing store unavailable") from exc
    if "sqlalchemy" not in extensions:
        raise BackingStoreUnavailableError("Database is not configured")


@contextmanager
def store_guard(operation: str):
    """Run a block of store work, translating connection failures."""
    require_store()
    try:
        yield
    except (OperationalError, InterfaceError) as exc:
        logger.error("Backing store failure during %s: %s", operation, exc.orig)
        raise BackingStoreUnavailableError(
            f"Backing store unavailable during {operation}", transient=True,
        ) from exc
