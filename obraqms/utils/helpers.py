"""Shared utility functions for blueprints.

parse_datetime:      query-string timestamps → aware UTC datetimes
db_commit_or_error:  commit, mapping database failures to error responses
"""
import logging
from datetime import date, datetime, time, timezone

from obraqms.models import db
from obraqms.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def parse_datetime(value, *, end_of_day=False):
    """Parse an ISO date or datetime string to an aware UTC datetime.

    Returns None for empty/invalid input. Supports:
    - YYYY-MM-DD (start of day, or end of day with ``end_of_day=True``)
    - YYYY-MM-DDTHH:MM[:SS][+HH:MM] (naive values are taken as UTC)
    - DD.MM.YYYY
    """
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.max if end_of_day else time.min)
    else:
        text = str(value).strip()
        parsed = None
        try:
            parsed = datetime.fromisoformat(text)
            if len(text) == 10 and end_of_day:
                parsed = datetime.combine(parsed.date(), time.max)
        except ValueError:
            pass
        if parsed is None:
            try:
                day = datetime.strptime(text, "%d.%m.%Y").date()
            except ValueError:
                return None
            parsed = datetime.combine(day, time.max if end_of_day else time.min)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def db_commit_or_error():
    """Commit the current SQLAlchemy session, returning an error response on failure.

    Returns:
        None on success.
        (response, status_code) tuple on failure — ready for ``return``.

    Usage::

        err = db_commit_or_error()
        if err:
            return err

    IntegrityError   → 409 (duplicate / constraint violation)
    OperationalError → 503 (connection / lock issues, retryable)
    Other            → 500 (unexpected)
    """
    from sqlalchemy.exc import IntegrityError, OperationalError

    try:
        db.session.commit()
        return None
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Integrity error on commit: %s", exc.orig)
        return api_error(E.CONFLICT_DUPLICATE, "Duplicate or constraint violation")
    except OperationalError:
        db.session.rollback()
        logger.exception("Database operational error on commit")
        return api_error(E.STORE_UNAVAILABLE, "Backing store temporarily unavailable, try again")
    except Exception:
        db.session.rollback()
        logger.exception("Unexpected database error on commit")
        return api_error(E.DATABASE, "Database error")
