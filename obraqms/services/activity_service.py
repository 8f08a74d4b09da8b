"""Activity log service — who did what, in which project.

Writes are best-effort: with no acting user the entry is skipped, and the
log never blocks the business operation that triggered it. Uses flush()
so callers keep transaction control.
"""

import json
import logging
from datetime import datetime

from sqlalchemy import or_

from obraqms.core.exceptions import ValidationError
from obraqms.core.identity import get_acting_user
from obraqms.models import db
from obraqms.models.activity import ACTIVITY_TYPES, ActivityLog

logger = logging.getLogger(__name__)


def log_activity(
    activity_type: str,
    description: str,
    *,
    project_id: str | None = None,
    project_name: str | None = None,
    details: dict | None = None,
) -> ActivityLog | None:
    """Append a single activity row for the acting user.

    Returns the (flushed) ActivityLog instance, or None when skipped.
    """
    if activity_type not in ACTIVITY_TYPES:
        raise ValidationError(f"Unknown activity type: {activity_type!r}")

    user = get_acting_user()
    if user is None:
        logger.debug("Activity %s skipped: no acting user", activity_type)
        return None

    log = ActivityLog(
        type=activity_type,
        user_id=user.id,
        user_name=user.name,
        user_role=user.role,
        project_id=str(project_id) if project_id is not None else None,
        project_name=project_name,
        description=description,
        details_json=json.dumps(details or {}, default=str),
    )
    db.session.add(log)
    db.session.flush()
    return log


def activity_query(
    *,
    user_id: str | None = None,
    project_id: str | None = None,
    activity_type: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    search: str | None = None,
):
    """Build the filtered activity query, newest first."""
    q = ActivityLog.query

    if user_id:
        q = q.filter(ActivityLog.user_id == user_id)
    if project_id:
        q = q.filter(ActivityLog.project_id == str(project_id))
    if activity_type:
        q = q.filter(ActivityLog.type == activity_type)
    if start is not None:
        q = q.filter(ActivityLog.timestamp >= start)
    if end is not None:
        q = q.filter(ActivityLog.timestamp <= end)
    if search:
        pattern = f"%{search.strip()}%"
        q = q.filter(or_(
            ActivityLog.description.ilike(pattern),
            ActivityLog.user_name.ilike(pattern),
            ActivityLog.project_name.ilike(pattern),
        ))

    return q.order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc())


def list_activity(**filters) -> list[ActivityLog]:
    return activity_query(**filters).all()
