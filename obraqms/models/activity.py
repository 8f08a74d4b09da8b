"""
Obra QMS
Activity log model.

Models:
    - ActivityLog: append-only trail of user activity across projects
      (logins, record submissions, record updates, access changes).
"""

import json
from datetime import datetime, timezone

from obraqms.models import db

# ── Constants ────────────────────────────────────────────────────────────────

_RECORD_KEYS = ("document", "test", "material", "nc", "checklist", "rfi")

ACTIVITY_TYPES = {
    "login",
    "logout",
    "project_create",
    "project_update",
    "document_upload",
    "document_view",
    "profile_update",
    "access_granted",
    "access_revoked",
    "relationship_add",
    "relationship_remove",
} | {f"{key}_{verb}" for key in _RECORD_KEYS for verb in ("create", "update", "delete")}


class ActivityLog(db.Model):
    """One row per user action. ``details_json`` carries free-form context."""

    __tablename__ = "activity_logs"
    __table_args__ = (
        db.Index("idx_activity_user", "user_id"),
        db.Index("idx_activity_project", "project_id"),
        db.Index("idx_activity_type", "type"),
        db.Index("idx_activity_ts", "timestamp"),
    )

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(40), nullable=False)
    user_id = db.Column(db.String(64), nullable=False)
    user_name = db.Column(db.String(150), nullable=False)
    user_role = db.Column(db.String(20), nullable=False, default="viewer")
    project_id = db.Column(db.String(64), nullable=True)
    project_name = db.Column(db.String(200), nullable=True)
    description = db.Column(db.Text, nullable=False, default="")
    details_json = db.Column(db.Text, default="{}")
    timestamp = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    @property
    def details(self) -> dict:
        try:
            return json.loads(self.details_json or "{}")
        except (json.JSONDecodeError, TypeError):
            return {}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "userId": self.user_id,
            "userName": self.user_name,
            "userRole": self.user_role,
            "projectId": self.project_id,
            "projectName": self.project_name,
            "description": self.description,
            "details": self.details,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }

    def __repr__(self):
        return f"<ActivityLog {self.id}: {self.type} by {self.user_id}>"
