"""
Obra QMS
History domain model.

Models:
    - HistoryEntry: immutable, append-only change set for one record.
    - Comment: free-text note on a record, shown in the same timeline.

Neither table has an update or delete path in the service layer.
"""

import json
from datetime import datetime, timezone

from obraqms.models import db


def _utcnow():
    return datetime.now(timezone.utc)


HISTORY_ACTIONS = ("create", "update", "delete")


class HistoryEntry(db.Model):
    """
    One row per state-changing operation on a record.

    ``changes_json`` carries a list of ``{field, oldValue?, newValue}``.
    """

    __tablename__ = "history_entries"
    __table_args__ = (
        db.Index("idx_history_item", "item_type", "item_id"),
        db.Index("idx_history_ts", "timestamp"),
    )

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.String(64), nullable=False)
    item_type = db.Column(db.String(20), nullable=False)
    user_id = db.Column(db.String(64), nullable=False)
    user_name = db.Column(db.String(150), nullable=False)
    action = db.Column(db.String(10), nullable=False, comment="create | update | delete")
    changes_json = db.Column(db.Text, nullable=False, default="[]")
    timestamp = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    @property
    def changes(self) -> list:
        try:
            return json.loads(self.changes_json or "[]")
        except (json.JSONDecodeError, TypeError):
            return []

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "itemId": self.item_id,
            "itemType": self.item_type,
            "userId": self.user_id,
            "userName": self.user_name,
            "action": self.action,
            "changes": self.changes,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }

    def __repr__(self):
        return f"<HistoryEntry {self.id}: {self.action} on {self.item_type}/{self.item_id}>"


class Comment(db.Model):
    __tablename__ = "comments"
    __table_args__ = (
        db.Index("idx_comments_item", "item_type", "item_id"),
    )

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.String(64), nullable=False)
    item_type = db.Column(db.String(20), nullable=False)
    user_id = db.Column(db.String(64), nullable=False)
    user_name = db.Column(db.String(150), nullable=False)
    content = db.Column(db.Text, nullable=False)
    timestamp = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "itemId": self.item_id,
            "itemType": self.item_type,
            "userId": self.user_id,
            "userName": self.user_name,
            "content": self.content,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }

    def __repr__(self):
        return f"<Comment {self.id} on {self.item_type}/{self.item_id}>"
