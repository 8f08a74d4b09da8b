"""
Obra QMS
Relationship model.

One row per link. The row is directed (source → target) but every query
reads it from both ends, so a link is never visible from one side only.
``endpoint_key`` is the same for both directions of a pair and is unique,
so a reversed duplicate is rejected by the database as well.
"""

import json
from datetime import datetime, timezone

from obraqms.models import db


def _utcnow():
    return datetime.now(timezone.utc)


class Relationship(db.Model):
    __tablename__ = "relationships"
    __table_args__ = (
        db.Index("idx_relationships_source", "source_type", "source_id"),
        db.Index("idx_relationships_target", "target_type", "target_id"),
        db.UniqueConstraint("endpoint_key", name="uq_relationships_endpoints"),
    )

    id = db.Column(db.Integer, primary_key=True)
    source_type = db.Column(db.String(20), nullable=False)
    source_id = db.Column(db.String(64), nullable=False)
    target_type = db.Column(db.String(20), nullable=False)
    target_id = db.Column(db.String(64), nullable=False)
    endpoint_key = db.Column(db.String(200), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    created_by = db.Column(db.String(64), nullable=False)
    project_id = db.Column(db.String(64), nullable=True, index=True)

    @staticmethod
    def endpoint_key_for(a_type: str, a_id: str, b_type: str, b_id: str) -> str:
        """Order-independent key for the pair ``(a_type, a_id)``, ``(b_type, b_id)``."""
        return json.dumps(sorted([[a_type, a_id], [b_type, b_id]]), separators=(",", ":"), ensure_ascii=False)

    def other_end(self, item_type: str, item_id: str) -> dict:
        """Return the endpoint opposite to ``(item_type, item_id)``."""
        if self.source_type == item_type and self.source_id == item_id:
            return {"type": self.target_type, "id": self.target_id}
        return {"type": self.source_type, "id": self.source_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sourceType": self.source_type,
            "sourceId": self.source_id,
            "targetType": self.target_type,
            "targetId": self.target_id,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "createdBy": self.created_by,
            "projectId": self.project_id,
        }

    def __repr__(self):
        return (
            f"<Relationship {self.id}: {self.source_type}/{self.source_id}"
            f" - {self.target_type}/{self.target_id}>"
        )
