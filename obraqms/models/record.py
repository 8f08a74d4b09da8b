"""
Obra QMS
Record domain model.

Models:
    - Record: generic business record (document, test, material, ...)
      with its minted code, current state and JSON payload.
    - CodeSequence: one monotonic counter row per record type.

The business fields of a record are opaque to the core; only the
``(record_type, id)`` reference, the code and the state are columns.
"""

import json
import uuid
from datetime import datetime, timezone

from obraqms.core.exceptions import ValidationError
from obraqms.models import db


def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


# ── Constants ────────────────────────────────────────────────────────────────

RECORD_TYPES = ("document", "test", "material", "nonConformity", "checklist", "rfi")

# Lower-cased spellings and UI shorthand → canonical type
RECORD_TYPE_ALIASES = {t.lower(): t for t in RECORD_TYPES} | {
    "nc": "nonConformity",
    "non_conformity": "nonConformity",
    "non-conformity": "nonConformity",
}

CODE_PREFIXES = {
    "nonConformity": "NC",
    "test": "ENS",
    "material": "MAT",
    "document": "DOC",
    "rfi": "RFI",
    "checklist": "CKL",
}

INITIAL_STATES = {
    "nonConformity": "Aberta",
    "test": "Agendado",
    "material": "Pendente",
    "document": "Rascunho",
    "rfi": "Submetido",
    "checklist": "Pendente",
}

# Key used in activity-log types: nc_create, test_update, ...
ACTIVITY_KEYS = {
    "nonConformity": "nc",
    "test": "test",
    "material": "material",
    "document": "document",
    "rfi": "rfi",
    "checklist": "checklist",
}


def normalize_record_type(value) -> str:
    """Return the canonical record type, raising ValidationError if unknown."""
    if value in RECORD_TYPES:
        return value
    canonical = RECORD_TYPE_ALIASES.get(str(value or "").strip().lower())
    if canonical is None:
        raise ValidationError(
            f"Unknown record type: {value!r}",
            details={"type": f"must be one of {', '.join(RECORD_TYPES)}"},
        )
    return canonical


class Record(db.Model):
    """Submitted business record. ``payload_json`` holds the full field set."""

    __tablename__ = "records"
    __table_args__ = (
        db.Index("idx_records_type_project", "record_type", "project_id"),
    )

    id = db.Column(db.String(64), primary_key=True, default=_uuid)
    record_type = db.Column(
        db.String(20), nullable=False,
        comment="document | test | material | nonConformity | checklist | rfi",
    )
    project_id = db.Column(db.String(64), nullable=True, index=True)
    code = db.Column(db.String(40), nullable=False, unique=True)
    state = db.Column(db.String(40), nullable=False)
    payload_json = db.Column(db.Text, nullable=False, default="{}")
    submitted_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    submitted_by = db.Column(db.String(64), nullable=False)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    @property
    def payload(self) -> dict:
        try:
            return json.loads(self.payload_json or "{}")
        except (json.JSONDecodeError, TypeError):
            return {}

    @payload.setter
    def payload(self, value: dict) -> None:
        self.payload_json = json.dumps(value or {}, default=str)

    def to_dict(self) -> dict:
        data = self.payload
        data.update({
            "id": self.id,
            "type": self.record_type,
            "projectId": self.project_id,
            "codigo": self.code,
            "estado": self.state,
            "submittedBy": self.submitted_by,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        })
        return data

    def __repr__(self):
        return f"<Record {self.code} ({self.record_type})>"


class CodeSequence(db.Model):
    """Last issued sequence number per record type. Never reset."""

    __tablename__ = "code_sequences"

    record_type = db.Column(db.String(20), primary_key=True)
    last_value = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    def to_dict(self) -> dict:
        return {
            "record_type": self.record_type,
            "last_value": self.last_value,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<CodeSequence {self.record_type}={self.last_value}>"
