"""Record store — reads and audited mutations of submitted records.

Every mutation goes through history_service, so each state change leaves
exactly one history entry attributed to the acting user:
    update_record  → 'update' with the changed fields (old → new)
    delete_record  → 'delete'; history outlives the record

Transaction policy: flush() only; the route handler commits.
"""

import logging

from obraqms.core.exceptions import NotFoundError, ValidationError
from obraqms.core.identity import require_acting_user
from obraqms.core.store import store_guard
from obraqms.models import db
from obraqms.models.record import ACTIVITY_KEYS, Record, normalize_record_type
from obraqms.services import activity_service, history_service, relationship_service

logger = logging.getLogger(__name__)

# Minted at submission; never edited afterwards
IMMUTABLE_FIELDS = ("id", "codigo", "submittedBy", "dataSubmissao", "type", "projectId")
# Maintained by the store itself
SERVER_FIELDS = ("updatedAt",)


def _get_or_raise(record_id) -> Record:
    record = db.session.get(Record, str(record_id))
    if record is None:
        raise NotFoundError(resource="Record", resource_id=record_id)
    return record


def get_record(record_id) -> Record:
    with store_guard("get_record"):
        return _get_or_raise(record_id)


def list_records(record_type=None, project_id=None) -> list[Record]:
    with store_guard("list_records"):
        q = Record.query
        if record_type:
            q = q.filter_by(record_type=normalize_record_type(record_type))
        if project_id:
            q = q.filter_by(project_id=str(project_id))
        return q.order_by(Record.submitted_at.desc(), Record.code.desc()).all()


def update_record(record_id, changes: dict) -> Record:
    """Apply field changes and log one 'update' entry with the real diff.

    Fields whose value does not change are ignored; a call with no real
    change writes nothing.
    """
    user = require_acting_user()

    with store_guard("update_record"):
        record = _get_or_raise(record_id)
        payload = record.payload
        current = record.to_dict()

        if "estado" in (changes or {}):
            state = changes["estado"]
            if not isinstance(state, str) or not state.strip():
                raise ValidationError("estado must be a non-empty string", details={"estado": "required"})

        diff = []
        for field, new_value in (changes or {}).items():
            if field in SERVER_FIELDS:
                continue
            old_value = current.get(field)
            if field in IMMUTABLE_FIELDS:
                if new_value != old_value:
                    raise ValidationError(f"{field} cannot be changed", details={field: "immutable"})
                continue
            if old_value == new_value:
                continue
            change = {"field": field, "newValue": new_value}
            if old_value is not None:
                change["oldValue"] = old_value
            diff.append(change)
            payload[field] = new_value

        if not diff:
            return record

        with db.session.begin_nested():
            if "estado" in changes:
                record.state = changes["estado"]
            payload["estado"] = record.state
            record.payload = payload
            db.session.flush()
            history_service.add_history_item(record.id, record.record_type, "update", diff)

    activity_service.log_activity(
        f"{ACTIVITY_KEYS[record.record_type]}_update",
        f"Registo {record.code} atualizado ({', '.join(c['field'] for c in diff)})",
        project_id=record.project_id,
        details={"record_id": record.id},
    )
    logger.info("Record %s updated by %s: %d field(s)", record.code, user.id, len(diff))
    return record


def delete_record(record_id) -> None:
    """Delete a record, unlink it, and leave a 'delete' entry in its history."""
    user = require_acting_user()

    with store_guard("delete_record"):
        record = _get_or_raise(record_id)
        record_type, code, project = record.record_type, record.code, record.project_id

        links = relationship_service.get_relationships(record_type, record.id)
        with db.session.begin_nested():
            for rel in links:
                relationship_service.remove_relationship(rel.id)
            history_service.add_history_item(
                record.id, record_type, "delete",
                [{"field": "estado", "oldValue": record.state, "newValue": "Eliminado"}],
            )
            db.session.delete(record)
            db.session.flush()

    activity_service.log_activity(
        f"{ACTIVITY_KEYS[record_type]}_delete",
        f"Registo {code} eliminado",
        project_id=project,
        details={"record_id": str(record_id), "unlinked": len(links)},
    )
    logger.info("Record %s deleted by %s (%d link(s) removed)", code, user.id, len(links))
