"""Submission workflow — code, initial state and first audit entry for a new record.

Steps, all inside one savepoint (nothing is observable if any step fails):
    1. generate_code(type)            → NC-2024-003
    2. INITIAL_STATES[type]           → "Aberta"
    3. insert Record with the merged payload
    4. history 'create' entry with codigo + estado

Transaction policy: flush() only; the route handler commits.
"""

import logging

from sqlalchemy.exc import IntegrityError

from obraqms.core.exceptions import ConflictError
from obraqms.core.identity import require_acting_user
from obraqms.core.store import require_store, store_guard
from obraqms.models import db
from obraqms.models.record import ACTIVITY_KEYS, INITIAL_STATES, Record, _utcnow, _uuid, normalize_record_type
from obraqms.services import activity_service, history_service
from obraqms.services.code_generator import generate_code

logger = logging.getLogger(__name__)


def get_initial_state(record_type: str) -> str:
    return INITIAL_STATES[normalize_record_type(record_type)]


def submit_record(record_type, data, *, project_id=None) -> dict:
    """Create a record of *record_type* from *data*.

    ``data`` may carry ``id`` (kept as the record id) and ``projectId``;
    ``codigo``/``estado`` in ``data`` are always overwritten.

    Returns:
        The submitted record as a dict (payload + codigo, estado,
        dataSubmissao, submittedBy).

    Raises:
        NotAuthenticatedError, BackingStoreUnavailableError,
        ValidationError (unknown type), ConflictError (id already used).
    """
    user = require_acting_user()
    require_store()
    record_type = normalize_record_type(record_type)

    payload = dict(data or {})
    record_id = str(payload.get("id") or _uuid())
    if project_id is None:
        project_id = payload.get("projectId")

    with store_guard("submit_record"):
        if db.session.get(Record, record_id) is not None:
            raise ConflictError("Record", "id", record_id)

    try:
        with store_guard("submit_record"), db.session.begin_nested():
            code = generate_code(record_type)
            state = get_initial_state(record_type)
            submitted_at = _utcnow()

            payload.update({
                "id": record_id,
                "codigo": code,
                "estado": state,
                "dataSubmissao": submitted_at.isoformat(),
                "submittedBy": user.id,
            })
            record = Record(
                id=record_id,
                record_type=record_type,
                project_id=str(project_id) if project_id is not None else None,
                code=code,
                state=state,
                submitted_at=submitted_at,
                submitted_by=user.id,
            )
            record.payload = payload
            db.session.add(record)
            db.session.flush()

            history_service.add_history_item(
                record_id, record_type, "create",
                [{"field": "codigo", "newValue": code}, {"field": "estado", "newValue": state}],
            )
    except IntegrityError as exc:
        logger.warning("Submission of %s rejected: %s", record_type, exc.orig)
        raise ConflictError("Record", "id", record_id) from exc

    activity_service.log_activity(
        f"{ACTIVITY_KEYS[record_type]}_create",
        f"Registo {code} submetido",
        project_id=record.project_id,
        details={"record_id": record_id, "codigo": code},
    )
    logger.info("Record %s submitted as %s by %s", record_id, code, user.id)

    return record.to_dict()
