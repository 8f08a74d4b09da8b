"""
Obra QMS
Record blueprint — submission workflow and audited record mutations.

Endpoints:
    POST   /api/v1/records/<type>      — submit a new record (code + state + history)
    GET    /api/v1/records             — list (?type=, ?projectId=)
    GET    /api/v1/records/<id>        — single record
    PATCH  /api/v1/records/<id>        — update fields (logged as 'update')
    DELETE /api/v1/records/<id>        — delete (logged as 'delete')
    GET    /api/v1/records/initial-state/<type>
"""

from flask import Blueprint, jsonify, request

from obraqms.auth import require_role
from obraqms.services import record_service, submission_service
from obraqms.utils.errors import E, api_error
from obraqms.utils.helpers import db_commit_or_error

record_bp = Blueprint("records", __name__, url_prefix="/api/v1/records")


@record_bp.route("/<record_type>", methods=["POST"])
@require_role("fiscal")
def submit_record(record_type):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return api_error(E.VALIDATION_REQUIRED, "JSON object body is required")

    record = submission_service.submit_record(record_type, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(record), 201


@record_bp.route("", methods=["GET"])
@require_role("viewer")
def list_records():
    records = record_service.list_records(
        record_type=request.args.get("type"),
        project_id=request.args.get("projectId"),
    )
    return jsonify({"items": [r.to_dict() for r in records], "total": len(records)})


@record_bp.route("/initial-state/<record_type>", methods=["GET"])
@require_role("viewer")
def initial_state(record_type):
    return jsonify({"type": record_type, "estado": submission_service.get_initial_state(record_type)})


@record_bp.route("/<record_id>", methods=["GET"])
@require_role("viewer")
def get_record(record_id):
    return jsonify(record_service.get_record(record_id).to_dict())


@record_bp.route("/<record_id>", methods=["PATCH"])
@require_role("fiscal")
def update_record(record_id):
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        return api_error(E.VALIDATION_REQUIRED, "At least one field to update is required")

    record = record_service.update_record(record_id, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(record.to_dict())


@record_bp.route("/<record_id>", methods=["DELETE"])
@require_role("admin")
def delete_record(record_id):
    record_service.delete_record(record_id)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"deleted": record_id})
