"""
Obra QMS
History blueprint — audit trail, comments and the merged timeline per record.

Endpoints:
    GET  /api/v1/items/<type>/<item_id>/history   — history entries, newest first
    POST /api/v1/items/<type>/<item_id>/history   — append an entry
    GET  /api/v1/items/<type>/<item_id>/comments  — comments, newest first
    POST /api/v1/items/<type>/<item_id>/comments  — add a comment
    GET  /api/v1/items/<type>/<item_id>/timeline  — history + comments merged
"""

from flask import Blueprint, jsonify, request

from obraqms.auth import require_role
from obraqms.services import history_service
from obraqms.utils.errors import E, api_error
from obraqms.utils.helpers import db_commit_or_error

history_bp = Blueprint("history", __name__, url_prefix="/api/v1/items")


@history_bp.route("/<item_type>/<item_id>/history", methods=["GET"])
@require_role("viewer")
def list_history(item_type, item_id):
    entries = history_service.get_history(item_id, item_type)
    return jsonify({"items": [e.to_dict() for e in entries], "total": len(entries)})


@history_bp.route("/<item_type>/<item_id>/history", methods=["POST"])
@require_role("fiscal")
def create_history_entry(item_type, item_id):
    data = request.get_json(silent=True) or {}
    if not data.get("action"):
        return api_error(E.VALIDATION_REQUIRED, "action is required")
    if not isinstance(data.get("changes", []), list):
        return api_error(E.VALIDATION_INVALID, "changes must be a list", status=400)

    entry = history_service.add_history_item(item_id, item_type, data["action"], data.get("changes", []))
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(entry.to_dict()), 201


@history_bp.route("/<item_type>/<item_id>/comments", methods=["GET"])
@require_role("viewer")
def list_comments(item_type, item_id):
    comments = history_service.get_comments(item_id, item_type)
    return jsonify({"items": [c.to_dict() for c in comments], "total": len(comments)})


@history_bp.route("/<item_type>/<item_id>/comments", methods=["POST"])
@require_role("viewer")
def create_comment(item_type, item_id):
    data = request.get_json(silent=True) or {}
    if not (data.get("content") or "").strip():
        return api_error(E.VALIDATION_REQUIRED, "content is required")

    comment = history_service.add_comment(item_id, item_type, data["content"])
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(comment.to_dict()), 201


@history_bp.route("/<item_type>/<item_id>/timeline", methods=["GET"])
@require_role("viewer")
def get_timeline(item_type, item_id):
    events = history_service.get_timeline(item_id, item_type)
    return jsonify({"items": events, "total": len(events)})
