"""
Obra QMS
Relationship blueprint — link / unlink records and list related items.

Endpoints:
    POST   /api/v1/relationships                          — link two records
    DELETE /api/v1/relationships/<id>                     — unlink (idempotent)
    GET    /api/v1/items/<type>/<item_id>/related         — [{type, id}, ...]
    GET    /api/v1/items/<type>/<item_id>/related/grouped — {type: [ids]}
    GET    /api/v1/items/<type>/<item_id>/relationships   — full rows

Service errors (NotAuthenticated, BackingStoreUnavailable, Validation,
Conflict) are mapped by the app-level handlers in create_app.
"""

import logging

from flask import Blueprint, jsonify, request

from obraqms.auth import require_role
from obraqms.services import relationship_service
from obraqms.utils.errors import E, api_error
from obraqms.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

relationship_bp = Blueprint("relationships", __name__, url_prefix="/api/v1")

_REQUIRED = ("sourceType", "sourceId", "targetType", "targetId")


@relationship_bp.route("/relationships", methods=["POST"])
@require_role("fiscal")
def create_relationship():
    data = request.get_json(silent=True) or {}
    missing = [f for f in _REQUIRED if not data.get(f)]
    if missing:
        return api_error(
            E.VALIDATION_REQUIRED,
            f"Missing required field(s): {', '.join(missing)}",
            details={f: "required" for f in missing},
        )

    rel = relationship_service.add_relationship(
        data["sourceType"], data["sourceId"],
        data["targetType"], data["targetId"],
        data.get("projectId"),
    )
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(rel.to_dict()), 201


@relationship_bp.route("/relationships/<relationship_id>", methods=["DELETE"])
@require_role("fiscal")
def delete_relationship(relationship_id):
    removed = relationship_service.remove_relationship(relationship_id)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"removed": removed}), 200


@relationship_bp.route("/items/<item_type>/<item_id>/related", methods=["GET"])
@require_role("viewer")
def list_related_items(item_type, item_id):
    items = relationship_service.get_related_items(item_type, item_id)
    return jsonify({"items": items, "total": len(items)})


@relationship_bp.route("/items/<item_type>/<item_id>/related/grouped", methods=["GET"])
@require_role("viewer")
def list_related_items_grouped(item_type, item_id):
    return jsonify(relationship_service.get_related_items_grouped(item_type, item_id))


@relationship_bp.route("/items/<item_type>/<item_id>/relationships", methods=["GET"])
@require_role("viewer")
def list_relationships(item_type, item_id):
    rows = relationship_service.get_relationships(item_type, item_id)
    return jsonify({"items": [r.to_dict() for r in rows], "total": len(rows)})
