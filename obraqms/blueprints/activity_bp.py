"""
Obra QMS
Activity log blueprint.

Endpoints:
    GET  /api/v1/activity  — list / filter activity logs
"""

from flask import Blueprint, jsonify, request

from obraqms.auth import require_role
from obraqms.blueprints import paginate_query
from obraqms.services import activity_service
from obraqms.utils.helpers import parse_datetime

activity_bp = Blueprint("activity", __name__, url_prefix="/api/v1")


@activity_bp.route("/activity", methods=["GET"])
@require_role("admin")
def list_activity():
    """
    Return paginated activity logs, newest first.

    Query params:
        userId     — filter by acting user
        projectId  — filter by project
        type       — filter by activity type (exact)
        startDate  — ISO date/datetime, inclusive
        endDate    — ISO date/datetime, inclusive (a bare date covers the whole day)
        search     — case-insensitive match on description, user or project name
        limit, offset
    """
    q = activity_service.activity_query(
        user_id=request.args.get("userId"),
        project_id=request.args.get("projectId"),
        activity_type=request.args.get("type"),
        start=parse_datetime(request.args.get("startDate")),
        end=parse_datetime(request.args.get("endDate"), end_of_day=True),
        search=request.args.get("search"),
    )
    logs, total = paginate_query(q, default_limit=50, max_limit=200)
    return jsonify({"items": [log.to_dict() for log in logs], "total": total})
