"""
Obra QMS
Relationship graph — typed links between records of any type.

A link is stored once, as a directed row (source → target), and queried
from both ends:

    get_related_items(type, id)
        = targets of rows where (type, id) is the source
        + sources of rows where (type, id) is the target

Every add/remove writes an ``update`` history entry (field
``relationships``) on both endpoints, inside the same savepoint as the
row itself.

Transaction policy: flush() only; the route handler commits.
"""

import logging

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError

from obraqms.core.exceptions import ConflictError, ValidationError
from obraqms.core.identity import require_acting_user
from obraqms.core.store import require_store, store_guard
from obraqms.models import db
from obraqms.models.record import normalize_record_type
from obraqms.models.relationship import Relationship
from obraqms.services import activity_service, history_service

logger = logging.getLogger(__name__)


def _endpoint_filter(item_type: str, item_id: str, side: str):
    if side == "source":
        return and_(Relationship.source_type == item_type, Relationship.source_id == item_id)
    return and_(Relationship.target_type == item_type, Relationship.target_id == item_id)


def _find_link(a_type, a_id, b_type, b_id) -> Relationship | None:
    """Existing link between the two references, in either direction."""
    return Relationship.query.filter(or_(
        and_(_endpoint_filter(a_type, a_id, "source"), _endpoint_filter(b_type, b_id, "target")),
        and_(_endpoint_filter(b_type, b_id, "source"), _endpoint_filter(a_type, a_id, "target")),
    )).first()


def _log_on_both_ends(rel: Relationship, verb: str) -> None:
    history_service.add_history_item(
        rel.source_id, rel.source_type, "update",
        [{"field": "relationships", "newValue": f"{verb} relationship with {rel.target_type} {rel.target_id}"}],
    )
    history_service.add_history_item(
        rel.target_id, rel.target_type, "update",
        [{"field": "relationships", "newValue": f"{verb} relationship with {rel.source_type} {rel.source_id}"}],
    )


# ── Writers ──────────────────────────────────────────────────────────────


def add_relationship(source_type, source_id, target_type, target_id, project_id=None) -> Relationship:
    """Link two records and record the link in both histories.

    Raises:
        NotAuthenticatedError: no acting user (nothing is written).
        BackingStoreUnavailableError: database not configured or unreachable.
        ValidationError: unknown type, or a record linked to itself.
        ConflictError: the two records are already linked (either direction).
    """
    user = require_acting_user()
    require_store()

    source_type = normalize_record_type(source_type)
    target_type = normalize_record_type(target_type)
    source_id, target_id = str(source_id), str(target_id)

    if (source_type, source_id) == (target_type, target_id):
        raise ValidationError("A record cannot be related to itself")

    with store_guard("add_relationship"):
        if _find_link(source_type, source_id, target_type, target_id):
            raise ConflictError(
                "Relationship", "endpoints",
                f"{source_type}/{source_id} - {target_type}/{target_id}",
            )
        try:
            with db.session.begin_nested():
                rel = Relationship(
                    source_type=source_type,
                    source_id=source_id,
                    target_type=target_type,
                    target_id=target_id,
                    endpoint_key=Relationship.endpoint_key_for(source_type, source_id, target_type, target_id),
                    created_by=user.id,
                    project_id=str(project_id) if project_id is not None else None,
                )
                db.session.add(rel)
                db.session.flush()
                _log_on_both_ends(rel, "Added")
        except IntegrityError as exc:
            raise ConflictError(
                "Relationship", "endpoints",
                f"{source_type}/{source_id} - {target_type}/{target_id}",
            ) from exc

    activity_service.log_activity(
        "relationship_add",
        f"Relacionamento {source_type} {source_id} ↔ {target_type} {target_id}",
        project_id=rel.project_id,
        details={"relationship_id": rel.id},
    )
    logger.info(
        "Relationship %s created: %s/%s -> %s/%s by %s",
        rel.id, source_type, source_id, target_type, target_id, user.id,
    )
    return rel


def remove_relationship(relationship_id) -> bool:
    """Hard-delete a link by id.

    Returns True when a row was removed, False when the id does not exist
    (repeat calls are no-ops, never errors).
    """
    require_acting_user()
    require_store()

    try:
        pk = int(relationship_id)
    except (TypeError, ValueError):
        return False

    with store_guard("remove_relationship"):
        rel = db.session.get(Relationship, pk)
        if rel is None:
            logger.debug("Relationship %s already absent", relationship_id)
            return False
        summary = rel.to_dict()
        with db.session.begin_nested():
            _log_on_both_ends(rel, "Removed")
            db.session.delete(rel)
            db.session.flush()

    activity_service.log_activity(
        "relationship_remove",
        "Relacionamento removido {sourceType} {sourceId} ↔ {targetType} {targetId}".format(**summary),
        project_id=summary["projectId"],
        details={"relationship_id": pk},
    )
    logger.info("Relationship %s removed", pk)
    return True


# ── Queries ──────────────────────────────────────────────────────────────


def get_related_items(item_type, item_id) -> list[dict]:
    """Every record linked to ``(item_type, item_id)``, from either side.

    Outgoing links come first, then incoming; each side in creation order.
    """
    item_type = normalize_record_type(item_type)
    item_id = str(item_id)

    with store_guard("get_related_items"):
        outgoing = (
            db.session.query(Relationship.target_type, Relationship.target_id)
            .filter(_endpoint_filter(item_type, item_id, "source"))
            .order_by(Relationship.created_at, Relationship.id)
            .all()
        )
        incoming = (
            db.session.query(Relationship.source_type, Relationship.source_id)
            .filter(_endpoint_filter(item_type, item_id, "target"))
            .order_by(Relationship.created_at, Relationship.id)
            .all()
        )

    return (
        [{"type": t, "id": i} for t, i in outgoing]
        + [{"type": t, "id": i} for t, i in incoming]
    )


def get_relationships(item_type, item_id) -> list[Relationship]:
    """Full relationship rows touching ``(item_type, item_id)``."""
    item_type = normalize_record_type(item_type)
    item_id = str(item_id)

    with store_guard("get_relationships"):
        return (
            Relationship.query
            .filter(or_(
                _endpoint_filter(item_type, item_id, "source"),
                _endpoint_filter(item_type, item_id, "target"),
            ))
            .order_by(Relationship.created_at, Relationship.id)
            .all()
        )


def get_related_items_grouped(item_type, item_id) -> dict[str, list[str]]:
    """Related ids bucketed by record type, for the related-items panel."""
    grouped: dict[str, list[str]] = {}
    for item in get_related_items(item_type, item_id):
        grouped.setdefault(item["type"], []).append(item["id"])
    return grouped
