"""History ledger — append-only change sets and comments per record.

Transaction policy: writers use flush() so the entry is visible to the
same session immediately; the caller (route handler) commits.

Acting-user policy:
    HISTORY_REQUIRE_USER = True   → writes without a user raise
                                    NotAuthenticatedError (default)
    HISTORY_REQUIRE_USER = False  → writes without a user are skipped and
                                    return None

An entry is never written with made-up attribution.
"""

import json
import logging

from flask import current_app

from obraqms.core.exceptions import ValidationError
from obraqms.core.identity import get_acting_user, require_acting_user
from obraqms.core.store import store_guard
from obraqms.models import db
from obraqms.models.history import HISTORY_ACTIONS, Comment, HistoryEntry
from obraqms.models.record import normalize_record_type

logger = logging.getLogger(__name__)


def _writer():
    """Return the acting user, or None when writes should be skipped."""
    if current_app.config.get("HISTORY_REQUIRE_USER", True):
        return require_acting_user()
    user = get_acting_user()
    if user is None:
        logger.debug("History write skipped: no acting user")
    return user


def _as_text(value) -> str:
    if isinstance(value, bool):
        return "Sim" if value else "Não"
    return "" if value is None else str(value)


def _normalize_change(change) -> dict:
    if not isinstance(change, dict) or not change.get("field"):
        raise ValidationError("Each change needs a field name", details={"change": repr(change)})
    if "newValue" not in change:
        raise ValidationError(f"Change for {change['field']!r} has no newValue")
    normalized = {"field": str(change["field"])}
    if change.get("oldValue") is not None:
        normalized["oldValue"] = _as_text(change["oldValue"])
    normalized["newValue"] = _as_text(change["newValue"])
    return normalized


# ── Writers ──────────────────────────────────────────────────────────────


def add_history_item(item_id, item_type, action, changes):
    """Append one history entry for ``(item_type, item_id)``.

    Returns:
        HistoryEntry (flushed), or None when the write was skipped.
    """
    user = _writer()
    if user is None:
        return None

    item_type = normalize_record_type(item_type)
    if action not in HISTORY_ACTIONS:
        raise ValidationError(
            f"Invalid history action: {action!r}",
            details={"action": f"must be one of {', '.join(HISTORY_ACTIONS)}"},
        )
    normalized = [_normalize_change(c) for c in (changes or [])]

    with store_guard("add_history_item"):
        entry = HistoryEntry(
            item_id=str(item_id),
            item_type=item_type,
            user_id=user.id,
            user_name=user.name,
            action=action,
            changes_json=json.dumps(normalized, ensure_ascii=False),
        )
        db.session.add(entry)
        db.session.flush()

    logger.info(
        "History %s on %s/%s by %s (%d change(s))",
        action, item_type, item_id, user.id, len(normalized),
    )
    return entry


def add_comment(item_id, item_type, content):
    """Attach a comment to ``(item_type, item_id)``.

    Returns:
        Comment (flushed), or None when the write was skipped.
    """
    user = _writer()
    if user is None:
        return None

    item_type = normalize_record_type(item_type)
    content = (content or "").strip()
    if not content:
        raise ValidationError("Comment content is required")

    with store_guard("add_comment"):
        comment = Comment(
            item_id=str(item_id),
            item_type=item_type,
            user_id=user.id,
            user_name=user.name,
            content=content,
        )
        db.session.add(comment)
        db.session.flush()
    return comment


# ── Queries ──────────────────────────────────────────────────────────────


def get_history(item_id, item_type) -> list[HistoryEntry]:
    """History for one record, newest first."""
    item_type = normalize_record_type(item_type)
    with store_guard("get_history"):
        return (
            HistoryEntry.query
            .filter_by(item_id=str(item_id), item_type=item_type)
            .order_by(HistoryEntry.timestamp.desc(), HistoryEntry.id.desc())
            .all()
        )


def get_comments(item_id, item_type) -> list[Comment]:
    """Comments for one record, newest first."""
    item_type = normalize_record_type(item_type)
    with store_guard("get_comments"):
        return (
            Comment.query
            .filter_by(item_id=str(item_id), item_type=item_type)
            .order_by(Comment.timestamp.desc(), Comment.id.desc())
            .all()
        )


def get_timeline(item_id, item_type) -> list[dict]:
    """History entries and comments merged into one list, newest first.

    Each element is the entry's ``to_dict()`` plus ``kind``
    (``"history"`` or ``"comment"``); history entries carry a rendered
    ``descriptions`` list for display.
    """
    events = []
    for entry in get_history(item_id, item_type):
        data = entry.to_dict()
        data["kind"] = "history"
        data["descriptions"] = [describe_change(c) for c in data["changes"]]
        events.append((entry.timestamp, data))
    for comment in get_comments(item_id, item_type):
        data = comment.to_dict()
        data["kind"] = "comment"
        events.append((comment.timestamp, data))
    # sorted() is stable: same-instant entries keep their newest-first order
    events.sort(key=lambda pair: pair[0], reverse=True)
    return [data for _, data in events]


def describe_change(change: dict) -> str:
    """Render one change the way the timeline shows it."""
    field = change.get("field", "")
    new = change.get("newValue", "")
    if not change.get("oldValue"):
        return f'Definido {field} como "{new}"'
    return f'Alterado {field} de "{change["oldValue"]}" para "{new}"'
