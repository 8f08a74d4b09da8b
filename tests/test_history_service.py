"""
History ledger tests.

Covers:
  - add_history_item attribution, normalisation and validation
  - acting-user policy (HISTORY_REQUIRE_USER on / off)
  - comments, newest-first ordering, merged timeline
  - describe_change rendering
"""

import pytest

from obraqms.core.exceptions import NotAuthenticatedError, ValidationError
from obraqms.models.history import Comment, HistoryEntry
from obraqms.services import history_service


# ═════════════════════════════════════════════════════════════════════════════
# Writes
# ═════════════════════════════════════════════════════════════════════════════


class TestAddHistoryItem:
    def test_entry_attributed_to_acting_user(self, acting_user):
        entry = history_service.add_history_item(
            "NC-1", "nc", "update", [{"field": "estado", "oldValue": "Aberta", "newValue": "Fechada"}],
        )
        assert entry.id is not None
        assert entry.user_id == acting_user.id
        assert entry.user_name == "João Silva"
        assert entry.item_type == "nonConformity"
        assert entry.changes == [{"field": "estado", "oldValue": "Aberta", "newValue": "Fechada"}]

    def test_old_value_omitted_when_absent(self, acting_user):
        entry = history_service.add_history_item("DOC-1", "document", "create", [{"field": "codigo", "newValue": "DOC-2024-001"}])
        assert entry.changes == [{"field": "codigo", "newValue": "DOC-2024-001"}]

    def test_values_stored_as_text(self, acting_user):
        entry = history_service.add_history_item(
            "M-1", "material", "update",
            [{"field": "aprovado", "oldValue": False, "newValue": True}, {"field": "qtd", "newValue": 12}],
        )
        assert entry.changes == [
            {"field": "aprovado", "oldValue": "Não", "newValue": "Sim"},
            {"field": "qtd", "newValue": "12"},
        ]

    def test_unicode_survives(self, acting_user):
        entry = history_service.add_history_item("T-1", "test", "update", [{"field": "observação", "newValue": "Betão conforme"}])
        assert "Betão" in entry.changes_json

    def test_invalid_action_rejected(self, acting_user):
        with pytest.raises(ValidationError):
            history_service.add_history_item("T-1", "test", "archive", [])
        assert HistoryEntry.query.count() == 0

    def test_change_without_field_rejected(self, acting_user):
        with pytest.raises(ValidationError):
            history_service.add_history_item("T-1", "test", "update", [{"newValue": "x"}])

    def test_change_without_new_value_rejected(self, acting_user):
        with pytest.raises(ValidationError):
            history_service.add_history_item("T-1", "test", "update", [{"field": "estado"}])

    def test_unknown_item_type_rejected(self, acting_user):
        with pytest.raises(ValidationError):
            history_service.add_history_item("X-1", "invoice", "create", [])


class TestActingUserPolicy:
    def test_no_user_raises_by_default(self):
        with pytest.raises(NotAuthenticatedError):
            history_service.add_history_item("NC-1", "nc", "create", [])
        assert HistoryEntry.query.count() == 0

    def test_no_user_skipped_when_not_required(self, app, monkeypatch):
        monkeypatch.setitem(app.config, "HISTORY_REQUIRE_USER", False)
        assert history_service.add_history_item("NC-1", "nc", "create", []) is None
        assert history_service.add_comment("NC-1", "nc", "nota") is None
        assert HistoryEntry.query.count() == 0
        assert Comment.query.count() == 0

    def test_user_still_recorded_when_not_required(self, app, monkeypatch, acting_user):
        monkeypatch.setitem(app.config, "HISTORY_REQUIRE_USER", False)
        entry = history_service.add_history_item("NC-1", "nc", "create", [])
        assert entry.user_id == acting_user.id


# ═════════════════════════════════════════════════════════════════════════════
# Reads
# ═════════════════════════════════════════════════════════════════════════════


class TestQueries:
    def test_history_newest_first(self, acting_user):
        first = history_service.add_history_item("RFI-1", "rfi", "create", [{"field": "estado", "newValue": "Submetido"}])
        second = history_service.add_history_item("RFI-1", "rfi", "update", [{"field": "estado", "newValue": "Respondido"}])
        ids = [e.id for e in history_service.get_history("RFI-1", "rfi")]
        assert ids == [second.id, first.id]

    def test_history_scoped_to_item(self, acting_user):
        history_service.add_history_item("RFI-1", "rfi", "create", [])
        history_service.add_history_item("RFI-2", "rfi", "create", [])
        history_service.add_history_item("RFI-1", "document", "create", [])
        assert len(history_service.get_history("RFI-1", "rfi")) == 1

    def test_comment_content_stripped(self, acting_user):
        comment = history_service.add_comment("CKL-1", "checklist", "  verificar cofragem  ")
        assert comment.content == "verificar cofragem"

    def test_empty_comment_rejected(self, acting_user):
        with pytest.raises(ValidationError):
            history_service.add_comment("CKL-1", "checklist", "   ")

    def test_comments_newest_first(self, acting_user):
        a = history_service.add_comment("CKL-1", "checklist", "primeiro")
        b = history_service.add_comment("CKL-1", "checklist", "segundo")
        assert [c.id for c in history_service.get_comments("CKL-1", "checklist")] == [b.id, a.id]

    def test_timeline_merges_history_and_comments(self, acting_user):
        history_service.add_history_item("NC-9", "nc", "create", [{"field": "estado", "newValue": "Aberta"}])
        history_service.add_comment("NC-9", "nc", "fotografia anexada")
        events = history_service.get_timeline("NC-9", "nonConformity")
        assert sorted(e["kind"] for e in events) == ["comment", "history"]
        history = next(e for e in events if e["kind"] == "history")
        assert history["descriptions"] == ['Definido estado como "Aberta"']


class TestDescribeChange:
    def test_set(self):
        assert history_service.describe_change({"field": "estado", "newValue": "Aberta"}) == 'Definido estado como "Aberta"'

    def test_changed(self):
        text = history_service.describe_change({"field": "estado", "oldValue": "Aberta", "newValue": "Fechada"})
        assert text == 'Alterado estado de "Aberta" para "Fechada"'
