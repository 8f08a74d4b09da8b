"""
Record store tests — reads and audited mutations.
"""

import pytest

from obraqms.core.exceptions import NotAuthenticatedError, NotFoundError, ValidationError
from obraqms.core.identity import acting_as
from obraqms.models import db
from obraqms.models.history import HistoryEntry
from obraqms.models.record import Record
from obraqms.models.relationship import Relationship
from obraqms.services import history_service, record_service, relationship_service, submission_service


# ── Helpers ──────────────────────────────────────────────────────────────────


def _submit(record_type="nc", **fields):
    return submission_service.submit_record(record_type, fields)


# ═════════════════════════════════════════════════════════════════════════════
# Reads
# ═════════════════════════════════════════════════════════════════════════════


class TestReads:
    def test_get_record(self, acting_user):
        created = _submit("document", titulo="Plano de qualidade")
        record = record_service.get_record(created["id"])
        assert record.code == created["codigo"]
        assert record.to_dict()["titulo"] == "Plano de qualidade"

    def test_get_missing(self):
        with pytest.raises(NotFoundError):
            record_service.get_record("missing")

    def test_list_filters(self, acting_user):
        _submit("document", projectId="P1")
        _submit("document", projectId="P2")
        _submit("rfi", projectId="P1")

        assert len(record_service.list_records()) == 3
        assert len(record_service.list_records(record_type="document")) == 2
        assert len(record_service.list_records(project_id="P1")) == 2
        assert len(record_service.list_records(record_type="rfi", project_id="P2")) == 0


# ═════════════════════════════════════════════════════════════════════════════
# Update
# ═════════════════════════════════════════════════════════════════════════════


class TestUpdate:
    def test_state_change_logged_with_old_and_new(self, acting_user):
        created = _submit("nc", descricao="Fissura na laje")
        record = record_service.update_record(created["id"], {"estado": "Em tratamento"})

        assert record.state == "Em tratamento"
        assert record.to_dict()["estado"] == "Em tratamento"
        latest = history_service.get_history(created["id"], "nc")[0]
        assert latest.action == "update"
        assert latest.changes == [{"field": "estado", "oldValue": "Aberta", "newValue": "Em tratamento"}]

    def test_unchanged_fields_not_logged(self, acting_user):
        created = _submit("nc", descricao="Fissura na laje", gravidade="Alta")
        record_service.update_record(created["id"], {"descricao": "Fissura na laje", "gravidade": "Média"})

        latest = history_service.get_history(created["id"], "nc")[0]
        assert latest.changes == [{"field": "gravidade", "oldValue": "Alta", "newValue": "Média"}]

    def test_no_real_change_writes_nothing(self, acting_user):
        created = _submit("nc", descricao="Fissura")
        record_service.update_record(created["id"], {"descricao": "Fissura", "updatedAt": "ignored"})
        assert len(history_service.get_history(created["id"], "nc")) == 1

    def test_immutable_field_rejected(self, acting_user):
        created = _submit("material")
        with pytest.raises(ValidationError):
            record_service.update_record(created["id"], {"codigo": "MAT-1999-001"})

    def test_immutable_field_resent_unchanged_is_fine(self, acting_user):
        created = _submit("material", lote="L1")
        record_service.update_record(created["id"], {"codigo": created["codigo"], "lote": "L2"})
        assert record_service.get_record(created["id"]).to_dict()["lote"] == "L2"

    @pytest.mark.parametrize("state", [None, "", "   ", 3])
    def test_blank_state_rejected(self, acting_user, state):
        created = _submit("material")
        with pytest.raises(ValidationError):
            record_service.update_record(created["id"], {"estado": state, "lote": "L2"})

        record = record_service.get_record(created["id"])
        assert record.state == "Pendente"
        assert "lote" not in record.to_dict()
        assert len(history_service.get_history(created["id"], "material")) == 1

    def test_update_requires_user(self, acting_user):
        created = _submit("material")
        with acting_as(None):
            with pytest.raises(NotAuthenticatedError):
                record_service.update_record(created["id"], {"lote": "L9"})

    def test_update_missing_record(self, acting_user):
        with pytest.raises(NotFoundError):
            record_service.update_record("missing", {"estado": "x"})


# ═════════════════════════════════════════════════════════════════════════════
# Delete
# ═════════════════════════════════════════════════════════════════════════════


class TestDelete:
    def test_delete_keeps_history(self, acting_user):
        created = _submit("checklist")
        record_service.delete_record(created["id"])

        assert db.session.get(Record, created["id"]) is None
        history = history_service.get_history(created["id"], "checklist")
        assert [h.action for h in history] == ["delete", "create"]
        assert history[0].changes == [{"field": "estado", "oldValue": "Pendente", "newValue": "Eliminado"}]

    def test_delete_unlinks_related_records(self, acting_user):
        nc = _submit("nc")
        doc = _submit("document")
        relationship_service.add_relationship("document", doc["id"], "nc", nc["id"])

        record_service.delete_record(nc["id"])

        assert Relationship.query.count() == 0
        assert relationship_service.get_related_items("document", doc["id"]) == []
        doc_actions = [h.changes[0]["newValue"] for h in history_service.get_history(doc["id"], "document") if h.action == "update"]
        assert doc_actions[0].startswith("Removed relationship with nonConformity")

    def test_delete_missing(self, acting_user):
        with pytest.raises(NotFoundError):
            record_service.delete_record("missing")
        assert HistoryEntry.query.count() == 0
