"""
Relationship API tests.

Covers:
  - POST /api/v1/relationships (auth, roles, validation, duplicates)
  - DELETE /api/v1/relationships/<id> (idempotent)
  - GET related / grouped / relationships from both ends
"""

from obraqms.models.relationship import Relationship


def _link(client, headers, **overrides):
    body = {
        "sourceType": "document",
        "sourceId": "DOC-1",
        "targetType": "nc",
        "targetId": "NC-1",
        "projectId": "P1",
    }
    body.update(overrides)
    return client.post("/api/v1/relationships", json=body, headers=headers)


# ═════════════════════════════════════════════════════════════════════════════
# Create
# ═════════════════════════════════════════════════════════════════════════════


class TestCreateRelationship:
    def test_create(self, client, auth_headers, fiscal_user):
        res = _link(client, auth_headers(fiscal_user))
        assert res.status_code == 201
        data = res.get_json()
        assert data["sourceType"] == "document"
        assert data["targetType"] == "nonConformity"
        assert data["createdBy"] == fiscal_user.id
        assert data["projectId"] == "P1"

    def test_unauthenticated(self, client):
        res = _link(client, {})
        assert res.status_code == 401
        assert res.get_json()["code"] == "ERR_NOT_AUTHENTICATED"
        assert Relationship.query.count() == 0

    def test_invalid_token_is_unauthenticated(self, client):
        res = _link(client, {"Authorization": "Bearer not-a-jwt"})
        assert res.status_code == 401

    def test_viewer_forbidden(self, client, auth_headers, viewer_user):
        res = _link(client, auth_headers(viewer_user))
        assert res.status_code == 403

    def test_missing_fields(self, client, auth_headers, fiscal_user):
        res = client.post(
            "/api/v1/relationships", json={"sourceType": "document"}, headers=auth_headers(fiscal_user),
        )
        assert res.status_code == 400
        assert set(res.get_json()["details"]) == {"sourceId", "targetType", "targetId"}

    def test_unknown_type(self, client, auth_headers, fiscal_user):
        res = _link(client, auth_headers(fiscal_user), targetType="invoice")
        assert res.status_code == 422

    def test_self_link(self, client, auth_headers, fiscal_user):
        res = _link(client, auth_headers(fiscal_user), targetType="document", targetId="DOC-1")
        assert res.status_code == 422

    def test_duplicate_either_direction(self, client, auth_headers, fiscal_user):
        headers = auth_headers(fiscal_user)
        assert _link(client, headers).status_code == 201
        reverse = _link(
            client, headers,
            sourceType="nc", sourceId="NC-1", targetType="document", targetId="DOC-1",
        )
        assert reverse.status_code == 409
        assert Relationship.query.count() == 1

    def test_form_post_rejected(self, client, auth_headers, fiscal_user):
        res = client.post(
            "/api/v1/relationships",
            data="sourceType=document",
            content_type="application/x-www-form-urlencoded",
            headers=auth_headers(fiscal_user),
        )
        assert res.status_code == 415


# ═════════════════════════════════════════════════════════════════════════════
# Delete
# ═════════════════════════════════════════════════════════════════════════════


class TestDeleteRelationship:
    def test_delete_then_repeat(self, client, auth_headers, fiscal_user):
        headers = auth_headers(fiscal_user)
        rel_id = _link(client, headers).get_json()["id"]

        first = client.delete(f"/api/v1/relationships/{rel_id}", headers=headers)
        assert first.status_code == 200
        assert first.get_json() == {"removed": True}

        second = client.delete(f"/api/v1/relationships/{rel_id}", headers=headers)
        assert second.status_code == 200
        assert second.get_json() == {"removed": False}

    def test_delete_unauthenticated(self, client, auth_headers, fiscal_user):
        rel_id = _link(client, auth_headers(fiscal_user)).get_json()["id"]
        res = client.delete(f"/api/v1/relationships/{rel_id}")
        assert res.status_code == 401
        assert Relationship.query.count() == 1


# ═════════════════════════════════════════════════════════════════════════════
# Queries
# ═════════════════════════════════════════════════════════════════════════════


class TestRelatedItems:
    def test_related_from_both_ends(self, client, auth_headers, fiscal_user, viewer_user):
        _link(client, auth_headers(fiscal_user))
        headers = auth_headers(viewer_user)

        res = client.get("/api/v1/items/nc/NC-1/related", headers=headers)
        assert res.status_code == 200
        assert res.get_json() == {"items": [{"type": "document", "id": "DOC-1"}], "total": 1}

        res = client.get("/api/v1/items/document/DOC-1/related", headers=headers)
        assert res.get_json()["items"] == [{"type": "nonConformity", "id": "NC-1"}]

    def test_grouped(self, client, auth_headers, fiscal_user):
        headers = auth_headers(fiscal_user)
        _link(client, headers)
        _link(client, headers, sourceType="test", sourceId="T-1")

        res = client.get("/api/v1/items/nonConformity/NC-1/related/grouped", headers=headers)
        assert res.get_json() == {"document": ["DOC-1"], "test": ["T-1"]}

    def test_relationship_rows(self, client, auth_headers, fiscal_user):
        headers = auth_headers(fiscal_user)
        _link(client, headers)
        res = client.get("/api/v1/items/document/DOC-1/relationships", headers=headers)
        assert res.get_json()["total"] == 1
        assert res.get_json()["items"][0]["targetId"] == "NC-1"

    def test_history_written_on_both_ends(self, client, auth_headers, fiscal_user):
        headers = auth_headers(fiscal_user)
        _link(client, headers)
        for path in ("/api/v1/items/document/DOC-1/history", "/api/v1/items/nc/NC-1/history"):
            res = client.get(path, headers=headers)
            assert res.get_json()["total"] == 1

    def test_related_requires_authentication(self, client):
        assert client.get("/api/v1/items/nc/NC-1/related").status_code == 401

    def test_unknown_type_on_read(self, client, auth_headers, viewer_user):
        res = client.get("/api/v1/items/invoice/I-1/related", headers=auth_headers(viewer_user))
        assert res.status_code == 422
