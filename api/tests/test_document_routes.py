"""Tests for document routes and domain error mapping."""

import uuid
from unittest.mock import AsyncMock, patch

import pytest

from folio_api.middleware.context import get_authorization_context
from folio_core.authorization import ResourceScope
from folio_core.errors import WorkflowIntegrityError
from folio_core.lifecycle import JobKind
from folio_core.models import Document, DocumentState, Role, utc_now


pytestmark = [pytest.mark.unit]


@pytest.fixture
def document(lifecycle, scope) -> Document:
    return lifecycle.documents.put(
        Document(
            project_id=uuid.uuid4(),
            name="Requirements",
            type="requirements",
            content="Users can book",
            embedding=[0.1, 0.2],
            processed_at=utc_now(),
            processing_state=DocumentState.PROCESSED,
        ),
        scope,
    )


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    @pytest.mark.parametrize(
        ("database", "temporal", "code", "state"),
        [
            (True, True, 200, "ready"),
            (True, False, 200, "degraded"),
            (False, True, 503, "unavailable"),
        ],
    )
    def test_readiness(self, client, database, temporal, code, state):
        with (
            patch("folio_api.routes.health.check_database_health", AsyncMock(return_value=database)),
            patch("folio_api.routes.health.check_temporal_health", AsyncMock(return_value=temporal)),
        ):
            response = client.get("/ready")

        assert response.status_code == code
        assert response.json()["status"] == state
        assert response.json()["ready"] is database


class TestAuthentication:
    def test_missing_user_header(self, app, client, document):
        app.dependency_overrides.pop(get_authorization_context)

        response = client.get(f"/documents/{document.id}")

        assert response.status_code == 401


class TestGetDocument:
    """Tests for GET /documents/{id}."""

    def test_returns_document(self, client, document):
        response = client.get(f"/documents/{document.id}")

        assert response.status_code == 200
        body = response.json()
        assert body["id"] == str(document.id)
        assert body["has_embedding"] is True
        assert body["processing_state"] == "processed"
        assert "embedding" not in body

    def test_other_organization_looks_missing(self, app, client, lifecycle, make_auth):
        foreign = lifecycle.documents.put(
            Document(project_id=uuid.uuid4(), name="Secret", type="notes"),
            ResourceScope(organization_id=uuid.uuid4(), client_id=uuid.uuid4()),
        )

        response = client.get(f"/documents/{foreign.id}")

        assert response.status_code == 404
        assert response.json()["detail"] == "Document not found"

    def test_unknown_document(self, client):
        assert client.get(f"/documents/{uuid.uuid4()}").status_code == 404

    def test_client_user_without_grant(self, app, client, document, make_auth, org_id):
        app.dependency_overrides[get_authorization_context] = lambda: make_auth(
            org_id, roles={Role.MEMBER}, client_ids={uuid.uuid4()}
        )

        assert client.get(f"/documents/{document.id}").status_code == 404


class TestUpdateDocument:
    """Tests for PATCH /documents/{id}."""

    def test_content_change_queues_embedding_after_commit(self, client, lifecycle, document):
        response = client.patch(f"/documents/{document.id}", json={"content": "Users can cancel"})

        assert response.status_code == 200
        body = response.json()
        assert body["processing_state"] == "embedding"
        assert body["has_embedding"] is False
        assert body["processed_at"] is None
        assert lifecycle.commits == 1
        assert [kind for kind, _ in lifecycle.queue.jobs] == [JobKind.EMBEDDING]

    def test_rename_keeps_vector(self, client, lifecycle, document):
        response = client.patch(f"/documents/{document.id}", json={"name": "Final requirements"})

        assert response.status_code == 200
        assert response.json()["has_embedding"] is True
        assert lifecycle.queue.jobs == []

    def test_null_name_is_ignored(self, client, document):
        response = client.patch(f"/documents/{document.id}", json={"name": None})

        assert response.status_code == 200
        assert response.json()["name"] == "Requirements"


class TestReprocessDocument:
    """Tests for POST /documents/{id}/reprocess."""

    def test_reprocess_intake(self, client, lifecycle, scope):
        intake = lifecycle.documents.put(
            Document(
                project_id=uuid.uuid4(),
                name="Kickoff",
                type="intake",
                content="notes",
                processed_at=utc_now(),
                processing_state=DocumentState.PROCESSED,
            ),
            scope,
        )

        response = client.post(f"/documents/{intake.id}/reprocess")

        assert response.status_code == 202
        body = response.json()
        assert body["jobs_started"] == 1
        assert body["document"]["processing_state"] == "awaiting_ai"
        assert body["document"]["processed_at"] is None

    def test_rejected_while_embedding(self, client, lifecycle, scope):
        doc = lifecycle.documents.put(
            Document(
                project_id=uuid.uuid4(),
                name="Draft",
                type="requirements",
                content="text",
                processing_state=DocumentState.EMBEDDING,
            ),
            scope,
        )

        response = client.post(f"/documents/{doc.id}/reprocess")

        assert response.status_code == 409
        assert lifecycle.queue.jobs == []


class TestErrorMapping:
    def test_workflow_integrity_error(self, app, client):
        async def broken():
            raise WorkflowIntegrityError("bad workflow", missing_keys=["design"])

        app.add_api_route("/_broken", broken)

        response = client.get("/_broken")

        assert response.status_code == 422
        assert response.json() == {"detail": "bad workflow", "missing_keys": ["design"]}
