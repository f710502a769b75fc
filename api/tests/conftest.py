"""
Pytest fixtures for API tests.

Provides fixtures for:
- The FastAPI app with database, Temporal and auth dependencies overridden
- An in-memory document lifecycle unit
- Authorization contexts
"""

import uuid
from typing import Any
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from folio_api.app import create_app
from folio_api.config import Settings
from folio_api.dependencies import get_db_session, get_lifecycle
from folio_api.middleware.context import get_authorization_context
from folio_core.authorization import AccessGrants, AuthorizationContext, ResourceScope, TenantContext
from folio_core.lifecycle import BufferedJobQueue, JobKind, LifecycleDispatcher
from folio_core.models import Document, Role


class InMemoryDocuments:
    """Document repository double keyed by id, with per-document scopes."""

    def __init__(self):
        self.rows: dict[uuid.UUID, Document] = {}
        self.scopes: dict[uuid.UUID, ResourceScope] = {}

    def put(self, document: Document, scope: ResourceScope) -> Document:
        self.rows[document.id] = document
        self.scopes[document.id] = scope
        return document

    async def get_scope(self, document_id):
        return self.scopes.get(document_id)

    async def refresh(self, document_id):
        return self.rows.get(document_id)

    async def apply_changes(self, document_id, values: dict[str, Any]) -> None:
        self.rows[document_id] = self.rows[document_id].model_copy(update=values)


class RecordingQueue:
    def __init__(self):
        self.jobs: list[tuple[JobKind, Document]] = []

    async def enqueue(self, kind, document) -> None:
        self.jobs.append((kind, document))


class NullBroadcaster:
    async def publish(self, channel, event, payload) -> None:
        return None


class InMemoryLifecycle:
    """Stand-in for LifecycleUnit: real dispatcher, in-memory rows."""

    def __init__(self):
        self.session = MagicMock()
        self.documents = InMemoryDocuments()
        self.queue = RecordingQueue()
        self.jobs = BufferedJobQueue(self.queue)
        self.dispatcher = LifecycleDispatcher(self.documents, self.jobs, NullBroadcaster())
        self.commits = 0

    async def commit(self) -> int:
        self.commits += 1
        return await self.jobs.flush()


@pytest.fixture
def lifecycle() -> InMemoryLifecycle:
    return InMemoryLifecycle()


@pytest.fixture
def org_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def client_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def scope(org_id, client_id) -> ResourceScope:
    return ResourceScope(organization_id=org_id, client_id=client_id)


@pytest.fixture
def make_auth():
    def _make(organization_id, *, roles=frozenset(), client_ids=frozenset()) -> AuthorizationContext:
        return AuthorizationContext(
            tenant=TenantContext(user_id=uuid.uuid4(), organization_id=organization_id),
            grants=AccessGrants(
                organization_id=organization_id,
                organization_roles=frozenset(roles),
                client_ids=frozenset(client_ids),
            ),
        )

    return _make


@pytest.fixture
def org_admin(make_auth, org_id) -> AuthorizationContext:
    return make_auth(org_id, roles={Role.ORG_ADMIN})


@pytest.fixture
def app(lifecycle, org_admin):
    app = create_app(Settings(debug=False))

    async def _session():
        yield MagicMock()

    app.dependency_overrides[get_db_session] = _session
    app.dependency_overrides[get_lifecycle] = lambda: lifecycle
    app.dependency_overrides[get_authorization_context] = lambda: org_admin
    return app


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)
