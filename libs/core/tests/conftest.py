"""
Pytest fixtures for folio_core tests.

Provides fixtures for:
- Documents in each lifecycle state
- In-memory lifecycle ports (store, queue, broadcaster)
- Authorization contexts for the common roles
"""

import uuid
from typing import Any

import pytest

from folio_core.authorization import AccessGrants, AuthorizationContext, TenantContext
from folio_core.lifecycle import JobKind
from folio_core.models import Document, Role


# =============================================================================
# In-memory ports
# =============================================================================


class InMemoryStore:
    """LifecycleStore keeping documents in a dict."""

    def __init__(self, *documents: Document):
        self.documents = {doc.id: doc for doc in documents}
        self.writes: list[tuple[uuid.UUID, dict[str, Any]]] = []

    async def apply_changes(self, document_id: uuid.UUID, values: dict[str, Any]) -> None:
        self.writes.append((document_id, dict(values)))
        self.documents[document_id] = self.documents[document_id].model_copy(update=values)

    async def refresh(self, document_id: uuid.UUID) -> Document | None:
        return self.documents.get(document_id)


class RecordingQueue:
    def __init__(self):
        self.jobs: list[tuple[JobKind, Document]] = []

    async def enqueue(self, kind: JobKind, document: Document) -> None:
        self.jobs.append((kind, document))

    @property
    def kinds(self) -> list[JobKind]:
        return [kind for kind, _ in self.jobs]


class RecordingBroadcaster:
    def __init__(self):
        self.messages: list[tuple[str, str, dict[str, Any]]] = []

    async def publish(self, channel: str, event: str, payload: dict[str, Any]) -> None:
        self.messages.append((channel, event, payload))


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def project_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def make_document(project_id: uuid.UUID):
    """Factory for documents of the fixture project."""

    def _make(**overrides: Any) -> Document:
        values: dict[str, Any] = {
            "project_id": project_id,
            "name": "Kickoff notes",
            "type": "brief",
            "content": "The client wants a booking system.",
        }
        values.update(overrides)
        return Document(**values)

    return _make


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def queue() -> RecordingQueue:
    return RecordingQueue()


@pytest.fixture
def broadcaster() -> RecordingBroadcaster:
    return RecordingBroadcaster()


@pytest.fixture
def org_a() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def org_b() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def make_context():
    """Factory for authorization contexts."""

    def _make(
        organization_id: uuid.UUID | None,
        *,
        global_roles: set[str] = frozenset(),
        organization_roles: set[str] = frozenset(),
        client_ids: set[uuid.UUID] = frozenset(),
        user_id: uuid.UUID | None = None,
    ) -> AuthorizationContext:
        return AuthorizationContext(
            tenant=TenantContext(user_id=user_id or uuid.uuid4(), organization_id=organization_id),
            grants=AccessGrants(
                organization_id=organization_id,
                global_roles=frozenset(global_roles),
                organization_roles=frozenset(organization_roles),
                client_ids=frozenset(client_ids),
            ),
        )

    return _make


@pytest.fixture
def org_admin_of_a(make_context, org_a):
    return make_context(org_a, organization_roles={Role.ORG_ADMIN})


@pytest.fixture
def super_admin(make_context, org_a):
    return make_context(org_a, global_roles={Role.SUPER_ADMIN})

