"""
Pytest fixtures for folio_ai tests.

Provides fixtures for:
- Wiring drivers to an in-process HTTP transport
- A fake document store and fake drivers for the orchestration service
"""

import uuid
from collections.abc import Callable, Sequence
from typing import Any

import httpx
import pytest

from folio_ai.drivers.base import HttpDriver
from folio_ai.drivers.llm import LlmResult
from folio_ai.drivers.parsing import GeneratedItem
from folio_core.errors import ProviderError
from folio_core.models import AiTemplate, Document, Project
from folio_core.similarity import Neighbor


# =============================================================================
# HTTP
# =============================================================================


@pytest.fixture
def mock_http():
    """Point a driver's HTTP client at a handler function."""

    def _attach(driver: HttpDriver, handler: Callable[[httpx.Request], httpx.Response]):
        driver._client = httpx.AsyncClient(
            base_url=driver.base_url,
            headers=driver._headers,
            transport=httpx.MockTransport(handler),
        )
        return driver

    return _attach


# =============================================================================
# Service fakes
# =============================================================================


class FakeStore:
    """DocumentStore returning canned neighbors and recording writes."""

    def __init__(self, neighbors: list[Document] | None = None):
        self.neighbors = neighbors or []
        self.contents: dict[str, list[str]] = {}
        self.searches: list[dict[str, Any]] = []
        self.replaced: list[tuple[uuid.UUID, str, list[Document]]] = []
        self.added: list[Document] = []

    async def nearest_neighbors(self, query_vector, *, project_id, types=None, k, min_similarity=None):
        self.searches.append({"types": list(types or []), "k": k, "min_similarity": min_similarity})
        return [Neighbor(item=doc, similarity=0.9) for doc in self.neighbors[:k]]

    async def contents_by_type(self, project_id, document_type):
        return self.contents.get(document_type, [])

    async def replace_generated(self, parent_id, output_type, documents: Sequence[Document]):
        self.replaced.append((parent_id, output_type, list(documents)))
        return list(documents)

    async def add_generated(self, documents: Sequence[Document]):
        self.added.extend(documents)
        return list(documents)


class FakeEmbedder:
    provider = "fake"
    dimensions = 3

    def __init__(self, error: Exception | None = None):
        self.error = error
        self.queries: list[str] = []

    async def get_embedding(self, text: str) -> list[float]:
        self.queries.append(text)
        if self.error:
            raise self.error
        return [0.1, 0.2, 0.3]


class FakeLlm:
    provider = "fake"

    def __init__(self, result: LlmResult):
        self.result = result
        self.calls: list[tuple[str, str, str]] = []

    async def call(self, system_prompt: str, user_prompt: str, *, body_key: str = "content"):
        self.calls.append((system_prompt, user_prompt, body_key))
        return self.result


@pytest.fixture
def project() -> Project:
    return Project(
        client_id=uuid.uuid4(),
        name="Booking Platform",
        description="Online booking for a chain of salons",
    )


@pytest.fixture
def make_document(project):
    def _make(**overrides: Any) -> Document:
        values: dict[str, Any] = {
            "project_id": project.id,
            "name": "Kickoff",
            "type": "intake",
            "content": "Customers want to book appointments online.",
        }
        values.update(overrides)
        return Document(**values)

    return _make


@pytest.fixture
def template() -> AiTemplate:
    return AiTemplate(
        organization_id=uuid.uuid4(),
        name="Requirements from intake",
        system_prompt="You write requirements.",
        user_prompt="Project {{project}}\n\n{{input}}",
    )


@pytest.fixture
def two_items() -> LlmResult:
    return LlmResult.success(
        [
            GeneratedItem(title="Book online", body="As a customer...", criteria=["Works"]),
            GeneratedItem(title="", body="As a manager...", criteria=[]),
        ]
    )


@pytest.fixture
def provider_down() -> ProviderError:
    return ProviderError("gemini request failed: ConnectError", provider="gemini")


@pytest.fixture
def make_store():
    def _make(neighbors: list[Document] | None = None) -> FakeStore:
        return FakeStore(neighbors)

    return _make


@pytest.fixture
def make_embedder():
    def _make(error: Exception | None = None) -> FakeEmbedder:
        return FakeEmbedder(error)

    return _make


@pytest.fixture
def make_llm():
    def _make(result: LlmResult) -> FakeLlm:
        return FakeLlm(result)

    return _make
