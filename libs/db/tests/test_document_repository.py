"""Tests for DocumentRepository queries that do not need a live database."""

import hashlib
import uuid
from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.dialects import postgresql

from folio_core.similarity import SEARCH_MIN_SIMILARITY
from folio_db.repositories.document import (
    CANDIDATE_POOL_FACTOR,
    DocumentRepository,
    content_hash,
)


pytestmark = [pytest.mark.unit]

BASE_TIME = datetime(2024, 3, 1, tzinfo=UTC)


def compile_pg(stmt) -> tuple[str, dict]:
    compiled = stmt.compile(dialect=postgresql.dialect())
    return str(compiled), compiled.params


def document_row(project_id, name: str, vector: list[float], offset: int = 0):
    """Attribute bag shaped like a DocumentModel row."""
    return SimpleNamespace(
        id=uuid.uuid4(),
        project_id=project_id,
        parent_id=None,
        name=name,
        type="requirements",
        content=f"{name} content",
        embedding=vector,
        processed_at=BASE_TIME,
        processing_state="processed",
        metadata_={},
        created_at=BASE_TIME + timedelta(seconds=offset),
        updated_at=BASE_TIME + timedelta(seconds=offset),
    )


@pytest.fixture
def session() -> MagicMock:
    session = MagicMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    return session


class TestContentHash:
    def test_matches_md5(self):
        assert content_hash("hello") == hashlib.md5(b"hello").hexdigest()

    def test_none_hashes_like_empty(self):
        assert content_hash(None) == content_hash("")

    def test_unicode(self):
        assert content_hash("café") == hashlib.md5("café".encode("utf-8")).hexdigest()


class TestBuildNeighborsQuery:
    """Tests for the SQL of the nearest-neighbor query."""

    def test_orders_by_cosine_distance(self, session):
        repo = DocumentRepository(session)

        sql, params = compile_pg(
            repo.build_neighbors_query([0.1, 0.2, 0.3], project_id=uuid.uuid4(), limit=20)
        )

        assert "<=>" in sql
        assert "ORDER BY" in sql
        assert "LIMIT" in sql
        assert "documents.embedding IS NOT NULL" in sql
        assert 20 in params.values()

    def test_excludes_documents_being_embedded(self, session):
        repo = DocumentRepository(session)

        sql, params = compile_pg(
            repo.build_neighbors_query([0.1], project_id=uuid.uuid4(), limit=5)
        )

        assert "documents.processing_state !=" in sql
        assert "embedding" in params.values()

    def test_type_filter(self, session):
        repo = DocumentRepository(session)

        sql, _ = compile_pg(
            repo.build_neighbors_query(
                [0.1], project_id=uuid.uuid4(), types=["requirements", "design"], limit=5
            )
        )

        assert "documents.type IN" in sql

    def test_similarity_floor_becomes_distance_bound(self, session):
        repo = DocumentRepository(session)

        _, params = compile_pg(
            repo.build_neighbors_query(
                [0.1],
                project_id=uuid.uuid4(),
                limit=5,
                min_similarity=SEARCH_MIN_SIMILARITY,
            )
        )

        assert any(
            isinstance(value, float) and value == pytest.approx(1 - SEARCH_MIN_SIMILARITY)
            for value in params.values()
        )


@pytest.mark.asyncio
class TestNearestNeighbors:
    """Tests for exact re-ranking of the candidate pool."""

    async def test_reranks_and_returns_fewer_than_k(self, session):
        project_id = uuid.uuid4()
        rows = [
            (document_row(project_id, "weak", [0.5, 0.5]), 0.29),
            (document_row(project_id, "strong", [1.0, 0.0], offset=1), 0.0),
        ]
        result = MagicMock()
        result.all.return_value = rows
        session.execute.return_value = result
        repo = DocumentRepository(session)

        neighbors = await repo.nearest_neighbors([1.0, 0.0], project_id=project_id, k=5)

        assert [n.item.name for n in neighbors] == ["strong", "weak"]
        assert neighbors[0].similarity == pytest.approx(1.0)

        stmt = session.execute.call_args.args[0]
        _, params = compile_pg(stmt)
        assert 5 * CANDIDATE_POOL_FACTOR in params.values()

    async def test_non_positive_k_skips_query(self, session):
        repo = DocumentRepository(session)

        assert await repo.nearest_neighbors([1.0], project_id=uuid.uuid4(), k=0) == []
        session.execute.assert_not_called()


@pytest.mark.asyncio
class TestStoreEmbedding:
    """Tests for the content-hash guarded vector write."""

    async def test_stale_hash_reports_false(self, session):
        session.execute.return_value = SimpleNamespace(rowcount=0)
        repo = DocumentRepository(session)

        stored = await repo.store_embedding(uuid.uuid4(), [0.1, 0.2], content_hash("old"))

        assert stored is False

    async def test_matching_hash_reports_true(self, session):
        session.execute.return_value = SimpleNamespace(rowcount=1)
        repo = DocumentRepository(session)

        stored = await repo.store_embedding(uuid.uuid4(), [0.1, 0.2], content_hash("current"))

        assert stored is True
        sql, _ = compile_pg(session.execute.call_args.args[0])
        assert "md5(coalesce(documents.content" in sql

    async def test_apply_changes_skips_empty(self, session):
        repo = DocumentRepository(session)

        await repo.apply_changes(uuid.uuid4(), {})

        session.execute.assert_not_called()

    async def test_apply_changes_maps_metadata_column(self, session):
        repo = DocumentRepository(session)

        await repo.apply_changes(uuid.uuid4(), {"metadata": {"error": "x"}, "embedding": None})

        sql, _ = compile_pg(session.execute.call_args.args[0])
        assert sql.startswith("UPDATE documents SET")
        assert "metadata" in sql
        assert "updated_at" in sql
