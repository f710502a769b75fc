"""Document repository and vector similarity queries."""

import hashlib
from collections.abc import Sequence
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import Select, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from folio_core.authorization import ResourceScope
from folio_core.models import Document, DocumentState, utc_now
from folio_core.similarity import Candidate, Neighbor, rank_neighbors
from folio_db.models import ClientModel, DocumentModel, ProjectModel
from folio_db.repositories.base import BaseRepository

logger = structlog.get_logger(__name__)

# Rows fetched from the approximate index per requested neighbor before exact re-ranking
CANDIDATE_POOL_FACTOR = 4

# Domain field name -> ORM attribute name
_COLUMN_ALIASES = {"metadata": "metadata_"}


def content_hash(content: str | None) -> str:
    """Hash matching PostgreSQL's ``md5(content)`` for the same text."""
    return hashlib.md5((content or "").encode("utf-8")).hexdigest()


class DocumentRepository(BaseRepository[DocumentModel]):
    """
    Repository for document operations.

    Also implements the lifecycle store port: ``apply_changes`` performs a
    single-row UPDATE and ``refresh`` always re-reads the row.
    """

    model_class = DocumentModel

    def __init__(self, session: AsyncSession):
        super().__init__(session)
        self._log = logger.bind(service="documents")

    async def get_domain(self, document_id: UUID) -> Document | None:
        model = await self.get_by_id(document_id)
        return Document.model_validate(model) if model else None

    async def get_scope(self, document_id: UUID) -> ResourceScope | None:
        """Owning organization and client, derived through project and client."""
        stmt = (
            select(ClientModel.organization_id, ProjectModel.client_id)
            .join(ProjectModel, ProjectModel.id == DocumentModel.project_id)
            .join(ClientModel, ClientModel.id == ProjectModel.client_id)
            .where(DocumentModel.id == document_id)
        )
        row = (await self.session.execute(stmt)).one_or_none()
        if row is None:
            return None
        return ResourceScope(organization_id=row[0], client_id=row[1])

    async def add(self, document: Document) -> DocumentModel:
        """Persist a new document from its domain representation."""
        values = document.model_dump(exclude={"metadata", "processing_state"})
        model = DocumentModel(
            **values,
            metadata_=dict(document.metadata),
            processing_state=str(document.processing_state),
        )
        return await self.create(model)

    # ============================================================
    # Lifecycle store
    # ============================================================

    async def apply_changes(self, document_id: UUID, values: dict[str, Any]) -> None:
        """Write ``values`` to one document row in a single UPDATE."""
        if not values:
            return
        columns = {
            getattr(DocumentModel, _COLUMN_ALIASES.get(key, key)): (
                str(value) if isinstance(value, DocumentState) else value
            )
            for key, value in values.items()
        }
        columns[DocumentModel.updated_at] = utc_now()
        stmt = update(DocumentModel).where(DocumentModel.id == document_id).values(columns)
        await self.session.execute(stmt)
        await self.session.flush()

    async def refresh(self, document_id: UUID) -> Document | None:
        """Read the row as currently persisted, bypassing the identity map."""
        stmt = (
            select(DocumentModel)
            .where(DocumentModel.id == document_id)
            .execution_options(populate_existing=True)
        )
        model = (await self.session.execute(stmt)).scalar_one_or_none()
        return Document.model_validate(model) if model else None

    async def store_embedding(
        self, document_id: UUID, embedding: Sequence[float], expected_hash: str
    ) -> bool:
        """
        Persist a vector and mark the document processed.

        The write only happens while the content still hashes to
        ``expected_hash``; re-running it for unchanged content overwrites
        the same value.

        Returns:
            False if the content changed since the job was dispatched
        """
        stmt = (
            update(DocumentModel)
            .where(
                DocumentModel.id == document_id,
                func.md5(func.coalesce(DocumentModel.content, "")) == expected_hash,
            )
            .values(
                {
                    DocumentModel.embedding: list(embedding),
                    DocumentModel.processed_at: utc_now(),
                    DocumentModel.updated_at: utc_now(),
                }
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        stored = result.rowcount > 0
        self._log.info(
            "embedding_stored" if stored else "embedding_discarded_stale",
            document_id=str(document_id),
            dimensions=len(embedding),
        )
        return stored

    # ============================================================
    # Queries
    # ============================================================

    async def contents_by_type(self, project_id: UUID, document_type: str) -> list[str]:
        """Non-empty contents of a project's documents of one type, oldest first."""
        stmt = (
            select(DocumentModel.content)
            .where(
                DocumentModel.project_id == project_id,
                DocumentModel.type == document_type,
                DocumentModel.content.isnot(None),
            )
            .order_by(DocumentModel.created_at, DocumentModel.id)
        )
        result = await self.session.execute(stmt)
        return [content for content in result.scalars().all() if content.strip()]

    def build_neighbors_query(
        self,
        query_vector: Sequence[float],
        *,
        project_id: UUID,
        types: Sequence[str] | None = None,
        limit: int,
        min_similarity: float | None = None,
    ) -> Select:
        """Approximate nearest-neighbor query by cosine distance."""
        distance = DocumentModel.embedding.cosine_distance(list(query_vector))
        stmt = select(DocumentModel, distance.label("distance")).where(
            DocumentModel.project_id == project_id,
            DocumentModel.embedding.isnot(None),
            DocumentModel.processing_state != str(DocumentState.EMBEDDING),
        )
        if types:
            stmt = stmt.where(DocumentModel.type.in_(list(types)))
        if min_similarity is not None:
            stmt = stmt.where(distance <= 1 - min_similarity)
        return (
            stmt.order_by(distance, DocumentModel.created_at, DocumentModel.id)
            .limit(limit)
        )

    async def nearest_neighbors(
        self,
        query_vector: Sequence[float],
        *,
        project_id: UUID,
        types: Sequence[str] | None = None,
        k: int,
        min_similarity: float | None = None,
    ) -> list[Neighbor[Document]]:
        """
        Documents of a project most similar to ``query_vector``.

        Results are ordered by similarity (``1 - cosine distance``)
        descending, ties by creation order. Fewer than ``k`` results are
        returned when fewer documents qualify.
        """
        if k <= 0:
            return []
        stmt = self.build_neighbors_query(
            query_vector,
            project_id=project_id,
            types=types,
            limit=k * CANDIDATE_POOL_FACTOR,
            min_similarity=min_similarity,
        )
        rows = (await self.session.execute(stmt)).all()

        # The HNSW index is approximate; re-rank the pool exactly
        candidates = [
            Candidate(
                item=Document.model_validate(model),
                vector=[float(v) for v in model.embedding],
                created_at=model.created_at,
                key=str(model.id),
            )
            for model, _ in rows
        ]
        neighbors = rank_neighbors(query_vector, candidates, k, min_similarity=min_similarity)
        self._log.debug(
            "nearest_neighbors",
            project_id=str(project_id),
            types=list(types or []),
            candidates=len(candidates),
            returned=len(neighbors),
            best=neighbors[0].similarity if neighbors else None,
        )
        return neighbors

    # ============================================================
    # Generated deliverables
    # ============================================================

    async def replace_generated(
        self, parent_id: UUID, output_type: str, documents: Sequence[Document]
    ) -> list[DocumentModel]:
        """
        Replace a source document's generated children of ``output_type``.

        Runs in a savepoint: either every previous child is removed and
        every new one inserted, or nothing changes.
        """
        async with self.session.begin_nested():
            await self.session.execute(
                delete(DocumentModel)
                .where(
                    DocumentModel.parent_id == parent_id,
                    DocumentModel.type == output_type,
                )
                .execution_options(synchronize_session=False)
            )
            created = [await self.add(document) for document in documents]
        self._log.info(
            "deliverables_replaced",
            parent_id=str(parent_id),
            output_type=output_type,
            created=len(created),
        )
        return created

    async def add_generated(self, documents: Sequence[Document]) -> list[DocumentModel]:
        """Insert generated documents that have no source document."""
        async with self.session.begin_nested():
            return [await self.add(document) for document in documents]

    async def ids_with_content(self) -> list[UUID]:
        stmt = select(DocumentModel.id).where(
            DocumentModel.content.isnot(None), func.length(DocumentModel.content) > 0
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
