"""
Embedding dimension migration.

Switching to an embedding model with a different dimension invalidates
every stored vector. Instead of dropping document data, the column is
retyped with all vectors nulled, the ANN index rebuilt, and every document
with content is moved back to the embedding state so the caller can
re-enqueue it.
"""

from uuid import UUID

import structlog
from sqlalchemy import text, update
from sqlalchemy.ext.asyncio import AsyncSession

from folio_core.models import DocumentState
from folio_db.models import DocumentModel
from folio_db.repositories.document import DocumentRepository

logger = structlog.get_logger(__name__)

INDEX_NAME = "ix_documents_embedding_hnsw"


async def migrate_embedding_dimension(session: AsyncSession, dimensions: int) -> list[UUID]:
    """
    Retype ``documents.embedding`` to ``vector(dimensions)``.

    Returns:
        Ids of documents that need a new embedding job
    """
    if dimensions <= 0:
        raise ValueError(f"Invalid embedding dimension: {dimensions}")

    await session.execute(text(f"DROP INDEX IF EXISTS {INDEX_NAME}"))
    await session.execute(
        text(f"ALTER TABLE documents ALTER COLUMN embedding TYPE vector({dimensions}) USING NULL")
    )
    await session.execute(
        text(
            f"CREATE INDEX {INDEX_NAME} ON documents "
            "USING hnsw (embedding vector_cosine_ops) WITH (m = 16, ef_construction = 64)"
        )
    )

    repo = DocumentRepository(session)
    document_ids = await repo.ids_with_content()
    if document_ids:
        await session.execute(
            update(DocumentModel)
            .where(DocumentModel.id.in_(document_ids))
            .values(
                {
                    DocumentModel.processing_state: str(DocumentState.EMBEDDING),
                    DocumentModel.processed_at: None,
                }
            )
            .execution_options(synchronize_session=False)
        )
    await session.flush()

    logger.info(
        "embedding_dimension_migrated",
        dimensions=dimensions,
        documents_to_reembed=len(document_ids),
    )
    return document_ids
