"""Project routes: semantic search and deliverable generation."""

from typing import Annotated
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from folio_ai.strategies import BUILTIN_STRATEGIES
from folio_api.config import Settings, get_settings
from folio_api.dependencies import DbSession, Embedder, Temporal
from folio_api.middleware.context import Auth
from folio_core.authorization import DocumentPolicy, ProjectPolicy, authorize
from folio_core.errors import EmptyEmbeddingError, ProviderError
from folio_db.clients import TemporalJobQueue
from folio_db.repositories import DocumentRepository, ProjectRepository

router = APIRouter(prefix="/projects", tags=["Projects"])

logger = structlog.get_logger(__name__)


# ============================================================
# Response Models
# ============================================================


class SearchHit(BaseModel):
    id: UUID
    name: str
    type: str
    parent_id: UUID | None
    content: str | None
    similarity: float


class SearchResponse(BaseModel):
    """Documents of a project ranked by similarity to the query."""

    query: str
    min_similarity: float
    results: list[SearchHit]


class DeliverablesRequest(BaseModel):
    strategy: str = "software"


class DeliverablesResponse(BaseModel):
    workflow_id: str
    strategy: str
    status: str = "queued"


# ============================================================
# Endpoints
# ============================================================


@router.get("/{project_id}/search", response_model=SearchResponse)
async def search_project(
    project_id: UUID,
    auth: Auth,
    db: DbSession,
    embedder: Embedder,
    settings: Annotated[Settings, Depends(get_settings)],
    q: str = Query(..., min_length=1, max_length=2000),
    types: list[str] | None = Query(default=None, alias="type"),
) -> SearchResponse:
    """
    Semantic search within a project.

    Returns at most ``search_limit`` documents whose cosine similarity to
    the query reaches ``search_min_similarity``.
    """
    scope = await ProjectRepository(db).get_scope(project_id)
    authorize(scope is not None and ProjectPolicy().can_view(auth, scope), "Project")

    try:
        query_vector = await embedder.get_embedding(q)
    except (ProviderError, EmptyEmbeddingError) as e:
        logger.warning("search_embedding_failed", project_id=str(project_id), error=e.message)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Search is temporarily unavailable",
        ) from e

    neighbors = await DocumentRepository(db).nearest_neighbors(
        query_vector,
        project_id=project_id,
        types=types,
        k=settings.search_limit,
        min_similarity=settings.search_min_similarity,
    )
    return SearchResponse(
        query=q,
        min_similarity=settings.search_min_similarity,
        results=[
            SearchHit(
                id=neighbor.item.id,
                name=neighbor.item.name,
                type=neighbor.item.type,
                parent_id=neighbor.item.parent_id,
                content=neighbor.item.content,
                similarity=neighbor.similarity,
            )
            for neighbor in neighbors
        ],
    )


@router.post(
    "/{project_id}/deliverables",
    response_model=DeliverablesResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def generate_deliverables(
    project_id: UUID,
    request: DeliverablesRequest,
    auth: Auth,
    db: DbSession,
    temporal: Temporal,
) -> DeliverablesResponse:
    """Queue a built-in generation strategy for the whole project."""
    scope = await ProjectRepository(db).get_scope(project_id)
    authorize(scope is not None and DocumentPolicy().can_create(auth, scope), "Project")

    if request.strategy not in BUILTIN_STRATEGIES:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Unknown generation strategy: {request.strategy}",
        )

    workflow_id = await TemporalJobQueue(temporal).enqueue_project(project_id, request.strategy)
    return DeliverablesResponse(workflow_id=workflow_id, strategy=request.strategy)
