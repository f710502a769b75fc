"""Document management routes."""

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from folio_api.dependencies import Lifecycle, LifecycleUnit
from folio_api.middleware.context import Auth
from folio_core.authorization import AuthorizationContext, DocumentPolicy, authorize
from folio_core.models import Document
from folio_db.repositories import ProjectRepository

router = APIRouter(tags=["Documents"])

policy = DocumentPolicy()

Action = Literal["view", "create", "update", "delete"]

# Columns that cannot be cleared by sending null
_REQUIRED_FIELDS = frozenset({"name", "metadata"})


# ============================================================
# Response Models
# ============================================================


class DocumentResponse(BaseModel):
    """Document response model."""

    id: UUID
    project_id: UUID
    parent_id: UUID | None
    name: str
    type: str
    content: str | None
    metadata: dict[str, Any]
    processing_state: str
    processed_at: datetime | None
    has_embedding: bool
    assignee_id: UUID | None
    task_status: str | None
    priority: str | None
    due_at: datetime | None
    created_at: datetime
    updated_at: datetime


class ReprocessResponse(BaseModel):
    document: DocumentResponse
    jobs_started: int


# ============================================================
# Request Models
# ============================================================


class CreateDocumentRequest(BaseModel):
    """Request to create a document in a project."""

    name: str = Field(..., min_length=1, max_length=255)
    type: str = Field(..., min_length=1, max_length=63)
    content: str | None = None
    parent_id: UUID | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    assignee_id: UUID | None = None
    task_status: str | None = None
    priority: str | None = None
    due_at: datetime | None = None


class UpdateDocumentRequest(BaseModel):
    """Request to update a document. Only fields sent are changed."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    content: str | None = None
    metadata: dict[str, Any] | None = None
    assignee_id: UUID | None = None
    task_status: str | None = None
    priority: str | None = None
    due_at: datetime | None = None


# ============================================================
# Helper Functions
# ============================================================


def _document_to_response(doc: Document) -> DocumentResponse:
    """Convert a Document to DocumentResponse."""
    return DocumentResponse(
        id=doc.id,
        project_id=doc.project_id,
        parent_id=doc.parent_id,
        name=doc.name,
        type=doc.type,
        content=doc.content,
        metadata=doc.metadata,
        processing_state=str(doc.processing_state),
        processed_at=doc.processed_at,
        has_embedding=doc.has_embedding,
        assignee_id=doc.assignee_id,
        task_status=doc.task_status,
        priority=doc.priority,
        due_at=doc.due_at,
        created_at=doc.created_at,
        updated_at=doc.updated_at,
    )


async def _load_document(
    lifecycle: LifecycleUnit,
    auth: AuthorizationContext,
    document_id: UUID,
    action: Action,
) -> Document:
    """Load a document the caller may act on, or report it as not found."""
    scope = await lifecycle.documents.get_scope(document_id)
    check = {
        "view": policy.can_view,
        "create": policy.can_create,
        "update": policy.can_update,
        "delete": policy.can_delete,
    }[action]
    authorize(scope is not None and check(auth, scope), "Document")

    document = await lifecycle.documents.refresh(document_id)
    authorize(document is not None, "Document")
    return document


# ============================================================
# Endpoints
# ============================================================


@router.post(
    "/projects/{project_id}/documents",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_document(
    project_id: UUID,
    request: CreateDocumentRequest,
    auth: Auth,
    lifecycle: Lifecycle,
) -> DocumentResponse:
    """
    Create a document.

    Intake documents are queued for AI generation; any other document with
    content is queued for embedding.
    """
    scope = await ProjectRepository(lifecycle.session).get_scope(project_id)
    authorize(scope is not None and policy.can_create(auth, scope), "Project")

    if request.parent_id is not None:
        parent = await lifecycle.documents.get_domain(request.parent_id)
        if parent is None or parent.project_id != project_id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Parent document not found: {request.parent_id}",
            )

    document = Document(
        project_id=project_id,
        creator_id=auth.user_id,
        editor_id=auth.user_id,
        **request.model_dump(),
    )
    await lifecycle.documents.add(document)
    await lifecycle.dispatcher.created(document)

    created = await lifecycle.documents.refresh(document.id)
    await lifecycle.commit()
    return _document_to_response(created)


@router.get("/documents/{document_id}", response_model=DocumentResponse)
async def get_document(
    document_id: UUID,
    auth: Auth,
    lifecycle: Lifecycle,
) -> DocumentResponse:
    """Get a document by ID."""
    document = await _load_document(lifecycle, auth, document_id, "view")
    return _document_to_response(document)


@router.patch("/documents/{document_id}", response_model=DocumentResponse)
async def update_document(
    document_id: UUID,
    request: UpdateDocumentRequest,
    auth: Auth,
    lifecycle: Lifecycle,
) -> DocumentResponse:
    """
    Update a document.

    Changing the content discards the stored vector and queues a new
    embedding job.
    """
    before = await _load_document(lifecycle, auth, document_id, "update")

    changes = {
        key: value
        for key, value in request.model_dump(exclude_unset=True).items()
        if value is not None or key not in _REQUIRED_FIELDS
    }
    if changes:
        changes["editor_id"] = auth.user_id
        await lifecycle.documents.apply_changes(document_id, changes)
    after = await lifecycle.documents.refresh(document_id)
    await lifecycle.dispatcher.updated(before, after)

    updated = await lifecycle.documents.refresh(document_id)
    await lifecycle.commit()
    return _document_to_response(updated)


@router.delete("/documents/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: UUID,
    auth: Auth,
    lifecycle: Lifecycle,
) -> None:
    """Delete a document. Derived documents keep existing without a parent."""
    await _load_document(lifecycle, auth, document_id, "delete")

    model = await lifecycle.documents.get_by_id(document_id)
    if model is not None:
        await lifecycle.documents.delete(model)
    await lifecycle.commit()


@router.post(
    "/documents/{document_id}/reprocess",
    response_model=ReprocessResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def reprocess_document(
    document_id: UUID,
    auth: Auth,
    lifecycle: Lifecycle,
) -> ReprocessResponse:
    """
    Run AI generation for a document again.

    Rejected with 409 while the document is being embedded.
    """
    document = await _load_document(lifecycle, auth, document_id, "update")
    await lifecycle.dispatcher.reprocess(document)

    refreshed = await lifecycle.documents.refresh(document_id)
    jobs_started = await lifecycle.commit()
    return ReprocessResponse(
        document=_document_to_response(refreshed),
        jobs_started=jobs_started,
    )
