"""Document domain model."""

from collections.abc import Iterable
from datetime import datetime
from enum import StrEnum
from uuid import UUID

from pydantic import Field, field_validator

from folio_core.models.base import IdentifiableMixin, MetadataMixin, TimestampMixin

INTAKE_TYPE = "intake"


class DocumentState(StrEnum):
    """Position of a document in the embedding/AI pipeline."""

    UNPROCESSED = "unprocessed"
    EMBEDDING = "embedding"
    AWAITING_AI = "awaiting_ai"
    PROCESSED = "processed"
    ERRORED = "errored"


class Document(IdentifiableMixin, TimestampMixin, MetadataMixin):
    """
    Atomic unit of content subject to embedding and AI transformation.

    ``processed_at`` being set means the document is at rest with respect
    to the pipeline. It is cleared before any reprocessing job is
    dispatched and only set again by the pipeline itself.
    """

    project_id: UUID
    parent_id: UUID | None = None
    name: str = Field(..., min_length=1, max_length=255)
    type: str = Field(..., min_length=1, max_length=63)
    content: str | None = None
    embedding: list[float] | None = None
    processed_at: datetime | None = None
    processing_state: DocumentState = DocumentState.UNPROCESSED

    # People
    creator_id: UUID | None = None
    editor_id: UUID | None = None
    assignee_id: UUID | None = None

    # Task tracking
    task_status: str | None = None
    priority: str | None = None
    due_at: datetime | None = None

    @field_validator("embedding", mode="before")
    @classmethod
    def _coerce_embedding(cls, value: Iterable[float] | None) -> list[float] | None:
        # pgvector hands back numpy arrays
        if value is None or isinstance(value, list):
            return value
        return [float(v) for v in value]

    @property
    def has_content(self) -> bool:
        return bool(self.content and self.content.strip())

    @property
    def has_embedding(self) -> bool:
        return self.embedding is not None and len(self.embedding) > 0

    @property
    def is_intake(self) -> bool:
        return self.type == INTAKE_TYPE
