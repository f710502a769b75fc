"""
Document lifecycle state machine.

Mutations of a document are turned into events. :func:`transition_for`
maps an event to a :class:`Transition` without touching any I/O, and
:class:`LifecycleDispatcher` applies that transition through the
persistence, queue and broadcast ports supplied by the caller.

The dispatcher runs inside the write path. It only enqueues work; the
embedding and AI jobs themselves run in the background worker.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any, Protocol
from uuid import UUID

import structlog

from folio_core.errors import FolioError, InvalidTransitionError
from folio_core.models.base import utc_now
from folio_core.models.document import Document, DocumentState

logger = structlog.get_logger(__name__)

VECTORIZED_EVENT = "document.vectorized"


def project_channel(project_id: UUID) -> str:
    """Name of the broadcast channel observers of a project subscribe to."""
    return f"project.{project_id}"


class JobKind(StrEnum):
    EMBEDDING = "embedding"
    AI_GENERATION = "ai_generation"


# ============================================================
# Events
# ============================================================


@dataclass(frozen=True)
class DocumentCreated:
    document: Document


@dataclass(frozen=True)
class DocumentUpdated:
    before: Document
    after: Document

    @property
    def content_changed(self) -> bool:
        return (self.before.content or "") != (self.after.content or "")

    @property
    def became_processed(self) -> bool:
        return self.before.processed_at is None and self.after.processed_at is not None


@dataclass(frozen=True)
class GenerationCompleted:
    """AI work consuming ``document`` finished; ``document`` is the row as it is now."""

    document: Document


DocumentEvent = DocumentCreated | DocumentUpdated | GenerationCompleted


@dataclass(frozen=True)
class Transition:
    """Outcome of a lifecycle event."""

    state: DocumentState | None = None
    job: JobKind | None = None
    clear_embedding: bool = False
    clear_processed_at: bool = False
    stamp_processed_at: bool = False
    notify_vectorized: bool = False

    @property
    def is_noop(self) -> bool:
        return self == NO_TRANSITION

    def changes(self) -> dict[str, Any]:
        """Column values to write for this transition."""
        values: dict[str, Any] = {}
        if self.state is not None:
            values["processing_state"] = self.state
        if self.clear_embedding:
            values["embedding"] = None
        if self.clear_processed_at:
            values["processed_at"] = None
        if self.stamp_processed_at:
            values["processed_at"] = utc_now()
        return values


NO_TRANSITION = Transition()


def transition_for(event: DocumentEvent) -> Transition:
    """
    Decide what a document event does.

    Creation of an unprocessed intake document goes to AI generation;
    any other creation with content goes to embedding. The two branches
    are exclusive so a document never has both jobs in flight. Once AI
    generation completes, a document still lacking a vector moves on to
    embedding, which brings it to rest.
    """
    if isinstance(event, DocumentCreated):
        doc = event.document
        if doc.is_intake and doc.processed_at is None:
            return Transition(state=DocumentState.AWAITING_AI, job=JobKind.AI_GENERATION)
        if doc.has_content and not doc.has_embedding:
            return Transition(state=DocumentState.EMBEDDING, job=JobKind.EMBEDDING)
        return NO_TRANSITION

    if isinstance(event, GenerationCompleted):
        doc = event.document
        if doc.processing_state == DocumentState.EMBEDDING:
            # Edited while generating; the pending embedding job settles it
            return NO_TRANSITION
        if doc.has_content and not doc.has_embedding:
            return Transition(state=DocumentState.EMBEDDING, job=JobKind.EMBEDDING)
        return Transition(
            state=DocumentState.PROCESSED, stamp_processed_at=True, notify_vectorized=True
        )

    if event.content_changed:
        # The old vector no longer describes the content
        if event.after.has_content:
            return Transition(
                state=DocumentState.EMBEDDING,
                job=JobKind.EMBEDDING,
                clear_embedding=True,
                clear_processed_at=True,
            )
        return Transition(
            state=DocumentState.UNPROCESSED,
            clear_embedding=True,
            clear_processed_at=True,
        )

    if event.became_processed and event.after.processing_state != DocumentState.ERRORED:
        return Transition(state=DocumentState.PROCESSED, notify_vectorized=True)

    return NO_TRANSITION


# ============================================================
# Ports
# ============================================================


class LifecycleStore(Protocol):
    """Row-level persistence used by the dispatcher."""

    async def apply_changes(self, document_id: UUID, values: dict[str, Any]) -> None: ...

    async def refresh(self, document_id: UUID) -> Document | None: ...


class JobQueue(Protocol):
    async def enqueue(self, kind: JobKind, document: Document) -> None: ...


class Broadcaster(Protocol):
    async def publish(self, channel: str, event: str, payload: dict[str, Any]) -> None: ...


class BufferedJobQueue:
    """
    Holds jobs until the surrounding transaction has committed.

    A job started before its document row is committed could run
    against a row it cannot see yet, so write paths enqueue here and call
    :meth:`flush` after commit.
    """

    def __init__(self, target: JobQueue):
        self._target = target
        self._pending: list[tuple[JobKind, Document]] = []

    async def enqueue(self, kind: JobKind, document: Document) -> None:
        self._pending.append((kind, document))

    @property
    def pending(self) -> list[tuple[JobKind, Document]]:
        return list(self._pending)

    async def flush(self) -> int:
        pending, self._pending = self._pending, []
        for kind, document in pending:
            await self._target.enqueue(kind, document)
        return len(pending)

    def discard(self) -> None:
        self._pending.clear()


@dataclass
class DispatchResult:
    transition: Transition
    enqueued: list[JobKind] = field(default_factory=list)
    notified: bool = False


def document_payload(document: Document) -> dict[str, Any]:
    """Serialize a document for observers of its project."""
    return document.model_dump(
        mode="json",
        include={
            "id",
            "project_id",
            "name",
            "type",
            "parent_id",
            "content",
            "metadata",
            "processed_at",
            "processing_state",
            "created_at",
            "updated_at",
        },
    )


class LifecycleDispatcher:
    """Receives document events and runs the lifecycle branching."""

    def __init__(self, store: LifecycleStore, queue: JobQueue, broadcaster: Broadcaster):
        self._store = store
        self._queue = queue
        self._broadcaster = broadcaster
        self._log = logger.bind(service="lifecycle")

    async def dispatch(self, event: DocumentEvent) -> DispatchResult:
        document = event.after if isinstance(event, DocumentUpdated) else event.document
        transition = transition_for(event)
        result = DispatchResult(transition=transition)
        if transition.is_noop:
            return result

        changes = transition.changes()
        if changes:
            await self._store.apply_changes(document.id, changes)
            document = document.model_copy(update=changes)

        self._log.info(
            "lifecycle_transition",
            document_id=str(document.id),
            event_type=type(event).__name__,
            state=transition.state,
            job=transition.job,
        )

        if transition.job is not None:
            await self._queue.enqueue(transition.job, document)
            result.enqueued.append(transition.job)

        if transition.notify_vectorized:
            result.notified = await self._notify_vectorized(document)

        return result

    async def created(self, document: Document) -> DispatchResult:
        return await self.dispatch(DocumentCreated(document=document))

    async def updated(self, before: Document, after: Document) -> DispatchResult:
        return await self.dispatch(DocumentUpdated(before=before, after=after))

    async def generation_completed(self, document_id: UUID) -> DispatchResult:
        """Settle a document whose AI job finished, reading its current row."""
        current = await self._store.refresh(document_id)
        if current is None:
            return DispatchResult(transition=NO_TRANSITION)
        return await self.dispatch(GenerationCompleted(document=current))

    async def reprocess(self, document: Document) -> DispatchResult:
        """
        Clear the processed timestamp and queue AI generation again.

        Raises:
            InvalidTransitionError: while an embedding job is in flight
        """
        if document.processing_state == DocumentState.EMBEDDING:
            raise InvalidTransitionError(
                f"Document {document.id} is being embedded and cannot be reprocessed yet"
            )
        transition = Transition(
            state=DocumentState.AWAITING_AI,
            job=JobKind.AI_GENERATION,
            clear_processed_at=True,
        )
        changes = transition.changes()
        await self._store.apply_changes(document.id, changes)
        await self._queue.enqueue(JobKind.AI_GENERATION, document.model_copy(update=changes))
        self._log.info("document_reprocess_queued", document_id=str(document.id))
        return DispatchResult(transition=transition, enqueued=[JobKind.AI_GENERATION])

    async def embedding_failed(self, document_id: UUID, error: FolioError) -> None:
        """Record a failed embedding job. The vector stays null."""
        await self._record_failure(document_id, error, processed_at=None)

    async def generation_failed(self, document_id: UUID, error: FolioError) -> None:
        """Record a failed AI job. The timestamp is set so it is not picked up again."""
        await self._record_failure(document_id, error, processed_at=utc_now())

    async def _record_failure(
        self, document_id: UUID, error: FolioError, processed_at: datetime | None
    ) -> None:
        current = await self._store.refresh(document_id)
        metadata = dict(current.metadata) if current else {}
        metadata["error"] = error.to_metadata()
        metadata["failed_at"] = utc_now().isoformat()

        changes: dict[str, Any] = {
            "processing_state": DocumentState.ERRORED,
            "metadata": metadata,
        }
        if processed_at is None:
            changes["embedding"] = None
        else:
            changes["processed_at"] = processed_at
        await self._store.apply_changes(document_id, changes)

        self._log.warning(
            "document_processing_failed",
            document_id=str(document_id),
            error=error.message,
            error_type=type(error).__name__,
        )

    async def _notify_vectorized(self, document: Document) -> bool:
        # Re-read so the payload carries what the job just wrote
        fresh = await self._store.refresh(document.id)
        if fresh is None:
            return False
        await self._broadcaster.publish(
            project_channel(fresh.project_id),
            VECTORIZED_EVENT,
            document_payload(fresh),
        )
        return True
