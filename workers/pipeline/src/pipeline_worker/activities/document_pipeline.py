"""
Document pipeline activities.

Activities are methods of :class:`DocumentPipelineActivities` so that the
drivers, session factory and job queue resolved at worker startup are
shared by every invocation.

Domain failures (provider errors, empty embeddings, generation errors) are
caught here, recorded on the document and returned as a failed output.
Anything else, such as a lost database connection, propagates so the
workflow's retry policy re-runs the activity.
"""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from temporalio import activity

from folio_ai.drivers import EmbeddingDriver, LlmDriver
from folio_ai.service import ProjectAiService
from folio_ai.strategies import WorkflowStrategy, builtin_strategy
from folio_core.errors import EmptyResultError, FolioError, GenerationError, ProviderError
from folio_core.lifecycle import BufferedJobQueue, JobKind, JobQueue, LifecycleDispatcher
from folio_db.clients import EmbedDocumentJob, GenerateDeliverablesJob, PgNotifyBroadcaster
from folio_db.connection import get_async_session
from folio_db.repositories import (
    AiTemplateRepository,
    DocumentRepository,
    ProjectRepository,
    ProjectTypeRepository,
    content_hash,
)
from pipeline_worker.workflows.document_pipeline import (
    EmbedDocumentOutput,
    GenerateDeliverablesOutput,
    JobStatus,
    RecordFailureInput,
)


class DocumentPipelineActivities:
    """Embedding and AI-generation activities for documents."""

    def __init__(
        self,
        sessionmaker: async_sessionmaker[AsyncSession],
        embedder: EmbeddingDriver,
        llm: LlmDriver,
        queue: JobQueue,
    ):
        self._sessionmaker = sessionmaker
        self._embedder = embedder
        self._llm = llm
        self._queue = queue

    def _dispatcher(
        self, session: AsyncSession, documents: DocumentRepository, jobs: BufferedJobQueue
    ) -> LifecycleDispatcher:
        return LifecycleDispatcher(documents, jobs, PgNotifyBroadcaster(session))

    # ============================================================
    # Embedding
    # ============================================================

    @activity.defn(name="embed_document")
    async def embed_document(self, job: EmbedDocumentJob) -> EmbedDocumentOutput:
        """
        Embed a document's content and persist the vector.

        Re-running for unchanged content overwrites the vector with the
        same value. A job whose content hash no longer matches the row is
        stale and does nothing; a newer job covers the new content.
        """
        document_id = UUID(job.document_id)
        activity.logger.info("Embedding document", extra={"document_id": job.document_id})

        jobs = BufferedJobQueue(self._queue)
        async with get_async_session(self._sessionmaker) as session:
            documents = DocumentRepository(session)
            dispatcher = self._dispatcher(session, documents, jobs)

            before = await documents.refresh(document_id)
            if before is None:
                return EmbedDocumentOutput(document_id=job.document_id, status=JobStatus.MISSING)
            if content_hash(before.content) != job.content_hash or not before.has_content:
                activity.logger.info(
                    "Skipping stale embedding job", extra={"document_id": job.document_id}
                )
                return EmbedDocumentOutput(document_id=job.document_id, status=JobStatus.STALE)

            try:
                vector = await self._embedder.get_embedding(before.content or "")
            except (ProviderError, EmptyResultError) as e:
                activity.logger.warning(
                    f"Embedding failed: {e.message}",
                    extra={"document_id": job.document_id, "error_type": type(e).__name__},
                )
                await dispatcher.embedding_failed(document_id, e)
                return EmbedDocumentOutput(
                    document_id=job.document_id, status=JobStatus.FAILED, error=e.message
                )

            if not await documents.store_embedding(document_id, vector, job.content_hash):
                return EmbedDocumentOutput(document_id=job.document_id, status=JobStatus.STALE)

            after = await documents.refresh(document_id)
            if after is not None:
                await dispatcher.updated(before, after)

        await jobs.flush()
        activity.logger.info(
            "Document embedded",
            extra={"document_id": job.document_id, "dimensions": len(vector)},
        )
        return EmbedDocumentOutput(
            document_id=job.document_id, status=JobStatus.EMBEDDED, dimensions=len(vector)
        )

    # ============================================================
    # Generation
    # ============================================================

    @activity.defn(name="generate_document_deliverables")
    async def generate_document_deliverables(
        self, job: GenerateDeliverablesJob
    ) -> GenerateDeliverablesOutput:
        """
        Run the workflow edge consuming a source document.

        The source document is settled whether or not anything was
        generated: it goes on to embedding when it still has no vector,
        otherwise it is marked processed. An edit made meanwhile leaves it
        to the pending embedding job.
        """
        if job.document_id is None:
            raise ValueError("generate_document_deliverables requires a document_id")
        document_id = UUID(job.document_id)
        output = GenerateDeliverablesOutput(
            project_id=job.project_id, document_id=job.document_id, status=JobStatus.SKIPPED
        )

        jobs = BufferedJobQueue(self._queue)
        async with get_async_session(self._sessionmaker) as session:
            documents = DocumentRepository(session)
            projects = ProjectRepository(session)
            dispatcher = self._dispatcher(session, documents, jobs)

            source = await documents.refresh(document_id)
            if source is None:
                output.status = JobStatus.MISSING
                return output
            project = await projects.get_domain(source.project_id)
            scope = await projects.get_scope(source.project_id)
            if project is None or scope is None:
                output.status = JobStatus.MISSING
                return output

            project_type = None
            if project.project_type_id is not None:
                project_type = await ProjectTypeRepository(
                    session, scope.organization_id
                ).get_domain(project.project_type_id)
            edge = project_type.edge_from(source.type) if project_type else None
            template = None
            if edge is not None:
                template = await AiTemplateRepository(session, scope.organization_id).get_domain(
                    edge.ai_template_id
                )

            if edge is None or template is None:
                activity.logger.warning(
                    "No AI transition for document type, skipping",
                    extra={
                        "document_id": job.document_id,
                        "type": source.type,
                        "template_missing": edge is not None,
                    },
                )
                await dispatcher.generation_completed(source.id)
                return output

            strategy = WorkflowStrategy.from_edge(edge, template)
            output.output_type = strategy.output_type
            service = ProjectAiService(self._embedder, self._llm, documents)
            try:
                result = await service.generate_deliverables(
                    project, strategy, source_document=source
                )
            except GenerationError as e:
                activity.logger.error(
                    f"Generation failed: {e.message}",
                    extra={"document_id": job.document_id, "stage": str(e.stage)},
                )
                await dispatcher.generation_failed(document_id, e)
                output.status = JobStatus.FAILED
                output.error = e.message
                return output

            for document in result.documents:
                await dispatcher.created(document)
            await dispatcher.generation_completed(source.id)

        await jobs.flush()
        output.status = JobStatus.GENERATED
        output.created_document_ids = [str(doc.id) for doc in result.documents]
        output.context_documents = result.context_documents
        activity.logger.info(
            "Deliverables generated",
            extra={
                "document_id": job.document_id,
                "output_type": strategy.output_type,
                "created": result.created,
            },
        )
        return output

    @activity.defn(name="generate_project_deliverables")
    async def generate_project_deliverables(
        self, job: GenerateDeliverablesJob
    ) -> GenerateDeliverablesOutput:
        """Run a built-in strategy over a whole project."""
        output = GenerateDeliverablesOutput(project_id=job.project_id, status=JobStatus.SKIPPED)
        try:
            strategy = builtin_strategy(job.strategy or "software")
        except KeyError as e:
            output.status = JobStatus.FAILED
            output.error = str(e)
            return output
        output.output_type = strategy.output_type

        jobs = BufferedJobQueue(self._queue)
        async with get_async_session(self._sessionmaker) as session:
            documents = DocumentRepository(session)
            dispatcher = self._dispatcher(session, documents, jobs)
            project = await ProjectRepository(session).get_domain(UUID(job.project_id))
            if project is None:
                output.status = JobStatus.MISSING
                return output

            service = ProjectAiService(self._embedder, self._llm, documents)
            try:
                result = await service.generate_deliverables(project, strategy)
            except GenerationError as e:
                activity.logger.error(
                    f"Project generation failed: {e.message}",
                    extra={"project_id": job.project_id, "stage": str(e.stage)},
                )
                output.status = JobStatus.FAILED
                output.error = e.message
                return output

            for document in result.documents:
                await dispatcher.created(document)

        await jobs.flush()
        output.status = JobStatus.GENERATED
        output.created_document_ids = [str(doc.id) for doc in result.documents]
        output.context_documents = result.context_documents
        return output

    # ============================================================
    # Failure bookkeeping
    # ============================================================

    @activity.defn(name="record_document_failure")
    async def record_document_failure(self, input: RecordFailureInput) -> None:
        """Mark a document errored after its job exhausted its retries."""
        error = FolioError(input.message)
        async with get_async_session(self._sessionmaker) as session:
            documents = DocumentRepository(session)
            dispatcher = self._dispatcher(session, documents, BufferedJobQueue(self._queue))
            if await documents.refresh(UUID(input.document_id)) is None:
                return
            if input.kind == JobKind.EMBEDDING:
                await dispatcher.embedding_failed(UUID(input.document_id), error)
            else:
                await dispatcher.generation_failed(UUID(input.document_id), error)
        activity.logger.warning(
            "Document marked errored",
            extra={"document_id": input.document_id, "kind": input.kind},
        )
