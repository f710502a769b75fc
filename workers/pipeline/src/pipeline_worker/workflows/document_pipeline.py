"""
Document pipeline workflows.

EmbedDocumentWorkflow embeds one document's content. GenerateDeliverablesWorkflow
runs AI generation, either for the workflow edge consuming one document or for
a built-in strategy over a whole project.

Each workflow wraps a single activity. If the activity still fails after its
retries, the document is marked errored by ``record_document_failure`` so it
does not stay in a transient state.
"""

from dataclasses import dataclass, field
from datetime import timedelta

from temporalio import workflow
from temporalio.common import RetryPolicy
from temporalio.exceptions import ActivityError

with workflow.unsafe.imports_passed_through():
    from folio_db.clients.temporal import (
        EMBED_DOCUMENT_WORKFLOW,
        GENERATE_DELIVERABLES_WORKFLOW,
        EmbedDocumentJob,
        GenerateDeliverablesJob,
    )

# Default retry policy for activities
DEFAULT_RETRY_POLICY = RetryPolicy(
    initial_interval=timedelta(seconds=1),
    backoff_coefficient=2.0,
    maximum_interval=timedelta(minutes=1),
    maximum_attempts=3,
)

# LLM calls are slow and rate limited
GENERATION_RETRY_POLICY = RetryPolicy(
    initial_interval=timedelta(seconds=5),
    backoff_coefficient=2.0,
    maximum_interval=timedelta(minutes=5),
    maximum_attempts=3,
)

EMBEDDING_TIMEOUT = timedelta(minutes=2)
GENERATION_TIMEOUT = timedelta(minutes=10)


class JobStatus:
    EMBEDDED = "embedded"
    GENERATED = "generated"
    SKIPPED = "skipped"
    STALE = "stale"
    MISSING = "missing"
    FAILED = "failed"


# Activity input/output dataclasses
@dataclass
class EmbedDocumentOutput:
    """Output from the embedding activity."""

    document_id: str
    status: str
    dimensions: int = 0
    error: str | None = None


@dataclass
class GenerateDeliverablesOutput:
    """Output from the generation activities."""

    project_id: str
    status: str
    document_id: str | None = None
    output_type: str | None = None
    created_document_ids: list[str] = field(default_factory=list)
    context_documents: int = 0
    error: str | None = None


@dataclass
class RecordFailureInput:
    """Input for marking a document errored after its job gave up."""

    document_id: str
    kind: str  # JobKind value
    message: str


def _failure_message(error: ActivityError) -> str:
    return str(error.cause) if error.cause is not None else str(error)


async def _record_failure(document_id: str, kind: str, message: str) -> None:
    await workflow.execute_activity(
        "record_document_failure",
        RecordFailureInput(document_id=document_id, kind=kind, message=message),
        start_to_close_timeout=timedelta(minutes=1),
        retry_policy=DEFAULT_RETRY_POLICY,
    )


@workflow.defn(name=EMBED_DOCUMENT_WORKFLOW)
class EmbedDocumentWorkflow:
    """Embeds a document and stores its vector."""

    @workflow.run
    async def run(self, job: EmbedDocumentJob) -> EmbedDocumentOutput:
        log = workflow.logger
        log.info(f"Starting embedding workflow for document {job.document_id}")

        try:
            return await workflow.execute_activity(
                "embed_document",
                job,
                start_to_close_timeout=EMBEDDING_TIMEOUT,
                retry_policy=DEFAULT_RETRY_POLICY,
                result_type=EmbedDocumentOutput,
            )
        except ActivityError as e:
            message = _failure_message(e)
            log.error(f"Embedding failed for document {job.document_id}: {message}")
            await _record_failure(job.document_id, "embedding", message)
            return EmbedDocumentOutput(
                document_id=job.document_id, status=JobStatus.FAILED, error=message
            )


@workflow.defn(name=GENERATE_DELIVERABLES_WORKFLOW)
class GenerateDeliverablesWorkflow:
    """Generates deliverables from a document, or from a whole project."""

    @workflow.run
    async def run(self, job: GenerateDeliverablesJob) -> GenerateDeliverablesOutput:
        log = workflow.logger
        activity_name = (
            "generate_document_deliverables"
            if job.document_id is not None
            else "generate_project_deliverables"
        )
        log.info(f"Starting {activity_name} for project {job.project_id}")

        try:
            return await workflow.execute_activity(
                activity_name,
                job,
                start_to_close_timeout=GENERATION_TIMEOUT,
                retry_policy=GENERATION_RETRY_POLICY,
                result_type=GenerateDeliverablesOutput,
            )
        except ActivityError as e:
            message = _failure_message(e)
            log.error(f"Generation failed for project {job.project_id}: {message}")
            if job.document_id is not None:
                await _record_failure(job.document_id, "ai_generation", message)
            return GenerateDeliverablesOutput(
                project_id=job.project_id,
                document_id=job.document_id,
                status=JobStatus.FAILED,
                error=message,
            )
