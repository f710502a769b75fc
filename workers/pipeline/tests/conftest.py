"""
Pytest fixtures for pipeline worker tests.

Provides fixtures for:
- Temporal test environment
- Mock activities recording their inputs
- Sample job payloads
"""

import uuid
from dataclasses import dataclass, field
from typing import Any

import pytest
from temporalio import activity
from temporalio.testing import WorkflowEnvironment
from temporalio.worker import Worker

from folio_db.clients.temporal import EmbedDocumentJob, GenerateDeliverablesJob
from pipeline_worker.workflows import (
    EmbedDocumentOutput,
    EmbedDocumentWorkflow,
    GenerateDeliverablesOutput,
    GenerateDeliverablesWorkflow,
    JobStatus,
    RecordFailureInput,
)


# =============================================================================
# Mock Activities
# =============================================================================


@dataclass
class MockActivityResults:
    """Container for mock activity behaviour and the calls they received."""

    fail_at_activity: str | None = None
    fail_message: str = "Simulated failure"
    calls: dict[str, list[Any]] = field(default_factory=dict)

    def record(self, name: str, payload: Any) -> None:
        self.calls.setdefault(name, []).append(payload)
        if self.fail_at_activity == name:
            raise RuntimeError(self.fail_message)


def create_mock_activities(results: MockActivityResults) -> list:
    """Create mock activities with the production activity names."""

    @activity.defn(name="embed_document")
    async def mock_embed_document(job: EmbedDocumentJob) -> EmbedDocumentOutput:
        results.record("embed_document", job)
        return EmbedDocumentOutput(
            document_id=job.document_id, status=JobStatus.EMBEDDED, dimensions=768
        )

    @activity.defn(name="generate_document_deliverables")
    async def mock_generate_document_deliverables(
        job: GenerateDeliverablesJob,
    ) -> GenerateDeliverablesOutput:
        results.record("generate_document_deliverables", job)
        return GenerateDeliverablesOutput(
            project_id=job.project_id,
            document_id=job.document_id,
            status=JobStatus.GENERATED,
            output_type="requirements",
            created_document_ids=[str(uuid.uuid4())],
            context_documents=1,
        )

    @activity.defn(name="generate_project_deliverables")
    async def mock_generate_project_deliverables(
        job: GenerateDeliverablesJob,
    ) -> GenerateDeliverablesOutput:
        results.record("generate_project_deliverables", job)
        return GenerateDeliverablesOutput(
            project_id=job.project_id,
            status=JobStatus.GENERATED,
            output_type="user_story",
        )

    @activity.defn(name="record_document_failure")
    async def mock_record_document_failure(input: RecordFailureInput) -> None:
        results.record("record_document_failure", input)

    return [
        mock_embed_document,
        mock_generate_document_deliverables,
        mock_generate_project_deliverables,
        mock_record_document_failure,
    ]


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def mock_results() -> MockActivityResults:
    return MockActivityResults()


@pytest.fixture
def document_id() -> str:
    return str(uuid.uuid4())


@pytest.fixture
def project_id() -> str:
    return str(uuid.uuid4())


@pytest.fixture
async def workflow_environment():
    """Create a time-skipping workflow test environment."""
    async with await WorkflowEnvironment.start_time_skipping() as env:
        yield env


@pytest.fixture
def task_queue() -> str:
    return "test-pipeline"


@pytest.fixture
def run_workflow(workflow_environment, mock_results, task_queue):
    """Run a pipeline workflow to completion against the mock activities."""

    async def _run(workflow_run, job: Any) -> Any:
        async with Worker(
            workflow_environment.client,
            task_queue=task_queue,
            workflows=[EmbedDocumentWorkflow, GenerateDeliverablesWorkflow],
            activities=create_mock_activities(mock_results),
        ):
            return await workflow_environment.client.execute_workflow(
                workflow_run,
                job,
                id=f"test-workflow-{uuid.uuid4()}",
                task_queue=task_queue,
            )

    return _run
