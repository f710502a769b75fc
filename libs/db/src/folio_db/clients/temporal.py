"""Temporal client wrapper and the document job queue built on it."""

import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

import structlog
from temporalio.client import Client, WorkflowHandle
from temporalio.common import WorkflowIDConflictPolicy
from temporalio.exceptions import WorkflowAlreadyStartedError

from folio_core.lifecycle import JobKind
from folio_core.models import Document
from folio_db.repositories.document import content_hash

logger = structlog.get_logger(__name__)

EMBED_DOCUMENT_WORKFLOW = "EmbedDocumentWorkflow"
GENERATE_DELIVERABLES_WORKFLOW = "GenerateDeliverablesWorkflow"


# ============================================================
# Job payloads (shared with pipeline_worker)
# ============================================================


@dataclass
class EmbedDocumentJob:
    """Embed one document's current content."""

    document_id: str
    content_hash: str


@dataclass
class GenerateDeliverablesJob:
    """
    Generate deliverables.

    With ``document_id`` the project type workflow edge consuming that
    document is used; without it, the built-in ``strategy`` runs for
    ``project_id``.
    """

    project_id: str
    document_id: str | None = None
    strategy: str | None = None


class TemporalClient:
    """Thin wrapper over the Temporal client for starting workflows."""

    def __init__(self, client: Client, default_task_queue: str = "default"):
        self._client = client
        self._default_task_queue = default_task_queue
        self._log = logger.bind(service="temporal")

    @classmethod
    async def connect(
        cls,
        target_host: str = "localhost:7233",
        namespace: str = "default",
        default_task_queue: str = "default",
    ) -> "TemporalClient":
        client = await Client.connect(target_host, namespace=namespace)
        return cls(client, default_task_queue)

    @property
    def client(self) -> Client:
        return self._client

    async def start_workflow(
        self,
        workflow: str | type,
        arg: Any,
        *,
        id: str | None = None,
        task_queue: str | None = None,
        execution_timeout: timedelta | None = None,
        id_conflict_policy: WorkflowIDConflictPolicy = WorkflowIDConflictPolicy.FAIL,
    ) -> WorkflowHandle:
        """
        Start a workflow execution.

        Raises:
            WorkflowAlreadyStartedError: if ``id`` is running and the conflict policy is FAIL
        """
        workflow_id = id or str(uuid.uuid4())
        queue = task_queue or self._default_task_queue
        try:
            handle = await self._client.start_workflow(
                workflow,
                arg,
                id=workflow_id,
                task_queue=queue,
                execution_timeout=execution_timeout,
                id_conflict_policy=id_conflict_policy,
            )
        except WorkflowAlreadyStartedError:
            self._log.warning("workflow_already_started", workflow_id=workflow_id)
            raise

        self._log.info(
            "workflow_started",
            workflow_id=workflow_id,
            workflow_type=workflow if isinstance(workflow, str) else workflow.__name__,
            task_queue=queue,
            run_id=handle.result_run_id,
        )
        return handle

    async def health_check(self) -> bool:
        try:
            await self._client.count_workflows()
        except Exception as e:
            self._log.warning("health_check_failed", error=str(e))
            return False
        return True


class TemporalJobQueue:
    """
    Job queue for the document lifecycle.

    Workflow ids are derived from the document, so at most one job of each
    kind runs per document. A new embedding job replaces a running one,
    whose content is stale by definition; a duplicate AI job attaches to
    the running one.
    """

    def __init__(self, temporal: TemporalClient, execution_timeout: timedelta = timedelta(minutes=15)):
        self._temporal = temporal
        self._execution_timeout = execution_timeout

    @staticmethod
    def workflow_id(kind: JobKind, document_id: uuid.UUID | str) -> str:
        return f"document-{document_id}-{kind}"

    async def enqueue(self, kind: JobKind, document: Document) -> None:
        if kind == JobKind.EMBEDDING:
            await self._temporal.start_workflow(
                EMBED_DOCUMENT_WORKFLOW,
                EmbedDocumentJob(
                    document_id=str(document.id),
                    content_hash=content_hash(document.content),
                ),
                id=self.workflow_id(kind, document.id),
                execution_timeout=self._execution_timeout,
                id_conflict_policy=WorkflowIDConflictPolicy.TERMINATE_EXISTING,
            )
        else:
            await self._temporal.start_workflow(
                GENERATE_DELIVERABLES_WORKFLOW,
                GenerateDeliverablesJob(
                    project_id=str(document.project_id),
                    document_id=str(document.id),
                ),
                id=self.workflow_id(kind, document.id),
                execution_timeout=self._execution_timeout,
                id_conflict_policy=WorkflowIDConflictPolicy.USE_EXISTING,
            )

    async def enqueue_project(self, project_id: uuid.UUID, strategy: str) -> str:
        """Queue a built-in strategy run for a whole project. Returns the workflow id."""
        workflow_id = f"project-{project_id}-{strategy}"
        await self._temporal.start_workflow(
            GENERATE_DELIVERABLES_WORKFLOW,
            GenerateDeliverablesJob(project_id=str(project_id), strategy=strategy),
            id=workflow_id,
            execution_timeout=self._execution_timeout,
            id_conflict_policy=WorkflowIDConflictPolicy.USE_EXISTING,
        )
        return workflow_id
