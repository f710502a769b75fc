"""Temporal workflows for the document pipeline."""

from pipeline_worker.workflows.document_pipeline import (
    EmbedDocumentOutput,
    EmbedDocumentWorkflow,
    GenerateDeliverablesOutput,
    GenerateDeliverablesWorkflow,
    JobStatus,
    RecordFailureInput,
)

__all__ = [
    "EmbedDocumentWorkflow",
    "GenerateDeliverablesWorkflow",
    "EmbedDocumentOutput",
    "GenerateDeliverablesOutput",
    "RecordFailureInput",
    "JobStatus",
]
