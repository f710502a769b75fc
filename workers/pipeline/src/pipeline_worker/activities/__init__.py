"""Temporal activities for the document pipeline."""

from pipeline_worker.activities.document_pipeline import DocumentPipelineActivities

__all__ = ["DocumentPipelineActivities"]
