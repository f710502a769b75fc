"""Clients for external services."""

from folio_db.clients.notifications import PgNotifyBroadcaster
from folio_db.clients.temporal import (
    EMBED_DOCUMENT_WORKFLOW,
    GENERATE_DELIVERABLES_WORKFLOW,
    EmbedDocumentJob,
    GenerateDeliverablesJob,
    TemporalClient,
    TemporalJobQueue,
)

__all__ = [
    "PgNotifyBroadcaster",
    "TemporalClient",
    "TemporalJobQueue",
    "EmbedDocumentJob",
    "GenerateDeliverablesJob",
    "EMBED_DOCUMENT_WORKFLOW",
    "GENERATE_DELIVERABLES_WORKFLOW",
]
