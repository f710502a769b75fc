"""Folio DB - database models, repositories and service clients."""

from folio_db.clients import PgNotifyBroadcaster, TemporalClient, TemporalJobQueue
from folio_db.connection import (
    get_async_engine,
    get_async_session,
    get_async_sessionmaker,
    ping,
)
from folio_db.models import Base
from folio_db.repositories import (
    AccessRepository,
    AiTemplateRepository,
    BaseRepository,
    DocumentRepository,
    OrganizationScopedRepository,
    ProjectRepository,
    ProjectTypeRepository,
)

__version__ = "0.1.0"

__all__ = [
    # Base and connection
    "Base",
    "get_async_engine",
    "get_async_session",
    "get_async_sessionmaker",
    "ping",
    # Clients
    "PgNotifyBroadcaster",
    "TemporalClient",
    "TemporalJobQueue",
    # Repositories
    "BaseRepository",
    "OrganizationScopedRepository",
    "AccessRepository",
    "ProjectRepository",
    "ProjectTypeRepository",
    "AiTemplateRepository",
    "DocumentRepository",
]
