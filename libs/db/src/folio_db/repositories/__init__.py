"""Database repositories for Folio."""

from folio_db.repositories.base import BaseRepository, OrganizationScopedRepository
from folio_db.repositories.document import DocumentRepository, content_hash
from folio_db.repositories.project import (
    AiTemplateRepository,
    ProjectRepository,
    ProjectTypeRepository,
)
from folio_db.repositories.tenant import AccessRepository

__all__ = [
    # Base
    "BaseRepository",
    "OrganizationScopedRepository",
    # Tenant
    "AccessRepository",
    # Project
    "ProjectRepository",
    "ProjectTypeRepository",
    "AiTemplateRepository",
    # Document
    "DocumentRepository",
    "content_hash",
]
