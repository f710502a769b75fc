"""Domain models for Folio."""

from folio_core.models.base import (
    BaseModel,
    IdentifiableMixin,
    MetadataMixin,
    OrganizationScopedMixin,
    TimestampMixin,
    utc_now,
)
from folio_core.models.document import INTAKE_TYPE, Document, DocumentState
from folio_core.models.project import (
    AiTemplate,
    DocumentSlot,
    LifecycleStep,
    Project,
    ProjectType,
    Task,
    WorkflowEdge,
)
from folio_core.models.tenant import Client, Membership, Organization, Role, User

__all__ = [
    # Base
    "BaseModel",
    "TimestampMixin",
    "IdentifiableMixin",
    "OrganizationScopedMixin",
    "MetadataMixin",
    "utc_now",
    # Tenant
    "Organization",
    "Client",
    "User",
    "Membership",
    "Role",
    # Project
    "Project",
    "ProjectType",
    "DocumentSlot",
    "WorkflowEdge",
    "LifecycleStep",
    "AiTemplate",
    "Task",
    # Document
    "Document",
    "DocumentState",
    "INTAKE_TYPE",
]
