"""SQLAlchemy ORM models."""

from folio_db.models.base import Base, MetadataMixin, TimestampMixin, UUIDMixin
from folio_db.models.document import EMBEDDING_DIMENSIONS, DocumentModel
from folio_db.models.project import (
    AiTemplateModel,
    LifecycleStepModel,
    ProjectModel,
    ProjectTypeModel,
    TaskModel,
)
from folio_db.models.tenant import (
    ClientModel,
    ClientUserModel,
    GlobalRoleModel,
    MembershipModel,
    OrganizationModel,
    UserModel,
)

__all__ = [
    # Base
    "Base",
    "UUIDMixin",
    "TimestampMixin",
    "MetadataMixin",
    # Tenant
    "OrganizationModel",
    "UserModel",
    "MembershipModel",
    "GlobalRoleModel",
    "ClientModel",
    "ClientUserModel",
    # Project
    "ProjectModel",
    "ProjectTypeModel",
    "LifecycleStepModel",
    "AiTemplateModel",
    "TaskModel",
    # Document
    "DocumentModel",
    "EMBEDDING_DIMENSIONS",
]
