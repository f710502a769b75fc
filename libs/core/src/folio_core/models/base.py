"""Shared pydantic base and field mixins for the domain models."""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from pydantic import AliasChoices
from pydantic import BaseModel as PydanticBaseModel
from pydantic import ConfigDict, Field


def utc_now() -> datetime:
    return datetime.now(UTC)


class BaseModel(PydanticBaseModel):
    """
    Domain models validate ORM rows directly and keep enum fields as their
    string values, which is also how they are stored and sent to workflows.
    """

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        use_enum_values=True,
        validate_assignment=True,
    )


class IdentifiableMixin(BaseModel):
    id: UUID = Field(default_factory=uuid4)


class TimestampMixin(BaseModel):
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class OrganizationScopedMixin(BaseModel):
    """Owned directly by one organization; clients, project types, templates."""

    organization_id: UUID


class MetadataMixin(BaseModel):
    """
    Free-form JSON attached to a row.

    Rows expose it as ``metadata_``; either spelling validates.
    """

    metadata: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("metadata_", "metadata"),
    )
