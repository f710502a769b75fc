"""Declarative base and the column mixins shared by the ORM models."""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import DateTime, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _now() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    type_annotation_map = {dict[str, Any]: JSONB}


class UUIDMixin:
    """Primary key generated client side, so ids are known before flush."""

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True, default=uuid4)


class TimestampMixin:
    """
    ``created_at`` and ``updated_at`` in UTC.

    The ORM bumps ``updated_at`` on the updates it issues itself; bulk
    ``UPDATE`` statements have to set it explicitly.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_now, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_now, server_default=func.now(), onupdate=_now
    )


class MetadataMixin:
    # Declarative classes reserve ``metadata``; the column keeps the plain name
    metadata_: Mapped[dict[str, Any]] = mapped_column("metadata", default=dict)
