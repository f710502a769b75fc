"""Organization, client and user SQLAlchemy models."""

from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from folio_db.models.base import Base, MetadataMixin, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from folio_db.models.project import ProjectModel


class OrganizationModel(Base, UUIDMixin, TimestampMixin, MetadataMixin):
    """Top-level tenant."""

    __tablename__ = "organizations"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(63), unique=True, nullable=False, index=True)
    normalized_name: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)

    clients: Mapped[list["ClientModel"]] = relationship(
        "ClientModel", back_populates="organization", cascade="all, delete-orphan"
    )


class UserModel(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "users"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)


class MembershipModel(Base, UUIDMixin, TimestampMixin):
    """A user's membership of an organization with its org-scoped role."""

    __tablename__ = "organization_user"

    organization_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    role: Mapped[str] = mapped_column(String(50), default="member", nullable=False)

    __table_args__ = (
        Index("ix_organization_user_unique", "organization_id", "user_id", unique=True),
        Index("ix_organization_user_user", "user_id"),
    )


class GlobalRoleModel(Base, UUIDMixin, TimestampMixin):
    """Role granted to a user independently of any organization (e.g. super-admin)."""

    __tablename__ = "global_roles"

    user_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    role: Mapped[str] = mapped_column(String(50), nullable=False)

    __table_args__ = (Index("ix_global_roles_unique", "user_id", "role", unique=True),)


class ClientModel(Base, UUIDMixin, TimestampMixin):
    """A tenant's customer. Owns projects."""

    __tablename__ = "clients"

    organization_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    company: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    organization: Mapped["OrganizationModel"] = relationship(
        "OrganizationModel", back_populates="clients"
    )
    projects: Mapped[list["ProjectModel"]] = relationship(
        "ProjectModel", back_populates="client", cascade="all, delete-orphan"
    )


class ClientUserModel(Base, UUIDMixin):
    """Direct grant of a user to a single client."""

    __tablename__ = "client_user"

    client_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_client_user_unique", "client_id", "user_id", unique=True),
        Index("ix_client_user_user", "user_id"),
    )
