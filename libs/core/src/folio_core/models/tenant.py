"""Organization, client and user domain models."""

import re
from enum import StrEnum
from uuid import UUID

from pydantic import Field

from folio_core.models.base import (
    IdentifiableMixin,
    MetadataMixin,
    OrganizationScopedMixin,
    TimestampMixin,
)

_CORPORATE_SUFFIXES = ("incorporated", "limited", "corp", "inc", "ltd", "llc")
_SUFFIX_PATTERN = re.compile(r"\b(" + "|".join(_CORPORATE_SUFFIXES) + r")\b")
_NON_WORD = re.compile(r"[^\w\s]")
_SPACES = re.compile(r"\s+")


class Role(StrEnum):
    """Role names known to the authorization layer."""

    SUPER_ADMIN = "super-admin"  # Global, never tied to an organization
    ORG_ADMIN = "org-admin"
    MEMBER = "member"


class Organization(IdentifiableMixin, TimestampMixin, MetadataMixin):
    """
    Organization is the top-level isolation boundary.

    Every client, project and document traces back to exactly one
    organization.
    """

    name: str = Field(..., min_length=1, max_length=255)
    slug: str = Field(..., min_length=1, max_length=63, pattern=r"^[a-z0-9-]+$")
    normalized_name: str | None = None

    @staticmethod
    def normalize_name(name: str) -> str:
        """
        Normalize a company name for duplicate detection.

        "Acme, Inc." and "ACME Incorporated" both normalize to "acme".
        """
        value = _NON_WORD.sub(" ", name.lower())
        value = _SUFFIX_PATTERN.sub(" ", value)
        return _SPACES.sub(" ", value).strip()


class Client(IdentifiableMixin, OrganizationScopedMixin, TimestampMixin):
    """A tenant's customer record. Clients own projects."""

    name: str = Field(..., min_length=1, max_length=255)
    company: str | None = None
    email: str | None = None


class User(IdentifiableMixin, TimestampMixin):
    """Platform user."""

    name: str = Field(..., min_length=1, max_length=255)
    email: str


class Membership(OrganizationScopedMixin):
    """A user's membership of an organization, carrying an org-scoped role."""

    user_id: UUID
    role: Role = Role.MEMBER
