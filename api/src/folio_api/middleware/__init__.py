"""API middleware components."""

from folio_api.middleware.context import (
    Auth,
    get_authorization_context,
    parse_uuid,
    resolve_authorization_context,
)

__all__ = [
    "Auth",
    "get_authorization_context",
    "parse_uuid",
    "resolve_authorization_context",
]
