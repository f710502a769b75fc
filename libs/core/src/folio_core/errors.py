"""Exception hierarchy shared across Folio packages."""

from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from folio_ai.drivers.llm import LlmResult


class FolioError(Exception):
    """Base class for all Folio domain errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_metadata(self) -> dict[str, Any]:
        """Render the error for storage in a document's metadata."""
        return {"type": type(self).__name__, "message": self.message}


class ProviderError(FolioError):
    """Network, auth or quota failure calling an embedding/LLM provider."""

    def __init__(self, message: str, provider: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code

    def to_metadata(self) -> dict[str, Any]:
        data = super().to_metadata()
        data["provider"] = self.provider
        if self.status_code is not None:
            data["status_code"] = self.status_code
        return data


class EmbeddingDimensionError(ProviderError):
    """Provider returned a vector whose length is not the configured dimension."""


class EmptyResultError(FolioError):
    """An operation produced nothing to work with."""


class EmptyEmbeddingError(EmptyResultError):
    """Embedding provider returned no values."""


class ParseError(FolioError):
    """Structured output from an LLM could not be parsed."""

    def __init__(self, message: str, raw_text: str | None = None):
        super().__init__(message)
        self.raw_text = raw_text


class AuthorizationError(FolioError):
    """
    Tenant or role mismatch.

    Surfaced to callers as "not found" so cross-tenant resources never
    leak their existence.
    """


class WorkflowIntegrityError(FolioError, ValueError):
    """A project type's workflow references document types it does not declare."""

    def __init__(self, message: str, missing_keys: list[str] | None = None):
        super().__init__(message)
        self.missing_keys = missing_keys or []


class InvalidTransitionError(FolioError):
    """A lifecycle operation was requested from a state that forbids it."""


# ============================================================
# Generation errors
# ============================================================


class GenerationStage(StrEnum):
    """Stage of deliverable generation at which a failure occurred."""

    EMBEDDING = "embedding"
    RETRIEVAL = "retrieval"
    LLM = "llm"


class GenerationError(FolioError):
    """Deliverable generation aborted."""

    stage: GenerationStage

    def to_metadata(self) -> dict[str, Any]:
        data = super().to_metadata()
        data["stage"] = str(self.stage)
        return data


class EmbeddingStageError(GenerationError):
    """The strategy's search query could not be embedded."""

    stage = GenerationStage.EMBEDDING


class RetrievalEmptyError(GenerationError, EmptyResultError):
    """No context documents were found for a strategy that needs them."""

    stage = GenerationStage.RETRIEVAL


class LlmStageError(GenerationError):
    """The LLM driver returned an error result."""

    stage = GenerationStage.LLM

    def __init__(self, message: str, result: "LlmResult"):
        super().__init__(message)
        self.result = result

    def to_metadata(self) -> dict[str, Any]:
        data = super().to_metadata()
        data["error_type"] = self.result.error_type
        if self.result.raw_text:
            # Truncated raw output kept for diagnosis
            data["raw_text"] = self.result.raw_text[:2000]
        return data
