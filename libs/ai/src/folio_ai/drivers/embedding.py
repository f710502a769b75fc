"""
Embedding drivers.

Each driver turns a piece of text into a vector of a fixed, configured
dimension using one provider's HTTP API. The contract is the same for all
of them: either a full vector of the right length comes back, or an
exception is raised. Nothing here retries; callers decide.
"""

from abc import ABC, abstractmethod
from typing import Any

from folio_core.errors import EmbeddingDimensionError, EmptyEmbeddingError, ProviderError
from folio_ai.drivers.base import HttpDriver

# Native output size of the default models
MODEL_DIMENSIONS: dict[str, int] = {
    "text-embedding-004": 768,
    "nomic-embed-text": 768,
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
}


def unexpected_payload(provider: str) -> ProviderError:
    return ProviderError(f"{provider} returned an unexpected embedding payload", provider=provider)


class EmbeddingDriver(ABC):
    """Converts text into a fixed-dimension vector."""

    provider: str
    model: str
    dimensions: int

    async def get_embedding(self, text: str) -> list[float]:
        """
        Embed ``text``.

        Raises:
            ValueError: if ``text`` is empty
            ProviderError: on network, auth or quota failures
            EmptyEmbeddingError: if the provider returned no values
            EmbeddingDimensionError: if the vector has the wrong length
        """
        if not text or not text.strip():
            raise ValueError("Cannot embed empty text")

        values = await self._embed(text)
        if values and not isinstance(values, list):
            raise unexpected_payload(self.provider)
        if not values:
            raise EmptyEmbeddingError(f"{self.provider} returned an empty embedding")
        if len(values) != self.dimensions:
            raise EmbeddingDimensionError(
                f"{self.provider} returned {len(values)} dimensions, expected {self.dimensions}",
                provider=self.provider,
            )
        try:
            return [float(v) for v in values]
        except (TypeError, ValueError) as e:
            raise ProviderError(
                f"{self.provider} returned non-numeric embedding values",
                provider=self.provider,
            ) from e

    @abstractmethod
    async def _embed(self, text: str) -> list[Any]:
        """Call the provider and return the raw values."""

    async def close(self) -> None:
        return None


class GeminiEmbeddingDriver(HttpDriver, EmbeddingDriver):
    """Google Gemini ``embedContent``."""

    provider = "gemini"

    def __init__(
        self,
        api_key: str,
        *,
        model: str = "text-embedding-004",
        dimensions: int = 768,
        base_url: str = "https://generativelanguage.googleapis.com",
        timeout: float = 30.0,
    ):
        super().__init__(base_url, timeout)
        self.api_key = api_key
        self.model = model
        self.dimensions = dimensions

    async def _embed(self, text: str) -> list[Any]:
        body: dict[str, Any] = {"content": {"parts": [{"text": text}]}}
        if self.dimensions != MODEL_DIMENSIONS.get(self.model, self.dimensions):
            body["outputDimensionality"] = self.dimensions
        data = await self._post_json(
            f"/v1beta/models/{self.model}:embedContent",
            body,
            params={"key": self.api_key},
        )
        embedding = data.get("embedding") or {}
        if not isinstance(embedding, dict):
            raise unexpected_payload(self.provider)
        return embedding.get("values") or []


class OllamaEmbeddingDriver(HttpDriver, EmbeddingDriver):
    """Local Ollama ``/api/embeddings``."""

    provider = "ollama"

    def __init__(
        self,
        *,
        host: str = "http://localhost:11434",
        model: str = "nomic-embed-text",
        dimensions: int = 768,
        timeout: float = 30.0,
    ):
        super().__init__(host, timeout)
        self.model = model
        self.dimensions = dimensions

    async def _embed(self, text: str) -> list[Any]:
        data = await self._post_json("/api/embeddings", {"model": self.model, "prompt": text})
        return data.get("embedding") or []


class OpenAiEmbeddingDriver(HttpDriver, EmbeddingDriver):
    """OpenAI ``/embeddings``."""

    provider = "openai"

    def __init__(
        self,
        api_key: str,
        *,
        model: str = "text-embedding-3-small",
        dimensions: int = 1536,
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 30.0,
    ):
        super().__init__(base_url, timeout, headers={"Authorization": f"Bearer {api_key}"})
        self.model = model
        self.dimensions = dimensions

    async def _embed(self, text: str) -> list[Any]:
        data = await self._post_json(
            "/embeddings",
            {
                "model": self.model,
                "input": text,
                "dimensions": self.dimensions,
                "encoding_format": "float",
            },
        )
        items = data.get("data") or []
        if not items:
            return []
        if not isinstance(items, list) or not isinstance(items[0], dict):
            raise unexpected_payload(self.provider)
        return items[0].get("embedding") or []
