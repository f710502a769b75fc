"""Driver selection from configuration."""

from pydantic import SecretStr

from folio_ai.config import AiSettings, Provider
from folio_ai.drivers.embedding import (
    EmbeddingDriver,
    GeminiEmbeddingDriver,
    OllamaEmbeddingDriver,
    OpenAiEmbeddingDriver,
)
from folio_ai.drivers.llm import GeminiLlmDriver, LlmDriver, OllamaLlmDriver, OpenAiLlmDriver


def _require_key(key: SecretStr | None, provider: Provider) -> str:
    if key is None or not key.get_secret_value():
        raise ValueError(f"AI_{provider.upper()}_API_KEY must be set to use the {provider} driver")
    return key.get_secret_value()


def create_embedding_driver(settings: AiSettings) -> EmbeddingDriver:
    """
    Build the embedding driver named by ``settings.embedding_driver``.

    Raises:
        ValueError: for an unknown driver or a missing API key
    """
    match settings.embedding_driver:
        case Provider.GEMINI:
            return GeminiEmbeddingDriver(
                _require_key(settings.gemini_api_key, Provider.GEMINI),
                model=settings.gemini_embedding_model,
                dimensions=settings.embedding_dimensions,
                base_url=settings.gemini_base_url,
                timeout=settings.embedding_timeout,
            )
        case Provider.OLLAMA:
            return OllamaEmbeddingDriver(
                host=settings.ollama_host,
                model=settings.ollama_embedding_model,
                dimensions=settings.embedding_dimensions,
                timeout=settings.embedding_timeout,
            )
        case Provider.OPENAI:
            return OpenAiEmbeddingDriver(
                _require_key(settings.openai_api_key, Provider.OPENAI),
                model=settings.openai_embedding_model,
                dimensions=settings.embedding_dimensions,
                base_url=settings.openai_base_url,
                timeout=settings.embedding_timeout,
            )
    raise ValueError(f"Unsupported embedding driver: {settings.embedding_driver}")


def create_llm_driver(settings: AiSettings) -> LlmDriver:
    """
    Build the LLM driver named by ``settings.llm_driver``.

    Raises:
        ValueError: for an unknown driver or a missing API key
    """
    match settings.llm_driver:
        case Provider.GEMINI:
            return GeminiLlmDriver(
                _require_key(settings.gemini_api_key, Provider.GEMINI),
                model=settings.gemini_model,
                temperature=settings.temperature,
                base_url=settings.gemini_base_url,
                timeout=settings.llm_timeout,
            )
        case Provider.OLLAMA:
            return OllamaLlmDriver(
                host=settings.ollama_host,
                model=settings.ollama_model,
                temperature=settings.temperature,
                timeout=settings.llm_timeout,
            )
        case Provider.OPENAI:
            return OpenAiLlmDriver(
                _require_key(settings.openai_api_key, Provider.OPENAI),
                model=settings.openai_model,
                embedding_model=settings.openai_embedding_model,
                dimensions=settings.embedding_dimensions,
                temperature=settings.temperature,
                base_url=settings.openai_base_url,
                timeout=settings.llm_timeout,
                embedding_timeout=settings.embedding_timeout,
            )
    raise ValueError(f"Unsupported LLM driver: {settings.llm_driver}")
