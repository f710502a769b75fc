"""Provider configuration for embedding and LLM drivers."""

from enum import StrEnum
from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Provider(StrEnum):
    GEMINI = "gemini"
    OLLAMA = "ollama"
    OPENAI = "openai"


class AiSettings(BaseSettings):
    """
    Settings for the AI pipeline, read from ``AI_*`` environment variables.

    Driver selection is process-wide: whichever provider is named here is
    used for every call made by the process.
    """

    model_config = SettingsConfigDict(
        env_prefix="AI_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Driver selection
    embedding_driver: Provider = Provider.GEMINI
    llm_driver: Provider = Provider.GEMINI

    # Must match the vector column of the documents table
    embedding_dimensions: int = 768

    # Timeouts (seconds)
    embedding_timeout: float = 30.0
    llm_timeout: float = 300.0
    temperature: float = 0.7

    # Gemini
    gemini_api_key: SecretStr | None = None
    gemini_base_url: str = "https://generativelanguage.googleapis.com"
    gemini_model: str = "gemini-2.0-flash"
    gemini_embedding_model: str = "text-embedding-004"

    # OpenAI
    openai_api_key: SecretStr | None = None
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-4o-mini"
    openai_embedding_model: str = "text-embedding-3-small"

    # Ollama
    ollama_host: str = "http://localhost:11434"
    ollama_model: str = "deepseek-r1:8b"
    ollama_embedding_model: str = "nomic-embed-text"


@lru_cache
def get_ai_settings() -> AiSettings:
    """Get cached AI settings instance."""
    return AiSettings()
