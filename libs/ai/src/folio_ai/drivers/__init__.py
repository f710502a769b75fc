"""Pluggable embedding and LLM provider drivers."""

from folio_ai.drivers.embedding import (
    MODEL_DIMENSIONS,
    EmbeddingDriver,
    GeminiEmbeddingDriver,
    OllamaEmbeddingDriver,
    OpenAiEmbeddingDriver,
)
from folio_ai.drivers.factory import create_embedding_driver, create_llm_driver
from folio_ai.drivers.llm import (
    GeminiLlmDriver,
    LlmDriver,
    LlmErrorType,
    LlmResult,
    OllamaLlmDriver,
    OpenAiLlmDriver,
    ResultStatus,
)
from folio_ai.drivers.parsing import GeneratedItem, output_schema, parse_items

__all__ = [
    # Embedding
    "EmbeddingDriver",
    "GeminiEmbeddingDriver",
    "OllamaEmbeddingDriver",
    "OpenAiEmbeddingDriver",
    "MODEL_DIMENSIONS",
    # LLM
    "LlmDriver",
    "LlmResult",
    "LlmErrorType",
    "ResultStatus",
    "GeminiLlmDriver",
    "OllamaLlmDriver",
    "OpenAiLlmDriver",
    # Parsing
    "GeneratedItem",
    "output_schema",
    "parse_items",
    # Factory
    "create_embedding_driver",
    "create_llm_driver",
]
