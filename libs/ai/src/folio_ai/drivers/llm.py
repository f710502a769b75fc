"""
LLM drivers.

Every backend is normalized to the same result: a status, an optional
error type and message, and a flat list of generated items. Drivers never
raise for provider or parsing problems; those come back as error results
so the caller handles every backend the same way.
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

import structlog

from folio_core.errors import ParseError, ProviderError
from folio_ai.drivers.base import HttpDriver
from folio_ai.drivers.embedding import EmbeddingDriver, unexpected_payload
from folio_ai.drivers.parsing import GeneratedItem, output_schema, parse_items

DEFAULT_BODY_KEY = "content"

logger = structlog.get_logger(__name__)


class ResultStatus(StrEnum):
    SUCCESS = "success"
    ERROR = "error"


class LlmErrorType(StrEnum):
    CONNECTION = "connection"
    HTTP = "http"
    JSON_PARSE = "json_parse"
    EMPTY = "empty"


@dataclass
class LlmResult:
    """Normalized outcome of an LLM call."""

    status: ResultStatus
    items: list[GeneratedItem] = field(default_factory=list)
    error_type: LlmErrorType | None = None
    message: str = ""
    raw_text: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == ResultStatus.SUCCESS

    @classmethod
    def success(cls, items: list[GeneratedItem], raw_text: str | None = None) -> "LlmResult":
        return cls(status=ResultStatus.SUCCESS, items=items, message="ok", raw_text=raw_text)

    @classmethod
    def failure(
        cls, error_type: LlmErrorType, message: str, raw_text: str | None = None
    ) -> "LlmResult":
        return cls(
            status=ResultStatus.ERROR,
            items=[],
            error_type=error_type,
            message=message,
            raw_text=raw_text,
        )

    def to_payload(self, body_key: str = DEFAULT_BODY_KEY) -> dict[str, Any]:
        """Render as ``{status, error_type, message, content: [...]}``."""
        return {
            "status": str(self.status),
            "error_type": str(self.error_type) if self.error_type else None,
            "message": self.message,
            "content": [
                {"title": item.title, body_key: item.body, "criteria": item.criteria}
                for item in self.items
            ],
        }


def schema_instruction(body_key: str) -> str:
    """Output contract appended to prompts for backends without schema support."""
    return (
        "Respond ONLY with a JSON object matching this JSON schema, "
        "with no commentary and no markdown:\n"
        + json.dumps(output_schema(body_key))
    )


def malformed(provider: str, data: dict[str, Any]) -> ParseError:
    return ParseError(
        f"{provider} response has an unexpected shape",
        raw_text=json.dumps(data, default=str)[:2000],
    )


def text_or_empty(value: Any, provider: str, data: dict[str, Any]) -> str:
    """A text node that may be null; anything other than a string is malformed."""
    if value is None:
        return ""
    if not isinstance(value, str):
        raise malformed(provider, data)
    return value


class LlmDriver(ABC):
    """Turns a (system prompt, user prompt) pair into generated items."""

    provider: str

    async def call(
        self, system_prompt: str, user_prompt: str, *, body_key: str = DEFAULT_BODY_KEY
    ) -> LlmResult:
        try:
            text = await self._complete(system_prompt, user_prompt, body_key)
        except ProviderError as e:
            error_type = LlmErrorType.HTTP if e.status_code else LlmErrorType.CONNECTION
            logger.warning(
                "llm_call_failed",
                provider=self.provider,
                error_type=str(error_type),
                status_code=e.status_code,
                error=e.message,
            )
            return LlmResult.failure(error_type, e.message)
        except ParseError as e:
            logger.warning("llm_response_malformed", provider=self.provider, error=e.message)
            return LlmResult.failure(LlmErrorType.JSON_PARSE, e.message, raw_text=e.raw_text)

        if not text or not text.strip():
            return LlmResult.failure(LlmErrorType.EMPTY, f"{self.provider} returned no content")

        try:
            items = parse_items(text, body_key)
        except ParseError as e:
            logger.warning(
                "llm_output_unparseable",
                provider=self.provider,
                error=e.message,
                raw_length=len(text),
            )
            return LlmResult.failure(LlmErrorType.JSON_PARSE, e.message, raw_text=text)

        logger.info("llm_call_completed", provider=self.provider, items=len(items))
        return LlmResult.success(items, raw_text=text)

    @abstractmethod
    async def _complete(self, system_prompt: str, user_prompt: str, body_key: str) -> str:
        """
        Return the raw text produced by the model.

        Raises :class:`ProviderError` when the call fails and
        :class:`ParseError` when the response body is not shaped as the
        provider documents it.
        """

    async def close(self) -> None:
        return None


class OpenAiLlmDriver(HttpDriver, LlmDriver, EmbeddingDriver):
    """
    OpenAI chat completions with strict JSON schema output.

    Also serves embeddings, for deployments where one provider fills both
    roles.
    """

    provider = "openai"

    def __init__(
        self,
        api_key: str,
        *,
        model: str = "gpt-4o-mini",
        embedding_model: str = "text-embedding-3-small",
        dimensions: int = 1536,
        temperature: float = 0.7,
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 300.0,
        embedding_timeout: float = 30.0,
    ):
        super().__init__(base_url, timeout, headers={"Authorization": f"Bearer {api_key}"})
        self.model = model
        self.embedding_model = embedding_model
        self.dimensions = dimensions
        self.temperature = temperature
        self.embedding_timeout = embedding_timeout

    async def _complete(self, system_prompt: str, user_prompt: str, body_key: str) -> str:
        data = await self._post_json(
            "/chat/completions",
            {
                "model": self.model,
                "messages": [
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                "response_format": {
                    "type": "json_schema",
                    "json_schema": {
                        "name": "document_extraction",
                        "strict": True,
                        "schema": output_schema(body_key),
                    },
                },
                "temperature": self.temperature,
            },
        )
        choices = data.get("choices") or []
        if not isinstance(choices, list):
            raise malformed(self.provider, data)
        if not choices:
            return ""
        choice = choices[0]
        message = (choice.get("message") or {}) if isinstance(choice, dict) else None
        if not isinstance(message, dict):
            raise malformed(self.provider, data)
        return text_or_empty(message.get("content"), self.provider, data)

    async def _embed(self, text: str) -> list[Any]:
        data = await self._post_json(
            "/embeddings",
            {
                "model": self.embedding_model,
                "input": text,
                "dimensions": self.dimensions,
                "encoding_format": "float",
            },
            timeout=self.embedding_timeout,
        )
        items = data.get("data") or []
        if not items:
            return []
        if not isinstance(items, list) or not isinstance(items[0], dict):
            raise unexpected_payload(self.provider)
        return items[0].get("embedding") or []


class GeminiLlmDriver(HttpDriver, LlmDriver):
    """Google Gemini ``generateContent`` in JSON mode."""

    provider = "gemini"

    def __init__(
        self,
        api_key: str,
        *,
        model: str = "gemini-2.0-flash",
        temperature: float = 0.7,
        base_url: str = "https://generativelanguage.googleapis.com",
        timeout: float = 300.0,
    ):
        super().__init__(base_url, timeout)
        self.api_key = api_key
        self.model = model
        self.temperature = temperature

    async def _complete(self, system_prompt: str, user_prompt: str, body_key: str) -> str:
        data = await self._post_json(
            f"/v1beta/models/{self.model}:generateContent",
            {
                "systemInstruction": {"parts": [{"text": system_prompt}]},
                "contents": [
                    {
                        "role": "user",
                        "parts": [{"text": f"{user_prompt}\n\n{schema_instruction(body_key)}"}],
                    }
                ],
                "generationConfig": {
                    "responseMimeType": "application/json",
                    "temperature": self.temperature,
                },
            },
            params={"key": self.api_key},
        )
        candidates = data.get("candidates") or []
        if not isinstance(candidates, list):
            raise malformed(self.provider, data)
        if not candidates:
            return ""
        candidate = candidates[0]
        content = (candidate.get("content") or {}) if isinstance(candidate, dict) else None
        parts = (content.get("parts") or []) if isinstance(content, dict) else None
        if not isinstance(parts, list) or not all(isinstance(part, dict) for part in parts):
            raise malformed(self.provider, data)
        # Parts with a null text carry no output
        return "".join(text_or_empty(part.get("text"), self.provider, data) for part in parts)


class OllamaLlmDriver(HttpDriver, LlmDriver):
    """
    Local Ollama ``/api/generate``.

    Reasoning models wrap their answer in ``<think>`` traces; those are
    stripped during parsing.
    """

    provider = "ollama"

    def __init__(
        self,
        *,
        host: str = "http://localhost:11434",
        model: str = "deepseek-r1:8b",
        temperature: float = 0.7,
        timeout: float = 300.0,
    ):
        super().__init__(host, timeout)
        self.model = model
        self.temperature = temperature

    async def _complete(self, system_prompt: str, user_prompt: str, body_key: str) -> str:
        data = await self._post_json(
            "/api/generate",
            {
                "model": self.model,
                "system": system_prompt,
                "prompt": f"{user_prompt}\n\n{schema_instruction(body_key)}",
                "stream": False,
                "format": "json",
                "options": {"temperature": self.temperature},
            },
        )
        return text_or_empty(data.get("response"), self.provider, data)
