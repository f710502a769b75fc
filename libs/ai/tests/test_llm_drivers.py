"""Tests for LLM drivers and result normalization."""

import json

import httpx
import pytest

from folio_ai.drivers.llm import (
    GeminiLlmDriver,
    LlmErrorType,
    LlmResult,
    OllamaLlmDriver,
    OpenAiLlmDriver,
    ResultStatus,
)
from folio_ai.drivers.parsing import GeneratedItem
from folio_core.errors import ProviderError


pytestmark = [pytest.mark.unit]

STORIES = {
    "items": [
        {
            "title": "Book online",
            "story": "As a customer, I want to book online so that I skip the phone queue.",
            "criteria": ["Slots are shown", "Confirmation is emailed"],
        }
    ]
}


def openai_reply(content: str) -> httpx.Response:
    return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})


@pytest.mark.asyncio
class TestOpenAiLlmDriver:
    """Tests for OpenAiLlmDriver."""

    async def test_success(self, mock_http):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return openai_reply(json.dumps(STORIES))

        driver = mock_http(OpenAiLlmDriver("sk-test"), handler)

        result = await driver.call("system", "user", body_key="story")

        assert result.ok
        assert result.items[0].title == "Book online"
        assert result.items[0].body.startswith("As a customer")
        assert result.items[0].criteria == ["Slots are shown", "Confirmation is emailed"]

        body = json.loads(seen[0].content)
        schema = body["response_format"]["json_schema"]
        assert schema["strict"] is True
        assert "story" in schema["schema"]["properties"]["items"]["items"]["required"]

    async def test_truncated_json(self, mock_http):
        truncated = json.dumps(STORIES)[:40]
        driver = mock_http(OpenAiLlmDriver("sk-test"), lambda request: openai_reply(truncated))

        result = await driver.call("system", "user")

        assert result.status == ResultStatus.ERROR
        assert result.error_type == LlmErrorType.JSON_PARSE
        assert result.items == []
        assert result.raw_text == truncated

    async def test_http_error(self, mock_http):
        driver = mock_http(
            OpenAiLlmDriver("sk-test"),
            lambda request: httpx.Response(500, text="upstream failure"),
        )

        result = await driver.call("system", "user")

        assert result.error_type == LlmErrorType.HTTP
        assert "500" in result.message

    async def test_connection_error(self, mock_http):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        driver = mock_http(OpenAiLlmDriver("sk-test"), handler)

        result = await driver.call("system", "user")

        assert result.error_type == LlmErrorType.CONNECTION

    async def test_empty_choices(self, mock_http):
        driver = mock_http(
            OpenAiLlmDriver("sk-test"), lambda request: httpx.Response(200, json={"choices": []})
        )

        result = await driver.call("system", "user")

        assert result.error_type == LlmErrorType.EMPTY

    async def test_choice_that_is_not_an_object(self, mock_http):
        driver = mock_http(
            OpenAiLlmDriver("sk-test"),
            lambda request: httpx.Response(200, json={"choices": ["oops"]}),
        )

        result = await driver.call("system", "user")

        assert result.error_type == LlmErrorType.JSON_PARSE
        assert "unexpected shape" in result.message
        assert "oops" in result.raw_text

    async def test_non_string_content(self, mock_http):
        driver = mock_http(
            OpenAiLlmDriver("sk-test"),
            lambda request: httpx.Response(
                200, json={"choices": [{"message": {"content": {"items": []}}}]}
            ),
        )

        result = await driver.call("system", "user")

        assert result.error_type == LlmErrorType.JSON_PARSE

    async def test_null_content_is_empty(self, mock_http):
        driver = mock_http(
            OpenAiLlmDriver("sk-test"),
            lambda request: httpx.Response(200, json={"choices": [{"message": {"content": None}}]}),
        )

        result = await driver.call("system", "user")

        assert result.error_type == LlmErrorType.EMPTY

    async def test_embedding_item_that_is_not_an_object(self, mock_http):
        driver = mock_http(
            OpenAiLlmDriver("sk-test", dimensions=2),
            lambda request: httpx.Response(200, json={"data": [[0.3, 0.4]]}),
        )

        with pytest.raises(ProviderError):
            await driver.get_embedding("notes")

    async def test_also_embeds(self, mock_http):
        driver = mock_http(
            OpenAiLlmDriver("sk-test", dimensions=2),
            lambda request: httpx.Response(200, json={"data": [{"embedding": [0.3, 0.4]}]}),
        )

        assert await driver.get_embedding("notes") == [0.3, 0.4]


@pytest.mark.asyncio
class TestGeminiLlmDriver:
    async def test_joins_parts_and_requests_json(self, mock_http):
        seen: list[httpx.Request] = []
        text = json.dumps(STORIES)

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={
                    "candidates": [
                        {"content": {"parts": [{"text": text[:20]}, {"text": text[20:]}]}}
                    ]
                },
            )

        driver = mock_http(GeminiLlmDriver("key"), handler)

        result = await driver.call("system", "user", body_key="story")

        assert result.ok
        assert len(result.items) == 1
        body = json.loads(seen[0].content)
        assert body["generationConfig"]["responseMimeType"] == "application/json"
        assert body["systemInstruction"]["parts"][0]["text"] == "system"
        assert "JSON schema" in body["contents"][0]["parts"][0]["text"]

    async def test_null_text_parts_are_skipped(self, mock_http):
        parts = [{"text": None}, {"text": json.dumps(STORIES)}, {"inlineData": {}}]
        driver = mock_http(
            GeminiLlmDriver("key"),
            lambda request: httpx.Response(
                200, json={"candidates": [{"content": {"parts": parts}}]}
            ),
        )

        result = await driver.call("system", "user", body_key="story")

        assert result.ok
        assert result.items[0].title == "Book online"

    async def test_only_null_text_is_empty(self, mock_http):
        driver = mock_http(
            GeminiLlmDriver("key"),
            lambda request: httpx.Response(
                200, json={"candidates": [{"content": {"parts": [{"text": None}]}}]}
            ),
        )

        result = await driver.call("system", "user")

        assert result.error_type == LlmErrorType.EMPTY

    async def test_part_that_is_not_an_object(self, mock_http):
        driver = mock_http(
            GeminiLlmDriver("key"),
            lambda request: httpx.Response(
                200, json={"candidates": [{"content": {"parts": ["text"]}}]}
            ),
        )

        result = await driver.call("system", "user")

        assert result.error_type == LlmErrorType.JSON_PARSE


@pytest.mark.asyncio
class TestOllamaLlmDriver:
    async def test_strips_reasoning_trace(self, mock_http):
        response = "<think>The user wants stories...</think>\n" + json.dumps(STORIES)
        driver = mock_http(
            OllamaLlmDriver(), lambda request: httpx.Response(200, json={"response": response})
        )

        result = await driver.call("system", "user", body_key="story")

        assert result.ok
        assert result.items[0].title == "Book online"

    async def test_prose_only(self, mock_http):
        driver = mock_http(
            OllamaLlmDriver(),
            lambda request: httpx.Response(200, json={"response": "I cannot help with that."}),
        )

        result = await driver.call("system", "user")

        assert result.error_type == LlmErrorType.JSON_PARSE
        assert result.raw_text == "I cannot help with that."

    async def test_non_string_response(self, mock_http):
        driver = mock_http(
            OllamaLlmDriver(), lambda request: httpx.Response(200, json={"response": ["a", "b"]})
        )

        result = await driver.call("system", "user")

        assert result.error_type == LlmErrorType.JSON_PARSE


class TestLlmResult:
    def test_payload_uses_body_key(self):
        result = LlmResult.success([GeneratedItem(title="A", body="text", criteria=["c"])])

        payload = result.to_payload("story")

        assert payload == {
            "status": "success",
            "error_type": None,
            "message": "ok",
            "content": [{"title": "A", "story": "text", "criteria": ["c"]}],
        }

    def test_failure_payload(self):
        payload = LlmResult.failure(LlmErrorType.EMPTY, "nothing").to_payload()

        assert payload["status"] == "error"
        assert payload["error_type"] == "empty"
        assert payload["content"] == []
