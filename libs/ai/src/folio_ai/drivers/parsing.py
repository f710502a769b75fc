"""Lenient parsing of LLM output into generated items."""

import json
import re
from dataclasses import dataclass, field
from typing import Any

from folio_core.errors import ParseError

_THINK_BLOCK = re.compile(r"<think>.*?</think>", re.DOTALL | re.IGNORECASE)
_CODE_FENCE = re.compile(r"```(?:json|JSON)?\s*(.*?)```", re.DOTALL)


@dataclass
class GeneratedItem:
    """One deliverable produced by an LLM."""

    title: str
    body: str
    criteria: list[str] = field(default_factory=list)
    raw: dict[str, Any] = field(default_factory=dict)


def strip_wrappers(text: str) -> str:
    """Remove reasoning traces and markdown code fences around a JSON payload."""
    cleaned = _THINK_BLOCK.sub("", text)
    # An unterminated trace swallows everything before the payload
    if "</think>" in cleaned.lower():
        cleaned = cleaned[cleaned.lower().rfind("</think>") + len("</think>") :]
    fenced = _CODE_FENCE.search(cleaned)
    if fenced:
        cleaned = fenced.group(1)
    return cleaned.strip()


def extract_json(text: str) -> Any:
    """
    Decode the first JSON object or array found in ``text``.

    Raises:
        ParseError: if no complete JSON value can be decoded
    """
    cleaned = strip_wrappers(text)
    if not cleaned:
        raise ParseError("LLM returned no content", raw_text=text)

    # Leading prose is tolerated; the outermost value must decode completely
    starts = [index for index in (cleaned.find("{"), cleaned.find("[")) if index >= 0]
    if not starts:
        raise ParseError("LLM output contains no JSON", raw_text=text)
    try:
        value, _ = json.JSONDecoder().raw_decode(cleaned, min(starts))
    except json.JSONDecodeError as e:
        raise ParseError(f"LLM output is not valid JSON: {e.msg}", raw_text=text) from e
    return value


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    return json.dumps(value, ensure_ascii=False)


def _criteria(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if isinstance(value, list):
        return [_as_text(entry) for entry in value if _as_text(entry)]
    return [_as_text(value)]


def normalize_items(payload: Any, body_key: str) -> list[GeneratedItem]:
    """
    Normalize a decoded payload into :class:`GeneratedItem` objects.

    Accepts ``{"items": [...]}``, a bare list of items, or a single item
    object. The body is read from ``body_key``, falling back to the common
    keys models tend to use instead.

    Raises:
        ParseError: if the payload does not contain a list of objects
    """
    if isinstance(payload, dict):
        if "items" in payload:
            entries = payload["items"]
        elif "title" in payload or body_key in payload:
            entries = [payload]
        else:
            raise ParseError(
                "LLM output has no 'items' list", raw_text=json.dumps(payload)[:2000]
            )
    else:
        entries = payload

    if not isinstance(entries, list) or not all(isinstance(entry, dict) for entry in entries):
        raise ParseError("LLM 'items' is not a list of objects", raw_text=json.dumps(payload)[:2000])

    fallbacks = (body_key, "content", "story", "description", "body")
    items = []
    for entry in entries:
        body = next((_as_text(entry[key]) for key in fallbacks if entry.get(key)), "")
        items.append(
            GeneratedItem(
                title=_as_text(entry.get("title")),
                body=body,
                criteria=_criteria(entry.get("criteria")),
                raw=entry,
            )
        )
    return items


def parse_items(text: str, body_key: str) -> list[GeneratedItem]:
    """Parse raw LLM text into items. Raises :class:`ParseError`."""
    return normalize_items(extract_json(text), body_key)


def output_schema(body_key: str) -> dict[str, Any]:
    """JSON schema every LLM response must satisfy."""
    return {
        "type": "object",
        "properties": {
            "items": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "title": {"type": "string"},
                        body_key: {"type": "string"},
                        "criteria": {"type": "array", "items": {"type": "string"}},
                    },
                    "required": ["title", body_key, "criteria"],
                    "additionalProperties": False,
                },
            }
        },
        "required": ["items"],
        "additionalProperties": False,
    }
