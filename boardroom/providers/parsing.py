"""Turn a Responses API payload into a CompletionOutcome."""

import json
import logging
import re
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from boardroom.models import CompletionOutcome, TokenUsage
from boardroom.schemas import OutputSchema

logger = logging.getLogger(__name__)

_JSON_FENCE = re.compile(r"```json\s*?\n?(.*?)\n?```", re.DOTALL)
_ANY_FENCE = re.compile(r"```[\w+-]*\s*?\n?(.*?)\n?```", re.DOTALL)

_TEXT_CONTENT_TYPES = ("output_text", "text")


def extract_text(data: Mapping[str, Any]) -> str:
    """Return the flattened reply text.

    Prefers the convenience ``output_text`` field; otherwise concatenates every
    textual content block of every ``message`` item in ``output``.
    """
    text = data.get("output_text") or ""
    if text:
        return str(text)

    parts: list[str] = []
    for item in data.get("output") or []:
        if item.get("type") != "message":
            continue
        for content in item.get("content") or []:
            if content.get("type") in _TEXT_CONTENT_TYPES:
                parts.append(content.get("text") or "")
    return "".join(parts)


def extract_reasoning_summary(data: Mapping[str, Any]) -> str | None:
    parts = [
        summary.get("text") or ""
        for item in data.get("output") or []
        if item.get("type") == "reasoning"
        for summary in item.get("summary") or []
    ]
    joined = "\n\n".join(p for p in parts if p)
    return joined or None


def extract_usage(data: Mapping[str, Any]) -> TokenUsage:
    usage = data.get("usage") or {}
    details = usage.get("output_tokens_details") or {}
    return TokenUsage(
        input=int(usage.get("input_tokens") or 0),
        output=int(usage.get("output_tokens") or 0),
        reasoning=int(details.get("reasoning_tokens") or 0),
        total=int(usage.get("total_tokens") or 0),
    )


def extract_json_text(text: str) -> str:
    """Locate the JSON payload: ```json fence, then any fence, then the whole text."""
    match = _JSON_FENCE.search(text) or _ANY_FENCE.search(text)
    return match.group(1).strip() if match else text.strip()


def parse_structured(text: str, schema: OutputSchema) -> dict[str, Any] | None:
    """Parse and validate a structured reply. Returns None instead of raising."""
    if not text:
        return None
    try:
        candidate = json.loads(extract_json_text(text))
    except json.JSONDecodeError as exc:
        logger.warning("Failed to parse JSON for %s: %s", schema.name, exc)
        return None

    if not isinstance(candidate, dict):
        logger.warning("Expected a JSON object for %s, got %s", schema.name, type(candidate).__name__)
        return None

    try:
        return schema.validate(candidate)
    except ValidationError as exc:
        logger.warning(
            "Reply does not match %s (%d errors): %s",
            schema.name,
            exc.error_count(),
            exc.errors()[0]["msg"] if exc.errors() else exc,
        )
        return None


def parse_response(data: Mapping[str, Any], schema: OutputSchema | None = None) -> CompletionOutcome:
    raw = extract_text(data)
    parsed = parse_structured(raw, schema) if schema is not None else None
    return CompletionOutcome(
        parsed=parsed,
        raw=raw,
        tokens=extract_usage(data),
        response_id=data.get("id"),
        reasoning_summary=extract_reasoning_summary(data),
    )
