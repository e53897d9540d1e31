"""Best-effort JSON extraction from free-form model output.

Malformed model output is an expected, frequent outcome, so
:func:`extract_json` reports failure as a value. Callers that need a dict or
nothing use :func:`parse_json_response`, which raises ``ParseError``.
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Callable, TypeVar, Union

from applyhawk.errors import ParseError
from applyhawk.log import get_logger

log = get_logger(__name__)

T = TypeVar("T")

_FENCED_JSON_RE = re.compile(r"```json\s*\n?([\s\S]*?)\n?```")
_FENCED_ANY_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
_BARE_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


@dataclass
class Extracted:
    data: Any
    source: str  # "fenced", "braces" or "raw"

    ok = True


@dataclass
class ExtractionFailure:
    error: str
    content: str

    ok = False


ExtractionResult = Union[Extracted, ExtractionFailure]


def _candidate(content: str) -> tuple[str, str]:
    match = _FENCED_JSON_RE.search(content)
    if match:
        return match.group(1), "fenced"
    match = _BARE_OBJECT_RE.search(content)
    if match:
        return match.group(0), "braces"
    return content, "raw"


def extract_json(content: str | None) -> ExtractionResult:
    """Pull one JSON value out of *content*: fenced block, outer braces, or all of it."""
    if not content or not content.strip():
        return ExtractionFailure(error="empty content", content=content or "")
    text, source = _candidate(content)
    try:
        return Extracted(data=json.loads(text), source=source)
    except json.JSONDecodeError as exc:
        return ExtractionFailure(error=str(exc), content=content)


def parse_json_response(content: str, context: str) -> dict[str, Any]:
    """Extract a JSON object or raise ParseError; raw content goes to the log only."""
    result = extract_json(content)
    if isinstance(result, ExtractionFailure):
        log.warning("Failed to parse %s JSON (%s). Raw content: %s", context, result.error, content)
        raise ParseError(f"Failed to parse {context}. Please try again.", content=content)
    if not isinstance(result.data, dict):
        log.warning("Expected a JSON object for %s, got %s. Raw content: %s",
                    context, type(result.data).__name__, content)
        raise ParseError(f"Failed to parse {context}. Please try again.", content=content)
    return result.data


def coerce_reply(build: Callable[[dict[str, Any]], T], data: dict[str, Any], context: str) -> T:
    """Build a model object from parsed JSON; a field of the wrong type raises ParseError."""
    try:
        return build(data)
    except (TypeError, ValueError, AttributeError) as exc:
        log.warning("Unexpected %s shape (%s). Parsed content: %s", context, exc, data)
        raise ParseError(
            f"Failed to parse {context}. Please try again.",
            content=json.dumps(data, ensure_ascii=False, default=str),
        ) from exc


def parse_cover_letter(content: str) -> tuple[str, Any]:
    """Return ``(letter, extraction)`` from JSON, fenced JSON, or plain prose."""
    for text in (content, *(m.group(1).strip() for m in _FENCED_ANY_RE.finditer(content))):
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return (parsed.get("cover_letter") or content).strip(), parsed.get("extraction")
        break
    return content.strip(), None


def clean_title(content: str, limit: int = 50) -> str:
    """Strip one pair of wrapping quotes and enforce the title length limit."""
    title = re.sub(r"^[\"']|[\"']$", "", content.strip()).strip()
    return title[:limit]
