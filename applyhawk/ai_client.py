"""OpenRouter chat-completion gateway.

One blocking request per call, no retries: the caller owns what happens on
failure. :meth:`OpenRouterClient.send` reports provider failures as values;
:meth:`OpenRouterClient.call` turns them into ``ApiError`` /
``EmptyResponseError``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

import openai
import requests
from openai import OpenAI

from applyhawk.config import DEFAULT_MODEL
from applyhawk.errors import ApiError, EmptyResponseError
from applyhawk.log import get_logger
from applyhawk.retry import retry

log = get_logger(__name__)

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
MODELS_URL = f"{OPENROUTER_BASE_URL}/models"


@dataclass
class Usage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass
class Completion:
    content: str
    model: str
    usage: Usage | None = None


@dataclass
class ProviderFailure:
    """Non-2xx status or transport error; ``status`` is None for the latter."""

    message: str
    status: int | None = None


@dataclass
class EmptyCompletion:
    """2xx response without a usable message body."""

    message: str = "Empty response from AI model"
    status: int | None = 200


GatewayResult = Union[Completion, ProviderFailure, EmptyCompletion]


@dataclass
class ModelInfo:
    id: str
    name: str
    context_length: int | None = None
    prompt_price: str | None = None
    completion_price: str | None = None
    modality: str = ""


def _status_error_message(exc: openai.APIStatusError) -> str:
    body = exc.body
    if isinstance(body, dict):
        if isinstance(body.get("error"), dict):
            body = body["error"]
        message = body.get("message")
        if message:
            return str(message)
    return f"API request failed: {exc.status_code}"


def _usage(raw: Any) -> Usage | None:
    if raw is None:
        return None
    if isinstance(raw, dict):
        return Usage(
            prompt_tokens=raw.get("prompt_tokens") or 0,
            completion_tokens=raw.get("completion_tokens") or 0,
            total_tokens=raw.get("total_tokens") or 0,
        )
    return Usage(
        prompt_tokens=getattr(raw, "prompt_tokens", 0) or 0,
        completion_tokens=getattr(raw, "completion_tokens", 0) or 0,
        total_tokens=getattr(raw, "total_tokens", 0) or 0,
    )


def _first_content(resp: Any) -> str | None:
    choices = getattr(resp, "choices", None) or []
    if not choices:
        return None
    message = getattr(choices[0], "message", None)
    return getattr(message, "content", None) if message is not None else None


class OpenRouterClient:
    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        base_url: str = OPENROUTER_BASE_URL,
        client: Any = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = OpenAI(api_key=self.api_key, base_url=self.base_url, max_retries=0)
        return self._client

    def configure(self, **changes: Any) -> None:
        """Update api_key / model / base_url; the SDK client is rebuilt lazily."""
        for key in ("api_key", "model", "base_url"):
            if key in changes and changes[key] is not None:
                setattr(self, key, changes[key])
        if {"api_key", "base_url"} & changes.keys():
            self._client = None

    def send(
        self,
        messages: list[dict[str, str]],
        temperature: float = 0.7,
        max_tokens: int = 2000,
        model: str | None = None,
    ) -> GatewayResult:
        model = model or self.model
        log.debug("POST chat/completions model=%s messages=%d", model, len(messages))
        try:
            resp = self.client.chat.completions.create(
                model=model,
                temperature=temperature,
                max_tokens=max_tokens,
                messages=messages,
            )
        except openai.APIStatusError as exc:
            message = _status_error_message(exc)
            log.warning("OpenRouter returned %s: %s", exc.status_code, message)
            return ProviderFailure(message=message, status=exc.status_code)
        except openai.APIConnectionError as exc:
            log.warning("OpenRouter request failed: %s", exc)
            return ProviderFailure(message=f"API request failed: {exc}", status=None)

        content = _first_content(resp)
        if not content:
            error = getattr(resp, "error", None)
            if error:
                detail = error.get("message") if isinstance(error, dict) else str(error)
                return EmptyCompletion(message=f"API error: {detail or error}")
            return EmptyCompletion()

        return Completion(
            content=content,
            model=getattr(resp, "model", None) or model,
            usage=_usage(getattr(resp, "usage", None)),
        )

    def call(
        self,
        messages: list[dict[str, str]],
        temperature: float = 0.7,
        max_tokens: int = 2000,
        model: str | None = None,
    ) -> Completion:
        result = self.send(messages, temperature=temperature, max_tokens=max_tokens, model=model)
        if isinstance(result, ProviderFailure):
            raise ApiError(result.message, status=result.status)
        if isinstance(result, EmptyCompletion):
            raise EmptyResponseError(result.message, status=result.status)
        if result.usage:
            log.info("Completion from %s (%d tokens)", result.model, result.usage.total_tokens)
        return result


def _is_chat_model(raw: dict[str, Any]) -> bool:
    modality = (raw.get("architecture") or {}).get("modality") or ""
    return ("text" in modality or not modality) and "embed" not in raw.get("id", "")


@retry(max_attempts=3, base_delay=1.0)
def list_models(api_key: str | None = None, timeout: float = 15) -> list[ModelInfo]:
    """Model catalog for the picker: text models only, embeddings excluded."""
    headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
    r = requests.get(MODELS_URL, headers=headers, timeout=timeout)
    if not r.ok:
        raise ApiError(f"Failed to load models: {r.status_code}", status=r.status_code)
    models: list[ModelInfo] = []
    for raw in r.json().get("data", []):
        if not _is_chat_model(raw):
            continue
        pricing = raw.get("pricing") or {}
        models.append(
            ModelInfo(
                id=raw["id"],
                name=raw.get("name") or raw["id"],
                context_length=raw.get("context_length"),
                prompt_price=pricing.get("prompt"),
                completion_price=pricing.get("completion"),
                modality=(raw.get("architecture") or {}).get("modality") or "",
            )
        )
    log.info("Loaded %d chat models from OpenRouter", len(models))
    return models
