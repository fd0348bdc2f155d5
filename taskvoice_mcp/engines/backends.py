"""Generative-text backend adapters.

Each backend is a small value object describing how to POST a prompt and where
the generated text lives in the JSON answer. The LLM parser walks the list in
order and stops at the first backend that returns usable text.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlsplit

import httpx

from taskvoice_mcp.config import Settings
from taskvoice_mcp.models.status import BackendStatus

logger = logging.getLogger(__name__)

GROQ_ENDPOINT = "https://api.groq.com/openai/v1/chat/completions"
GEMINI_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

TEMPERATURE = 0.1
MAX_TOKENS = 800
STATUS_CHECK_TIMEOUT = 3.0


@dataclass(frozen=True)
class LLMBackend:
    """How to talk to one text-generation endpoint."""

    name: str
    endpoint: str
    build_request: Callable[[str], dict[str, Any]]
    extract_text: Callable[[Any], str | None]
    headers: dict[str, str] = field(default_factory=dict)
    params: dict[str, str] = field(default_factory=dict)


# ============================================================================
# Adapters
# ============================================================================


def _ollama_text(data: Any) -> str | None:
    if isinstance(data, dict) and isinstance(data.get("response"), str):
        return data["response"]
    return None


def _chat_text(data: Any) -> str | None:
    try:
        text = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return None
    return text if isinstance(text, str) else None


def _gemini_text(data: Any) -> str | None:
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    return text if isinstance(text, str) else None


def ollama_backend(endpoint: str, model: str) -> LLMBackend:
    """Local Ollama ``/api/generate`` with JSON output forced."""

    def build(prompt: str) -> dict[str, Any]:
        return {
            "model": model,
            "prompt": prompt,
            "stream": False,
            "format": "json",
            "options": {"temperature": TEMPERATURE, "top_p": 0.9, "max_tokens": MAX_TOKENS},
        }

    return LLMBackend(name="ollama", endpoint=endpoint, build_request=build, extract_text=_ollama_text)


def groq_backend(api_key: str, model: str) -> LLMBackend:
    """Groq's OpenAI-compatible chat completions endpoint."""

    def build(prompt: str) -> dict[str, Any]:
        return {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": TEMPERATURE,
            "max_tokens": MAX_TOKENS,
            "response_format": {"type": "json_object"},
        }

    return LLMBackend(
        name="groq",
        endpoint=GROQ_ENDPOINT,
        build_request=build,
        extract_text=_chat_text,
        headers={"Authorization": f"Bearer {api_key}"},
    )


def gemini_backend(api_key: str, model: str) -> LLMBackend:
    """Google Gemini ``generateContent``; the key travels as a query parameter."""

    def build(prompt: str) -> dict[str, Any]:
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": TEMPERATURE, "maxOutputTokens": MAX_TOKENS},
        }

    return LLMBackend(
        name="gemini",
        endpoint=GEMINI_ENDPOINT.format(model=model),
        build_request=build,
        extract_text=_gemini_text,
        params={"key": api_key},
    )


def build_backends(settings: Settings) -> list[LLMBackend]:
    """
    Backends in the order they are tried.

    The local server always comes first. Hosted backends are included only
    when their API key is configured.
    """
    backends = [ollama_backend(settings.llm_endpoint, settings.llm_model)]
    if settings.groq_api_key:
        backends.append(groq_backend(settings.groq_api_key, settings.groq_model))
    if settings.gemini_api_key:
        backends.append(gemini_backend(settings.gemini_api_key, settings.gemini_model))
    return backends


# ============================================================================
# Status
# ============================================================================


def _tags_url(endpoint: str) -> str:
    parts = urlsplit(endpoint)
    return f"{parts.scheme}://{parts.netloc}/api/tags"


async def _query_ollama(settings: Settings, client: httpx.AsyncClient) -> BackendStatus:
    status = BackendStatus(name="ollama", model=settings.llm_model)
    try:
        response = await client.get(_tags_url(settings.llm_endpoint), timeout=STATUS_CHECK_TIMEOUT)
        response.raise_for_status()
        data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.info("Local model server not reachable: %s", e)
        status.reachable = False
        status.detail = "Local model server not running. Start it with: ollama serve"
        return status

    family = settings.llm_model.split(":")[0]
    models = data.get("models", []) if isinstance(data, dict) else []
    names = [m.get("name", "") for m in models if isinstance(m, dict)]
    status.reachable = True
    status.model_available = any(family in name for name in names)
    if not status.model_available:
        status.detail = f"Model {settings.llm_model} not pulled. Run: ollama pull {settings.llm_model}"
    return status


async def check_backend_status(
    settings: Settings,
    client: httpx.AsyncClient | None = None,
    ping: bool = True,
) -> list[BackendStatus]:
    """
    Report which backends are configured and whether the local one answers.

    Hosted backends are never called here; they are reported as configured or
    not based on their API key.

    Args:
        settings: Interpreter settings
        client: Optional shared HTTP client
        ping: When False, skip the request to the local server

    Returns:
        One BackendStatus per known backend, in fallback order
    """
    if not settings.llm_enabled:
        local = BackendStatus(name="ollama", model=settings.llm_model, configured=False, detail="LLM parsing disabled")
    elif not ping:
        local = BackendStatus(name="ollama", model=settings.llm_model)
    elif client is not None:
        local = await _query_ollama(settings, client)
    else:
        async with httpx.AsyncClient() as owned:
            local = await _query_ollama(settings, owned)

    enabled = settings.llm_enabled
    return [
        local,
        BackendStatus(
            name="groq",
            model=settings.groq_model,
            configured=enabled and bool(settings.groq_api_key),
            detail="" if settings.groq_api_key else "GROQ_API_KEY not set",
        ),
        BackendStatus(
            name="gemini",
            model=settings.gemini_model,
            configured=enabled and bool(settings.gemini_api_key),
            detail="" if settings.gemini_api_key else "GEMINI_API_KEY not set",
        ),
    ]
