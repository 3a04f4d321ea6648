"""Caption request client and provider selection.

Callers ask for a caption with :func:`request_caption`. The call never
raises: any failure comes back as a string starting with ``"Error:"`` that
is meant to be shown to the user as is.
"""

from __future__ import annotations

import logging
import os
from enum import Enum
from typing import Optional, Protocol

import httpx

from agents import caption_proxy
from agents.copywriter_agent import GeminiCaptionProvider
from agents.frameworks import parse_framework
from errors import AutomatorError

logger = logging.getLogger(__name__)

CAPTION_BACKEND_URL = os.getenv("CAPTION_BACKEND_URL", "http://localhost:8000/api/generate-caption")
NO_CONTENT = "No content generated."


class AiProvider(str, Enum):
    GEMINI = "gemini"
    OPENAI = "openai"


class OpenAIModel(str, Enum):
    GPT_4O_MINI = "gpt-4o-mini"
    GPT_4O = "gpt-4o"
    GPT_4_TURBO = "gpt-4-turbo"
    GPT_35_TURBO = "gpt-3.5-turbo"


DEFAULT_OPENAI_MODEL = OpenAIModel.GPT_4O


class CaptionProvider(Protocol):
    name: str

    def generate_caption(self, topic: str, framework: str, model_hint: Optional[str] = None) -> str: ...


class ProxyCaptionProvider:
    """OpenAI captions through the server-side ``/api/generate-caption`` proxy."""

    name = "openai"

    def __init__(self, backend_url: Optional[str] = None, transport: Optional[httpx.BaseTransport] = None) -> None:
        self.backend_url = backend_url or CAPTION_BACKEND_URL
        self._transport = transport

    def generate_caption(self, topic: str, framework: str, model_hint: Optional[str] = None) -> str:
        payload = {
            "topic": topic,
            "framework": parse_framework(framework).value,
            "model": model_hint or DEFAULT_OPENAI_MODEL.value,
        }
        try:
            with httpx.Client(transport=self._transport, timeout=60.0) as client:
                response = client.post(self.backend_url, json=payload)
                if response.is_error:
                    try:
                        detail = response.json().get("error")
                    except ValueError:
                        detail = None
                    raise RuntimeError(detail or f"HTTP error! status: {response.status_code}")
                data = response.json()
            return data.get("caption") or NO_CONTENT
        except Exception as exc:
            logger.error("Error generating caption via backend proxy: %s", exc)
            return f"Error: Could not generate a caption with OpenAI. Details: {exc}"


class OpenAICaptionProvider:
    """OpenAI captions requested in-process with the server's API key."""

    name = "openai"

    def __init__(self, api_key: Optional[str] = None, client: Optional[httpx.Client] = None) -> None:
        self.api_key = api_key
        self._client = client

    def generate_caption(self, topic: str, framework: str, model_hint: Optional[str] = None) -> str:
        try:
            return caption_proxy.generate_caption(
                topic,
                parse_framework(framework).value,
                model_hint or DEFAULT_OPENAI_MODEL.value,
                api_key=self.api_key,
                client=self._client,
            )
        except AutomatorError as exc:
            logger.error("Error generating caption with OpenAI: %s", exc)
            return f"Error: Could not generate a caption with OpenAI. Details: {exc}"


def get_caption_provider(provider: AiProvider | str = AiProvider.OPENAI) -> CaptionProvider:
    """Return the caption provider registered for ``provider``.

    OpenAI requests go through the HTTP proxy when ``CAPTION_BACKEND_URL``
    is set and are made in-process otherwise.
    """
    try:
        selected = AiProvider(str(getattr(provider, "value", provider)).strip().lower())
    except ValueError:
        raise ValueError(f"Unknown AI provider '{provider}'.") from None
    if selected == AiProvider.GEMINI:
        return GeminiCaptionProvider()
    if os.getenv("CAPTION_BACKEND_URL"):
        return ProxyCaptionProvider(os.getenv("CAPTION_BACKEND_URL"))
    return OpenAICaptionProvider()


def request_caption(
    topic: str,
    framework: str,
    model: Optional[str] = None,
    provider: Optional[CaptionProvider] = None,
) -> str:
    """Fetch a base caption for ``topic``.

    Args:
        topic: What the post is about. Must not be blank.
        framework: Copywriting framework value.
        model: Optional provider-specific model identifier.
        provider: Caption provider; defaults to the configured OpenAI one.

    Returns:
        The caption, a fixed "disabled" message, or an ``"Error:"`` string.
    """
    if not topic or not topic.strip():
        return "Error: A topic is required to generate a caption."
    provider = provider or get_caption_provider(AiProvider.OPENAI)
    try:
        return provider.generate_caption(topic, parse_framework(framework).value, model)
    except Exception as exc:
        logger.exception("Caption provider %s failed", getattr(provider, "name", provider))
        return f"Error: Could not generate a caption. Details: {exc}"
