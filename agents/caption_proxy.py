"""Server-side caption proxy to the OpenAI chat completions API.

The API key never leaves the server: the browser (or any other client)
sends ``{topic, framework, model}`` to ``/api/generate-caption`` and this
module performs the single upstream call.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Optional

import httpx

from agents.frameworks import build_system_prompt, parse_framework
from errors import ConfigurationError, RequestError, ValidationError

logger = logging.getLogger(__name__)

OPENAI_API_URL = os.getenv("OPENAI_API_URL", "https://api.openai.com/v1/chat/completions")
NO_CONTENT = "No content generated."
MISSING_PARAMETERS = "Missing required parameters: topic, framework, model"
NOT_CONFIGURED = "AI service is not configured on the server."


def _require(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def build_payload(topic: str, framework: str, model: str) -> dict:
    return {
        "model": model,
        "messages": [
            {"role": "system", "content": build_system_prompt(parse_framework(framework))},
            {"role": "user", "content": f'The topic is: "{topic.strip()}".'},
        ],
        "temperature": 0.7,
        "max_tokens": 256,
        "top_p": 1,
    }


def _upstream_error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return "Failed to fetch from OpenAI"
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return "Failed to fetch from OpenAI"


def generate_caption(
    topic: Optional[str],
    framework: Optional[str],
    model: Optional[str],
    api_key: Optional[str] = None,
    client: Optional[httpx.Client] = None,
) -> str:
    """Request a caption from OpenAI.

    Args:
        topic: What the post is about.
        framework: Copywriting framework value, e.g. ``aida``.
        model: OpenAI model identifier.
        api_key: Overrides ``OPENAI_API_KEY`` from the environment.
        client: Optional preconfigured ``httpx.Client``.

    Returns:
        The caption text, or ``"No content generated."`` when the model
        returned nothing.

    Raises:
        ValidationError: If any parameter is missing. No call is made.
        ConfigurationError: If no API key is configured. No call is made.
        RequestError: On transport failures, non-success responses or an
            unreadable response body.
    """
    if not (_require(topic) and _require(framework) and _require(model)):
        raise ValidationError(MISSING_PARAMETERS)

    key = api_key if api_key is not None else os.getenv("OPENAI_API_KEY", "")
    if not key:
        logger.error("OPENAI_API_KEY environment variable not set on the server.")
        raise ConfigurationError(NOT_CONFIGURED)

    owns_client = client is None
    http = client or httpx.Client(timeout=60.0)
    try:
        response = http.post(
            OPENAI_API_URL,
            json=build_payload(topic, framework, model),
            headers={"Authorization": f"Bearer {key}"},
        )
    except httpx.HTTPError as exc:
        logger.error("Error calling OpenAI: %s", exc)
        raise RequestError(f"Server error: {exc}") from exc
    finally:
        if owns_client:
            http.close()

    if response.is_error:
        message = _upstream_error_message(response)
        logger.error("Error from OpenAI API (%s): %s", response.status_code, message)
        raise RequestError(message, status_code=response.status_code)

    try:
        data = response.json()
        choices = data.get("choices") or []
        content = choices[0].get("message", {}).get("content") if choices else None
    except (ValueError, AttributeError, TypeError, KeyError, IndexError) as exc:
        raise RequestError(f"Server error: malformed response from OpenAI ({exc})") from exc
    return content or NO_CONTENT
