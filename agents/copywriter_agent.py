"""Gemini caption provider running on Vertex AI.

This is the direct provider path: the Vertex AI SDK is called in-process
with the project configured in ``GOOGLE_CLOUD_PROJECT``. When no project is
configured, the provider returns a fixed "disabled" message instead of
attempting a call.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

import vertexai
from vertexai.generative_models import GenerationConfig, GenerativeModel

from agents.frameworks import build_system_prompt, build_user_prompt

logger = logging.getLogger(__name__)

DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"
DISABLED_MESSAGE = "AI caption generation is disabled. Please configure GOOGLE_CLOUD_PROJECT."
ERROR_MESSAGE = "Error: Could not generate a caption. Please check the server logs for details."


class GeminiCaptionProvider:
    name = "gemini"

    def __init__(
        self,
        project_id: Optional[str] = None,
        location: Optional[str] = None,
        model_name: Optional[str] = None,
    ) -> None:
        self.project_id = project_id if project_id is not None else os.getenv("GOOGLE_CLOUD_PROJECT", "")
        self.location = location or os.getenv("VERTEX_LOCATION", "us-central1")
        self.model_name = model_name or os.getenv("GEMINI_MODEL", DEFAULT_GEMINI_MODEL)

    @property
    def enabled(self) -> bool:
        return bool(self.project_id)

    def generate_caption(self, topic: str, framework: str, model_hint: Optional[str] = None) -> str:
        """Write a post caption for ``topic`` with Gemini.

        ``model_hint`` is used only when it names a Gemini model; OpenAI
        model names selected for the other provider are ignored.
        """
        if not self.enabled:
            logger.warning("GOOGLE_CLOUD_PROJECT not set; Gemini captions disabled.")
            return DISABLED_MESSAGE

        model_name = model_hint if model_hint and model_hint.startswith("gemini") else self.model_name
        try:
            vertexai.init(project=self.project_id, location=self.location)
            model = GenerativeModel(model_name, system_instruction=build_system_prompt(framework))
            response = model.generate_content(
                build_user_prompt(topic),
                generation_config=GenerationConfig(
                    temperature=0.7,
                    top_p=1.0,
                    top_k=1,
                    max_output_tokens=256,
                ),
            )
            return response.text
        except Exception:
            logger.exception("Error generating caption with Gemini")
            return ERROR_MESSAGE
