"""
Shared Gemini plumbing for the AI agents.

Both agents (transaction classifier and document extractor) talk to the same
model the same way: a single prompt in, free text out, with the JSON payload
pulled out of the text afterwards.
"""

import json
from typing import Any, Optional

import google.generativeai as genai
from tenacity import retry, stop_after_attempt, wait_exponential

from swiss_bookkeeping.config import GeminiSettings, get_settings


def extract_json_object(text: str) -> Optional[dict[str, Any]]:
    """
    Pull the outermost JSON object out of a model response.

    Models wrap JSON in prose or code fences; we take everything between the
    first "{" and the last "}". Returns None when there is no parseable object.
    """
    if not text:
        return None
    start = text.find("{")
    end = text.rfind("}") + 1
    if start < 0 or end <= start:
        return None
    try:
        data = json.loads(text[start:end])
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


class GeminiAgent:
    """
    Base class for agents backed by a Gemini model.

    Pass `model` to inject any object with an async `generate_content_async`
    (tests do this); otherwise the model is configured from GeminiSettings.
    """

    max_output_tokens: Optional[int] = None

    def __init__(
        self,
        model: Any = None,
        settings: Optional[GeminiSettings] = None,
    ):
        if model is not None:
            self._model = model
            self._model_name = getattr(model, "model_name", "injected-model")
            return
        self._settings = settings or get_settings().gemini
        self._model_name = self._settings.model_name
        self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self.max_output_tokens or self._settings.max_tokens,
            }
        )

    @property
    def model_name(self) -> str:
        return self._model_name

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _generate(self, prompt: str) -> str:
        response = await self._model.generate_content_async(prompt)
        return response.text.strip()
