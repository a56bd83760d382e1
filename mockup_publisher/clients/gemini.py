"""Client wrapper for Gemini multimodal generation."""

from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any

import google.generativeai as genai
from google.api_core.exceptions import GoogleAPICallError, NotFound

from mockup_publisher.core.config import GeminiSettings

logger = logging.getLogger(__name__)

FALLBACK_MODELS: tuple[str, ...] = ("gemini-2.0-flash", "gemini-1.5-flash")
MAX_OUTPUT_TOKENS = 2000

_FENCED_BLOCK = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)


class GeminiModelError(RuntimeError):
    """Raised when Gemini cannot fulfill a request."""


def model_sequence(configured: str | None) -> list[str]:
    """Configured model first, then fallbacks, without blanks or repeats."""
    names = (name.strip() for name in (configured or "", *FALLBACK_MODELS))
    return list(dict.fromkeys(name for name in names if name))


def extract_json_object(text: str) -> dict[str, Any]:
    """Decode the model's answer, tolerating markdown fences.

    Anything that is not a JSON object yields an empty dict so callers fall
    back to their defaults.
    """
    cleaned = text.strip()
    fenced = _FENCED_BLOCK.match(cleaned)
    if fenced:
        cleaned = fenced.group(1)
    if not cleaned:
        return {}
    try:
        decoded = json.loads(cleaned)
    except json.JSONDecodeError:
        logger.warning("Gemini returned non-JSON listing copy (%d chars)", len(cleaned))
        return {}
    return decoded if isinstance(decoded, dict) else {}


class GeminiClient:
    """Send one mockup image plus instructions and parse the JSON answer."""

    def __init__(self, settings: GeminiSettings) -> None:
        self._models = model_sequence(settings.vision_model_name)
        # The SDK keeps the key in module state.
        genai.configure(api_key=settings.api_key)

    async def generate_listing_copy(
        self,
        *,
        prompt: str,
        image_bytes: bytes,
        mime_type: str = "image/jpeg",
    ) -> dict[str, Any]:
        """Return the model's structured listing copy for ``image_bytes``."""
        contents = [prompt, {"mime_type": mime_type, "data": image_bytes}]
        text = await asyncio.to_thread(self._generate_text, contents)
        return extract_json_object(text)

    def _generate_text(self, contents: list[Any]) -> str:
        missing: NotFound | None = None
        for attempt, model_name in enumerate(self._models, start=1):
            model = genai.GenerativeModel(model_name)
            try:
                response = model.generate_content(
                    contents,
                    generation_config={
                        "response_mime_type": "application/json",
                        "max_output_tokens": MAX_OUTPUT_TOKENS,
                    },
                )
                return response.text or ""
            except NotFound as exc:  # pragma: no cover - network call
                missing = exc
                logger.warning(
                    "Gemini model %s unavailable (%d/%d)", model_name, attempt, len(self._models)
                )
            except GoogleAPICallError as exc:  # pragma: no cover - network call
                raise GeminiModelError(f"Listing copy generation failed: {exc.message}") from exc
            except ValueError as exc:  # pragma: no cover - blocked or empty response
                raise GeminiModelError(f"Listing copy generation was blocked: {exc}") from exc

        raise GeminiModelError(
            f"None of the Gemini models {', '.join(self._models)} is available; "
            "set GEMINI_VISION_MODEL_NAME to a supported model."
        ) from missing


__all__ = [
    "GeminiClient",
    "GeminiModelError",
    "extract_json_object",
    "model_sequence",
]
