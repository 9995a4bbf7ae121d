"""
Gemini integration for the climate "20 years later" transformation.

The rest of the service only depends on the narrow `GenerationService`
interface: photo bytes and a prompt go in, generated image bytes and a
caption come out. `GeminiClient` is the production implementation; tests
substitute a stub.

Failures are fatal for the request. There is no retry and no fallback image.
"""

from __future__ import annotations

import base64
import logging
import re
from typing import Iterable, Optional, Protocol

from google import genai
from google.genai import types

from app.config import DEFAULT_MODEL, DEFAULT_TITLE, ConfigurationError, Settings
from app.models.composite import GenerationResult
from app.services.prompts import GENERATION_PROMPT

logger = logging.getLogger(__name__)

TITLE_PATTERN = re.compile(r"TITLE:\s*(.+)", re.IGNORECASE)


class GenerationError(RuntimeError):
    """Raised when the generation service fails or returns no image."""


class GenerationService(Protocol):
    def is_available(self) -> bool:
        ...

    def generate(self, image_data: bytes, mime_type: str, prompt: str) -> GenerationResult:
        ...


def extract_title(text: Optional[str]) -> Optional[str]:
    """Return the text after the first `TITLE:` marker, trimmed."""
    if not text:
        return None
    match = TITLE_PATTERN.search(text)
    if match is None:
        return None
    return match.group(1).strip() or None


def parse_generation_parts(parts: Iterable, default_title: str = DEFAULT_TITLE) -> GenerationResult:
    """
    Pick the generated image and caption out of a model response.

    The first part carrying inline data is the image; the first text part
    with a `TITLE:` line is the caption. A missing caption falls back to
    `default_title`, a missing image is an error.
    """
    image_data: bytes | None = None
    caption: str | None = None

    for part in parts or []:
        if caption is None:
            caption = extract_title(getattr(part, "text", None))

        inline = getattr(part, "inline_data", None)
        if image_data is None and inline is not None and getattr(inline, "data", None):
            data = inline.data
            image_data = base64.b64decode(data) if isinstance(data, str) else bytes(data)

    if image_data is None:
        raise GenerationError("No image generated by the model")

    return GenerationResult(image_data=image_data, caption=caption or default_title)


class GeminiClient:
    """
    Client for Gemini multimodal image generation.

    The SDK client is created lazily on the first request so a missing key
    only fails the request that needs it.
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_MODEL,
        default_title: str = DEFAULT_TITLE,
    ):
        self.api_key = api_key
        self.model = model
        self.default_title = default_title
        self._client: Optional[genai.Client] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "GeminiClient":
        return cls(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            default_title=settings.default_title,
        )

    def is_available(self) -> bool:
        """Check if the client has credentials to make a call."""
        return bool(self.api_key)

    def _get_client(self) -> genai.Client:
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
            logger.info("Gemini client initialized for model %s", self.model)
        return self._client

    def generate(
        self,
        image_data: bytes,
        mime_type: str,
        prompt: str = GENERATION_PROMPT,
    ) -> GenerationResult:
        if not self.is_available():
            raise ConfigurationError("GEMINI_API_KEY not configured")

        logger.info(
            "Calling Gemini model %s with %d byte %s image",
            self.model,
            len(image_data),
            mime_type,
        )
        try:
            response = self._get_client().models.generate_content(
                model=self.model,
                contents=[prompt, types.Part.from_bytes(data=image_data, mime_type=mime_type)],
                config=types.GenerateContentConfig(response_modalities=["TEXT", "IMAGE"]),
            )
        except Exception as exc:  # noqa: BLE001
            logger.error("Gemini request failed: %s", exc)
            raise GenerationError(f"Generation request failed: {exc}") from exc

        candidates = getattr(response, "candidates", None) or []
        if not candidates or candidates[0].content is None:
            logger.error("No candidates in generation response")
            raise GenerationError("No candidates in generation response")

        result = parse_generation_parts(candidates[0].content.parts, self.default_title)
        logger.info(
            "Gemini returned %d byte image, caption %r",
            len(result.image_data),
            result.caption,
        )
        return result
