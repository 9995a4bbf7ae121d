from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import Optional

from app.config import ConfigurationError, Settings
from app.models.composite import CompositeResult
from app.services.compositor import merge_images
from app.services.gemini_client import GenerationService
from app.services.prompts import GENERATION_PROMPT
from app.services.uploads import StagingError, UploadStager

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PipelineResult:
    """Everything the endpoint returns for one processed photo."""

    generated_image_b64: str
    composite: CompositeResult
    caption: str

    @property
    def merged_image_b64(self) -> str:
        return base64.b64encode(self.composite.data).decode("ascii")


def run_pipeline(
    contents: bytes,
    filename: Optional[str],
    mime_type: str,
    *,
    settings: Settings,
    service: GenerationService,
    stager: Optional[UploadStager] = None,
) -> PipelineResult:
    """
    Stage the photo, ask the generation service for the future version, then
    build the captioned before/after composite.

    The staged file is removed as soon as the generation call returns or
    fails, before compositing starts. Errors propagate unchanged so the HTTP
    layer can map them to status codes.
    """
    stager = stager or UploadStager(settings.upload_dir)

    with stager.staged(contents, filename) as staged_path:
        if not service.is_available():
            logger.error("Generation requested without GEMINI_API_KEY")
            raise ConfigurationError("GEMINI_API_KEY not configured")

        try:
            original = staged_path.read_bytes()
        except OSError as exc:
            raise StagingError("Failed to read staged photo.") from exc

        logger.info("Requesting climate transformation for %s (%s)", staged_path.name, mime_type)
        generation = service.generate(original, mime_type, GENERATION_PROMPT)

    generated_b64 = base64.b64encode(generation.image_data).decode("ascii")
    composite = merge_images(
        original,
        generated_b64,
        title=generation.caption,
        policy=settings.layout_policy,
    )
    logger.info(
        "Composite ready: %dx%d, caption %r",
        composite.width,
        composite.height,
        generation.caption,
    )
    return PipelineResult(
        generated_image_b64=generated_b64,
        composite=composite,
        caption=generation.caption,
    )
