from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.concurrency import run_in_threadpool

from app.api.v1.schemas import GenerationResponse, HealthResponse
from app.config import ConfigurationError, Settings, get_settings
from app.services.compositor import CompositingError
from app.services.gemini_client import GeminiClient, GenerationError, GenerationService
from app.services.pipeline import run_pipeline
from app.services.uploads import StagingError, UploadValidationError, read_upload

router = APIRouter(prefix="/api/v1")


def get_generation_service(settings: Settings = Depends(get_settings)) -> GenerationService:
    """
    Return the generation backend for a request.

    Kept as a dependency so tests can swap in a stub via
    `app.dependency_overrides`.
    """
    return GeminiClient.from_settings(settings)


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(settings: Settings = Depends(get_settings)) -> HealthResponse:
    """API v1 health check endpoint."""
    return HealthResponse(
        status="ok",
        api_version="v1",
        generation_configured=settings.has_api_key,
    )


@router.post(
    "/analyze-and-generate",
    response_model=GenerationResponse,
    tags=["generation"],
    summary="Generate a climate 'before/after' composite for a photo",
)
async def analyze_and_generate(
    photo: UploadFile | None = File(
        default=None,
        description="Photo to transform (any image/* type, at most 10 MiB).",
    ),
    settings: Settings = Depends(get_settings),
    service: GenerationService = Depends(get_generation_service),
) -> GenerationResponse:
    """
    Transform an uploaded photo into its climate-changed future.

    The client sends a multipart/form-data request with a single `photo`
    file. The response carries:
    - `generatedImageData`: the model's image, base64.
    - `mergedImageData`: the before/after JPEG with the title banner, base64.
    - `socialMediaTitle`: the caption the model suggested.

    Uploads that are missing, not images, or too large are rejected before
    anything is written to disk or sent to the model.
    """
    try:
        contents = await read_upload(photo, settings.max_upload_bytes)
    except UploadValidationError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc

    try:
        result = await run_in_threadpool(
            run_pipeline,
            contents,
            photo.filename,
            photo.content_type,
            settings=settings,
            service=service,
        )
    except ConfigurationError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc
    except StagingError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to stage uploaded photo.",
        ) from exc
    except (GenerationError, CompositingError) as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to process image: {exc}",
        ) from exc

    return GenerationResponse(
        generated_image_data=result.generated_image_b64,
        merged_image_data=result.merged_image_b64,
        social_media_title=result.caption,
    )
