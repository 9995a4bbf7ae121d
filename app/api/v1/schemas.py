from pydantic import BaseModel, ConfigDict, Field


class HealthResponse(BaseModel):
    """Liveness payload."""

    status: str = Field(default="ok", description="Always 'ok' when the process is serving.")
    api_version: str | None = Field(default=None, description="API version, when versioned.")
    generation_configured: bool | None = Field(
        default=None,
        description="Whether a generation API key is configured.",
    )


class GenerationResponse(BaseModel):
    """Result of a successful analyze-and-generate request."""

    model_config = ConfigDict(populate_by_name=True)

    generated_image_data: str = Field(
        ...,
        alias="generatedImageData",
        description="Base64 of the raw image returned by the generation model.",
    )
    merged_image_data: str = Field(
        ...,
        alias="mergedImageData",
        description="Base64 JPEG of the before/after composite with its title banner.",
    )
    social_media_title: str = Field(
        ...,
        alias="socialMediaTitle",
        description="Caption extracted from the model response.",
    )
