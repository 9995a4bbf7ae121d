"""
Runtime configuration for the ClimaTime Machine API.

Settings are read once from the process environment (optionally seeded from a
`.env` file by `app.main`) and then passed explicitly to the pipeline and the
generation client. Nothing in the compositing core reads the environment.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from app.models.composite import LayoutPolicy

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash-image-preview"
DEFAULT_TITLE = "Climate Change Impact"
DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024


class ConfigurationError(RuntimeError):
    """Raised when required configuration is missing or invalid."""


def _split_origins(raw: str) -> List[str]:
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


@dataclass(slots=True)
class Settings:
    """Explicit configuration object for one running service."""

    gemini_api_key: Optional[str] = None
    gemini_model: str = DEFAULT_MODEL
    upload_dir: Path = Path("uploads")
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    layout_policy: LayoutPolicy = LayoutPolicy.STACKED
    default_title: str = DEFAULT_TITLE
    cors_allow_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 3000

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Build settings from environment variables.

        A missing API key is allowed here; it is reported per request so the
        server can still start and answer health checks.
        """
        raw_layout = os.environ.get("COMPOSITE_LAYOUT", LayoutPolicy.STACKED.value)
        try:
            layout_policy = LayoutPolicy(raw_layout.strip().lower())
        except ValueError as exc:
            raise ConfigurationError(
                f"Invalid COMPOSITE_LAYOUT {raw_layout!r}; "
                f"expected one of {[p.value for p in LayoutPolicy]}"
            ) from exc

        try:
            max_upload_bytes = int(os.environ.get("MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES))
            port = int(os.environ.get("PORT", 3000))
        except ValueError as exc:
            raise ConfigurationError(f"Invalid numeric setting: {exc}") from exc

        settings = cls(
            gemini_api_key=os.environ.get("GEMINI_API_KEY") or None,
            gemini_model=os.environ.get("GEMINI_MODEL") or DEFAULT_MODEL,
            upload_dir=Path(os.environ.get("UPLOAD_DIR", "uploads")),
            max_upload_bytes=max_upload_bytes,
            layout_policy=layout_policy,
            default_title=os.environ.get("DEFAULT_TITLE") or DEFAULT_TITLE,
            cors_allow_origins=_split_origins(os.environ.get("CORS_ALLOW_ORIGINS", "*")),
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
            host=os.environ.get("HOST", "0.0.0.0"),
            port=port,
        )

        if settings.gemini_api_key is None:
            logger.warning("GEMINI_API_KEY not set. Generation requests will fail.")
        return settings

    @property
    def has_api_key(self) -> bool:
        return bool(self.gemini_api_key)


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create the process-wide settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings
