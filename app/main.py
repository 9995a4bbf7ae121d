import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.routes import router as api_v1_router
from app.config import Settings, get_settings

# Load environment variables from .env file
print("\n" + "=" * 60)
print("🔧 LOADING ENVIRONMENT CONFIGURATION")
print("=" * 60)

env_path = Path(__file__).parent.parent / ".env"
print(f"Looking for .env file at: {env_path}")

if env_path.exists():
    load_dotenv(dotenv_path=env_path, override=False)
    print("✓ .env file loaded")
else:
    print(f"⚠ .env file not found at: {env_path}")
    print("  Create it with: GEMINI_API_KEY=your_key_here")

if os.environ.get("GEMINI_API_KEY"):
    print(f"✓ GEMINI_API_KEY loaded: {os.environ['GEMINI_API_KEY'][:6]}...")
else:
    print("⚠ GEMINI_API_KEY not set; generation requests will return 500")

print("=" * 60 + "\n")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Application factory for the ClimaTime Machine API.

    Passing `settings` explicitly is mainly for tests; the server uses the
    process-wide settings built from the environment.
    """
    explicit = settings is not None
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="ClimaTime Machine API",
        version="0.1.0",
        description="Climate-change before/after photo composites.",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Infrastructure-level health check (non-versioned) primarily for ops.
    @app.get("/health", tags=["health"])
    async def root_health_check() -> dict:
        """Simple root health check endpoint."""
        return {"status": "ok"}

    app.include_router(api_v1_router)
    if explicit:
        app.dependency_overrides[get_settings] = lambda: settings

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    current = get_settings()
    uvicorn.run("app.main:app", host=current.host, port=current.port)
