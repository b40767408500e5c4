"""Health check endpoints."""

from typing import Any, Dict

from fastapi import APIRouter

from app.config import settings

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health_check() -> Dict[str, str]:
    """Liveness probe."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness_check() -> Dict[str, Any]:
    """
    Readiness probe.

    Reports which storage backend is configured and whether the extraction
    model has a key; URL and photo ingestion fail without one.
    """
    return {
        "status": "ready",
        "dependencies": {
            "storage": settings.storage_backend,
            "extraction_model": "configured" if settings.gemini_api_key else "missing_api_key",
        },
    }
