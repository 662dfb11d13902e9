"""Health check endpoint."""

from datetime import datetime, timezone

from fastapi import APIRouter, Request

from .. import __version__

router = APIRouter()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@router.get("")
async def health_check():
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": _now(),
        "service": "photoai-backend",
        "version": __version__,
    }


@router.get("/ready")
async def readiness_check(request: Request):
    """Ready once the lifespan has wired storage and the provider client."""
    ready = getattr(request.app.state, "workflow", None) is not None
    return {
        "ready": ready,
        "timestamp": _now(),
    }
