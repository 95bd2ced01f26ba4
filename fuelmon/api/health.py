"""
Health check endpoint for the fuel monitor API.

Provides GET /api/health returning the service status and the current UTC
time. No authentication is required.

CHANGELOG:
- 2026-10-12: Initial creation (STORY-001)

TODO:
- None
"""

from datetime import UTC, datetime

from fastapi import APIRouter

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
async def health() -> dict[str, str]:
    """Return a simple health status.

    Returns:
        dict: ``{"status": "healthy", "timestamp": <RFC 3339>}``.
    """
    return {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(timespec="seconds"),
    }
