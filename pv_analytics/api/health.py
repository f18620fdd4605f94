"""
Health check endpoint for the PV analytics API.

Provides a simple GET /health endpoint that returns {"status": "ok"} with
HTTP 200. No authentication is required.
"""

from fastapi import APIRouter

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict[str, str]:
    """Return a simple health status."""
    return {"status": "ok"}
