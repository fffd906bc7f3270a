"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from ...config import settings

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


def _get_provider_health_check():
    """Lazy import to avoid startup failures."""
    from ...services.routing.maps_client import check_health as provider_health_check
    return provider_health_check


@router.get("/health/provider", status_code=status.HTTP_200_OK)
def health_provider() -> dict:
    """Check the distance matrix service; the heuristic estimator is always available."""
    if not settings.maps_api_key:
        return {"service": "distance_matrix_api", "configured": False, "healthy": False, "fallback": "heuristic"}
    try:
        provider_health_check = _get_provider_health_check()
        return {"service": "distance_matrix_api", "configured": True, "healthy": provider_health_check()}
    except Exception as e:
        return {"service": "distance_matrix_api", "configured": True, "healthy": False, "error": str(e)}
