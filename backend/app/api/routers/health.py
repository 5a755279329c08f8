"""System health endpoints for load balancers and uptime probes."""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from ...config import Settings, load_settings
from ...infra.metrics import get_metrics_client

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/healthz")
def healthcheck(settings: Settings = Depends(load_settings)) -> dict[str, Any]:
    """Return coarse-grained backend readiness information."""

    feature_flags: Dict[str, Any] = settings.features or {}
    counters = get_metrics_client().snapshot()

    return {
        "status": "ok",
        "environment": settings.environment,
        "cache": {
            "slidingSeconds": settings.cache.sliding_seconds,
            "absoluteSeconds": settings.cache.absolute_seconds,
        },
        "counters": counters,
        "featureFlags": feature_flags,
    }
