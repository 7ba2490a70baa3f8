# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: System endpoints, health, readiness, metrics.
Pure HTTP layer, no business logic.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import JSONResponse, Response

from oncallbot.core.config import settings
from oncallbot.core.dependencies import get_identity_cache, get_rotation_store
from oncallbot.services.identity_cache import IdentityCache
from oncallbot.services.rotation_store import RotationStore

router = APIRouter(tags=["System"])


@router.get("/health")
def health_check(
    store: RotationStore = Depends(get_rotation_store),
    identities: IdentityCache = Depends(get_identity_cache),
):
    """Liveness probe for Docker and orchestration."""
    return {
        "status": "ok",
        "service": settings.SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "teams_count": store.count(),
        "cached_identities": identities.size(),
    }


@router.get("/health/ready")
def readiness_check(store: RotationStore = Depends(get_rotation_store)):
    """Readiness probe: ready once the stored teams have been loaded."""
    body = {
        "status": "ready" if store.loaded else "loading",
        "service": settings.SERVICE_NAME,
        "teams_loaded": store.loaded,
    }
    return JSONResponse(content=body, status_code=200 if store.loaded else 503)


@router.get("/metrics")
def prometheus_metrics():
    """Expose Prometheus metrics in OpenMetrics format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
