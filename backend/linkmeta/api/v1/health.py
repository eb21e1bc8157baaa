from fastapi import APIRouter
from fastapi.responses import Response

from linkmeta.config import settings
from linkmeta.core.metrics import get_metrics, get_metrics_content_type

router = APIRouter()


@router.get(
    "/health",
    summary="Liveness check",
    description="Returns HTTP 200 while the process is running. The resolver keeps no "
    "external state, so liveness is also readiness.",
)
async def liveness():
    return {"status": "healthy"}


@router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="Expose resolver metrics in Prometheus exposition format. Returns HTTP 404 "
    "if metrics collection is disabled in the application configuration.",
)
async def metrics():
    """Prometheus metrics endpoint."""
    if not settings.METRICS_ENABLED:
        return Response(content="Metrics disabled", status_code=404)

    return Response(
        content=get_metrics(),
        media_type=get_metrics_content_type(),
    )
