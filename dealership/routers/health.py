from fastapi import APIRouter, Response

from dealership.core.prometheus_metrics import prometheus_collector
from dealership.middleware.rate_limit import limiter

router = APIRouter(tags=["health"])


@router.get("/")
@limiter.exempt
async def root():
    return {
        "success": True,
        "message": "Dealership back office API is running",
        "version": "1.0.0",
    }


@router.get("/health")
@limiter.exempt
async def health():
    return {"status": "ok"}


@router.get("/metrics")
@limiter.exempt
async def prometheus_metrics():
    """Prometheus metrics endpoint for scraping"""
    return Response(
        content=prometheus_collector.get_prometheus_metrics(),
        media_type="text/plain; version=0.0.4",
    )
