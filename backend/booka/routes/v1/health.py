# backend/booka/routes/v1/health.py
"""Liveness check and Prometheus exposition."""

from typing import Dict

from fastapi import APIRouter, Response

from ... import __version__
from ...core.config import settings
from ...monitoring.prometheus_metrics import prometheus_metrics

router = APIRouter(tags=["health"])


@router.get("/health")
def health_check() -> Dict[str, str]:
    return {"status": "healthy", "version": __version__, "environment": settings.environment}


@router.get("/metrics")
def metrics() -> Response:
    """Prometheus metrics in text exposition format."""
    return Response(
        content=prometheus_metrics.get_metrics(),
        media_type=prometheus_metrics.get_content_type(),
    )
