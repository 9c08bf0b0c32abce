# backend/booka/main.py
"""
FastAPI application for the Booka booking core.

Mounts the versioned API under /api/v1 plus the health and metrics
endpoints at the root.
"""

import logging

from fastapi import APIRouter, FastAPI

from . import __version__
from .middleware.prometheus_middleware import PrometheusMiddleware
from .routes.v1 import health as health_v1, payments as payments_v1, reservations as reservations_v1

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)

API_TITLE = "Booka API"
API_DESCRIPTION = "Multi-tenant reservations, conflict-free scheduling and reservation deposits."


def create_app() -> FastAPI:
    app = FastAPI(title=API_TITLE, description=API_DESCRIPTION, version=__version__)
    app.add_middleware(PrometheusMiddleware)

    api_v1 = APIRouter(prefix="/api/v1")
    api_v1.include_router(reservations_v1.router, prefix="/reservations")
    api_v1.include_router(payments_v1.router, prefix="/payments")

    app.include_router(api_v1)
    app.include_router(health_v1.router)
    return app


app = create_app()
