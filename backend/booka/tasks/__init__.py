# backend/booka/tasks/__init__.py
"""Celery background tasks for the Booka booking core."""

from .celery_app import celery_app

__all__ = ["celery_app"]
