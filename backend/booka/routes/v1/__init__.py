# backend/booka/routes/v1/__init__.py
"""Versioned API routers, mounted under /api/v1 in main.py."""

from . import health, payments, reservations

__all__ = ["health", "payments", "reservations"]
