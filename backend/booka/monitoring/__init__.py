"""Monitoring helpers (Prometheus)."""
