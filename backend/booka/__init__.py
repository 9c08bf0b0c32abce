"""Booka booking and deposit orchestration backend."""

__version__ = "0.4.0"
