"""Health check endpoints."""

from mirabellier.health.router import router


__all__ = ["router"]
