"""Health check endpoints."""

from fastapi import APIRouter, Request, Response, status


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness check - the application is running."""
    return {"status": "alive"}


@router.get("/ready")
def readiness(request: Request, response: Response) -> dict[str, str | bool]:
    """Readiness check - the database answers."""
    settings = request.app.state.settings
    database_ok = request.app.state.db.ping()
    if not database_ok:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return {
        "status": "ready" if database_ok else "unavailable",
        "database": database_ok,
        "environment": settings.environment,
    }


@router.get("")
async def health(request: Request) -> dict[str, str]:
    """General health check endpoint."""
    settings = request.app.state.settings
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }
