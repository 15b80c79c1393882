"""
faceid/api/health.py — Health check эндпоинт FaceID-сервиса.

GET /api/v1/health — доступность хранилища и готовность детектора.
"""

from fastapi import APIRouter, Request

from faceid.database import check_connection

router = APIRouter(tags=["health"])


@router.get("/health", summary="Health check FaceID-сервиса")
async def health(request: Request):
    """Проверяет хранилище и детектор."""
    store_backend = getattr(request.app.state, "store_backend", "postgres")
    if store_backend == "memory":
        store_ok = True
        database = "memory"
    else:
        store_ok = await check_connection()
        database = "connected" if store_ok else "disconnected"

    detector = getattr(request.app.state, "detector", None)
    detector_ready = bool(detector is not None and detector.ready)

    return {
        "status": "healthy" if store_ok and detector_ready else "degraded",
        "database": database,
        "detector": "ready" if detector_ready else "not_ready",
        "service": "faceid",
    }
