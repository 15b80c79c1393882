"""
═══════════════════════════════════════════════════════════════════════════════
FaceID — Главная точка входа сервиса (Application Entry Point)
═══════════════════════════════════════════════════════════════════════════════

Фабрика приложения (Application Factory Pattern) для сервиса регистрации
и верификации личности по номеру телефона и лицу.
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from faceid import __version__
from faceid.adapters.detector import DetectionAdapter, FaceDetector, build_detector
from faceid.adapters.matcher import FaceMatcher, MatchingAdapter, build_matcher
from faceid.config import get_settings
from faceid.database import close_pool, get_pool
from faceid.exceptions import FaceIdError

# ── API роутеры ──────────────────────────────────────────────────────────
from faceid.api.face import router as face_router
from faceid.api.health import router as health_router
from faceid.api.registration import router as registration_router

# ═══════════════════════════════════════════════════════════════════════════════
# Настройка логирования
# ═══════════════════════════════════════════════════════════════════════════════
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)

STATUS_MAP = {
    "INVALID_PHONE": 422,
    "INVALID_USERNAME": 422,
    "INVALID_IMAGE": 422,
    "VALIDATION_ERROR": 422,
    "NO_FACE_DETECTED": 422,
    "DUPLICATE_PHONE": 409,
    "DUPLICATE_USERNAME": 409,
    "CONFLICT": 409,
    "NOT_FOUND": 404,
    "DETECTOR_NOT_INITIALIZED": 503,
    "STORE_UNAVAILABLE": 503,
}


# ═══════════════════════════════════════════════════════════════════════════════
# Автоматическое применение SQL-миграций
# ═══════════════════════════════════════════════════════════════════════════════

async def _apply_migrations(pool) -> None:
    """Применяет SQL-миграции из ``faceid/db/migrations/``."""
    from pathlib import Path

    migrations_dir = Path(__file__).parent / "db" / "migrations"
    if not migrations_dir.is_dir():
        logger.info("No migrations directory found — skipping")
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))
    if not sql_files:
        logger.info("No SQL migration files found — skipping")
        return

    async with pool.acquire() as conn:
        await conn.execute("""
            CREATE TABLE IF NOT EXISTS _applied_migrations (
                filename TEXT PRIMARY KEY,
                applied_at TIMESTAMPTZ DEFAULT NOW()
            )
        """)

        rows = await conn.fetch("SELECT filename FROM _applied_migrations")
        applied = {row["filename"] for row in rows}

        for sql_file in sql_files:
            if sql_file.name in applied:
                continue

            logger.info(f"📄 Applying migration: {sql_file.name}")
            sql_text = sql_file.read_text(encoding="utf-8")
            async with conn.transaction():
                await conn.execute(sql_text)
                await conn.execute(
                    "INSERT INTO _applied_migrations (filename) VALUES ($1)",
                    sql_file.name,
                )
            logger.info(f"✅ Migration applied: {sql_file.name}")

    logger.info(f"✅ All FaceID migrations up to date ({len(sql_files)} files checked)")


# ═══════════════════════════════════════════════════════════════════════════════
# Хранилище идентичностей
# ═══════════════════════════════════════════════════════════════════════════════

async def _init_store(app: FastAPI) -> None:
    """
    Выбирает backend хранилища.

    ``memory`` — сразу in-memory; ``postgres`` — БД обязательна;
    ``auto`` — БД с graceful degradation в memory store.
    """
    from faceid.memory_store import activate_identity_memory_store
    from faceid.services.audit_logger import get_audit_logger

    settings = get_settings()
    backend = settings.store_backend

    if backend != "memory":
        try:
            pool = await get_pool()
            logger.info("✅ FaceID database pool initialized")
        except Exception as e:
            if backend == "postgres":
                raise
            logger.warning(f"⚠️  FaceID DB not available — activating memory store: {e}")
            backend = "memory"
        else:
            try:
                await _apply_migrations(pool)
            except Exception as e:
                logger.warning(f"⚠️  FaceID migration apply failed (non-fatal): {e}")
            backend = "postgres"

    if backend == "memory":
        activate_identity_memory_store()
        get_audit_logger().persist = False

    app.state.store_backend = backend


# ═══════════════════════════════════════════════════════════════════════════════
# Lifespan — управление жизненным циклом
# ═══════════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan FaceID-сервиса.

    Startup:
        1. Хранилище: пул PostgreSQL + миграции или memory store.
        2. Адаптеры детектора и матчера (один экземпляр на процесс),
           однократный прогрев детектора.
        3. NATS publisher.

    Shutdown:
        1. NATS → пул БД.
    """
    settings = get_settings()
    logger.info(f"🚀 FaceID v{__version__} starting...")
    logger.info(f"   Log level: {settings.log_level}")

    await _init_store(app)

    detector_backend: FaceDetector = app.state.detector_backend or build_detector(
        settings.detector_backend,
        warmup_seconds=settings.detector_warmup_seconds,
        confidence=settings.detector_confidence,
    )
    matcher_backend: FaceMatcher = app.state.matcher_backend or build_matcher(
        settings.matcher_backend, fixed_score=settings.matcher_fixed_score,
    )
    app.state.detector = DetectionAdapter(detector_backend)
    app.state.matcher = MatchingAdapter(matcher_backend, threshold=settings.match_threshold)
    await app.state.detector.initialize()
    logger.info(f"   Match threshold: {settings.match_threshold:.2f}")

    try:
        from faceid.events import connect as nats_connect
        await nats_connect()
    except Exception as e:
        logger.warning(f"⚠️  NATS publisher not available (events will be skipped): {e}")

    yield

    # Shutdown: NATS → DB
    try:
        from faceid.events import disconnect as nats_disconnect
        await nats_disconnect()
    except Exception as e:
        logger.warning(f"NATS disconnect failed: {e}")
    try:
        await close_pool()
    except Exception as e:
        logger.warning(f"DB pool close failed: {e}")
    logger.info("🛑 FaceID stopped")


# ═══════════════════════════════════════════════════════════════════════════════
# Фабрика приложения
# ═══════════════════════════════════════════════════════════════════════════════

def create_app(
    detector_backend: FaceDetector | None = None,
    matcher_backend: FaceMatcher | None = None,
) -> FastAPI:
    """
    Создаёт и конфигурирует FaceID FastAPI-приложение.

    ``detector_backend`` / ``matcher_backend`` подменяют модели,
    выбранные в настройках (реальная модель, тестовая заглушка).
    """
    settings = get_settings()

    _is_production = settings.app_env == "production"

    app = FastAPI(
        redirect_slashes=False,
        title="FaceID",
        description=(
            "Phone-number identity registration with face enrollment "
            "and face verification against a stored reference."
        ),
        version=__version__,
        lifespan=lifespan,
        docs_url=None if _is_production else "/docs",
        redoc_url=None if _is_production else "/redoc",
        openapi_url=None if _is_production else "/api/v1/openapi.json",
    )
    app.state.detector_backend = detector_backend
    app.state.matcher_backend = matcher_backend

    # ── CORS middleware ──────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Accept", "X-Request-ID"],
    )

    # ── Подключение API-роутеров ─────────────────────────────────────────
    from fastapi import APIRouter

    v1_router = APIRouter(prefix="/api/v1")
    v1_router.include_router(registration_router)
    v1_router.include_router(face_router)
    v1_router.include_router(health_router)

    app.include_router(v1_router)

    # ── Глобальный обработчик FaceIdError ────────────────────────────────
    @app.exception_handler(FaceIdError)
    async def faceid_error_handler(request: Request, exc: FaceIdError) -> JSONResponse:
        """Маппинг кодов FaceID на HTTP-статусы."""
        status_code = STATUS_MAP.get(exc.code, 500)
        return JSONResponse(
            status_code=status_code,
            content={
                "error": {
                    "code": exc.code,
                    "message": exc.message,
                    "details": exc.details,
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                }
            },
        )

    # ── Корневой эндпоинт ────────────────────────────────────────────────
    @app.get("/")
    async def root():
        return {
            "name": "FaceID",
            "version": __version__,
            "description": "Identity enrollment & face verification service",
            "docs": "/docs",
            "api": {
                "v1": {
                    "health": "/api/v1/health",
                    "submit": "/api/v1/registration/submit",
                    "save_face": "/api/v1/registration/face",
                    "search_user": "/api/v1/registration/users/search",
                    "verify": "/api/v1/face/verify",
                },
            },
        }

    return app


# ═══════════════════════════════════════════════════════════════════════════════
# Module-level singleton
# ═══════════════════════════════════════════════════════════════════════════════
app = create_app()


def main() -> None:
    """Запускает FaceID-сервис через Uvicorn."""
    settings = get_settings()
    logger.info(f"Starting FaceID server on {settings.api_host}:{settings.api_port}")
    uvicorn.run(
        "faceid.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=False,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
