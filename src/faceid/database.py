"""
═══════════════════════════════════════════════════════════════════════════════
FaceID — Пул соединений к базе данных (Database Connection Pool)
═══════════════════════════════════════════════════════════════════════════════

Пул соединений к PostgreSQL для хранилища идентичностей.
Использует настройки из ``faceid.config.get_settings()``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import asyncpg

from faceid.config import get_settings
from faceid.exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)

# Ошибки, означающие недоступность БД (а не ошибку запроса)
_UNAVAILABLE_ERRORS = (
    OSError,
    asyncpg.exceptions.PostgresConnectionError,
    asyncpg.exceptions.InterfaceError,
)

# ═══════════════════════════════════════════════════════════════════════════════
# Глобальная переменная пула (module-level singleton)
# ═══════════════════════════════════════════════════════════════════════════════
_pool: asyncpg.Pool | None = None


async def get_pool() -> asyncpg.Pool:
    """
    Возвращает глобальный пул соединений к PostgreSQL FaceID DB.

    Создаёт пул при первом вызове с параметрами из FaceIdSettings.
    """
    global _pool
    if _pool is None:
        settings = get_settings()
        _pool = await asyncpg.create_pool(
            dsn=settings.database_url,
            min_size=settings.database_pool_min,
            max_size=settings.database_pool_max,
            command_timeout=60,
        )
        logger.info(
            f"FaceID DB pool created "
            f"(min={settings.database_pool_min}, max={settings.database_pool_max})"
        )
    return _pool


async def close_pool() -> None:
    """Закрывает глобальный пул соединений FaceID DB."""
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None
        logger.info("FaceID DB pool closed")


@asynccontextmanager
async def get_connection() -> AsyncGenerator[asyncpg.Connection, None]:
    """
    Выдаёт соединение из пула FaceID DB и возвращает его обратно.

    Сбой подключения превращается в ``StoreUnavailableError``;
    ошибки самих запросов пробрасываются как есть.

    Использование::

        from faceid.database import get_connection

        async with get_connection() as conn:
            row = await conn.fetchrow("SELECT * FROM identities WHERE phone_number = $1", phone)
    """
    try:
        pool = await get_pool()
        conn = await pool.acquire()
    except _UNAVAILABLE_ERRORS as exc:
        logger.error(f"FaceID DB unavailable: {exc}")
        raise StoreUnavailableError(str(exc)) from exc
    try:
        yield conn
    finally:
        await pool.release(conn)


async def check_connection() -> bool:
    """Проверяет доступность FaceID PostgreSQL (health check)."""
    try:
        async with get_connection() as conn:
            result = await conn.fetchval("SELECT 1")
            return result == 1
    except Exception as e:
        logger.error(f"FaceID DB health check failed: {e}")
        return False
