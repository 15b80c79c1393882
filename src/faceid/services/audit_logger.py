"""
faceid/services/audit_logger.py — Аудит-лог FaceID-домена.

Действия домена:
    • identity.register, identity.login
    • face.enroll, face.verify

Пишет в таблицу ``audit_log`` FaceID DB. При недоступности БД
(или в режиме memory store) записи копятся в in-memory буфере.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class FaceIdAuditAction(str, Enum):
    """Типы аудируемых действий домена FaceID."""

    IDENTITY_REGISTER = "identity.register"
    IDENTITY_LOGIN = "identity.login"
    FACE_ENROLL = "face.enroll"
    FACE_VERIFY = "face.verify"


class FaceIdAuditLogger:
    """
    Аудит-логгер FaceID-сервиса.

    Поддерживает:
    - PostgreSQL (faceid_db.audit_log)
    - In-memory буфер (fallback)
    """

    def __init__(self, max_buffer_size: int = 10000, persist: bool = True) -> None:
        self._buffer: list[dict[str, Any]] = []
        self._max_buffer = max_buffer_size
        self.persist = persist

    async def log(
        self,
        action: FaceIdAuditAction | str,
        entity_type: str,
        entity_id: str,
        actor: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Записать аудит-событие."""
        action_str = action.value if isinstance(action, FaceIdAuditAction) else action
        record = {
            "action": action_str,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "actor": actor,
            "details": details or {},
            "created_at": datetime.now(timezone.utc).isoformat(),
        }

        if not self.persist:
            self._write_to_buffer(record)
            return

        try:
            await self._write_to_db(record)
        except Exception as e:
            logger.warning("FaceID audit DB write failed, buffering: %s", e)
            self._write_to_buffer(record)

    async def _write_to_db(self, record: dict[str, Any]) -> None:
        """Записать в PostgreSQL (faceid_db)."""
        from faceid.database import get_connection

        async with get_connection() as conn:
            await conn.execute(
                """
                INSERT INTO audit_log (action, entity_type, entity_id, actor, details)
                VALUES ($1, $2, $3, $4, $5::jsonb)
                """,
                record["action"],
                record["entity_type"],
                record["entity_id"],
                record["actor"],
                json.dumps(record["details"], default=str),
            )

    def _write_to_buffer(self, record: dict[str, Any]) -> None:
        """Fallback в in-memory буфер."""
        if len(self._buffer) >= self._max_buffer:
            self._buffer.pop(0)
        self._buffer.append(record)

    async def flush_buffer(self) -> int:
        """Попытаться записать буферизованные события в БД."""
        if not self._buffer or not self.persist:
            return 0
        flushed = 0
        remaining: list[dict[str, Any]] = []
        for record in self._buffer:
            try:
                await self._write_to_db(record)
                flushed += 1
            except Exception:
                remaining.append(record)
        self._buffer = remaining
        if flushed:
            logger.info("Flushed %d audit records from buffer", flushed)
        return flushed

    @property
    def buffer_size(self) -> int:
        return len(self._buffer)

    @property
    def buffered(self) -> list[dict[str, Any]]:
        return list(self._buffer)


# ═══════════════════════════════════════════════════════════════════════════════
# Singleton
# ═══════════════════════════════════════════════════════════════════════════════

_audit_logger: FaceIdAuditLogger | None = None


def get_audit_logger() -> FaceIdAuditLogger:
    """Получить единственный экземпляр FaceIdAuditLogger."""
    global _audit_logger
    if _audit_logger is None:
        _audit_logger = FaceIdAuditLogger()
    return _audit_logger
