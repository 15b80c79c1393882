"""
faceid/events.py — NATS Event Publisher.

Публикует доменные события FaceID-сервиса в NATS:
    • ``faceid.identity.registered`` — создана новая идентичность
    • ``faceid.face.enrolled``       — сохранён эталон лица
    • ``faceid.face.verified``       — выполнена верификация (любой исход)

Graceful degradation: если NATS недоступен или отключён
(``EVENTS_ENABLED=false``) — событие пропускается с записью в лог.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import nats
from nats.aio.client import Client as NATSClient

from faceid.config import get_settings

logger = logging.getLogger(__name__)

# ── Singleton NATS connection ─────────────────────────────────────────────

_nc: NATSClient | None = None


async def connect() -> NATSClient | None:
    """Подключается к NATS (если ещё не подключён и события включены)."""
    global _nc
    settings = get_settings()
    if not settings.events_enabled:
        return None
    if _nc is not None and _nc.is_connected:
        return _nc
    try:
        _nc = await nats.connect(settings.nats_url)
        logger.info("NATS publisher connected: %s", settings.nats_url)
        return _nc
    except Exception as exc:
        logger.warning("NATS connect failed (events will be skipped): %s", exc)
        _nc = None
        return None


async def disconnect() -> None:
    """Закрывает соединение с NATS."""
    global _nc
    if _nc and _nc.is_connected:
        await _nc.drain()
        logger.info("NATS publisher disconnected")
    _nc = None


# ── Публикация событий ───────────────────────────────────────────────────

async def publish(subject: str, data: dict[str, Any]) -> None:
    """
    Публикует JSON-событие в NATS.

    Args:
        subject: Тема сообщения (e.g. ``faceid.face.enrolled``).
        data: Payload (сериализуется в JSON).
    """
    nc = await connect()
    if nc is None:
        logger.debug("NATS unavailable — skipping event %s", subject)
        return
    try:
        payload = json.dumps(data, default=str).encode("utf-8")
        await nc.publish(subject, payload)
        logger.info("NATS event published: %s", subject)
    except Exception as exc:
        logger.warning("NATS publish failed for %s: %s", subject, exc)


# ── Удобные функции для FaceID-домена ───────────────────────────────────

async def emit_identity_registered(identity_id: str, username: str) -> None:
    """Событие: новая идентичность зарегистрирована."""
    await publish("faceid.identity.registered", {
        "event": "identity.registered",
        "identity_id": identity_id,
        "username": username,
    })


async def emit_face_enrolled(identity_id: str, confidence: float | None) -> None:
    """Событие: эталон лица сохранён (или заменён)."""
    await publish("faceid.face.enrolled", {
        "event": "face.enrolled",
        "identity_id": identity_id,
        "confidence": confidence,
    })


async def emit_face_verified(
    identity_id: str | None, mode: str, outcome: str, similarity: float,
) -> None:
    """Событие: верификация выполнена."""
    await publish("faceid.face.verified", {
        "event": "face.verified",
        "identity_id": identity_id,
        "mode": mode,
        "outcome": outcome,
        "similarity": similarity,
    })
