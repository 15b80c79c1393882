"""
faceid/services/registration_service.py — Регистрация и вход по номеру телефона.

Конечный автомат на номер телефона:
    Unknown → Registered(без лица) → Registered(с лицом)

``submit()`` — единая точка входа клиента: существующий номер означает вход,
новый — регистрацию. Оба пути сходятся в ``SessionState``, который клиент
передаёт дальше в регистрацию или верификацию лица.

Ошибки валидации возникают до любого обращения к хранилищу.
"""

from __future__ import annotations

import logging

from faceid.db.repositories import identity_repo
from faceid.exceptions import DuplicatePhoneError, DuplicateUsernameError
from faceid.models.identity import (
    Identity,
    SessionState,
    mask_phone,
    validate_phone_number,
    validate_username,
)
from faceid.services.audit_logger import FaceIdAuditAction, get_audit_logger

logger = logging.getLogger(__name__)


async def _record(action: FaceIdAuditAction, identity: Identity) -> None:
    """Аудит + NATS; сбои не влияют на основной процесс."""
    await get_audit_logger().log(
        action,
        entity_type="identity",
        entity_id=str(identity.identity_id),
        actor=mask_phone(identity.phone_number),
    )
    if action is FaceIdAuditAction.IDENTITY_REGISTER:
        try:
            from faceid.events import emit_identity_registered
            await emit_identity_registered(str(identity.identity_id), identity.username)
        except Exception as exc:
            logger.warning("Failed to emit identity.registered event: %s", exc)


# ═══════════════════════════════════════════════════════════════════════════
# РЕГИСТРАЦИЯ
# ═══════════════════════════════════════════════════════════════════════════


async def register(phone_number: str, username: str) -> Identity:
    """
    Регистрирует новую идентичность.

    Raises:
        InvalidPhoneError, InvalidUsernameError: до обращения к хранилищу.
        DuplicatePhoneError: номер уже зарегистрирован (при любом имени).
        DuplicateUsernameError: имя занято другим номером.
    """
    phone_number = validate_phone_number(phone_number)
    username = validate_username(username)

    if await identity_repo.get_by_phone(phone_number):
        raise DuplicatePhoneError()
    if await identity_repo.get_by_username(username):
        raise DuplicateUsernameError(username)

    # Хранилище повторно проверяет уникальность: из гонки выходит один победитель
    identity = await identity_repo.create_identity(phone_number, username)
    logger.info("Registered identity %s for %s", identity.identity_id, mask_phone(phone_number))
    await _record(FaceIdAuditAction.IDENTITY_REGISTER, identity)
    return identity


# ═══════════════════════════════════════════════════════════════════════════
# ВХОД
# ═══════════════════════════════════════════════════════════════════════════


async def login(phone_number: str) -> Identity | None:
    """Вход по номеру. None — номер не зарегистрирован."""
    phone_number = validate_phone_number(phone_number)
    identity = await identity_repo.get_by_phone(phone_number)
    if identity is None:
        logger.info("Login for unknown phone %s", mask_phone(phone_number))
        return None
    await _record(FaceIdAuditAction.IDENTITY_LOGIN, identity)
    return identity


# ═══════════════════════════════════════════════════════════════════════════
# ОРКЕСТРАТОР
# ═══════════════════════════════════════════════════════════════════════════


def _session(identity: Identity, is_login: bool) -> SessionState:
    return SessionState(
        identity_id=identity.identity_id,
        phone_number=identity.phone_number,
        username=identity.username,
        is_login=is_login,
    )


async def submit(phone_number: str, username: str) -> SessionState:
    """
    Вход или регистрация по паре (номер, имя).

    Для существующего номера присланное имя игнорируется и возвращается
    сохранённое: номер — единственный ключ входа.

    Raises:
        InvalidPhoneError, InvalidUsernameError: до обращения к хранилищу.
        DuplicateUsernameError: новое имя занято другим номером.
    """
    phone_number = validate_phone_number(phone_number)
    username = validate_username(username)

    existing = await identity_repo.get_by_phone(phone_number)
    if existing is not None:
        if existing.username != username:
            logger.debug(
                "Login for %s with non-matching username (ignored)", mask_phone(phone_number)
            )
        await _record(FaceIdAuditAction.IDENTITY_LOGIN, existing)
        return _session(existing, is_login=True)

    try:
        identity = await register(phone_number, username)
    except DuplicatePhoneError:
        # Параллельная регистрация того же номера успела первой
        winner = await identity_repo.get_by_phone(phone_number)
        if winner is None:
            raise
        await _record(FaceIdAuditAction.IDENTITY_LOGIN, winner)
        return _session(winner, is_login=True)
    return _session(identity, is_login=False)
