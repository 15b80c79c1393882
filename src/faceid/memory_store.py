"""
═══════════════════════════════════════════════════════════════════════════════
FaceID — In-Memory хранилище (замена FaceID DB для локальной разработки)
═══════════════════════════════════════════════════════════════════════════════

In-memory реализация identity_repo +
функция ``activate_identity_memory_store()`` для monkey-patching.

Все изменения выполняются под одним ``asyncio.Lock``: параллельные
``create_identity`` для одного номера сериализуются (успешен ровно один),
``set_face_reference`` применяются последовательно, побеждает последний.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from uuid import uuid4

from faceid.exceptions import DuplicatePhoneError, DuplicateUsernameError, NotFoundError
from faceid.models.face import FaceReference
from faceid.models.identity import Identity, mask_phone

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════════════
# Хранилища данных FaceID-домена
# ═══════════════════════════════════════════════════════════════════════════════
_identities: dict[str, Identity] = {}
_phone_by_username: dict[str, str] = {}
_lock = asyncio.Lock()

_now = lambda: datetime.now(timezone.utc)  # noqa: E731


def _copy(identity: Identity | None) -> Identity | None:
    return identity.model_copy(deep=True) if identity is not None else None


# ═══════════════════════════════════════════════════════════════════════════════
# identity_repo in-memory
# ═══════════════════════════════════════════════════════════════════════════════

async def create_identity(phone_number: str, username: str) -> Identity:
    """Создаёт новую идентичность в памяти."""
    async with _lock:
        if phone_number in _identities:
            raise DuplicatePhoneError()
        if username in _phone_by_username:
            raise DuplicateUsernameError(username)
        now = _now()
        identity = Identity(
            identity_id=uuid4(),
            phone_number=phone_number,
            username=username,
            created_at=now,
            updated_at=now,
        )
        _identities[phone_number] = identity
        _phone_by_username[username] = phone_number
    logger.info("FaceID memory store: created identity %s (%s)", username, mask_phone(phone_number))
    return _copy(identity)


async def get_by_phone(phone_number: str) -> Identity | None:
    return _copy(_identities.get(phone_number))


async def get_by_username(username: str) -> Identity | None:
    phone_number = _phone_by_username.get(username)
    if phone_number is None:
        return None
    return _copy(_identities.get(phone_number))


async def set_face_reference(phone_number: str, reference: FaceReference) -> Identity:
    """Заменяет эталон лица целиком (одна атомарная замена записи)."""
    async with _lock:
        current = _identities.get(phone_number)
        if current is None:
            raise NotFoundError("Identity", mask_phone(phone_number))
        updated = current.model_copy(
            update={
                "face_reference": reference.model_copy(deep=True),
                "face_enrolled": True,
                "updated_at": _now(),
            }
        )
        _identities[phone_number] = updated
    return _copy(updated)


def reset_identity_memory_store() -> None:
    """Очищает in-memory данные (используется в тестах)."""
    global _lock
    _lock = asyncio.Lock()
    _identities.clear()
    _phone_by_username.clear()


# ═══════════════════════════════════════════════════════════════════════════════
# Активация in-memory хранилища (monkey-patching)
# ═══════════════════════════════════════════════════════════════════════════════

def activate_identity_memory_store() -> None:
    """
    Подменяет функции в faceid.db.repositories.identity_repo на in-memory реализации.

    Вызывается из faceid.main → lifespan() при недоступности FaceID DB
    или при STORE_BACKEND=memory.
    """
    from faceid.db.repositories import identity_repo

    identity_repo.create_identity = create_identity
    identity_repo.get_by_phone = get_by_phone
    identity_repo.get_by_username = get_by_username
    identity_repo.set_face_reference = set_face_reference

    logger.warning(
        "🧠 FaceID memory store ACTIVATED — all data is in-memory (lost on restart)."
    )
