"""
faceid/db/repositories/identity_repo.py — Репозиторий идентичностей (PostgreSQL).

Уникальность номера и имени обеспечивают ограничения таблицы
``identities``: из параллельных INSERT для одного номера успешен ровно один,
остальные получают DuplicatePhoneError. Обновление эталона — один UPDATE,
то есть применяется целиком или не применяется вовсе.

При недоступности БД ``faceid.memory_store`` подменяет функции этого
модуля in-memory реализациями с той же сигнатурой.
"""

from __future__ import annotations

import json
from uuid import uuid4

import asyncpg

from faceid.database import get_connection
from faceid.exceptions import DuplicatePhoneError, DuplicateUsernameError, NotFoundError
from faceid.models.face import FaceReference
from faceid.models.identity import Identity, mask_phone

PHONE_CONSTRAINT = "identities_phone_number_key"
USERNAME_CONSTRAINT = "identities_username_key"


def _row_to_identity(row: asyncpg.Record) -> Identity:
    """Конвертирует строку из БД → Identity."""
    data = dict(row)
    raw_reference = data.pop("face_reference", None)
    if isinstance(raw_reference, str):
        raw_reference = json.loads(raw_reference)
    reference = FaceReference.model_validate(raw_reference) if raw_reference else None
    return Identity(face_reference=reference, **data)


async def create_identity(phone_number: str, username: str) -> Identity:
    """Создать идентичность; конфликт номера проверяется раньше конфликта имени."""
    async with get_connection() as conn:
        try:
            row = await conn.fetchrow(
                """
                INSERT INTO identities (identity_id, phone_number, username)
                VALUES ($1, $2, $3)
                RETURNING *
                """,
                uuid4(), phone_number, username,
            )
        except asyncpg.exceptions.UniqueViolationError as exc:
            if exc.constraint_name == USERNAME_CONSTRAINT:
                # Номер мог быть занят одновременно с именем
                existing = await conn.fetchval(
                    "SELECT 1 FROM identities WHERE phone_number = $1", phone_number
                )
                if existing:
                    raise DuplicatePhoneError() from exc
                raise DuplicateUsernameError(username) from exc
            raise DuplicatePhoneError() from exc
        return _row_to_identity(row)


async def get_by_phone(phone_number: str) -> Identity | None:
    """Найти идентичность по номеру телефона."""
    async with get_connection() as conn:
        row = await conn.fetchrow(
            "SELECT * FROM identities WHERE phone_number = $1", phone_number
        )
        return _row_to_identity(row) if row else None


async def get_by_username(username: str) -> Identity | None:
    """Найти идентичность по имени (точное совпадение с учётом регистра)."""
    async with get_connection() as conn:
        row = await conn.fetchrow(
            "SELECT * FROM identities WHERE username = $1", username
        )
        return _row_to_identity(row) if row else None


async def set_face_reference(phone_number: str, reference: FaceReference) -> Identity:
    """Заменить эталон лица (last-writer-wins, без истории)."""
    async with get_connection() as conn:
        row = await conn.fetchrow(
            """
            UPDATE identities
               SET face_reference = $1::jsonb,
                   face_enrolled = TRUE,
                   updated_at = NOW()
             WHERE phone_number = $2
            RETURNING *
            """,
            reference.model_dump_json(), phone_number,
        )
        if row is None:
            raise NotFoundError("Identity", mask_phone(phone_number))
        return _row_to_identity(row)
