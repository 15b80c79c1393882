"""
faceid/services/directory_service.py — Каталог идентичностей.

Разрешает имя пользователя в идентичность для сценария «проверить другого
пользователя». Три исхода различимы для клиента, каждый ведёт в свой экран:
    • NOT_FOUND    — искать снова
    • NOT_ENROLLED — попросить цель зарегистрировать лицо
    • ENROLLED     — перейти к съёмке
"""

from __future__ import annotations

from faceid.db.repositories import identity_repo
from faceid.models.enums import TargetStatus
from faceid.models.face import FaceReference
from faceid.models.results import TargetLookup


async def find_enrollable_target(username: str) -> TargetLookup:
    """Поиск по точному имени (с учётом регистра)."""
    identity = await identity_repo.get_by_username((username or "").strip())
    if identity is None:
        return TargetLookup(status=TargetStatus.NOT_FOUND)
    if not identity.face_enrolled or identity.face_reference is None:
        return TargetLookup(status=TargetStatus.NOT_ENROLLED, identity=identity)
    return TargetLookup(status=TargetStatus.ENROLLED, identity=identity)


async def get_face_reference(phone_number: str) -> FaceReference | None:
    """Эталон лица по номеру; None для отсутствующей или незарегистрированной."""
    identity = await identity_repo.get_by_phone(phone_number)
    if identity is None or not identity.face_enrolled:
        return None
    return identity.face_reference
