"""
faceid/services/enrollment_service.py — Регистрация эталона лица.

Алгоритм ``enroll()``:
    1. Найти идентичность по номеру → NOT_FOUND.
    2. Запустить детектор → NO_FACE_DETECTED, если лиц нет (без побочных
       эффектов, повторы не ограничены).
    3. Выбрать самое уверенное наблюдение (при равенстве — большую рамку).
    4. Сохранить его как эталон; повторная регистрация заменяет прежний.

Изменяет ровно одну запись Identity.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from faceid.adapters.detector import DetectionAdapter
from faceid.adapters.imaging import CapturedImage
from faceid.db.repositories import identity_repo
from faceid.exceptions import NotFoundError
from faceid.models.enums import EnrollmentOutcome
from faceid.models.face import BoundingBox, FaceReference, select_best_observation
from faceid.models.identity import mask_phone, validate_phone_number
from faceid.models.results import EnrollmentResult
from faceid.services.audit_logger import FaceIdAuditAction, get_audit_logger

logger = logging.getLogger(__name__)


async def _store_reference(phone_number: str, reference: FaceReference) -> EnrollmentResult:
    try:
        identity = await identity_repo.set_face_reference(phone_number, reference)
    except NotFoundError:
        return EnrollmentResult(outcome=EnrollmentOutcome.NOT_FOUND)

    logger.info(
        "Face reference stored for %s (confidence=%s)",
        mask_phone(phone_number), reference.confidence,
    )
    await get_audit_logger().log(
        FaceIdAuditAction.FACE_ENROLL,
        entity_type="identity",
        entity_id=str(identity.identity_id),
        actor=mask_phone(phone_number),
        details={"bounding_box": reference.bounding_box.model_dump()},
    )
    try:
        from faceid.events import emit_face_enrolled
        await emit_face_enrolled(str(identity.identity_id), reference.confidence)
    except Exception as exc:
        logger.warning("Failed to emit face.enrolled event: %s", exc)

    return EnrollmentResult(
        outcome=EnrollmentOutcome.ENROLLED,
        identity_id=identity.identity_id,
        bounding_box=reference.bounding_box,
        confidence=reference.confidence,
    )


async def enroll(
    phone_number: str,
    image: CapturedImage,
    detector: DetectionAdapter,
) -> EnrollmentResult:
    """Превращает снимок в сохранённый эталон лица для идентичности."""
    phone_number = validate_phone_number(phone_number)

    identity = await identity_repo.get_by_phone(phone_number)
    if identity is None:
        return EnrollmentResult(outcome=EnrollmentOutcome.NOT_FOUND)

    observation = select_best_observation(await detector.detect(image))
    if observation is None:
        logger.info("No face detected during enrollment for %s", mask_phone(phone_number))
        return EnrollmentResult(
            outcome=EnrollmentOutcome.NO_FACE_DETECTED,
            identity_id=identity.identity_id,
        )

    reference = FaceReference(
        bounding_box=observation.bounding_box,
        captured_at=image.captured_at,
        confidence=observation.confidence,
    )
    return await _store_reference(phone_number, reference)


async def save_reference(
    phone_number: str,
    bounding_box: BoundingBox,
    confidence: float | None = None,
) -> EnrollmentResult:
    """Сохраняет рамку, найденную на клиенте, без серверной детекции."""
    phone_number = validate_phone_number(phone_number)
    reference = FaceReference(
        bounding_box=bounding_box,
        captured_at=datetime.now(timezone.utc),
        confidence=confidence,
    )
    return await _store_reference(phone_number, reference)
