"""
faceid/services/verification_service.py — Верификация живого снимка.

Два режима, один алгоритм, разный источник эталона:
    • SELF  — эталон собственной идентичности (``claimed`` — номер телефона)
    • OTHER — эталон другого пользователя (``claimed`` — имя, через каталог)

Алгоритм ``verify()``:
    1. Разрешить цель → NOT_FOUND / NOT_ENROLLED (детекция и сравнение
       не выполняются).
    2. Детекция → NO_FACE_DETECTED, если лиц нет.
    3. Лучшее наблюдение (уверенность, затем площадь).
    4. similarity = compare(эталон, наблюдение).
    5. accepted = similarity >= threshold.

Отказ по порогу — нормальный отрицательный результат, исключение
не выбрасывается.
"""

from __future__ import annotations

import logging

from faceid.adapters.detector import DetectionAdapter
from faceid.adapters.imaging import CapturedImage
from faceid.adapters.matcher import MatchingAdapter
from faceid.db.repositories import identity_repo
from faceid.models.enums import TargetStatus, VerificationMode, VerificationOutcome
from faceid.models.face import select_best_observation
from faceid.models.identity import Identity, mask_phone, validate_phone_number
from faceid.models.results import VerificationResult
from faceid.services import directory_service
from faceid.services.audit_logger import FaceIdAuditAction, get_audit_logger

logger = logging.getLogger(__name__)

_REASONS = {
    VerificationOutcome.ACCEPTED: "Face verification passed",
    VerificationOutcome.REJECTED: "Face does not match, please try again",
    VerificationOutcome.NOT_FOUND: "Identity not found",
    VerificationOutcome.NOT_ENROLLED: "Face not enrolled yet, enroll first",
    VerificationOutcome.NO_FACE_DETECTED: "No face detected, please retake the photo",
}


async def _resolve_target(claimed: str, mode: VerificationMode) -> tuple[VerificationOutcome | None, Identity | None]:
    """Возвращает (исход-досрочно, цель). Исход None — цель готова к сравнению."""
    if mode is VerificationMode.SELF:
        identity = await identity_repo.get_by_phone(validate_phone_number(claimed))
        if identity is None:
            return VerificationOutcome.NOT_FOUND, None
        if not identity.face_enrolled or identity.face_reference is None:
            return VerificationOutcome.NOT_ENROLLED, identity
        return None, identity

    lookup = await directory_service.find_enrollable_target(claimed)
    if lookup.status is TargetStatus.NOT_FOUND:
        return VerificationOutcome.NOT_FOUND, None
    if lookup.status is TargetStatus.NOT_ENROLLED:
        return VerificationOutcome.NOT_ENROLLED, lookup.identity
    return None, lookup.identity


async def _finish(
    outcome: VerificationOutcome,
    mode: VerificationMode,
    target: Identity | None,
    matcher: MatchingAdapter,
    similarity: float = 0.0,
) -> VerificationResult:
    result = VerificationResult(
        outcome=outcome,
        accepted=outcome is VerificationOutcome.ACCEPTED,
        similarity=similarity,
        threshold=matcher.threshold,
        reason=_REASONS[outcome],
    )
    target_id = str(target.identity_id) if target is not None else None
    logger.info(
        "Verification (%s) for %s: %s (similarity=%.3f)",
        mode.value, target_id or "<unknown>", outcome.value, similarity,
    )
    if target is not None:
        await get_audit_logger().log(
            FaceIdAuditAction.FACE_VERIFY,
            entity_type="identity",
            entity_id=target_id,
            actor=mask_phone(target.phone_number) if mode is VerificationMode.SELF else None,
            details={"mode": mode.value, "outcome": outcome.value, "similarity": similarity},
        )
    try:
        from faceid.events import emit_face_verified
        await emit_face_verified(target_id, mode.value, outcome.value, similarity)
    except Exception as exc:
        logger.warning("Failed to emit face.verified event: %s", exc)
    return result


async def verify(
    claimed: str,
    image: CapturedImage,
    mode: VerificationMode,
    detector: DetectionAdapter,
    matcher: MatchingAdapter,
) -> VerificationResult:
    """Сравнивает снимок с эталоном заявленной идентичности."""
    early, target = await _resolve_target(claimed, mode)
    if early is not None:
        return await _finish(early, mode, target, matcher)

    observation = select_best_observation(await detector.detect(image))
    if observation is None:
        return await _finish(VerificationOutcome.NO_FACE_DETECTED, mode, target, matcher)

    similarity = await matcher.compare(target.face_reference, observation)
    outcome = (
        VerificationOutcome.ACCEPTED if matcher.is_match(similarity)
        else VerificationOutcome.REJECTED
    )
    return await _finish(outcome, mode, target, matcher, similarity)
