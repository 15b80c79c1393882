"""
faceid/api/face.py — Эндпоинты регистрации и верификации лица по снимку.

Исходы протокола (нет лица, не зарегистрирован, отказ по порогу)
возвращаются в теле ответа как ``outcome``, HTTP-статус при этом 200.
"""

from fastapi import APIRouter, Depends

from faceid.adapters.detector import DetectionAdapter
from faceid.adapters.matcher import MatchingAdapter
from faceid.dependencies import ImageDecoder, get_detector, get_image_decoder, get_matcher
from faceid.models.identity import EnrollRequest, VerifyRequest
from faceid.models.results import EnrollmentResult, VerificationResult
from faceid.services import enrollment_service, verification_service

router = APIRouter(prefix="/face", tags=["face"])


@router.post(
    "/enroll",
    response_model=EnrollmentResult,
    summary="Зарегистрировать лицо по снимку",
)
async def enroll(
    body: EnrollRequest,
    detector: DetectionAdapter = Depends(get_detector),
    decode: ImageDecoder = Depends(get_image_decoder),
):
    """Детекция → лучшее наблюдение → эталон. Повтор заменяет эталон."""
    image = decode(body.image_base64)
    return await enrollment_service.enroll(body.phone_number, image, detector)


@router.post(
    "/verify",
    response_model=VerificationResult,
    summary="Проверить снимок против эталона",
)
async def verify(
    body: VerifyRequest,
    detector: DetectionAdapter = Depends(get_detector),
    matcher: MatchingAdapter = Depends(get_matcher),
    decode: ImageDecoder = Depends(get_image_decoder),
):
    """Режим ``self`` — свой эталон по номеру, ``other`` — чужой по имени."""
    image = decode(body.image_base64)
    return await verification_service.verify(body.claimed, image, body.mode, detector, matcher)
