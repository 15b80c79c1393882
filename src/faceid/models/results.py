"""
faceid/models/results.py — Результаты сервисов протокола.

Ожидаемые исходы (нет идентичности, нет лица, лицо не зарегистрировано,
отказ по порогу) возвращаются как варианты результата, чтобы вызывающий
код был вынужден обработать каждый случай.
"""

from __future__ import annotations

from uuid import UUID

from pydantic import Field

from faceid.models.common import FaceIdBase
from faceid.models.enums import EnrollmentOutcome, TargetStatus, VerificationOutcome
from faceid.models.face import BoundingBox
from faceid.models.identity import Identity


class EnrollmentResult(FaceIdBase):
    outcome: EnrollmentOutcome
    identity_id: UUID | None = None
    bounding_box: BoundingBox | None = None
    confidence: float | None = None

    @property
    def enrolled(self) -> bool:
        return self.outcome is EnrollmentOutcome.ENROLLED


class VerificationResult(FaceIdBase):
    """
    Решение верификации.

    ``accepted`` истинно только при outcome == ACCEPTED. Отказ по порогу —
    нормальный отрицательный результат, а не ошибка.
    """
    outcome: VerificationOutcome
    accepted: bool = False
    similarity: float = Field(default=0.0, ge=0.0, le=1.0)
    threshold: float
    reason: str


class TargetLookup(FaceIdBase):
    """Результат поиска цели для сценария «проверить другого пользователя»."""
    status: TargetStatus
    identity: Identity | None = None

    @property
    def found(self) -> bool:
        return self.status is not TargetStatus.NOT_FOUND

    @property
    def enrolled(self) -> bool:
        return self.status is TargetStatus.ENROLLED
