"""
faceid/models/face.py — Модели наблюдений и эталонов лица.

Observation — одно срабатывание детектора (рамка + уверенность).
FaceReference — сохранённый эталон лица. Сейчас это геометрический
дескриптор (рамка), а не биометрический шаблон.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from pydantic import Field

from faceid.models.common import FaceIdBase


class BoundingBox(FaceIdBase):
    """Рамка лица в пикселях исходного снимка."""
    x: float = Field(..., examples=[10])
    y: float = Field(..., examples=[20])
    width: float = Field(..., ge=0, examples=[100])
    height: float = Field(..., ge=0, examples=[120])

    @property
    def area(self) -> float:
        return self.width * self.height


class Observation(FaceIdBase):
    """Результат детектора для одного снимка (не сохраняется)."""
    bounding_box: BoundingBox
    confidence: float = Field(..., ge=0.0, le=1.0)


class FaceReference(FaceIdBase):
    """Эталон лица, сохранённый при регистрации."""
    bounding_box: BoundingBox
    captured_at: datetime
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)


def rank_observations(observations: Iterable[Observation]) -> list[Observation]:
    """Сортирует наблюдения: сначала по уверенности, при равенстве — по площади."""
    return sorted(
        observations,
        key=lambda o: (o.confidence, o.bounding_box.area),
        reverse=True,
    )


def select_best_observation(observations: Iterable[Observation]) -> Observation | None:
    """Возвращает самое уверенное наблюдение или None, если лиц нет."""
    ranked = rank_observations(observations)
    return ranked[0] if ranked else None

