"""
faceid/adapters/matcher.py — Адаптер сравнения лиц.

``MatchingAdapter`` приводит оценку backend'а к [0.0, 1.0] и принимает
решение по настраиваемому порогу: ``similarity >= threshold`` (равенство
принимается).

Backend'ы:
    • ``GeometricMatcher`` — IoU рамок после нормализации к общему центру
      и единичной площади (совпадение пропорций). Заглушка до появления
      шаблонов признаков.
    • ``FixedScoreMatcher`` — константная оценка (демо-режим).
"""

from __future__ import annotations

import logging
import math
from typing import Protocol

from faceid.models.face import BoundingBox, FaceReference, Observation

logger = logging.getLogger(__name__)


class FaceMatcher(Protocol):
    """Внешний матчер (чистая функция двух входов)."""

    async def compare(self, reference: FaceReference, probe: Observation) -> float: ...


def _aspect(box: BoundingBox) -> float | None:
    if box.width <= 0 or box.height <= 0:
        return None
    return box.width / box.height


class GeometricMatcher:
    """IoU двух рамок, приведённых к единичной площади с общим центром."""

    async def compare(self, reference: FaceReference, probe: Observation) -> float:
        a = _aspect(reference.bounding_box)
        b = _aspect(probe.bounding_box)
        if a is None or b is None:
            return 0.0
        overlap = math.sqrt(min(a, b) / max(a, b))
        return overlap / (2.0 - overlap)


class FixedScoreMatcher:
    def __init__(self, score: float = 0.95) -> None:
        self._score = score

    async def compare(self, reference: FaceReference, probe: Observation) -> float:
        return self._score


class MatchingAdapter:
    """Стабильный интерфейс к матчеру + порог решения."""

    def __init__(self, matcher: FaceMatcher, threshold: float = 0.90) -> None:
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"Match threshold must be within [0, 1], got {threshold}")
        self._matcher = matcher
        self.threshold = threshold

    async def compare(self, reference: FaceReference, probe: Observation) -> float:
        raw = float(await self._matcher.compare(reference, probe))
        if math.isnan(raw):
            logger.warning("Matcher returned NaN, treating as 0.0")
            return 0.0
        return min(1.0, max(0.0, raw))

    def is_match(self, similarity: float) -> bool:
        return similarity >= self.threshold


def build_matcher(backend: str, fixed_score: float = 0.95) -> FaceMatcher:
    """Создаёт backend матчера по имени из настроек."""
    if backend == "geometric":
        return GeometricMatcher()
    if backend == "fixed":
        return FixedScoreMatcher(fixed_score)
    raise ValueError(f"Unknown matcher backend: {backend}")
