"""
faceid/adapters/detector.py — Адаптер детектора лиц.

``DetectionAdapter`` — явный дескриптор с собственным состоянием готовности.
Создаётся один раз при старте процесса (``app.state.detector``) и передаётся
потребителям по ссылке.

Контракт:
    • ``initialize()`` выполняет прогрев backend'а ровно один раз; параллельные
      первые вызовы ждут на одной блокировке, повторные — no-op.
    • ``detect()`` до инициализации → ``NotInitializedError``.
    • Пустой список — нормальный исход «лиц нет», а не ошибка.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from faceid.adapters.imaging import CapturedImage
from faceid.exceptions import NotInitializedError
from faceid.models.face import BoundingBox, Observation, rank_observations

logger = logging.getLogger(__name__)


class FaceDetector(Protocol):
    """Внешняя модель детекции лиц (чёрный ящик)."""

    async def warm_up(self) -> None: ...

    async def detect(self, image: CapturedImage) -> list[Observation]: ...


class SimulatedFaceDetector:
    """
    Заглушка детектора с фиксированной геометрией.

    Возвращает одно лицо: смещение 20%/15% кадра, размер 60%×70%,
    фиксированная уверенность. Замена на реальную модель не требует
    изменений в сервисах.
    """

    def __init__(self, warmup_seconds: float = 1.0, confidence: float = 0.95) -> None:
        self._warmup_seconds = warmup_seconds
        self._confidence = confidence

    async def warm_up(self) -> None:
        # Имитация загрузки весов модели
        await asyncio.sleep(self._warmup_seconds)

    async def detect(self, image: CapturedImage) -> list[Observation]:
        w, h = image.width, image.height
        return [
            Observation(
                bounding_box=BoundingBox(x=w * 0.2, y=h * 0.15, width=w * 0.6, height=h * 0.7),
                confidence=self._confidence,
            )
        ]


class DetectionAdapter:
    """Стабильный интерфейс к детектору с однократной инициализацией."""

    def __init__(self, detector: FaceDetector) -> None:
        self._detector = detector
        self._ready = False
        self._init_lock = asyncio.Lock()

    @property
    def ready(self) -> bool:
        return self._ready

    async def initialize(self) -> None:
        """Прогревает backend. Идемпотентно; сбой оставляет адаптер неготовым."""
        if self._ready:
            return
        async with self._init_lock:
            if self._ready:
                return
            logger.info("Initializing face detector (%s)...", type(self._detector).__name__)
            await self._detector.warm_up()
            self._ready = True
            logger.info("✅ Face detector initialized")

    async def detect(self, image: CapturedImage) -> list[Observation]:
        """Наблюдения по убыванию уверенности (при равенстве — по площади рамки)."""
        if not self._ready:
            raise NotInitializedError("face detector")
        observations = await self._detector.detect(image)
        ranked = rank_observations(observations)
        logger.debug("Detection complete: %d face(s)", len(ranked))
        return ranked


def build_detector(backend: str, warmup_seconds: float, confidence: float) -> FaceDetector:
    """Создаёт backend детектора по имени из настроек."""
    if backend == "simulated":
        return SimulatedFaceDetector(warmup_seconds=warmup_seconds, confidence=confidence)
    raise ValueError(f"Unknown detector backend: {backend}")
