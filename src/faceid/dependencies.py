"""
═══════════════════════════════════════════════════════════════════════════════
FaceID — Зависимости FastAPI (Dependency Injection)
═══════════════════════════════════════════════════════════════════════════════

Адаптеры детектора и матчера создаются один раз в ``lifespan`` и лежат
в ``app.state``; роутеры получают их по ссылке через ``Depends``.
"""

from __future__ import annotations

from fastapi import Depends, Request

from faceid.adapters.detector import DetectionAdapter
from faceid.adapters.imaging import DEFAULT_MAX_PIXELS, CapturedImage, decode_image
from faceid.adapters.matcher import MatchingAdapter
from faceid.config import FaceIdSettings, get_settings
from faceid.exceptions import NotInitializedError


def get_detector(request: Request) -> DetectionAdapter:
    """Адаптер детектора из состояния приложения."""
    detector: DetectionAdapter | None = getattr(request.app.state, "detector", None)
    if detector is None:
        raise NotInitializedError("face detector")
    return detector


def get_matcher(request: Request) -> MatchingAdapter:
    """Адаптер матчера из состояния приложения."""
    matcher: MatchingAdapter | None = getattr(request.app.state, "matcher", None)
    if matcher is None:
        raise NotInitializedError("face matcher")
    return matcher


class ImageDecoder:
    """Декодер снимков с лимитами размера и разрешения из настроек."""

    def __init__(self, max_bytes: int, max_pixels: int = DEFAULT_MAX_PIXELS) -> None:
        self.max_bytes = max_bytes
        self.max_pixels = max_pixels

    def __call__(self, payload: str) -> CapturedImage:
        return decode_image(payload, self.max_bytes, self.max_pixels)


def get_image_decoder(settings: FaceIdSettings = Depends(get_settings)) -> ImageDecoder:
    return ImageDecoder(settings.max_image_bytes, settings.max_image_pixels)
