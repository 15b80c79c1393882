"""
faceid/adapters/imaging.py — Декодирование снимков с камеры.

Клиент присылает снимок как base64 (или data URL ``data:image/jpeg;base64,...``).
Декодирование выполняет Pillow; результат — ``CapturedImage`` в RGB.
"""

from __future__ import annotations

import base64
import binascii
import io
import logging
import warnings
from dataclasses import dataclass, field
from datetime import datetime, timezone

from PIL import Image, UnidentifiedImageError

from faceid.exceptions import InvalidImageError

logger = logging.getLogger(__name__)

# 25 Мп — с запасом для фронтальной камеры
DEFAULT_MAX_PIXELS = 25_000_000


@dataclass(frozen=True)
class CapturedImage:
    """Один кадр с устройства захвата."""
    image: Image.Image
    captured_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height


def decode_image(payload: str, max_bytes: int, max_pixels: int = DEFAULT_MAX_PIXELS) -> CapturedImage:
    """
    Декодирует base64/data URL в ``CapturedImage``.

    Размер кадра сверяется с ``max_pixels`` по заголовку, до распаковки
    пикселей: маленький файл может объявлять огромное разрешение.

    Raises:
        InvalidImageError: пустой payload, битый base64, слишком большой
            (по байтам или пикселям) или нераспознанный формат.
    """
    if not payload:
        raise InvalidImageError("empty payload")

    data = payload
    if data.startswith("data:"):
        if "," not in data:
            raise InvalidImageError("invalid data URL format")
        data = data.split(",", 1)[1]

    try:
        raw = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidImageError("payload is not valid base64") from exc

    if len(raw) > max_bytes:
        raise InvalidImageError(f"image too large (max {max_bytes} bytes)")

    with warnings.catch_warnings():
        warnings.simplefilter("error", Image.DecompressionBombWarning)
        try:
            img = Image.open(io.BytesIO(raw))
            if img.width * img.height > max_pixels:
                raise InvalidImageError(f"image resolution too large (max {max_pixels} pixels)")
            img.load()
        except (Image.DecompressionBombError, Image.DecompressionBombWarning) as exc:
            raise InvalidImageError("image resolution too large") from exc
        except (UnidentifiedImageError, OSError) as exc:
            raise InvalidImageError("unsupported or corrupted image") from exc

    if img.mode != "RGB":
        img = img.convert("RGB")

    logger.debug("Decoded capture %dx%d (%d bytes)", img.width, img.height, len(raw))
    return CapturedImage(image=img)
