"""
faceid/models/common.py — Базовые типы FaceID-домена.
"""

from pydantic import BaseModel


class FaceIdBase(BaseModel):
    """Базовая Pydantic-модель для FaceID-схем."""

    model_config = {"str_strip_whitespace": True}
