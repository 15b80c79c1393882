"""
faceid/models/identity.py — Идентичность (одна на номер телефона) и схемы API.

Правила валидации входа:
    • номер — 11-значный мобильный, ``^1[3-9][0-9]{9}$`` (только ASCII-цифры)
    • имя пользователя — 2–20 символов после обрезки пробелов
"""

from __future__ import annotations

import re
from datetime import datetime
from uuid import UUID, uuid4

from pydantic import Field

from faceid.exceptions import InvalidPhoneError, InvalidUsernameError
from faceid.models.common import FaceIdBase
from faceid.models.enums import VerificationMode
from faceid.models.face import BoundingBox, FaceReference

PHONE_PATTERN = re.compile(r"^1[3-9][0-9]{9}$")
USERNAME_MIN_LENGTH = 2
USERNAME_MAX_LENGTH = 20


def validate_phone_number(phone_number: str) -> str:
    """Проверяет формат номера; InvalidPhoneError при несоответствии."""
    value = (phone_number or "").strip()
    if not PHONE_PATTERN.fullmatch(value):
        raise InvalidPhoneError()
    return value


def validate_username(username: str) -> str:
    """Обрезает пробелы и проверяет длину имени."""
    value = (username or "").strip()
    if not USERNAME_MIN_LENGTH <= len(value) <= USERNAME_MAX_LENGTH:
        raise InvalidUsernameError(USERNAME_MIN_LENGTH, USERNAME_MAX_LENGTH)
    return value


def mask_phone(phone_number: str) -> str:
    """138****0000 — для логов."""
    if len(phone_number) != 11:
        return "***"
    return f"{phone_number[:3]}****{phone_number[-4:]}"


class Identity(FaceIdBase):
    """Постоянная запись об одном зарегистрированном человеке."""
    identity_id: UUID = Field(default_factory=uuid4)
    phone_number: str
    username: str
    face_enrolled: bool = False
    face_reference: FaceReference | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class SessionState(FaceIdBase):
    """Состояние, которое оркестратор передаёт в регистрацию/верификацию лица."""
    identity_id: UUID
    phone_number: str
    username: str
    is_login: bool


# ═══════════════════════════════════════════════════════════════════════════
# Запросы
# ═══════════════════════════════════════════════════════════════════════════


class RegisterRequest(FaceIdBase):
    phone_number: str = Field(..., examples=["13800000000"])
    username: str = Field(..., examples=["Alice"])


class LoginRequest(FaceIdBase):
    phone_number: str = Field(..., examples=["13800000000"])


class SaveFaceRequest(FaceIdBase):
    """
    Сохранение эталона лица.

    Если передан ``image_base64``, рамку определяет серверный детектор;
    иначе сохраняется рамка, найденная на клиенте.
    """
    phone_number: str = Field(..., examples=["13800000000"])
    username: str = Field(default="", examples=["Alice"])
    bounding_box: BoundingBox
    image_base64: str | None = Field(default=None, description="JPEG/PNG, base64 или data URL")


class EnrollRequest(FaceIdBase):
    phone_number: str = Field(..., examples=["13800000000"])
    image_base64: str = Field(..., description="JPEG/PNG, base64 или data URL")


class VerifyRequest(FaceIdBase):
    """
    Верификация живого снимка.

    ``claimed`` — номер телефона в режиме ``self`` или имя пользователя
    в режиме ``other``.
    """
    claimed: str = Field(..., examples=["13800000000", "Bob"])
    mode: VerificationMode = VerificationMode.SELF
    image_base64: str = Field(..., description="JPEG/PNG, base64 или data URL")


# ═══════════════════════════════════════════════════════════════════════════
# Ответы
# ═══════════════════════════════════════════════════════════════════════════


class RegisterResponse(FaceIdBase):
    success: bool = True
    message: str = "Registration successful"


class LoginResponse(FaceIdBase):
    success: bool = True
    message: str = "Login successful"
    username: str
    identity_id: UUID


class SaveFaceResponse(FaceIdBase):
    success: bool = True
    message: str = "Face data saved successfully"
    identity_id: UUID
    bounding_box: BoundingBox


class FaceLookupResponse(FaceIdBase):
    registered: bool
    bounding_box: BoundingBox | None = None


class UserSearchResponse(FaceIdBase):
    found: bool
    face_registered: bool
    username: str | None = None
