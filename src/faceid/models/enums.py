"""
faceid/models/enums.py — Перечисления FaceID-домена.

Содержит варианты результатов протокола:
    • EnrollmentOutcome — исход регистрации лица
    • VerificationOutcome — исход верификации
    • VerificationMode — чей эталон используется
    • TargetStatus — результат поиска цели в каталоге
"""

from enum import Enum


class EnrollmentOutcome(str, Enum):
    """Исход регистрации лица."""
    ENROLLED = "enrolled"
    NOT_FOUND = "not_found"
    NO_FACE_DETECTED = "no_face_detected"


class VerificationOutcome(str, Enum):
    """Исход верификации лица."""
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    NOT_FOUND = "not_found"
    NOT_ENROLLED = "not_enrolled"
    NO_FACE_DETECTED = "no_face_detected"


class VerificationMode(str, Enum):
    """Источник эталона: собственная идентичность или другой пользователь."""
    SELF = "self"
    OTHER = "other"


class TargetStatus(str, Enum):
    """Трёхзначный результат поиска пользователя по имени."""
    NOT_FOUND = "not_found"
    NOT_ENROLLED = "not_enrolled"
    ENROLLED = "enrolled"
