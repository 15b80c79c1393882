"""
═══════════════════════════════════════════════════════════════════════════════
FaceID — Иерархия доменных ошибок (Custom Exception Hierarchy)
═══════════════════════════════════════════════════════════════════════════════

Базовый класс ``FaceIdError``. HTTP-маппинг кодов выполняется
в ``faceid.main:faceid_error_handler``.

Ожидаемые исходы протокола (нет лица, лицо не зарегистрировано,
верификация не пройдена) сервисы возвращают как варианты результата,
а не исключения. Исключениями остаются ошибки валидации, конфликты
и недоступность адаптеров.
"""


class FaceIdError(Exception):
    """
    Базовое исключение для всех доменных ошибок FaceID.

    Атрибуты
    ────────
        message (str):  Описание ошибки. Передаётся клиенту в JSON.
        code (str):     Строковый код. Используется для маппинга на HTTP-статус.
        details (dict): Дополнительные данные (поле, значение и т.д.).
    """

    def __init__(
        self,
        message: str,
        code: str = "FACEID_ERROR",
        details: dict | None = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)


# ── Ошибки валидации: исправимы на клиенте, до обращения к хранилищу ─────

class ValidationError(FaceIdError):
    """Ошибка доменной валидации: 422 Unprocessable Entity."""

    def __init__(self, message: str, code: str = "VALIDATION_ERROR", details: dict | None = None):
        super().__init__(message, code=code, details=details)


class InvalidPhoneError(ValidationError):
    """Номер телефона не соответствует шаблону мобильного номера."""

    def __init__(self):
        super().__init__(
            "Invalid phone number",
            code="INVALID_PHONE",
            details={"field": "phone_number"},
        )


class InvalidUsernameError(ValidationError):
    """Имя пользователя вне допустимой длины."""

    def __init__(self, min_length: int, max_length: int):
        super().__init__(
            f"Username must be {min_length}-{max_length} characters",
            code="INVALID_USERNAME",
            details={"field": "username", "min_length": min_length, "max_length": max_length},
        )


class InvalidImageError(ValidationError):
    """Снимок не удалось декодировать."""

    def __init__(self, reason: str):
        super().__init__(f"Invalid image: {reason}", code="INVALID_IMAGE")


# ── Конфликты: возвращаются клиенту как есть, без повторов ──────────────

class ConflictError(FaceIdError):
    """Конфликт с текущим состоянием: 409 Conflict."""

    def __init__(self, message: str, code: str = "CONFLICT", details: dict | None = None):
        super().__init__(message, code=code, details=details)


class DuplicatePhoneError(ConflictError):
    def __init__(self):
        super().__init__(
            "Phone number already registered",
            code="DUPLICATE_PHONE",
            details={"field": "phone_number"},
        )


class DuplicateUsernameError(ConflictError):
    def __init__(self, username: str):
        super().__init__(
            f"Username '{username}' is already taken",
            code="DUPLICATE_USERNAME",
            details={"field": "username"},
        )


# ── Ожидаемые состояния (используются HTTP-слоем) ──────────────────────

class NotFoundError(FaceIdError):
    """Сущность не найдена: 404 Not Found."""

    def __init__(self, entity: str, entity_id: str):
        super().__init__(
            message=f"{entity} not found: {entity_id}",
            code="NOT_FOUND",
            details={"entity": entity, "id": entity_id},
        )


class NoFaceDetectedError(FaceIdError):
    """На снимке не найдено лиц; клиент должен переснять."""

    def __init__(self):
        super().__init__("No face detected, please retake the photo", code="NO_FACE_DETECTED")


# ── Недоступность адаптеров: фатально для текущего запроса ─────────────

class NotInitializedError(FaceIdError):
    """Детектор вызван до завершения прогрева: 503."""

    def __init__(self, component: str = "face detector"):
        super().__init__(
            f"{component} is not initialized",
            code="DETECTOR_NOT_INITIALIZED",
            details={"component": component},
        )


class StoreUnavailableError(FaceIdError):
    """Хранилище идентичностей недоступно: 503."""

    def __init__(self, reason: str):
        super().__init__(f"Identity store unavailable: {reason}", code="STORE_UNAVAILABLE")


__all__ = [
    "FaceIdError",
    "ValidationError",
    "InvalidPhoneError",
    "InvalidUsernameError",
    "InvalidImageError",
    "ConflictError",
    "DuplicatePhoneError",
    "DuplicateUsernameError",
    "NotFoundError",
    "NoFaceDetectedError",
    "NotInitializedError",
    "StoreUnavailableError",
]
