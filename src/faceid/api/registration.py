"""
faceid/api/registration.py — Эндпоинты регистрации, входа и эталона лица.

RPC-операции клиента:
    • register / login / submit — идентичность по номеру телефона
    • saveFace / getFace         — эталон лица по номеру
    • searchUser                 — поиск цели для проверки другого пользователя
"""

from fastapi import APIRouter, Depends, Query, status

from faceid.adapters.detector import DetectionAdapter
from faceid.dependencies import ImageDecoder, get_detector, get_image_decoder
from faceid.exceptions import NoFaceDetectedError, NotFoundError
from faceid.models.enums import EnrollmentOutcome
from faceid.models.identity import (
    FaceLookupResponse,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    RegisterResponse,
    SaveFaceRequest,
    SaveFaceResponse,
    SessionState,
    UserSearchResponse,
    mask_phone,
    validate_phone_number,
    validate_username,
)
from faceid.services import directory_service, enrollment_service, registration_service

router = APIRouter(prefix="/registration", tags=["registration"])


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Регистрация по номеру телефона и имени",
)
async def register(body: RegisterRequest):
    """Создаёт идентичность. 409 — номер или имя уже заняты."""
    await registration_service.register(body.phone_number, body.username)
    return RegisterResponse()


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Вход по номеру телефона",
)
async def login(body: LoginRequest):
    """Возвращает сохранённое имя пользователя. 404 — номер не найден."""
    identity = await registration_service.login(body.phone_number)
    if identity is None:
        raise NotFoundError("Phone number", mask_phone(body.phone_number))
    return LoginResponse(username=identity.username, identity_id=identity.identity_id)


@router.post(
    "/submit",
    response_model=SessionState,
    summary="Вход или регистрация одним запросом",
)
async def submit(body: RegisterRequest):
    """Существующий номер — вход (имя игнорируется), новый — регистрация."""
    return await registration_service.submit(body.phone_number, body.username)


@router.post(
    "/face",
    response_model=SaveFaceResponse,
    summary="Сохранить эталон лица",
)
async def save_face(
    body: SaveFaceRequest,
    detector: DetectionAdapter = Depends(get_detector),
    decode: ImageDecoder = Depends(get_image_decoder),
):
    """
    Сохраняет эталон лица для номера.

    Со снимком рамку выбирает серверный детектор, без снимка сохраняется
    рамка клиента. Повторный вызов заменяет эталон.
    """
    if body.image_base64:
        image = decode(body.image_base64)
        result = await enrollment_service.enroll(body.phone_number, image, detector)
    else:
        result = await enrollment_service.save_reference(body.phone_number, body.bounding_box)

    if result.outcome is EnrollmentOutcome.NOT_FOUND:
        raise NotFoundError("Registration", mask_phone(body.phone_number))
    if result.outcome is EnrollmentOutcome.NO_FACE_DETECTED:
        raise NoFaceDetectedError()
    return SaveFaceResponse(identity_id=result.identity_id, bounding_box=result.bounding_box)


@router.get(
    "/face/{phone_number}",
    response_model=FaceLookupResponse,
    summary="Получить эталон лица по номеру",
)
async def get_face(phone_number: str):
    """Для неизвестного номера — ``registered=false``, без ошибки."""
    reference = await directory_service.get_face_reference(validate_phone_number(phone_number))
    if reference is None:
        return FaceLookupResponse(registered=False)
    return FaceLookupResponse(registered=True, bounding_box=reference.bounding_box)


@router.get(
    "/users/search",
    response_model=UserSearchResponse,
    summary="Поиск пользователя по имени",
)
async def search_user(username: str = Query(..., examples=["Bob"])):
    """Найден ли пользователь и зарегистрировано ли у него лицо."""
    lookup = await directory_service.find_enrollable_target(validate_username(username))
    if not lookup.found:
        return UserSearchResponse(found=False, face_registered=False)
    return UserSearchResponse(
        found=True,
        face_registered=lookup.enrolled,
        username=lookup.identity.username,
    )
