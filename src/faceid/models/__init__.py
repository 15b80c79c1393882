"""
faceid.models — Модели данных FaceID-домена.

Реэкспорт основных классов для удобства:
    from faceid.models import Identity, Observation, VerificationResult
"""

from faceid.models.enums import (  # noqa: F401
    EnrollmentOutcome,
    TargetStatus,
    VerificationMode,
    VerificationOutcome,
)
from faceid.models.face import (  # noqa: F401
    BoundingBox,
    FaceReference,
    Observation,
    rank_observations,
    select_best_observation,
)
from faceid.models.identity import Identity, SessionState  # noqa: F401
from faceid.models.results import EnrollmentResult, TargetLookup, VerificationResult  # noqa: F401
