"""Shared pytest fixtures for FaceID tests.

Tests never touch PostgreSQL or NATS: the identity repository is patched
with the in-memory store, events are disabled and the face detector and
matcher are replaced with deterministic stubs.
"""

from __future__ import annotations

import asyncio
import base64
import io
import os
from typing import Generator

# Must be set before faceid.config.get_settings() is first called
os.environ["STORE_BACKEND"] = "memory"
os.environ["EVENTS_ENABLED"] = "false"
os.environ["DETECTOR_WARMUP_SECONDS"] = "0"

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from PIL import Image

from faceid.adapters.detector import DetectionAdapter
from faceid.adapters.imaging import CapturedImage
from faceid.adapters.matcher import MatchingAdapter
from faceid.main import create_app
from faceid.memory_store import activate_identity_memory_store, reset_identity_memory_store
from faceid.models.face import BoundingBox, FaceReference, Observation
from faceid.services import audit_logger as audit_module
from faceid.services.audit_logger import FaceIdAuditLogger


# ---------------------------------------------------------------------------
# Stub collaborators
# ---------------------------------------------------------------------------

def make_observation(x=10.0, y=20.0, width=100.0, height=120.0, confidence=0.95) -> Observation:
    return Observation(
        bounding_box=BoundingBox(x=x, y=y, width=width, height=height),
        confidence=confidence,
    )


class StubDetector:
    """Returns a fixed list of observations, counting calls."""

    def __init__(self, observations: list[Observation] | None = None) -> None:
        self.observations = [make_observation()] if observations is None else observations
        self.warm_up_calls = 0
        self.detect_calls = 0

    async def warm_up(self) -> None:
        self.warm_up_calls += 1
        await asyncio.sleep(0)

    async def detect(self, image: CapturedImage) -> list[Observation]:
        self.detect_calls += 1
        return list(self.observations)


class SpyMatcher:
    """Returns a fixed similarity and records every comparison."""

    def __init__(self, score: float = 0.95) -> None:
        self.score = score
        self.calls: list[tuple[FaceReference, Observation]] = []

    async def compare(self, reference: FaceReference, probe: Observation) -> float:
        self.calls.append((reference, probe))
        return self.score


# ---------------------------------------------------------------------------
# Store and audit isolation
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def memory_store() -> Generator[None, None, None]:
    """Fresh in-memory identity store for every test."""
    activate_identity_memory_store()
    reset_identity_memory_store()
    yield
    reset_identity_memory_store()


@pytest.fixture(autouse=True)
def audit(monkeypatch) -> FaceIdAuditLogger:
    """Replace the audit singleton with a buffer-only logger."""
    logger = FaceIdAuditLogger(persist=False)
    monkeypatch.setattr(audit_module, "_audit_logger", logger)
    return logger


# ---------------------------------------------------------------------------
# Adapters
# ---------------------------------------------------------------------------

@pytest.fixture()
def stub_detector() -> StubDetector:
    return StubDetector()


@pytest_asyncio.fixture()
async def detector(stub_detector: StubDetector) -> DetectionAdapter:
    """An initialized detection adapter around ``stub_detector``."""
    adapter = DetectionAdapter(stub_detector)
    await adapter.initialize()
    return adapter


@pytest.fixture()
def spy_matcher() -> SpyMatcher:
    return SpyMatcher()


@pytest.fixture()
def matcher(spy_matcher: SpyMatcher) -> MatchingAdapter:
    return MatchingAdapter(spy_matcher, threshold=0.90)


@pytest.fixture()
def captured_image() -> CapturedImage:
    return CapturedImage(image=Image.new("RGB", (640, 480)))


@pytest.fixture()
def image_b64() -> str:
    """A small PNG encoded the way the mobile client sends it."""
    buf = io.BytesIO()
    Image.new("RGB", (64, 48), color=(200, 180, 160)).save(buf, format="PNG")
    return base64.b64encode(buf.getvalue()).decode("ascii")


# ---------------------------------------------------------------------------
# FastAPI TestClient
# ---------------------------------------------------------------------------

@pytest.fixture()
def client(stub_detector: StubDetector, spy_matcher: SpyMatcher) -> Generator[TestClient, None, None]:
    """Return a ``TestClient`` wired to the stub detector and matcher."""
    app = create_app(detector_backend=stub_detector, matcher_backend=spy_matcher)
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c
