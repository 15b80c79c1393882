"""Tests for the HTTP surface: registration, face reference, search, verify."""

from __future__ import annotations

import base64
import io

import pytest
from PIL import Image

API = "/api/v1"
PHONE = "13800000000"
BOX = {"x": 10, "y": 20, "width": 100, "height": 120}


def _register(client, phone=PHONE, username="Alice"):
    return client.post(f"{API}/registration/register", json={"phone_number": phone, "username": username})


# ---------------------------------------------------------------------------
# register / login / submit
# ---------------------------------------------------------------------------

class TestRegisterEndpoint:
    """POST /api/v1/registration/register"""

    def test_register_success(self, client):
        resp = _register(client)
        assert resp.status_code == 201
        assert resp.json() == {"success": True, "message": "Registration successful"}

    def test_invalid_phone(self, client):
        resp = _register(client, phone="12345")
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "INVALID_PHONE"

    def test_invalid_username(self, client):
        resp = _register(client, username=" x ")
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "INVALID_USERNAME"

    def test_duplicate_phone(self, client):
        _register(client)
        resp = _register(client, username="Someone")
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "DUPLICATE_PHONE"

    def test_duplicate_username(self, client):
        _register(client)
        resp = _register(client, phone="13900000000")
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "DUPLICATE_USERNAME"


class TestLoginEndpoint:
    """POST /api/v1/registration/login"""

    def test_login_returns_registered_username(self, client):
        _register(client)
        resp = client.post(f"{API}/registration/login", json={"phone_number": PHONE})
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["username"] == "Alice"
        assert body["identity_id"]

    def test_login_unknown_phone(self, client):
        resp = client.post(f"{API}/registration/login", json={"phone_number": PHONE})
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "NOT_FOUND"


class TestSubmitEndpoint:
    """POST /api/v1/registration/submit"""

    def test_register_then_login(self, client):
        first = client.post(f"{API}/registration/submit", json={"phone_number": PHONE, "username": "Alice"})
        second = client.post(f"{API}/registration/submit", json={"phone_number": PHONE, "username": "Zed"})
        assert first.status_code == 200
        assert first.json()["is_login"] is False
        assert second.json()["is_login"] is True
        assert second.json()["username"] == "Alice"
        assert second.json()["identity_id"] == first.json()["identity_id"]


# ---------------------------------------------------------------------------
# saveFace / getFace
# ---------------------------------------------------------------------------

class TestFaceReferenceEndpoints:

    def test_save_then_get_round_trip(self, client):
        """Phone 13800000000 / Alice: saved box is returned unchanged."""
        assert _register(client).status_code == 201
        resp = client.post(
            f"{API}/registration/face",
            json={"phone_number": PHONE, "username": "Alice", "bounding_box": BOX},
        )
        assert resp.status_code == 200
        assert resp.json()["success"] is True

        resp = client.get(f"{API}/registration/face/{PHONE}")
        assert resp.status_code == 200
        assert resp.json() == {"registered": True, "bounding_box": BOX}

    def test_second_save_wins(self, client):
        _register(client)
        second_box = {"x": 1, "y": 2, "width": 30, "height": 40}
        for box in (BOX, second_box):
            client.post(
                f"{API}/registration/face",
                json={"phone_number": PHONE, "username": "Alice", "bounding_box": box},
            )
        resp = client.get(f"{API}/registration/face/{PHONE}")
        assert resp.json()["bounding_box"] == second_box

    def test_get_face_unknown_phone_is_not_an_error(self, client):
        resp = client.get(f"{API}/registration/face/{PHONE}")
        assert resp.status_code == 200
        assert resp.json() == {"registered": False, "bounding_box": None}

    def test_get_face_before_enrollment(self, client):
        _register(client)
        resp = client.get(f"{API}/registration/face/{PHONE}")
        assert resp.json()["registered"] is False

    def test_save_face_unknown_phone(self, client):
        resp = client.post(
            f"{API}/registration/face",
            json={"phone_number": PHONE, "username": "Alice", "bounding_box": BOX},
        )
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "NOT_FOUND"

    def test_save_face_with_image_uses_server_detection(self, client, image_b64):
        _register(client)
        resp = client.post(
            f"{API}/registration/face",
            json={
                "phone_number": PHONE,
                "username": "Alice",
                "bounding_box": {"x": 0, "y": 0, "width": 1, "height": 1},
                "image_base64": image_b64,
            },
        )
        assert resp.status_code == 200
        # The stub detector reports BOX for every capture
        assert resp.json()["bounding_box"] == BOX

    def test_save_face_with_image_no_face(self, client, stub_detector, image_b64):
        stub_detector.observations = []
        _register(client)
        resp = client.post(
            f"{API}/registration/face",
            json={"phone_number": PHONE, "bounding_box": BOX, "image_base64": image_b64},
        )
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "NO_FACE_DETECTED"
        assert client.get(f"{API}/registration/face/{PHONE}").json()["registered"] is False


# ---------------------------------------------------------------------------
# searchUser
# ---------------------------------------------------------------------------

class TestSearchUser:

    def test_never_registered(self, client):
        resp = client.get(f"{API}/registration/users/search", params={"username": "Bob"})
        assert resp.status_code == 200
        assert resp.json() == {"found": False, "face_registered": False, "username": None}

    def test_found_without_and_with_face(self, client):
        _register(client, phone="13900000000", username="Bob")
        resp = client.get(f"{API}/registration/users/search", params={"username": "Bob"})
        assert resp.json() == {"found": True, "face_registered": False, "username": "Bob"}

        client.post(
            f"{API}/registration/face",
            json={"phone_number": "13900000000", "username": "Bob", "bounding_box": BOX},
        )
        resp = client.get(f"{API}/registration/users/search", params={"username": "Bob"})
        assert resp.json()["face_registered"] is True


# ---------------------------------------------------------------------------
# enroll / verify by image
# ---------------------------------------------------------------------------

class TestEnrollAndVerify:

    def test_enroll_then_verify_self(self, client, image_b64):
        _register(client)
        resp = client.post(f"{API}/face/enroll", json={"phone_number": PHONE, "image_base64": image_b64})
        assert resp.status_code == 200
        assert resp.json()["outcome"] == "enrolled"

        resp = client.post(
            f"{API}/face/verify",
            json={"claimed": PHONE, "mode": "self", "image_base64": image_b64},
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["outcome"] == "accepted"
        assert body["accepted"] is True
        assert body["similarity"] == pytest.approx(0.95)

    def test_verify_not_enrolled(self, client, spy_matcher, image_b64):
        _register(client)
        resp = client.post(
            f"{API}/face/verify",
            json={"claimed": PHONE, "mode": "self", "image_base64": image_b64},
        )
        assert resp.status_code == 200
        assert resp.json()["outcome"] == "not_enrolled"
        assert spy_matcher.calls == []

    def test_verify_other_rejected(self, client, spy_matcher, image_b64):
        spy_matcher.score = 0.3
        _register(client, phone="13900000000", username="Bob")
        client.post(f"{API}/face/enroll", json={"phone_number": "13900000000", "image_base64": image_b64})
        resp = client.post(
            f"{API}/face/verify",
            json={"claimed": "Bob", "mode": "other", "image_base64": image_b64},
        )
        assert resp.status_code == 200
        assert resp.json()["outcome"] == "rejected"
        assert resp.json()["accepted"] is False

    def test_invalid_image(self, client):
        _register(client)
        resp = client.post(f"{API}/face/enroll", json={"phone_number": PHONE, "image_base64": "%%%"})
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "INVALID_IMAGE"

    def test_huge_resolution_in_small_file(self, client, stub_detector):
        buf = io.BytesIO()
        Image.new("1", (15000, 15000)).save(buf, format="PNG")
        payload = base64.b64encode(buf.getvalue()).decode("ascii")
        _register(client)
        resp = client.post(f"{API}/face/enroll", json={"phone_number": PHONE, "image_base64": payload})
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "INVALID_IMAGE"
        assert stub_detector.detect_calls == 0


# ---------------------------------------------------------------------------
# health
# ---------------------------------------------------------------------------

def test_health_reports_memory_store_and_ready_detector(client):
    resp = client.get(f"{API}/health")
    assert resp.status_code == 200
    assert resp.json() == {
        "status": "healthy",
        "database": "memory",
        "detector": "ready",
        "service": "faceid",
    }
