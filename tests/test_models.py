"""Tests for input validation and observation ranking."""

from __future__ import annotations

import pytest

from conftest import make_observation
from faceid.exceptions import InvalidPhoneError, InvalidUsernameError
from faceid.models.identity import mask_phone, validate_phone_number, validate_username
from faceid.models.face import rank_observations, select_best_observation


# ---------------------------------------------------------------------------
# Phone number / username validation
# ---------------------------------------------------------------------------

class TestPhoneValidation:

    @pytest.mark.parametrize("phone", ["13800000000", "19912345678", " 15500001111 "])
    def test_valid_numbers(self, phone):
        assert validate_phone_number(phone) == phone.strip()

    @pytest.mark.parametrize(
        "phone",
        [
            "",
            "12800000000",
            "1380000000",
            "138000000000",
            "23800000000",
            "1380000000a",
            "13" + "٨" * 9,  # Arabic-Indic digits
            "13" + "８" * 9,  # full-width digits
        ],
    )
    def test_invalid_numbers(self, phone):
        with pytest.raises(InvalidPhoneError) as exc_info:
            validate_phone_number(phone)
        assert exc_info.value.code == "INVALID_PHONE"


class TestUsernameValidation:

    def test_username_is_trimmed(self):
        assert validate_username("  Alice  ") == "Alice"

    @pytest.mark.parametrize("username", ["Al", "a" * 20, "张三"])
    def test_boundaries_accepted(self, username):
        assert validate_username(username) == username

    @pytest.mark.parametrize("username", ["", "A", "   B   ", "a" * 21])
    def test_out_of_range_rejected(self, username):
        with pytest.raises(InvalidUsernameError) as exc_info:
            validate_username(username)
        assert exc_info.value.code == "INVALID_USERNAME"


def test_mask_phone():
    assert mask_phone("13800000000") == "138****0000"
    assert mask_phone("bad") == "***"


# ---------------------------------------------------------------------------
# Observation ranking
# ---------------------------------------------------------------------------

class TestObservationRanking:

    def test_most_confident_first(self):
        low = make_observation(confidence=0.5)
        high = make_observation(confidence=0.9)
        assert rank_observations([low, high]) == [high, low]

    def test_tie_broken_by_larger_area(self):
        small = make_observation(width=50, height=50, confidence=0.8)
        large = make_observation(width=200, height=220, confidence=0.8)
        assert select_best_observation([small, large]) == large

    def test_confidence_beats_area(self):
        large = make_observation(width=300, height=300, confidence=0.7)
        small = make_observation(width=40, height=40, confidence=0.71)
        assert select_best_observation([large, small]) == small

    def test_empty_means_no_face(self):
        assert select_best_observation([]) is None
