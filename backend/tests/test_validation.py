from __future__ import annotations

import pytest
from backend.restorany.contracts import ReviewCreate, ReviewUpdate, VenueCreate
from backend.restorany.validators import (
    normalize_comment,
    normalize_display_name,
    normalize_phone,
    normalize_tokens,
)
from pydantic import ValidationError


def _venue_payload(**overrides):
    payload = {
        "name": "Kavana Korzo",
        "latitude": 46.3059,
        "longitude": 16.3371,
        "phone": "+385 42 123 456",
    }
    payload.update(overrides)
    return payload


def test_venue_rejects_blank_name():
    with pytest.raises(ValidationError):
        VenueCreate(**_venue_payload(name="   "))


def test_venue_trims_name():
    venue = VenueCreate(**_venue_payload(name="  Kavana   Korzo  "))
    assert venue.name == "Kavana Korzo"


def test_venue_blank_phone_becomes_none():
    assert VenueCreate(**_venue_payload(phone="  ")).phone is None


def test_venue_rejects_overlong_name():
    with pytest.raises(ValidationError):
        VenueCreate(**_venue_payload(name="x" * 121))


def test_tokens_are_deduplicated_and_trimmed():
    assert normalize_tokens(["  Pizza ", "pizza", "", "Grill"]) == ["Pizza", "Grill"]
    assert normalize_tokens("Café, Desserts ,") == ["Café", "Desserts"]
    assert normalize_tokens(None) == []


def test_tokens_limit():
    with pytest.raises(ValueError):
        normalize_tokens([f"tag-{i}" for i in range(30)])
    with pytest.raises(ValueError):
        normalize_tokens(["x" * 61])


def test_comment_normalization():
    assert normalize_comment("  tasty  ") == "tasty"
    assert normalize_comment("   ") is None
    with pytest.raises(ValueError):
        normalize_comment("x" * 2001)


def test_display_name_and_phone_helpers():
    assert normalize_display_name(" Didov   San ") == "Didov San"
    assert normalize_phone("(01) 4851-154") == "(01) 4851-154"
    with pytest.raises(ValueError):
        normalize_phone("12")


def test_review_update_rejects_unknown_fields():
    with pytest.raises(ValidationError):
        ReviewUpdate(status="retracted")


def test_review_create_requires_user_and_venue():
    with pytest.raises(ValidationError):
        ReviewCreate(user_id="", venue_id="v", rating=4)
    with pytest.raises(ValidationError):
        ReviewCreate(user_id="u", venue_id="v", rating=4, comment="x" * 2001)
