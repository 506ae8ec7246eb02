from __future__ import annotations

import pytest

from app.models.member import Member
from app.services.accounts import evaluate_password, validate_password_strength
from app.services.church_units import normalize_church_units, official_name
from app.services.members_utils import (
    PHONE_ERROR,
    display_name_for,
    is_nigerian_phone,
    normalize_member_record,
    normalize_phone,
    sync_church_units,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("07031098097", "07031098097"),
        ("+2347031098097", "+2347031098097"),
        (" 0803 123 4567 ", "08031234567"),
        ("", None),
        (None, None),
    ],
)
def test_normalize_phone_accepts_local_and_international(raw, expected):
    assert normalize_phone(raw) == expected


@pytest.mark.parametrize("raw", ["12-34", "phone", "00123456789", "+0123456"])
def test_normalize_phone_rejects_garbage(raw):
    with pytest.raises(ValueError) as excinfo:
        normalize_phone(raw)
    assert str(excinfo.value) == PHONE_ERROR


def test_is_nigerian_phone():
    assert is_nigerian_phone("08031234567")
    assert is_nigerian_phone("+2348091234567")
    assert not is_nigerian_phone("01234567890")
    assert not is_nigerian_phone("+447911123456")


def test_church_unit_normalisation():
    assert official_name("3H Media") == "3HMedia"
    assert official_name("praisefeet") == "Praise Feet"
    assert official_name("Youth Ministry") == "Discipleship"
    assert normalize_church_units(["3H Music", "3HMusic", "", "TOF", "Ushering"]) == ["3HMusic", "Ushering"]


def test_sync_church_units_keeps_primary_unit_in_list():
    member = Member(full_name="Unit Person", church_unit="3HMovies", church_units=["Sanitation"])
    sync_church_units(member)
    assert member.church_units == ["3HMovies", "Sanitation"]

    member = Member(full_name="Listed Only", church_unit=None, church_units=["Security Ministry"])
    sync_church_units(member)
    assert member.church_unit == "3HSecurity"
    assert member.church_units == ["3HSecurity"]


def test_normalize_member_record_folds_legacy_keys():
    record = normalize_member_record(
        {"fullname": "Lower Case", "churchUnit": "3HMedia", "isactive": False, "join_date": "2024-01-01"}
    )
    assert record == {
        "full_name": "Lower Case",
        "church_unit": "3HMedia",
        "is_active": False,
        "join_date": "2024-01-01",
    }

    record = normalize_member_record({"full_name": "Canonical", "fullName": "Ignored"})
    assert record == {"full_name": "Canonical"}


def test_display_name_fallbacks():
    assert display_name_for("a@example.com", "  Named  ") == "Named"
    assert display_name_for("local.part@example.com", None) == "local.part"
    assert display_name_for(None, None) == "Unknown"


def test_password_strength_levels():
    assert evaluate_password("short").strength == "weak"
    assert evaluate_password("alllowercase1").strength == "medium"
    assert evaluate_password("Lowerupper1").strength == "strong"
    assert evaluate_password("Str0ng!Pass").strength == "very-strong"

    with pytest.raises(ValueError):
        validate_password_strength("Ab1!")
    with pytest.raises(ValueError):
        validate_password_strength("abcdefgh")
    validate_password_strength("abcdefg1")
