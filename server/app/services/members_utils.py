from __future__ import annotations

import re
from typing import Any, Mapping

from sqlalchemy.orm import Session

from app.models.member import Member
from app.services.church_units import normalize_church_units

PHONE_REGEX = re.compile(r"^(\+?[1-9]\d{1,14}|0[1-9]\d{8,10})$")
PHONE_ERROR = "Please enter a valid phone number (e.g., 07031098097 or +2347031098097)"

NIGERIAN_PHONE_PREFIXES = {
    "MTN": ("0703", "0706", "0803", "0806", "0810", "0813", "0814", "0816", "0903", "0906"),
    "AIRTEL": ("0701", "0708", "0802", "0808", "0812", "0901", "0902", "0904", "0907"),
    "GLO": ("0705", "0805", "0807", "0811", "0815", "0905"),
    "9MOBILE": ("0809", "0817", "0818", "0908", "0909"),
}

# Canonical attribute -> spellings seen in stored rows and older clients.
LEGACY_MEMBER_KEYS: dict[str, tuple[str, ...]] = {
    "full_name": ("fullname", "fullName"),
    "church_unit": ("churchunit", "churchUnit"),
    "church_units": ("churchunits", "churchUnits"),
    "assigned_to_id": ("assignedto", "assignedTo"),
    "auxano_group": ("auxanogroup", "auxanoGroup"),
    "join_date": ("joindate", "joinDate"),
    "is_active": ("isactive", "isActive"),
    "user_id": ("userid", "userId"),
}


def normalize_phone(value: str | None) -> str | None:
    """Strip whitespace and validate; empty values mean no phone."""

    if value is None:
        return None
    cleaned = re.sub(r"\s+", "", value)
    if not cleaned:
        return None
    if not PHONE_REGEX.fullmatch(cleaned):
        raise ValueError(PHONE_ERROR)
    return cleaned


def is_nigerian_phone(value: str) -> bool:
    cleaned = re.sub(r"\s+", "", value or "")
    if cleaned.startswith("+234"):
        return True
    if cleaned.startswith("0") and len(cleaned) == 11:
        prefix = cleaned[:4]
        return any(prefix in prefixes for prefixes in NIGERIAN_PHONE_PREFIXES.values())
    return False


def normalize_member_record(raw: Mapping[str, Any]) -> dict[str, Any]:
    """Fold camelCase and lowercase column spellings onto canonical attribute names."""

    data = dict(raw)
    for canonical, aliases in LEGACY_MEMBER_KEYS.items():
        value = data.get(canonical)
        for alias in aliases:
            alias_value = data.pop(alias, None)
            if value is None and alias_value is not None:
                value = alias_value
        if value is not None or canonical in data:
            data[canonical] = value
    return data


def display_name_for(email: str | None, full_name: str | None) -> str:
    if full_name and full_name.strip():
        return full_name.strip()
    if email and "@" in email:
        local = email.split("@", 1)[0]
        if local:
            return local
    return "Unknown"


def get_pastor(db: Session, pastor_id: str | None) -> Member | None:
    if not pastor_id:
        return None
    pastor = db.get(Member, pastor_id)
    if pastor is None or pastor.category != "Pastors":
        return None
    return pastor


def sync_church_units(member: Member) -> None:
    """Keep the primary unit inside the unit list."""

    units = list(member.church_units or [])
    if member.church_unit and member.church_unit not in units:
        units.insert(0, member.church_unit)
    member.church_units = normalize_church_units(units)
    if not member.church_unit and member.church_units:
        member.church_unit = member.church_units[0]
