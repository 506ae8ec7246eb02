from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from slugify import slugify


@dataclass(frozen=True)
class ChurchUnit:
    name: str
    description: str

    @property
    def id(self) -> str:
        return slugify(self.name, separator="")


OFFICIAL_CHURCH_UNITS: tuple[ChurchUnit, ...] = (
    ChurchUnit("3HMedia", "Media and communications ministry"),
    ChurchUnit("3HMusic", "Music and worship ministry"),
    ChurchUnit("3HMovies", "Film and video production ministry"),
    ChurchUnit("3HSecurity", "Security and safety ministry"),
    ChurchUnit("Discipleship", "Discipleship and spiritual growth ministry"),
    ChurchUnit("Praise Feet", "Dance and movement ministry"),
    ChurchUnit("Ushering", "Welcoming and directing worshippers"),
    ChurchUnit("Sanitation", "Church sanitation and hygiene"),
)

CHURCH_UNIT_NAMES = tuple(unit.name for unit in OFFICIAL_CHURCH_UNITS)

# Names still present in older rows; values outside the official list are dropped on normalisation.
LEGACY_TO_OFFICIAL: dict[str, str] = {
    "3H Media": "3HMedia",
    "3H Music": "3HMusic",
    "3H Movies": "3HMovies",
    "3H Security": "3HSecurity",
    "Auxano Group": "Discipleship",
    "TOF": "Cloven Tongues",
    "tof": "Cloven Tongues",
    "Administration": "3HMedia",
    "Youth Ministry": "Discipleship",
    "Children Ministry": "Discipleship",
    "Music Ministry": "3HMusic",
    "Ushering Ministry": "3HSecurity",
    "Technical Ministry": "3HMedia",
    "Evangelism Ministry": "Discipleship",
    "Prayer Ministry": "Cloven Tongues",
    "Welfare Ministry": "Discipleship",
    "Security Ministry": "3HSecurity",
}

_BY_ID = {unit.id: unit.name for unit in OFFICIAL_CHURCH_UNITS}


def is_official(name: str) -> bool:
    return name in CHURCH_UNIT_NAMES


def official_name(value: str) -> str:
    """Map a legacy name or a unit id to its official name; unknown values pass through."""

    cleaned = value.strip()
    if cleaned in LEGACY_TO_OFFICIAL:
        return LEGACY_TO_OFFICIAL[cleaned]
    return _BY_ID.get(cleaned.lower(), cleaned)


def normalize_church_units(units: Iterable[str]) -> list[str]:
    result: list[str] = []
    for unit in units:
        if not unit:
            continue
        name = official_name(unit)
        if is_official(name) and name not in result:
            result.append(name)
    return result
