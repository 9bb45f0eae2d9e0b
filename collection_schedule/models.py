"""
This module defines the data models for the collection schedule resolver.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, List, Mapping, Optional

from .config import DEFAULT_LANGUAGE


@dataclass(frozen=True)
class GarbageType:
    """A collected waste category from the reference catalog."""

    id: str
    code: str
    name_pt: str
    name_en: str
    name_es: str
    color_hex: str
    icon: str = ""

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "GarbageType":
        """Builds a GarbageType from a backend or database row."""
        data = dict(row)
        return cls(
            id=str(data["id"]),
            code=data["code"],
            name_pt=data.get("name_pt") or "",
            name_en=data.get("name_en") or "",
            name_es=data.get("name_es") or "",
            color_hex=data.get("color_hex") or "",
            icon=data.get("icon") or "",
        )

    def display_name(self, language: str = DEFAULT_LANGUAGE) -> str:
        """Returns the localized name, falling back to Portuguese."""
        name = getattr(self, f"name_{language}", None)
        return name or self.name_pt or self.code


@dataclass(frozen=True)
class CollectionSchedule:
    """One recurring pickup rule for one zone and one garbage type."""

    id: str
    zone_id: str
    garbage_type_id: str
    day_of_week: int
    week_interval: int
    start_date: str
    end_date: Optional[str] = None
    is_active: bool = True

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "CollectionSchedule":
        """Builds a rule from a backend or database row."""
        data = dict(row)
        return cls(
            id=str(data["id"]),
            zone_id=str(data["zone_id"]),
            garbage_type_id=str(data["garbage_type_id"]),
            day_of_week=int(data["day_of_week"]),
            week_interval=int(data.get("week_interval") or 1),
            start_date=data["start_date"],
            end_date=data.get("end_date"),
            is_active=bool(data.get("is_active", True)),
        )


@dataclass(frozen=True)
class CollectionDay:
    """The garbage types collected on one concrete date."""

    date: date
    garbage_types: List[GarbageType] = field(default_factory=list)
    # Public holiday label, filled in by the calendar facade only.
    holiday: Optional[str] = None


@dataclass(frozen=True)
class NextCollection:
    """The soonest upcoming collection date of one garbage type."""

    garbage_type: GarbageType
    next_date: date


@dataclass(frozen=True)
class Reminder:
    """A planned reminder for one garbage type collected on one date."""

    garbage_type: GarbageType
    collection_date: date
    notify_at: datetime


@dataclass(frozen=True)
class Zone:
    """A sub-division of a city with its own collection schedule."""

    id: str
    city_id: str
    name: str
    name_pt: str = ""
    name_en: str = ""
    name_es: str = ""
    circuit_code: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Zone":
        data = dict(row)
        return cls(
            id=str(data["id"]),
            city_id=str(data["city_id"]),
            name=data["name"],
            name_pt=data.get("name_pt") or "",
            name_en=data.get("name_en") or "",
            name_es=data.get("name_es") or "",
            circuit_code=data.get("circuit_code"),
        )

    def display_name(self, language: str = DEFAULT_LANGUAGE) -> str:
        return getattr(self, f"name_{language}", None) or self.name


@dataclass(frozen=True)
class City:
    """A city and the zones it is divided into."""

    id: str
    name: str
    name_pt: str = ""
    name_en: str = ""
    name_es: str = ""
    country_code: str = ""
    zones: List[Zone] = field(default_factory=list)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "City":
        data = dict(row)
        return cls(
            id=str(data["id"]),
            name=data["name"],
            name_pt=data.get("name_pt") or "",
            name_en=data.get("name_en") or "",
            name_es=data.get("name_es") or "",
            country_code=data.get("country_code") or "",
            zones=[Zone.from_row(z) for z in data.get("zones") or []],
        )

    def display_name(self, language: str = DEFAULT_LANGUAGE) -> str:
        return getattr(self, f"name_{language}", None) or self.name
