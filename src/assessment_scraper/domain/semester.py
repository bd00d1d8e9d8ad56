"""Domain models for study periods, delivery modes and institutions."""

from __future__ import annotations

from datetime import date
from enum import StrEnum
from typing import Final

from pydantic import BaseModel, ConfigDict, Field

MIN_YEAR: Final = 2000
MAX_YEAR: Final = 2100


class SemesterType(StrEnum):
    """Study periods offered by supported institutions."""

    SEMESTER_1 = "Semester 1"
    SEMESTER_2 = "Semester 2"
    SUMMER = "Summer"


class DeliveryMode(StrEnum):
    """Mode of attendance for one offering."""

    INTERNAL = "Internal"
    EXTERNAL = "External"


class Institution(StrEnum):
    """Institutions with an implemented scraper."""

    UQ = "uq"
    QUT = "qut"

    @property
    def cache_namespace(self) -> str | None:
        """Return key segment used in cache keys; UQ keys carry no segment."""
        if self is Institution.UQ:
            return None
        return self.value


class SemesterSelection(BaseModel):
    """Year, study period and delivery mode identifying one offering."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    year: int = Field(ge=MIN_YEAR, le=MAX_YEAR)
    semester: SemesterType
    delivery: DeliveryMode


def parse_semester_type(value: str | None) -> SemesterType | None:
    """Validate semester type from user input; return None if invalid."""
    if not value:
        return None
    try:
        return SemesterType(value)
    except ValueError:
        return None


def parse_delivery_mode(value: str | None) -> DeliveryMode | None:
    """Validate delivery mode from user input; return None if invalid."""
    if not value:
        return None
    try:
        return DeliveryMode(value)
    except ValueError:
        return None


def current_semester(today: date | None = None) -> SemesterSelection:
    """Return the study period in progress for the given day.

    Semester 1 runs February to June and Semester 2 July to November.
    December and the first half of January belong to the Summer period of
    the year it started in; the rest of January rolls over to Semester 1.
    """
    resolved = today or date.today()
    year = resolved.year
    month = resolved.month

    if 2 <= month <= 6:
        return SemesterSelection(
            year=year,
            semester=SemesterType.SEMESTER_1,
            delivery=DeliveryMode.INTERNAL,
        )
    if 7 <= month <= 11:
        return SemesterSelection(
            year=year,
            semester=SemesterType.SEMESTER_2,
            delivery=DeliveryMode.INTERNAL,
        )
    if month == 12:
        return SemesterSelection(
            year=year,
            semester=SemesterType.SUMMER,
            delivery=DeliveryMode.INTERNAL,
        )
    if resolved.day < 15:
        return SemesterSelection(
            year=year - 1,
            semester=SemesterType.SUMMER,
            delivery=DeliveryMode.INTERNAL,
        )
    return SemesterSelection(
        year=year,
        semester=SemesterType.SEMESTER_1,
        delivery=DeliveryMode.INTERNAL,
    )


def selectable_years(today: date | None = None) -> list[int]:
    """Return years offered for selection: seven back through two ahead."""
    year = (today or date.today()).year
    return list(range(year - 7, year + 3))


def format_semester(selection: SemesterSelection) -> str:
    """Render selection as e.g. ``Semester 2 2025 (External)``."""
    return f"{selection.semester.value} {selection.year} ({selection.delivery.value})"
