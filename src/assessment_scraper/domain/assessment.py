"""Domain contracts for extracted course assessment."""

from __future__ import annotations

from typing import Final, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from assessment_scraper.domain.semester import DeliveryMode, SemesterSelection

PASS_FAIL: Final = "pass/fail"
MAX_ITEM_HURDLE_TEXT_LENGTH: Final = 1000
MAX_COURSE_HURDLE_TEXT_LENGTH: Final = 2000

Weight = float | Literal["pass/fail"]


class _FrozenRecord(BaseModel):
    """Immutable record serialized with camelCase field names."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class HurdleInfo(_FrozenRecord):
    """Hurdle flag plus optional threshold and requirement text."""

    is_hurdle: bool
    threshold: float | None = Field(default=None, ge=0, le=100)
    requirements: str | None = Field(default=None, max_length=MAX_ITEM_HURDLE_TEXT_LENGTH)

    @model_validator(mode="after")
    def validate_details_require_hurdle(self) -> HurdleInfo:
        if not self.is_hurdle and (self.threshold is not None or self.requirements is not None):
            raise ValueError("Hurdle threshold/requirements are only valid for hurdle items.")
        return self


class AssessmentItem(_FrozenRecord):
    """One gradable unit of a course."""

    name: str = Field(min_length=1)
    weight: Weight
    due_date: str | None = None
    hurdle: HurdleInfo | None = None

    @field_validator("weight")
    @classmethod
    def validate_weight_range(cls, value: Weight) -> Weight:
        if value == PASS_FAIL:
            return value
        if not 0 < float(value) <= 100:
            raise ValueError("Numeric weight must be within (0, 100].")
        return value

    @property
    def is_pass_fail(self) -> bool:
        return self.weight == PASS_FAIL

    @property
    def is_hurdle(self) -> bool:
        return self.hurdle is not None and self.hurdle.is_hurdle


class CourseAssessment(_FrozenRecord):
    """Unit of extraction and caching: all assessment for one offering."""

    course_code: str = Field(min_length=1)
    title: str | None = None
    items: list[AssessmentItem] = Field(min_length=1)
    semester: SemesterSelection | None = None
    course_profile_url: str | None = None
    course_wide_hurdle_text: str | None = Field(
        default=None,
        max_length=MAX_COURSE_HURDLE_TEXT_LENGTH,
    )

    @field_validator("course_code")
    @classmethod
    def canonicalize_course_code(cls, value: str) -> str:
        return value.upper()

    def total_weight(self) -> float:
        """Sum of numeric weights; pass/fail items do not contribute."""
        return sum(float(item.weight) for item in self.items if not item.is_pass_fail)


class DeliveryModeOption(_FrozenRecord):
    """One available delivery mode for a (course, year, semester)."""

    delivery: DeliveryMode
    location: str | None = None
    course_profile_url: str


class DeliveryModeList(_FrozenRecord):
    """Cached payload for delivery-mode lookups."""

    modes: list[DeliveryModeOption]
