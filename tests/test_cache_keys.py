"""Tests for cache key derivation and parsing."""

from __future__ import annotations

import pytest

from assessment_scraper.application.cache_keys import (
    CacheKeyKind,
    build_cache_key,
    cache_key_year,
    delivery_cache_key,
    parse_cache_key,
    scrape_cache_key,
)
from assessment_scraper.domain.semester import (
    DeliveryMode,
    Institution,
    SemesterSelection,
    SemesterType,
)


def test_scrape_key_for_uq_selection_omits_namespace() -> None:
    selection = SemesterSelection(
        year=2025,
        semester=SemesterType.SEMESTER_2,
        delivery=DeliveryMode.EXTERNAL,
    )

    key = scrape_cache_key(Institution.UQ, "math1050", selection)

    assert key == "scrape:MATH1050:2025:Semester_2:External"


def test_scrape_key_without_selection_and_qut_namespace() -> None:
    assert scrape_cache_key(Institution.UQ, "CSSE1001") == "scrape:CSSE1001"
    assert scrape_cache_key(Institution.QUT, "ifb104") == "scrape:qut:IFB104"


def test_delivery_key_format() -> None:
    key = delivery_cache_key(Institution.QUT, "IFB104", 2024, SemesterType.SUMMER)

    assert key == "delivery:qut:IFB104:2024:Summer"


@pytest.mark.parametrize(
    "key",
    [
        "scrape:MATH1050",
        "scrape:MATH1050:2025:Semester_1:Internal",
        "scrape:qut:IFB104:2026:Semester_2:External",
        "delivery:MATH1050:2023:Summer",
        "delivery:qut:IFB104:2025:Semester_1",
    ],
)
def test_parse_then_build_returns_same_key(key: str) -> None:
    parsed = parse_cache_key(key)

    assert parsed is not None
    assert build_cache_key(parsed) == key


def test_parse_exposes_structured_fields() -> None:
    parsed = parse_cache_key("scrape:qut:IFB104:2026:Semester_2:External")

    assert parsed is not None
    assert parsed.kind is CacheKeyKind.SCRAPE
    assert parsed.institution is Institution.QUT
    assert parsed.course_code == "IFB104"
    assert parsed.selection() == SemesterSelection(
        year=2026,
        semester=SemesterType.SEMESTER_2,
        delivery=DeliveryMode.EXTERNAL,
    )


@pytest.mark.parametrize(
    "key",
    [
        "",
        "scrape",
        "other:MATH1050",
        "scrape:MATH1050:2025",
        "scrape:MATH1050:25:Semester_1:Internal",
        "scrape:MATH1050:1999:Semester_1:Internal",
        "delivery:MATH1050:2101:Summer",
        "scrape:MATH1050:2025:Semester_9:Internal",
        "scrape:MATH1050:2025:Semester_1:Hybrid",
        "delivery:MATH1050",
        "delivery:MATH1050:2025:Semester_1:Internal",
        "failed-scrapes:v1",
    ],
)
def test_parse_rejects_malformed_keys(key: str) -> None:
    assert parse_cache_key(key) is None


def test_cache_key_year_is_none_without_year() -> None:
    assert cache_key_year("scrape:MATH1050") is None
    assert cache_key_year("delivery:MATH1050:2019:Semester_1") == 2019


def test_cache_key_year_ignores_unknown_period_tokens() -> None:
    assert cache_key_year("delivery:MATH1050:2019:Trimester_1") == 2019
    assert cache_key_year("scrape:qut:IFB104:2018:Semester_1:Blended") == 2018
    assert cache_key_year("scrape:MATH1050:1999:Semester_1:Internal") == 1999
    assert cache_key_year("scrape:MATH1050:Semester_1") is None
    assert cache_key_year("failed-scrapes:v1") is None
