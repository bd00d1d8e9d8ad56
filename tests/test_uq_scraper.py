"""End-to-end tests for the UQ extraction pipeline with a scripted fetcher."""

from __future__ import annotations

import pytest

from assessment_scraper.application.errors import (
    FetchError,
    OfferingNotFoundError,
    RateLimitedError,
)
from assessment_scraper.domain.semester import (
    DeliveryMode,
    SemesterSelection,
    SemesterType,
)
from assessment_scraper.infrastructure.scrapers.uq import (
    UqCourseProfileScraper,
    UqDeliveryModeProvider,
)
from assessment_scraper.infrastructure.scrapers.uq.scraper import course_page_url
from tests.html_fixture_utils import (
    DEFAULT_ASSESSMENT_SECTION,
    OfferingFixture,
    ScriptedFetcher,
    assessment_table,
    course_page,
    profile_page,
)

COURSE_URL = course_page_url("MATH1050")
PROFILE_URL = "https://course-profiles.uq.edu.au/course-profiles/MATH1050-20252-7630"
ARCHIVE_SECTION_1 = (
    "https://archive.course-profiles.uq.edu.au/student_section_loader/section_1/4321"
)
ARCHIVE_SECTION_5 = (
    "https://archive.course-profiles.uq.edu.au/student_section_loader/section_5/4321"
)
SEM2_EXTERNAL = SemesterSelection(
    year=2025,
    semester=SemesterType.SEMESTER_2,
    delivery=DeliveryMode.EXTERNAL,
)


def _course_page_with_profile(href: str = "/course-profiles/MATH1050-20252-7630") -> str:
    return course_page(
        current=[
            OfferingFixture(
                semester="Semester 1, 2025",
                mode="Internal",
                href="/course-profiles/MATH1050-20251-7620",
            ),
            OfferingFixture(
                semester="Semester 2, 2025",
                mode="External",
                href=href,
                location="External",
            ),
        ]
    )


def _full_profile() -> str:
    return profile_page(
        DEFAULT_ASSESSMENT_SECTION
        + '<a id="assessment-detail-1"></a><h3>Final exam</h3>'
        + "<h4>Hurdle requirements</h4><p>You must achieve 40 out of 100 on the final exam.</p>"
        + "<h2>Course hurdle requirements</h2>"
        + "<p>Students must achieve at least 50% of the available marks across all exams.</p>"
    )


def test_extracts_assessment_from_followed_profile() -> None:
    fetcher = ScriptedFetcher(
        {COURSE_URL: _course_page_with_profile(), PROFILE_URL: _full_profile()}
    )

    assessment = UqCourseProfileScraper(fetcher).extract("MATH1050", SEM2_EXTERNAL)

    assert fetcher.calls == [COURSE_URL, PROFILE_URL]
    assert assessment.course_code == "MATH1050"
    assert assessment.title == "Mathematical Foundations II (MATH1050)"
    assert assessment.semester == SEM2_EXTERNAL
    assert assessment.course_profile_url == PROFILE_URL
    assert [(item.name, item.weight, item.due_date) for item in assessment.items] == [
        ("Assignment 1", 20, "5/04/2026"),
        ("Final exam", 80, "End of semester exam period"),
    ]
    assert assessment.items[0].hurdle is None
    final_hurdle = assessment.items[1].hurdle
    assert final_hurdle is not None
    assert final_hurdle.is_hurdle
    assert final_hurdle.requirements == "You must achieve 40 out of 100 on the final exam."
    assert assessment.course_wide_hurdle_text == (
        "Students must achieve at least 50% of the available marks across all exams."
    )


def test_archived_profile_is_redirected_to_assessment_section() -> None:
    fetcher = ScriptedFetcher(
        {
            COURSE_URL: _course_page_with_profile(href=ARCHIVE_SECTION_1),
            ARCHIVE_SECTION_1: profile_page("<h2>Course introduction</h2><p>Welcome.</p>"),
            ARCHIVE_SECTION_5: profile_page(DEFAULT_ASSESSMENT_SECTION),
        }
    )

    assessment = UqCourseProfileScraper(fetcher).extract("MATH1050", SEM2_EXTERNAL)

    assert fetcher.calls == [COURSE_URL, ARCHIVE_SECTION_1, ARCHIVE_SECTION_5]
    assert assessment.course_profile_url == ARCHIVE_SECTION_1
    assert len(assessment.items) == 2


def test_failed_archive_section_falls_back_to_first_section() -> None:
    fetcher = ScriptedFetcher(
        {
            COURSE_URL: _course_page_with_profile(href=ARCHIVE_SECTION_1),
            ARCHIVE_SECTION_1: profile_page(DEFAULT_ASSESSMENT_SECTION),
            ARCHIVE_SECTION_5: FetchError("gone", url=ARCHIVE_SECTION_5, status_code=404),
        }
    )

    assessment = UqCourseProfileScraper(fetcher).extract("MATH1050", SEM2_EXTERNAL)

    assert [item.name for item in assessment.items] == ["Assignment 1", "Final exam"]


def test_failed_profile_fetch_falls_back_to_course_page() -> None:
    page = course_page(
        current=[
            OfferingFixture(
                semester="Semester 2, 2025",
                mode="External",
                href="/course-profiles/MATH1050-20252-7630",
            )
        ],
        extra_body="<h2>Assessment</h2>"
        + assessment_table(
            [["Exam", "100%", "Exam period"]],
            headers=["Assessment task", "Weight", "Due"],
        ),
    )
    fetcher = ScriptedFetcher(
        {
            COURSE_URL: page,
            PROFILE_URL: FetchError("boom", url=PROFILE_URL, status_code=500),
        }
    )

    assessment = UqCourseProfileScraper(fetcher).extract("MATH1050", SEM2_EXTERNAL)

    assert [(item.name, item.weight) for item in assessment.items] == [("Exam", 100)]
    assert assessment.course_profile_url == PROFILE_URL


def test_rate_limited_profile_fetch_is_not_masked() -> None:
    fetcher = ScriptedFetcher(
        {
            COURSE_URL: _course_page_with_profile(),
            PROFILE_URL: RateLimitedError("reached its limit", url=PROFILE_URL, status_code=429),
        }
    )

    with pytest.raises(RateLimitedError):
        UqCourseProfileScraper(fetcher).extract("MATH1050", SEM2_EXTERNAL)


def test_unknown_offering_propagates_structure_error() -> None:
    fetcher = ScriptedFetcher({COURSE_URL: _course_page_with_profile()})
    summer = SemesterSelection(
        year=2025,
        semester=SemesterType.SUMMER,
        delivery=DeliveryMode.INTERNAL,
    )

    with pytest.raises(OfferingNotFoundError):
        UqCourseProfileScraper(fetcher).extract("MATH1050", summer)

    assert fetcher.calls == [COURSE_URL]


def test_course_page_fetch_error_propagates() -> None:
    with pytest.raises(FetchError):
        UqCourseProfileScraper(ScriptedFetcher()).extract("MATH1050")


def test_delivery_provider_lists_period_offerings() -> None:
    fetcher = ScriptedFetcher({COURSE_URL: _course_page_with_profile()})

    options = UqDeliveryModeProvider(fetcher).list_delivery_modes(
        "MATH1050",
        2025,
        SemesterType.SEMESTER_2,
    )

    assert [option.delivery for option in options] == [DeliveryMode.EXTERNAL]
    assert options[0].course_profile_url == PROFILE_URL
