"""UQ pipeline: course page -> offering -> course profile -> assessment."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from typing import Final
from urllib.parse import quote

from bs4 import BeautifulSoup

from assessment_scraper.application.errors import FetchError, is_rate_limited
from assessment_scraper.application.ports import (
    AssessmentScraper,
    DeliveryModeProvider,
    DocumentFetcher,
)
from assessment_scraper.domain.assessment import CourseAssessment, DeliveryModeOption
from assessment_scraper.domain.semester import Institution, SemesterSelection, SemesterType
from assessment_scraper.infrastructure.scrapers.html import element_text, parse_document
from assessment_scraper.infrastructure.scrapers.uq.hurdles import (
    attach_item_hurdle_requirements,
    extract_course_hurdle_text,
)
from assessment_scraper.infrastructure.scrapers.uq.offerings import (
    list_delivery_options,
    locate_course_profile,
)
from assessment_scraper.infrastructure.scrapers.uq.rows import parse_assessment_rows
from assessment_scraper.infrastructure.scrapers.uq.tables import (
    locate_assessment_table,
    resolve_column_roles,
)

LOGGER = logging.getLogger(__name__)

UQ_COURSE_URL: Final = "https://programs-courses.uq.edu.au/course.html"
UQ_UNIVERSITY_NAME: Final = "university of queensland"
_ARCHIVE_SECTION_1_PATTERN = re.compile(
    r"^https?://archive\.course-profiles\.uq\.edu\.au/student_section_loader/section_1/(\d+)(?:[/?]|$)",
    re.IGNORECASE,
)
ARCHIVE_ASSESSMENT_SECTION_URL: Final = (
    "https://archive.course-profiles.uq.edu.au/student_section_loader/section_5/{profile_id}"
)


def course_page_url(course_code: str) -> str:
    """Return the public course page URL for course_code."""
    return f"{UQ_COURSE_URL}?course_code={quote(course_code, safe='')}"


def extract_uq_title(document: BeautifulSoup, course_code: str) -> str:
    """Return course title from headings, then page title, then the code."""
    for heading in document.find_all(["h1", "h2"]):
        text = element_text(heading)
        if course_code in text and UQ_UNIVERSITY_NAME not in text.lower():
            return text

    page_title = element_text(document.find("title"))
    if course_code in page_title:
        candidate = page_title.split("-")[0].strip()
        if candidate:
            return candidate
    return course_code


class UqCourseProfileScraper(AssessmentScraper):
    """Extract assessment by following the course page's offering table."""

    def __init__(self, fetcher: DocumentFetcher) -> None:
        self._fetcher = fetcher

    @property
    def institution(self) -> Institution:
        """Return institution served by this scraper."""
        return Institution.UQ

    def extract(
        self,
        course_code: str,
        selection: SemesterSelection | None = None,
    ) -> CourseAssessment:
        """Fetch and parse assessment for course_code and selection."""
        url = course_page_url(course_code)
        course_page = parse_document(self._fetcher.fetch(url))
        title = extract_uq_title(course_page, course_code)

        profile_url = locate_course_profile(course_page, selection)
        assessment_page = course_page
        if profile_url != url and not profile_url.endswith("#"):
            assessment_page = self._fetch_profile(profile_url, fallback=course_page)

        located = locate_assessment_table(assessment_page)
        roles = resolve_column_roles(located.table)
        items = parse_assessment_rows(located.table, roles)
        items = attach_item_hurdle_requirements(assessment_page, items)

        assessment = CourseAssessment(
            course_code=course_code,
            title=title,
            items=items,
            semester=selection,
            course_profile_url=profile_url,
            course_wide_hurdle_text=extract_course_hurdle_text(assessment_page),
        )
        LOGGER.info(
            "event=uq_extraction_completed course_code=%s item_count=%s table_strategy=%s",
            assessment.course_code,
            len(assessment.items),
            located.strategy,
        )
        return assessment

    def _fetch_profile(self, profile_url: str, *, fallback: BeautifulSoup) -> BeautifulSoup:
        try:
            html = self._fetcher.fetch(profile_url)
        except FetchError as exc:
            if is_rate_limited(exc):
                raise
            LOGGER.warning(
                "event=course_profile_fetch_failed url=%s status=%s fallback=course_page",
                profile_url,
                exc.status_code,
            )
            return fallback

        archive_match = _ARCHIVE_SECTION_1_PATTERN.match(profile_url)
        if archive_match is None:
            return parse_document(html)

        section_url = ARCHIVE_ASSESSMENT_SECTION_URL.format(profile_id=archive_match.group(1))
        try:
            return parse_document(self._fetcher.fetch(section_url))
        except FetchError as exc:
            if is_rate_limited(exc):
                raise
            LOGGER.warning(
                "event=archive_section_fetch_failed url=%s status=%s fallback=section_1",
                section_url,
                exc.status_code,
            )
            return parse_document(html)


class UqDeliveryModeProvider(DeliveryModeProvider):
    """List delivery modes offered by UQ for a study period."""

    def __init__(self, fetcher: DocumentFetcher) -> None:
        self._fetcher = fetcher

    @property
    def institution(self) -> Institution:
        """Return institution served by this provider."""
        return Institution.UQ

    def list_delivery_modes(
        self,
        course_code: str,
        year: int,
        semester: SemesterType,
    ) -> Sequence[DeliveryModeOption]:
        """Return offerings for (year, semester) from the course page."""
        document = parse_document(self._fetcher.fetch(course_page_url(course_code)))
        options = list_delivery_options(document, year, semester)
        LOGGER.info(
            "event=uq_delivery_modes_listed course_code=%s year=%s semester=%s count=%s",
            course_code,
            year,
            semester.value,
            len(options),
        )
        return options
