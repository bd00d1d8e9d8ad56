"""QUT pipeline: unit outline page -> assessment task sections."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Final
from urllib.parse import urlencode

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from assessment_scraper.application.errors import (
    NoItemsParsedError,
    SelectionRequiredError,
    UnitNotFoundError,
)
from assessment_scraper.application.ports import (
    AssessmentScraper,
    DeliveryModeProvider,
    DocumentFetcher,
)
from assessment_scraper.domain.assessment import (
    PASS_FAIL,
    AssessmentItem,
    CourseAssessment,
    DeliveryModeOption,
    HurdleInfo,
    Weight,
)
from assessment_scraper.domain.semester import (
    DeliveryMode,
    Institution,
    SemesterSelection,
    SemesterType,
)
from assessment_scraper.infrastructure.scrapers.html import (
    collapse_whitespace,
    element_text,
    is_heading,
    parse_document,
)

LOGGER = logging.getLogger(__name__)

QUT_UNIT_URL: Final = "https://qutvirtual4.qut.edu.au/web/qut/unit"
QUT_DEFAULT_LOCATION: Final = "Brisbane"
STUDY_PERIOD_CODES: Final[dict[SemesterType, str]] = {
    SemesterType.SEMESTER_1: "SEM-1",
    SemesterType.SEMESTER_2: "SEM-2",
    SemesterType.SUMMER: "SUM",
}

_TASK_HEADING_SELECTOR: Final = 'h4[id^="assessment-task-"]'
_ERROR_SELECTOR: Final = ".alert-danger, .error-message"
_DELIVERY_ERROR_SELECTOR: Final = ".alert-danger, .error-message, .no-results"
_NAME_PREFIX_PATTERN = re.compile(r"^Assessment:\s*", re.IGNORECASE)
_WEIGHT_PATTERN = re.compile(r"Weight:\s*(\d+(?:\.\d+)?)", re.IGNORECASE)
_PASS_FAIL_PATTERN = re.compile(r"pass\s*/?\s*fail", re.IGNORECASE)
_WEEK_PATTERN = re.compile(r"Week\s+(\d+)", re.IGNORECASE)
_EXAM_PERIOD_PATTERN = re.compile(r"examination\s+period", re.IGNORECASE)
_HURDLE_MARKERS: Final = ("hurdle", "must pass", "must achieve")
_DUE_LINE_PATTERN = re.compile(r"^Due\s*(?:\([^)]*\))?:\s*(.+)$", re.IGNORECASE)


@dataclass(frozen=True)
class _TaskSection:
    heading: Tag
    blocks: list[str]

    @property
    def text(self) -> str:
        return " ".join(self.blocks)


def unit_outline_url(unit_code: str, year: int, semester: SemesterType) -> str:
    """Return the unit outline URL for one study period."""
    query = urlencode(
        {
            "unitCode": unit_code.upper(),
            "year": year,
            "studyPeriodCode": STUDY_PERIOD_CODES[semester],
        }
    )
    return f"{QUT_UNIT_URL}?{query}"


def extract_qut_title(document: BeautifulSoup, unit_code: str) -> str:
    """Return unit title from the first h1, then page title, then the code."""
    heading_text = element_text(document.find("h1"))
    if heading_text:
        return heading_text
    page_title = element_text(document.find("title"))
    if page_title:
        candidate = page_title.split("|")[0].strip()
        if candidate:
            return candidate
    return unit_code.upper()


def parse_task_sections(document: BeautifulSoup) -> list[AssessmentItem]:
    """Parse id-labelled assessment task headings into items, dropping duplicates."""
    items: list[AssessmentItem] = []
    for heading in document.select(_TASK_HEADING_SELECTOR):
        item = _parse_section(_section_after(heading))
        if item is None:
            continue
        if any(existing.name == item.name and existing.weight == item.weight for existing in items):
            LOGGER.info("event=qut_duplicate_task_skipped name=%s", item.name)
            continue
        items.append(item)
    return items


def parse_unlabelled_sections(document: BeautifulSoup) -> list[AssessmentItem]:
    """Parse "Assessment: ..." headings lacking task ids; numeric weights only."""
    items: list[AssessmentItem] = []
    for heading in document.find_all(["h2", "h3", "h4", "h5"]):
        if not _NAME_PREFIX_PATTERN.match(element_text(heading)):
            continue
        section = _section_after(heading)
        name = _NAME_PREFIX_PATTERN.sub("", element_text(heading)).strip()
        weight_match = _WEIGHT_PATTERN.search(section.text)
        if not name or weight_match is None:
            continue
        weight = float(weight_match.group(1))
        if not 0 < weight <= 100:
            continue
        items.append(
            AssessmentItem(name=name, weight=weight, due_date=_due_from_lines(section.blocks))
        )
    return items


class QutUnitOutlineScraper(AssessmentScraper):
    """Extract assessment from QUT unit outline pages."""

    def __init__(self, fetcher: DocumentFetcher) -> None:
        self._fetcher = fetcher

    @property
    def institution(self) -> Institution:
        """Return institution served by this scraper."""
        return Institution.QUT

    def extract(
        self,
        course_code: str,
        selection: SemesterSelection | None = None,
    ) -> CourseAssessment:
        """Fetch and parse the unit outline for selection."""
        if selection is None:
            raise SelectionRequiredError(
                "Semester, year, and delivery mode are required for QUT units."
            )

        url = unit_outline_url(course_code, selection.year, selection.semester)
        document = parse_document(self._fetcher.fetch(url))

        error_text = element_text(document.select_one(_ERROR_SELECTOR)).lower()
        if "not found" in error_text or "no unit" in error_text:
            raise UnitNotFoundError(
                f"Unit {course_code} not found for {selection.semester.value} {selection.year}."
            )

        items = parse_task_sections(document)
        strategy = "task_headings"
        if not items:
            items = parse_unlabelled_sections(document)
            strategy = "unlabelled_headings"
        if not items:
            raise NoItemsParsedError(
                f"Could not find assessment information for {course_code}. The unit outline "
                f"may not be available for {selection.semester.value} {selection.year}."
            )

        assessment = CourseAssessment(
            course_code=course_code,
            title=extract_qut_title(document, course_code),
            items=items,
            semester=selection,
            course_profile_url=url,
        )
        LOGGER.info(
            "event=qut_extraction_completed course_code=%s item_count=%s strategy=%s "
            "total_weight=%s",
            assessment.course_code,
            len(items),
            strategy,
            assessment.total_weight(),
        )
        return assessment


class QutDeliveryModeProvider(DeliveryModeProvider):
    """Report the single on-campus offering QUT publishes per study period."""

    def __init__(self, fetcher: DocumentFetcher) -> None:
        self._fetcher = fetcher

    @property
    def institution(self) -> Institution:
        """Return institution served by this provider."""
        return Institution.QUT

    def list_delivery_modes(
        self,
        course_code: str,
        year: int,
        semester: SemesterType,
    ) -> Sequence[DeliveryModeOption]:
        """Return one Internal option when the unit outline exists, else none."""
        url = unit_outline_url(course_code, year, semester)
        document = parse_document(self._fetcher.fetch(url))

        error_text = " ".join(
            element_text(element) for element in document.select(_DELIVERY_ERROR_SELECTOR)
        ).lower()
        body_text = element_text(document.body or document).lower()
        if (
            "not found" in error_text
            or "no unit" in error_text
            or "unit not available" in body_text
            or "no offering found" in body_text
        ):
            LOGGER.info(
                "event=qut_unit_not_offered course_code=%s year=%s semester=%s",
                course_code,
                year,
                semester.value,
            )
            return []

        has_content = (
            document.find("h1") is not None
            or document.select_one('[class*="unit-title"]') is not None
            or course_code.lower() in body_text
        )
        if not has_content:
            return []
        return [
            DeliveryModeOption(
                delivery=DeliveryMode.INTERNAL,
                location=QUT_DEFAULT_LOCATION,
                course_profile_url=url,
            )
        ]


def _section_after(heading: Tag) -> _TaskSection:
    blocks: list[str] = []
    for sibling in heading.next_siblings:
        if isinstance(sibling, Tag):
            if is_heading(sibling, (2, 3, 4)):
                break
            text = element_text(sibling)
        elif isinstance(sibling, NavigableString) and not isinstance(sibling, Comment):
            text = collapse_whitespace(str(sibling))
        else:
            continue
        if text:
            blocks.append(text)
    return _TaskSection(heading=heading, blocks=blocks)


def _parse_section(section: _TaskSection) -> AssessmentItem | None:
    name = _NAME_PREFIX_PATTERN.sub("", element_text(section.heading)).strip()
    if not name:
        return None

    text = section.text
    weight: Weight | None = None
    weight_match = _WEIGHT_PATTERN.search(text)
    if weight_match is not None:
        weight = float(weight_match.group(1))
    if _PASS_FAIL_PATTERN.search(text):
        weight = PASS_FAIL
    if weight is None or (weight != PASS_FAIL and not 0 < float(weight) <= 100):
        return None

    lowered = text.lower()
    is_hurdle = any(marker in lowered for marker in _HURDLE_MARKERS)
    return AssessmentItem(
        name=name,
        weight=weight,
        due_date=_due_date(text),
        hurdle=HurdleInfo(is_hurdle=True) if is_hurdle else None,
    )


def _due_date(text: str) -> str | None:
    week_match = _WEEK_PATTERN.search(text)
    if week_match is not None:
        return f"Week {week_match.group(1)}"
    if _EXAM_PERIOD_PATTERN.search(text):
        return "Exam Period"
    return None


def _due_from_lines(blocks: list[str]) -> str | None:
    for block in blocks:
        match = _DUE_LINE_PATTERN.match(block)
        if match is not None:
            return match.group(1).strip() or None
    return None
