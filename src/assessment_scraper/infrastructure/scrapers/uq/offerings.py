"""Course-offering table lookup on the UQ course page."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Final
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from assessment_scraper.application.errors import (
    OfferingNotFoundError,
    OfferingsTableNotFoundError,
)
from assessment_scraper.domain.assessment import DeliveryModeOption
from assessment_scraper.domain.semester import (
    DeliveryMode,
    SemesterSelection,
    SemesterType,
    format_semester,
)
from assessment_scraper.infrastructure.scrapers.html import element_text

LOGGER = logging.getLogger(__name__)

CURRENT_OFFERINGS_ID: Final = "course-current-offerings"
ARCHIVED_OFFERINGS_ID: Final = "course-archived-offerings"
COURSE_PROFILES_BASE_URL: Final = "https://course-profiles.uq.edu.au"

_SEMESTER_ALIASES: Final[dict[SemesterType, tuple[str, ...]]] = {
    SemesterType.SEMESTER_1: ("semester 1", "sem 1"),
    SemesterType.SEMESTER_2: ("semester 2", "sem 2"),
    SemesterType.SUMMER: ("summer",),
}
_INTERNAL_MARKERS: Final = ("internal", "in person", "flexible")


@dataclass(frozen=True)
class OfferingRow:
    """One row of an offerings table."""

    semester_text: str
    location: str
    mode_text: str
    profile_url: str | None

    @property
    def delivery(self) -> DeliveryMode | None:
        return classify_delivery(self.mode_text)

    def matches_period(self, year: int, semester: SemesterType) -> bool:
        """Return whether the row's semester cell names semester and year."""
        text = self.semester_text.lower()
        has_semester = any(alias in text for alias in _SEMESTER_ALIASES[semester])
        return has_semester and str(year) in text

    def matches(self, selection: SemesterSelection) -> bool:
        """Return whether semester, year and delivery all agree with selection."""
        return (
            self.matches_period(selection.year, selection.semester)
            and self.delivery is selection.delivery
        )


def classify_delivery(mode_text: str) -> DeliveryMode | None:
    """Classify an offering mode cell; None when unrecognized."""
    lowered = mode_text.lower()
    if "external" in lowered:
        return DeliveryMode.EXTERNAL
    if any(marker in lowered for marker in _INTERNAL_MARKERS):
        return DeliveryMode.INTERNAL
    return None


def find_offering_tables(document: BeautifulSoup) -> list[Tag]:
    """Return current then archived offering tables.

    Raises OfferingsTableNotFoundError when the page has neither.
    """
    tables = [
        table
        for table in (
            document.find(id=CURRENT_OFFERINGS_ID),
            document.find(id=ARCHIVED_OFFERINGS_ID),
        )
        if isinstance(table, Tag)
    ]
    if not tables:
        raise OfferingsTableNotFoundError(
            "Could not find course offerings tables. The course may not be available "
            "or the page structure has changed."
        )
    return tables


def read_offering_rows(table: Tag) -> list[OfferingRow]:
    """Read offering rows in document order."""
    rows: list[OfferingRow] = []
    for row in table.select("tbody tr"):
        cells = row.find_all("td")
        semester_text = element_text(cells[0]) if cells else ""
        rows.append(
            OfferingRow(
                semester_text=semester_text,
                location=element_text(row.select_one(".course-offering-location")),
                mode_text=element_text(row.select_one(".course-offering-mode")),
                profile_url=_profile_url(row),
            )
        )
    return rows


def locate_course_profile(
    document: BeautifulSoup,
    selection: SemesterSelection | None = None,
) -> str:
    """Return the course profile URL for selection.

    Current offerings are searched before archived ones and the first
    matching row wins. Without a selection the first row with a usable
    profile link is taken.
    """
    tables = find_offering_tables(document)
    for table in tables:
        for row in read_offering_rows(table):
            if row.profile_url is None:
                continue
            if selection is None or row.matches(selection):
                LOGGER.info(
                    "event=offering_located semester=%s location=%s mode=%s profile_url=%s",
                    row.semester_text,
                    row.location,
                    row.mode_text,
                    row.profile_url,
                )
                return row.profile_url

    if selection is not None:
        raise OfferingNotFoundError(
            f"Course profile not found for {format_semester(selection)}. "
            "Please verify the semester, year, and delivery mode are correct."
        )
    raise OfferingNotFoundError(
        "No course profile link found. Please specify a semester, year, and delivery mode."
    )


def list_delivery_options(
    document: BeautifulSoup,
    year: int,
    semester: SemesterType,
) -> list[DeliveryModeOption]:
    """Return every offering for (year, semester), de-duplicated by delivery and URL."""
    options: list[DeliveryModeOption] = []
    seen: set[tuple[DeliveryMode, str]] = set()
    for table in find_offering_tables(document):
        for row in read_offering_rows(table):
            delivery = row.delivery
            if row.profile_url is None or delivery is None:
                continue
            if not row.matches_period(year, semester):
                continue
            identity = (delivery, row.profile_url)
            if identity in seen:
                continue
            seen.add(identity)
            options.append(
                DeliveryModeOption(
                    delivery=delivery,
                    location=row.location or None,
                    course_profile_url=row.profile_url,
                )
            )
    return options


def _profile_url(row: Tag) -> str | None:
    cell = row.select_one(".course-offering-profile")
    if cell is None:
        return None
    link = cell.select_one('a[href*="course-profile"]')
    if link is None:
        return None
    href = link.get("href")
    if not isinstance(href, str) or not href.strip() or "unavailable" in href:
        return None
    return urljoin(COURSE_PROFILES_BASE_URL, href.strip())
