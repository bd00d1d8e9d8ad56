"""Application-level contracts for fetching, caching and scraping."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from assessment_scraper.domain.assessment import CourseAssessment, DeliveryModeOption
from assessment_scraper.domain.semester import Institution, SemesterSelection, SemesterType


class DocumentFetcher(Protocol):
    """Retrieve raw HTML for a URL."""

    def fetch(self, url: str) -> str:
        """Return document text or raise FetchError."""
        ...


class CacheStore(Protocol):
    """Key-value store with set, list and counter primitives.

    Implementations may raise on backend failure; callers go through
    AssessmentCache, which degrades every failure to a neutral result.
    """

    def get(self, key: str) -> object | None:
        """Return stored JSON-compatible value, or None when absent/expired."""
        ...

    def set(self, key: str, value: object, ttl_seconds: int | None = None) -> None:
        """Store value; no expiry unless ttl_seconds is a positive number."""
        ...

    def delete(self, *keys: str) -> int:
        """Delete keys and return how many existed."""
        ...

    def keys(self, pattern: str) -> list[str]:
        """Return all live keys matching glob pattern."""
        ...

    def scan(self, cursor: int, match: str, count: int) -> tuple[int, list[str]]:
        """Return next cursor (0 when finished) and one page of matching keys."""
        ...

    def set_add(self, name: str, *members: str) -> int:
        """Add members to set; return number newly added."""
        ...

    def set_is_member(self, name: str, member: str) -> bool:
        """Return whether member belongs to set."""
        ...

    def set_remove(self, name: str, *members: str) -> int:
        """Remove members from set; return number removed."""
        ...

    def set_members(self, name: str) -> set[str]:
        """Return all set members."""
        ...

    def list_append(self, name: str, *values: str) -> int:
        """Append values to list tail; return new length."""
        ...

    def list_trim(self, name: str, start: int, stop: int) -> None:
        """Keep only the inclusive index range; negative indexes count from tail."""
        ...

    def list_range(self, name: str, start: int, stop: int) -> list[str]:
        """Return inclusive index range; negative indexes count from tail."""
        ...

    def increment(self, name: str) -> int:
        """Atomically increment counter and return the new value."""
        ...


class AssessmentScraper(Protocol):
    """Institution-specific extraction pipeline."""

    @property
    def institution(self) -> Institution:
        """Return institution served by this scraper."""
        ...

    def extract(
        self,
        course_code: str,
        selection: SemesterSelection | None = None,
    ) -> CourseAssessment:
        """Fetch and parse course assessment or raise ScrapeError."""
        ...


class DeliveryModeProvider(Protocol):
    """Institution-specific lookup of available delivery modes."""

    @property
    def institution(self) -> Institution:
        """Return institution served by this provider."""
        ...

    def list_delivery_modes(
        self,
        course_code: str,
        year: int,
        semester: SemesterType,
    ) -> Sequence[DeliveryModeOption]:
        """Return offerings available for the study period (possibly empty)."""
        ...
