"""Application use-cases: cached extraction, delivery modes and cache maintenance."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import date
from typing import Final, TypeVar
from uuid import uuid4

from assessment_scraper.application.assessment_cache import AssessmentCache, EvictionStats
from assessment_scraper.application.cache_keys import (
    CacheKeyKind,
    delivery_cache_key,
    parse_cache_key,
    scrape_cache_key,
)
from assessment_scraper.application.errors import (
    ScrapeError,
    ScrapeTemporarilyUnavailableError,
    is_rate_limited,
)
from assessment_scraper.application.ports import AssessmentScraper, DeliveryModeProvider
from assessment_scraper.domain.assessment import CourseAssessment, DeliveryModeList
from assessment_scraper.domain.semester import (
    MAX_YEAR,
    MIN_YEAR,
    Institution,
    SemesterSelection,
    SemesterType,
)

LOGGER = logging.getLogger(__name__)

MAX_COURSE_CODE_LENGTH: Final = 20
DEFAULT_BACKFILL_DELAY_SECONDS: Final = 2.0
TService = TypeVar("TService")

TEMPORARILY_UNAVAILABLE_MESSAGE: Final = (
    "This course is temporarily unavailable because the source has reached its limit. "
    "Please try again later."
)


def normalize_course_code(course_code: str) -> str:
    """Strip and upper-case course code, rejecting blank or oversized values."""
    normalized = course_code.strip().upper()
    if not normalized:
        raise ValueError("Course code must not be empty.")
    if len(normalized) > MAX_COURSE_CODE_LENGTH:
        raise ValueError(f"Course code must be at most {MAX_COURSE_CODE_LENGTH} characters.")
    return normalized


def validate_year(year: int) -> int:
    """Reject years outside the supported range."""
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise ValueError(f"Year must be between {MIN_YEAR} and {MAX_YEAR}.")
    return year


@dataclass(frozen=True)
class GetCourseAssessmentCommand:
    """Input contract for one assessment lookup."""

    course_code: str
    institution: Institution = Institution.UQ
    selection: SemesterSelection | None = None


@dataclass(frozen=True)
class GetCourseAssessmentResult:
    """Assessment plus cache provenance."""

    assessment: CourseAssessment
    cache_key: str
    from_cache: bool


class GetCourseAssessmentUseCase:
    """Serve assessment from cache, extracting and memoizing on miss."""

    def __init__(
        self,
        scrapers: Mapping[Institution, AssessmentScraper],
        cache: AssessmentCache,
    ) -> None:
        self._scrapers = scrapers
        self._cache = cache

    def execute(self, command: GetCourseAssessmentCommand) -> GetCourseAssessmentResult:
        """Return assessment or raise ScrapeError/ScrapeTemporarilyUnavailableError."""
        course_code = normalize_course_code(command.course_code)
        scraper = _lookup(self._scrapers, command.institution)
        cache_key = scrape_cache_key(command.institution, course_code, command.selection)
        correlation_id = str(uuid4())

        cached = self._cache.get_assessment(cache_key)
        if cached is not None:
            self._cache.increment_analytics("scrape:hits")
            LOGGER.info(
                "event=scrape_cache_hit correlation_id=%s cache_key=%s",
                correlation_id,
                cache_key,
            )
            return GetCourseAssessmentResult(
                assessment=cached,
                cache_key=cache_key,
                from_cache=True,
            )

        if self._cache.is_failed_scrape(cache_key):
            self._cache.increment_analytics("scrape:failed_skip")
            LOGGER.info(
                "event=scrape_skipped_memoized correlation_id=%s cache_key=%s",
                correlation_id,
                cache_key,
            )
            raise ScrapeTemporarilyUnavailableError(
                TEMPORARILY_UNAVAILABLE_MESSAGE,
                cache_key=cache_key,
            )

        try:
            assessment = scraper.extract(course_code, command.selection)
        except ScrapeError as exc:
            self._cache.increment_analytics("scrape:errors")
            memoized = is_rate_limited(exc)
            if memoized:
                self._cache.add_failed_scrape(cache_key)
            LOGGER.warning(
                (
                    "event=scrape_failed correlation_id=%s institution=%s course_code=%s "
                    "cache_key=%s error_type=%s memoized=%s"
                ),
                correlation_id,
                command.institution.value,
                course_code,
                cache_key,
                exc.__class__.__name__,
                memoized,
            )
            raise

        self._cache.set_assessment(cache_key, assessment)
        self._cache.increment_analytics("scrape:misses")
        LOGGER.info(
            "event=scrape_completed correlation_id=%s cache_key=%s item_count=%s",
            correlation_id,
            cache_key,
            len(assessment.items),
        )
        return GetCourseAssessmentResult(
            assessment=assessment,
            cache_key=cache_key,
            from_cache=False,
        )


@dataclass(frozen=True)
class GetDeliveryModesCommand:
    """Input contract for a delivery-mode lookup."""

    course_code: str
    year: int
    semester: SemesterType
    institution: Institution = Institution.UQ


@dataclass(frozen=True)
class GetDeliveryModesResult:
    """Delivery modes plus cache provenance; empty modes mean no offering."""

    modes: DeliveryModeList
    cache_key: str
    from_cache: bool

    @property
    def found(self) -> bool:
        return bool(self.modes.modes)


class GetDeliveryModesUseCase:
    """Serve delivery modes from cache, listing them on miss."""

    def __init__(
        self,
        providers: Mapping[Institution, DeliveryModeProvider],
        cache: AssessmentCache,
    ) -> None:
        self._providers = providers
        self._cache = cache

    def execute(self, command: GetDeliveryModesCommand) -> GetDeliveryModesResult:
        """Return delivery modes; an empty result is returned but never cached."""
        course_code = normalize_course_code(command.course_code)
        year = validate_year(command.year)
        provider = _lookup(self._providers, command.institution)
        cache_key = delivery_cache_key(command.institution, course_code, year, command.semester)

        cached = self._cache.get_delivery_modes(cache_key)
        if cached is not None:
            self._cache.increment_analytics("delivery:hits")
            return GetDeliveryModesResult(modes=cached, cache_key=cache_key, from_cache=True)

        try:
            options = provider.list_delivery_modes(course_code, year, command.semester)
        except ScrapeError as exc:
            self._cache.increment_analytics("delivery:errors")
            self._cache.push_recent_delivery_error(
                f"{course_code} {year} {command.semester.value}"
            )
            LOGGER.warning(
                "event=delivery_modes_failed cache_key=%s error_type=%s",
                cache_key,
                exc.__class__.__name__,
            )
            raise

        modes = DeliveryModeList(modes=list(options))
        if not modes.modes:
            LOGGER.info("event=delivery_modes_not_found cache_key=%s", cache_key)
            return GetDeliveryModesResult(modes=modes, cache_key=cache_key, from_cache=False)

        self._cache.set_delivery_modes(cache_key, modes)
        self._cache.increment_analytics("delivery:misses")
        return GetDeliveryModesResult(modes=modes, cache_key=cache_key, from_cache=False)


class EvictOldCacheUseCase:
    """Delete cache entries older than the previous academic year."""

    def __init__(
        self,
        cache: AssessmentCache,
        *,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._cache = cache
        self._today = today

    def execute(self, cutoff_year: int | None = None) -> EvictionStats:
        """Evict keys with year < cutoff_year (default: current year - 1)."""
        resolved_cutoff = cutoff_year if cutoff_year is not None else self._today().year - 1
        return self._cache.evict_older_than(resolved_cutoff)


@dataclass(frozen=True)
class BackfillReport:
    """Outcome counts of one backfill run."""

    scrape_updated: int
    scrape_failed: int
    delivery_updated: int
    delivery_failed: int


class BackfillCacheUseCase:
    """Re-extract every cached course, then refresh matching delivery modes.

    Individual failures are counted and logged; the run always continues.
    """

    def __init__(
        self,
        scrapers: Mapping[Institution, AssessmentScraper],
        providers: Mapping[Institution, DeliveryModeProvider],
        cache: AssessmentCache,
        *,
        delay_seconds: float = DEFAULT_BACKFILL_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._scrapers = scrapers
        self._providers = providers
        self._cache = cache
        self._delay_seconds = delay_seconds
        self._sleep = sleep

    def execute(self) -> BackfillReport:
        """Run the backfill over all scrape:* keys."""
        keys = self._cache.list_scrape_cache_keys()
        scrape_updated = 0
        scrape_failed = 0
        periods: dict[tuple[Institution, str, int, SemesterType], None] = {}

        for position, key in enumerate(keys):
            parsed = parse_cache_key(key)
            if parsed is None or parsed.kind is not CacheKeyKind.SCRAPE:
                LOGGER.warning("event=backfill_key_invalid cache_key=%s", key)
                scrape_failed += 1
                continue
            if parsed.year is not None and parsed.semester is not None:
                periods.setdefault(
                    (parsed.institution, parsed.course_code, parsed.year, parsed.semester),
                    None,
                )

            try:
                scraper = _lookup(self._scrapers, parsed.institution)
                assessment = scraper.extract(parsed.course_code, parsed.selection())
            except (ScrapeError, ValueError) as exc:
                scrape_failed += 1
                LOGGER.warning(
                    "event=backfill_scrape_failed cache_key=%s error_type=%s",
                    key,
                    exc.__class__.__name__,
                )
            else:
                self._cache.set_assessment(key, assessment)
                scrape_updated += 1
                LOGGER.info("event=backfill_scrape_updated cache_key=%s", key)

            if position < len(keys) - 1:
                self._pause()

        delivery_updated = 0
        delivery_failed = 0
        for position, (institution, course_code, year, semester) in enumerate(periods):
            cache_key = delivery_cache_key(institution, course_code, year, semester)
            try:
                provider = _lookup(self._providers, institution)
                options = list(provider.list_delivery_modes(course_code, year, semester))
            except (ScrapeError, ValueError) as exc:
                delivery_failed += 1
                LOGGER.warning(
                    "event=backfill_delivery_failed cache_key=%s error_type=%s",
                    cache_key,
                    exc.__class__.__name__,
                )
            else:
                if options:
                    self._cache.set_delivery_modes(cache_key, DeliveryModeList(modes=options))
                    delivery_updated += 1
                else:
                    delivery_failed += 1
                    LOGGER.info("event=backfill_delivery_empty cache_key=%s", cache_key)

            if position < len(periods) - 1:
                self._pause()

        report = BackfillReport(
            scrape_updated=scrape_updated,
            scrape_failed=scrape_failed,
            delivery_updated=delivery_updated,
            delivery_failed=delivery_failed,
        )
        LOGGER.info(
            (
                "event=backfill_completed scrape_updated=%s scrape_failed=%s "
                "delivery_updated=%s delivery_failed=%s"
            ),
            report.scrape_updated,
            report.scrape_failed,
            report.delivery_updated,
            report.delivery_failed,
        )
        return report

    def _pause(self) -> None:
        if self._delay_seconds > 0:
            self._sleep(self._delay_seconds)


class ClearInstitutionCacheUseCase:
    """Delete all cached extractions and delivery modes for one institution."""

    def __init__(self, cache: AssessmentCache) -> None:
        self._cache = cache

    def execute(self, institution: Institution) -> list[str]:
        """Return deleted keys."""
        return self._cache.clear_institution(institution)


@dataclass(frozen=True)
class AnalyticsSnapshot:
    """Counters and recent failures for the analytics report."""

    counters: dict[str, int]
    cached_courses: int
    recent_delivery_errors: list[str]


class GetAnalyticsUseCase:
    """Read analytics counters and cache size."""

    def __init__(self, cache: AssessmentCache) -> None:
        self._cache = cache

    def execute(self) -> AnalyticsSnapshot:
        """Return current analytics snapshot."""
        return AnalyticsSnapshot(
            counters=self._cache.analytics_counts(),
            cached_courses=self._cache.scrape_cache_count(),
            recent_delivery_errors=self._cache.recent_delivery_errors(),
        )


def _lookup(registry: Mapping[Institution, TService], institution: Institution) -> TService:
    try:
        return registry[institution]
    except KeyError as exc:
        raise ValueError(f"Unsupported institution: {institution.value}") from exc
