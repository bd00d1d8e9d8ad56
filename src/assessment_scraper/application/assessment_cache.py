"""Best-effort cache facade over a CacheStore.

Every operation swallows backend errors and returns a neutral result so that
a cache outage reads as a miss and never changes the reported outcome of an
extraction.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Final, TypeVar

from pydantic import ValidationError

from assessment_scraper.application.cache_keys import CacheKeyKind, cache_key_year, parse_cache_key
from assessment_scraper.application.ports import CacheStore
from assessment_scraper.domain.assessment import CourseAssessment, DeliveryModeList
from assessment_scraper.domain.semester import Institution

LOGGER = logging.getLogger(__name__)

FAILED_SCRAPES_SET: Final = "failed-scrapes:v1"
ANALYTICS_KEY_PREFIX: Final = "analytics:"
RECENT_DELIVERY_ERRORS_LIST: Final = "recent-delivery-errors"
MAX_RECENT_DELIVERY_ERRORS: Final = 50
DEFAULT_SCAN_COUNT: Final = 100
DEFAULT_DELETE_BATCH_SIZE: Final = 100

ANALYTICS_EVENTS: Final = (
    "scrape:hits",
    "scrape:misses",
    "scrape:errors",
    "scrape:failed_skip",
    "delivery:hits",
    "delivery:misses",
    "delivery:errors",
)

TResult = TypeVar("TResult")


@dataclass(frozen=True)
class EvictionStats:
    """Counters reported by one eviction pass."""

    deleted_scrape: int
    deleted_delivery: int
    trimmed_failed: int


class AssessmentCache:
    """Typed, failure-tolerant access to cached extraction results."""

    def __init__(self, store: CacheStore) -> None:
        self._store = store

    def get_assessment(self, key: str) -> CourseAssessment | None:
        """Return cached assessment or None on miss/backend failure."""
        payload = self._guard("get", key, lambda: self._store.get(key), None)
        if payload is None:
            return None
        try:
            return CourseAssessment.model_validate(payload)
        except ValidationError:
            LOGGER.warning("event=cache_payload_invalid cache_key=%s kind=assessment", key)
            return None

    def set_assessment(
        self,
        key: str,
        assessment: CourseAssessment,
        ttl_seconds: int | None = None,
    ) -> None:
        """Store assessment; no expiry unless ttl_seconds is given."""
        payload = assessment.model_dump(mode="json", by_alias=True)
        self._guard("set", key, lambda: self._store.set(key, payload, ttl_seconds), None)

    def get_delivery_modes(self, key: str) -> DeliveryModeList | None:
        """Return cached delivery modes or None on miss/backend failure."""
        payload = self._guard("get", key, lambda: self._store.get(key), None)
        if payload is None:
            return None
        try:
            return DeliveryModeList.model_validate(payload)
        except ValidationError:
            LOGGER.warning("event=cache_payload_invalid cache_key=%s kind=delivery", key)
            return None

    def set_delivery_modes(
        self,
        key: str,
        modes: DeliveryModeList,
        ttl_seconds: int | None = None,
    ) -> None:
        """Store delivery modes; no expiry unless ttl_seconds is given."""
        payload = modes.model_dump(mode="json", by_alias=True)
        self._guard("set", key, lambda: self._store.set(key, payload, ttl_seconds), None)

    def add_failed_scrape(self, key: str) -> None:
        """Memoize key as permanently failing (e.g. quota exhausted)."""
        self._guard(
            "set_add",
            key,
            lambda: self._store.set_add(FAILED_SCRAPES_SET, key),
            None,
        )

    def is_failed_scrape(self, key: str) -> bool:
        """Return whether key is failure-memoized; False on backend failure."""
        return self._guard(
            "set_is_member",
            key,
            lambda: self._store.set_is_member(FAILED_SCRAPES_SET, key),
            False,
        )

    def list_scrape_cache_keys(self) -> list[str]:
        """Return every scrape:* key."""
        return self._guard(
            "keys",
            "scrape:*",
            lambda: self._store.keys(f"{CacheKeyKind.SCRAPE.value}:*"),
            [],
        )

    def scrape_cache_count(self) -> int:
        """Return number of cached course extractions."""
        return len(self.list_scrape_cache_keys())

    def increment_analytics(self, event: str) -> None:
        """Increment analytics counter for event."""
        counter_key = f"{ANALYTICS_KEY_PREFIX}{event}"
        self._guard("increment", counter_key, lambda: self._store.increment(counter_key), None)

    def analytics_counts(self) -> dict[str, int]:
        """Return known counters; missing or unreadable counters read as zero."""
        counts = {event: 0 for event in ANALYTICS_EVENTS}
        for event in ANALYTICS_EVENTS:
            counter_key = f"{ANALYTICS_KEY_PREFIX}{event}"
            value = self._guard("get", counter_key, lambda: self._store.get(counter_key), None)
            if isinstance(value, bool):
                continue
            if isinstance(value, int) and value >= 0:
                counts[event] = value
            elif isinstance(value, str) and value.isdigit():
                counts[event] = int(value)
        return counts

    def push_recent_delivery_error(self, label: str) -> None:
        """Record failed delivery lookup label, keeping the most recent entries."""

        def _push() -> None:
            self._store.list_append(RECENT_DELIVERY_ERRORS_LIST, label)
            self._store.list_trim(RECENT_DELIVERY_ERRORS_LIST, -MAX_RECENT_DELIVERY_ERRORS, -1)

        self._guard("list_append", RECENT_DELIVERY_ERRORS_LIST, _push, None)

    def recent_delivery_errors(self) -> list[str]:
        """Return recorded delivery lookup failures, oldest first."""
        return self._guard(
            "list_range",
            RECENT_DELIVERY_ERRORS_LIST,
            lambda: self._store.list_range(RECENT_DELIVERY_ERRORS_LIST, 0, -1),
            [],
        )

    def evict_older_than(
        self,
        cutoff_year: int,
        *,
        batch_size: int = DEFAULT_DELETE_BATCH_SIZE,
    ) -> EvictionStats:
        """Delete scrape/delivery entries whose year is strictly before cutoff_year.

        Keys without a parseable year are kept. The failure memo set is
        trimmed with the same rule.
        """
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")

        scrape_keys = [
            key
            for key in self._scan_all(f"{CacheKeyKind.SCRAPE.value}:*")
            if _is_older(key, cutoff_year)
        ]
        delivery_keys = [
            key
            for key in self._scan_all(f"{CacheKeyKind.DELIVERY.value}:*")
            if _is_older(key, cutoff_year)
        ]
        deleted_scrape = self._delete_in_batches(scrape_keys, batch_size)
        deleted_delivery = self._delete_in_batches(delivery_keys, batch_size)
        trimmed_failed = self.trim_failed_scrapes_older_than(cutoff_year, batch_size=batch_size)

        LOGGER.info(
            (
                "event=cache_evicted cutoff_year=%s deleted_scrape=%s "
                "deleted_delivery=%s trimmed_failed=%s"
            ),
            cutoff_year,
            deleted_scrape,
            deleted_delivery,
            trimmed_failed,
        )
        return EvictionStats(
            deleted_scrape=deleted_scrape,
            deleted_delivery=deleted_delivery,
            trimmed_failed=trimmed_failed,
        )

    def trim_failed_scrapes_older_than(
        self,
        cutoff_year: int,
        *,
        batch_size: int = DEFAULT_DELETE_BATCH_SIZE,
    ) -> int:
        """Remove memoized failures whose year is strictly before cutoff_year."""
        members = self._guard(
            "set_members",
            FAILED_SCRAPES_SET,
            lambda: self._store.set_members(FAILED_SCRAPES_SET),
            set(),
        )
        stale = sorted(member for member in members if _is_older(member, cutoff_year))
        removed = 0
        for batch in _batched(stale, batch_size):
            removed += self._guard(
                "set_remove",
                FAILED_SCRAPES_SET,
                lambda batch=batch: self._store.set_remove(FAILED_SCRAPES_SET, *batch),
                0,
            )
        return removed

    def clear_institution(
        self,
        institution: Institution,
        *,
        batch_size: int = DEFAULT_DELETE_BATCH_SIZE,
    ) -> list[str]:
        """Delete every scrape/delivery entry of one institution; return deleted keys."""
        matched: list[str] = []
        namespace = institution.cache_namespace
        for kind in CacheKeyKind:
            pattern = f"{kind.value}:{namespace}:*" if namespace else f"{kind.value}:*"
            for key in self._scan_all(pattern):
                parsed = parse_cache_key(key)
                if parsed is not None and parsed.institution is institution:
                    matched.append(key)
        self._delete_in_batches(matched, batch_size)
        LOGGER.info(
            "event=cache_institution_cleared institution=%s deleted=%s",
            institution.value,
            len(matched),
        )
        return matched

    def _scan_all(self, pattern: str) -> list[str]:
        def _scan() -> list[str]:
            found: list[str] = []
            cursor = 0
            while True:
                cursor, page = self._store.scan(cursor, pattern, DEFAULT_SCAN_COUNT)
                found.extend(page)
                if cursor == 0:
                    return found

        return self._guard("scan", pattern, _scan, [])

    def _delete_in_batches(self, keys: list[str], batch_size: int) -> int:
        deleted = 0
        for batch in _batched(keys, batch_size):
            deleted += self._guard(
                "delete",
                batch[0],
                lambda batch=batch: self._store.delete(*batch),
                0,
            )
        return deleted

    def _guard(
        self,
        operation: str,
        key: str,
        call: Callable[[], TResult],
        fallback: TResult,
    ) -> TResult:
        try:
            return call()
        except Exception as exc:
            LOGGER.warning(
                "event=cache_operation_failed operation=%s cache_key=%s error_type=%s",
                operation,
                key,
                exc.__class__.__name__,
            )
            return fallback


def _is_older(key: str, cutoff_year: int) -> bool:
    year = cache_key_year(key)
    return year is not None and year < cutoff_year


def _batched(values: Iterable[str], size: int) -> list[list[str]]:
    items = list(values)
    return [items[index : index + size] for index in range(0, len(items), size)]
