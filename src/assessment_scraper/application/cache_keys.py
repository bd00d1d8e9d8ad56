"""Deterministic cache key derivation and parsing.

Key formats are shared with external tooling:

    scrape:[{namespace}:]{COURSE}
    scrape:[{namespace}:]{COURSE}:{year}:{Semester_token}:{delivery}
    delivery:[{namespace}:]{COURSE}:{year}:{Semester_token}

The namespace segment is omitted for UQ keys.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum

from assessment_scraper.domain.semester import (
    MAX_YEAR,
    MIN_YEAR,
    DeliveryMode,
    Institution,
    SemesterSelection,
    SemesterType,
)

_WHITESPACE_PATTERN = re.compile(r"\s+")
_YEAR_PATTERN = re.compile(r"^\d{4}$")
_INSTITUTION_BY_NAMESPACE = {
    institution.cache_namespace: institution
    for institution in Institution
    if institution.cache_namespace is not None
}


class CacheKeyKind(StrEnum):
    """Cache key namespaces by cached artifact kind."""

    SCRAPE = "scrape"
    DELIVERY = "delivery"


_KIND_VALUES = frozenset(kind.value for kind in CacheKeyKind)


@dataclass(frozen=True)
class ParsedCacheKey:
    """Structured form of a cache key."""

    kind: CacheKeyKind
    course_code: str
    institution: Institution = Institution.UQ
    year: int | None = None
    semester: SemesterType | None = None
    delivery: DeliveryMode | None = None

    def selection(self) -> SemesterSelection | None:
        """Return full semester selection if the key carries one."""
        if self.year is None or self.semester is None or self.delivery is None:
            return None
        return SemesterSelection(year=self.year, semester=self.semester, delivery=self.delivery)


def normalize_semester_token(semester: str) -> str:
    """Replace internal whitespace with underscores."""
    return _WHITESPACE_PATTERN.sub("_", semester.strip())


def denormalize_semester_token(token: str) -> str:
    """Reverse normalize_semester_token."""
    return token.replace("_", " ")


def scrape_cache_key(
    institution: Institution,
    course_code: str,
    selection: SemesterSelection | None = None,
) -> str:
    """Derive cache key for a course assessment extraction."""
    segments = [CacheKeyKind.SCRAPE.value, *_namespace_segments(institution), course_code.upper()]
    if selection is not None:
        segments.extend(
            [
                str(selection.year),
                normalize_semester_token(selection.semester.value),
                selection.delivery.value,
            ]
        )
    return ":".join(segments)


def delivery_cache_key(
    institution: Institution,
    course_code: str,
    year: int,
    semester: SemesterType,
) -> str:
    """Derive cache key for a delivery-mode lookup."""
    segments = [
        CacheKeyKind.DELIVERY.value,
        *_namespace_segments(institution),
        course_code.upper(),
        str(year),
        normalize_semester_token(semester.value),
    ]
    return ":".join(segments)


def build_cache_key(parsed: ParsedCacheKey) -> str:
    """Re-encode a parsed key; inverse of parse_cache_key."""
    if parsed.kind is CacheKeyKind.SCRAPE:
        return scrape_cache_key(parsed.institution, parsed.course_code, parsed.selection())
    if parsed.year is None or parsed.semester is None:
        raise ValueError("Delivery cache keys require year and semester.")
    return delivery_cache_key(parsed.institution, parsed.course_code, parsed.year, parsed.semester)


def parse_cache_key(key: str) -> ParsedCacheKey | None:
    """Parse scrape/delivery key; return None for malformed keys."""
    parts = key.split(":")
    if len(parts) < 2:
        return None
    try:
        kind = CacheKeyKind(parts[0])
    except ValueError:
        return None

    institution = _INSTITUTION_BY_NAMESPACE.get(parts[1])
    rest = parts[2:] if institution is not None else parts[1:]
    resolved_institution = institution or Institution.UQ
    if not rest or not rest[0]:
        return None

    course_code = rest[0]
    if kind is CacheKeyKind.SCRAPE:
        if len(rest) == 1:
            return ParsedCacheKey(
                kind=kind,
                course_code=course_code,
                institution=resolved_institution,
            )
        if len(rest) != 4:
            return None
        year = _parse_year(rest[1])
        semester = _parse_semester_token(rest[2])
        delivery = _parse_delivery(rest[3])
        if year is None or semester is None or delivery is None:
            return None
        return ParsedCacheKey(
            kind=kind,
            course_code=course_code,
            institution=resolved_institution,
            year=year,
            semester=semester,
            delivery=delivery,
        )

    if len(rest) != 3:
        return None
    year = _parse_year(rest[1])
    semester = _parse_semester_token(rest[2])
    if year is None or semester is None:
        return None
    return ParsedCacheKey(
        kind=kind,
        course_code=course_code,
        institution=resolved_institution,
        year=year,
        semester=semester,
    )


def cache_key_year(key: str) -> int | None:
    """Return the four-digit year in the year position of key, if any.

    Only the kind, namespace and year segments are read, so keys whose
    semester or delivery tokens are unknown still report their year.
    """
    parts = key.split(":")
    if parts[0] not in _KIND_VALUES:
        return None
    rest = parts[2:] if len(parts) > 1 and parts[1] in _INSTITUTION_BY_NAMESPACE else parts[1:]
    if len(rest) < 2 or not _YEAR_PATTERN.match(rest[1]):
        return None
    return int(rest[1])


def _namespace_segments(institution: Institution) -> list[str]:
    namespace = institution.cache_namespace
    return [namespace] if namespace is not None else []


def _parse_year(value: str) -> int | None:
    if not _YEAR_PATTERN.match(value):
        return None
    year = int(value)
    if not MIN_YEAR <= year <= MAX_YEAR:
        return None
    return year


def _parse_semester_token(token: str) -> SemesterType | None:
    try:
        return SemesterType(denormalize_semester_token(token))
    except ValueError:
        return None


def _parse_delivery(value: str) -> DeliveryMode | None:
    try:
        return DeliveryMode(value)
    except ValueError:
        return None
