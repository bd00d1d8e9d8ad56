"""Error taxonomy for course assessment extraction."""

from __future__ import annotations

from typing import Final

RATE_LIMIT_PHRASE: Final = "reached its limit"


class ScrapeError(RuntimeError):
    """Base error for extraction failures reported to callers."""


class FetchError(ScrapeError):
    """Raised when a source document cannot be retrieved."""

    def __init__(self, message: str, *, url: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class RateLimitedError(FetchError):
    """Raised when the source or relay refuses further requests (quota/rate limit)."""


class StructureNotFoundError(ScrapeError):
    """Raised when an expected page structure cannot be located."""


class OfferingsTableNotFoundError(StructureNotFoundError):
    """Raised when neither current nor archived offerings table exists."""


class OfferingNotFoundError(StructureNotFoundError):
    """Raised when offerings exist but none matches the requested selection."""


class AssessmentTableNotFoundError(StructureNotFoundError):
    """Raised when no assessment table survives the locator cascade."""


class UnitNotFoundError(StructureNotFoundError):
    """Raised when the unit outline page reports the unit as missing."""


class NoItemsParsedError(ScrapeError):
    """Raised when a located structure yields zero valid assessment items."""


class SelectionRequiredError(ScrapeError):
    """Raised when a scraper cannot run without a semester selection."""


class ScrapeTemporarilyUnavailableError(RuntimeError):
    """Raised instead of re-attempting extraction for a failure-memoized key."""

    def __init__(self, message: str, *, cache_key: str) -> None:
        super().__init__(message)
        self.cache_key = cache_key


def is_rate_limited(error: BaseException) -> bool:
    """Return whether error signals a durable, non-retryable quota condition."""
    if isinstance(error, RateLimitedError):
        return True
    return RATE_LIMIT_PHRASE in str(error).lower()
