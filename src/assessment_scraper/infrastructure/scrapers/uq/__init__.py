"""UQ course-offering-table driven pipeline."""

from assessment_scraper.infrastructure.scrapers.uq.scraper import (
    UqCourseProfileScraper,
    UqDeliveryModeProvider,
)

__all__ = ["UqCourseProfileScraper", "UqDeliveryModeProvider"]
