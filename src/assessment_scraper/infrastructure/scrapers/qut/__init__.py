"""QUT unit-outline-anchor driven pipeline."""

from assessment_scraper.infrastructure.scrapers.qut.scraper import (
    QutDeliveryModeProvider,
    QutUnitOutlineScraper,
)

__all__ = ["QutDeliveryModeProvider", "QutUnitOutlineScraper"]
