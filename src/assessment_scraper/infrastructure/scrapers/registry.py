"""Institution tag -> scraper and delivery-mode provider selection."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass

from assessment_scraper.application.ports import (
    AssessmentScraper,
    DeliveryModeProvider,
    DocumentFetcher,
)
from assessment_scraper.domain.semester import Institution
from assessment_scraper.infrastructure.scrapers.qut.scraper import (
    QutDeliveryModeProvider,
    QutUnitOutlineScraper,
)
from assessment_scraper.infrastructure.scrapers.uq.scraper import (
    UqCourseProfileScraper,
    UqDeliveryModeProvider,
)

_SCRAPER_FACTORIES: Mapping[Institution, Callable[[DocumentFetcher], AssessmentScraper]] = {
    Institution.UQ: UqCourseProfileScraper,
    Institution.QUT: QutUnitOutlineScraper,
}
_PROVIDER_FACTORIES: Mapping[Institution, Callable[[DocumentFetcher], DeliveryModeProvider]] = {
    Institution.UQ: UqDeliveryModeProvider,
    Institution.QUT: QutDeliveryModeProvider,
}


@dataclass(frozen=True)
class ScraperRegistry:
    """Scrapers and delivery-mode providers keyed by institution."""

    scrapers: Mapping[Institution, AssessmentScraper]
    delivery_providers: Mapping[Institution, DeliveryModeProvider]

    def scraper_for(self, institution: Institution) -> AssessmentScraper:
        """Return scraper for institution."""
        return self.scrapers[institution]

    def delivery_provider_for(self, institution: Institution) -> DeliveryModeProvider:
        """Return delivery-mode provider for institution."""
        return self.delivery_providers[institution]


def build_registry(fetcher: DocumentFetcher) -> ScraperRegistry:
    """Create every institution pipeline around one shared fetcher."""
    return ScraperRegistry(
        scrapers={
            institution: factory(fetcher) for institution, factory in _SCRAPER_FACTORIES.items()
        },
        delivery_providers={
            institution: factory(fetcher) for institution, factory in _PROVIDER_FACTORIES.items()
        },
    )
