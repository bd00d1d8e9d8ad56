"""Institution-specific scraper pipelines."""

from assessment_scraper.infrastructure.scrapers.registry import ScraperRegistry, build_registry

__all__ = ["ScraperRegistry", "build_registry"]
