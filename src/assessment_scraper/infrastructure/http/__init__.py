"""HTTP infrastructure package."""

from assessment_scraper.infrastructure.http.config import FetcherConfig, load_fetcher_config
from assessment_scraper.infrastructure.http.fetcher import HttpDocumentFetcher

__all__ = ["FetcherConfig", "HttpDocumentFetcher", "load_fetcher_config"]
